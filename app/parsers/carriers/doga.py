"""
app/parsers/carriers/doga.py

Doğa Sigorta production report ("RaporSonuc" exports).

The row mapping reads its branch-code table from the carrier format, so
carriers sharing this report layout reuse ``map_row`` with their own table.
"""

from __future__ import annotations

from types import MappingProxyType

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, CarrierParser, ParseState, PolicyDraft, RowReader
from app.parsers.branches import Branch, branch_name
from app.parsers.text import fold_column, fold_upper, parse_endorsement_number

BRANCH_CODES = MappingProxyType(
    {
        "310": Branch.MOTOR_OWN_DAMAGE,
        "340": Branch.TRAFFIC,
        "318": Branch.EARTHQUAKE,
        "320": Branch.HOME,
        "350": Branch.PERSONAL_ACCIDENT,
        "360": Branch.LIABILITY,
        "370": Branch.TRANSPORT,
        "380": Branch.WORKPLACE,
        "390": Branch.LIFE,
        "410": Branch.HEALTH,
        "420": Branch.SUPPLEMENTARY_HEALTH,
    }
)

FORMAT = CarrierFormat(
    carrier_id=104,
    name="Doğa Sigorta",
    filename_patterns=("doga", "doğa", "raporsonuc"),
    required_columns=("Branş", "Poliçe No", "Brüt Prim"),
    signature_columns=("İpt/Kay", "Vade Başlangıç", "Vade Bitiş", "Sbm Havuz"),
    branch_codes=BRANCH_CODES,
)


def _row_kind(reader: RowReader) -> str:
    if fold_upper(reader.text("İpt/Kay")) == "I":
        return RowKind.CANCELLATION
    if fold_upper(reader.text("İptal")) == "E":
        return RowKind.CANCELLATION
    gross = reader.decimal("Brüt Prim")
    return RowKind.CANCELLATION if gross is not None and gross < 0 else RowKind.NEW_BUSINESS


def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
    code = reader.code("Branş")
    if code is None or "brans" in fold_column(code):
        return None

    policy_no = reader.text("Poliçe No")
    if policy_no is None:
        return None

    endorsement_no = parse_endorsement_number(reader.first_value("Zeyil No", "Zeyl No"))
    issue_date = reader.date("Tanzim Tarihi", "Tanzim Tar")
    start_date = reader.date("Vade Başlangıç")
    branch_id = fmt.lookup_branch(code)
    is_endorsement = endorsement_no > 0

    return PolicyDraft(
        policy_no=policy_no,
        renewal_no=reader.text("Tecdit No", "Yenileme No"),
        endorsement_no=endorsement_no,
        endorsement_type_code=reader.text("Zeyil Kod", "Zeyl Kod"),
        branch_code=code,
        branch_name=branch_name(branch_id) if branch_id != Branch.UNCLASSIFIED else code,
        branch_id=branch_id,
        kind=_row_kind(reader),
        issue_date=issue_date,
        start_date=start_date,
        end_date=reader.date("Vade Bitiş"),
        endorsement_approval_date=issue_date if is_endorsement else None,
        endorsement_effective_date=start_date if is_endorsement else None,
        gross_premium=reader.decimal("Brüt Prim"),
        net_premium=reader.decimal("Net Prim"),
        commission=reader.decimal("Komisyon"),
        insured_name=reader.text("Sigortalı Adı"),
        insured_surname=reader.text("Sigortalı Soyadı"),
        agent_code=reader.text("Acente"),
    )


PARSER = CarrierParser(FORMAT, map_row)
