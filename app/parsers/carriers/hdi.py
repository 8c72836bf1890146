"""
app/parsers/carriers/hdi.py

HDI Sigorta production export.
"""

from __future__ import annotations

from types import MappingProxyType

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, CarrierParser, ParseState, PolicyDraft, RowReader
from app.parsers.branches import Branch, branch_name
from app.parsers.text import fold_upper, parse_endorsement_number

BRANCH_CODES = MappingProxyType(
    {
        "199": Branch.EARTHQUAKE,
        "310": Branch.TRAFFIC,
        "320": Branch.MOTOR_OWN_DAMAGE,
        "330": Branch.HOME,
        "340": Branch.WORKPLACE,
    }
)

FORMAT = CarrierFormat(
    carrier_id=7,
    name="HDI Sigorta",
    filename_patterns=("hdi",),
    required_columns=("Poliçe No", "Prim", "Vade"),
    signature_columns=("Vade Başlangıç", "İpt/Kay", "Tecdit No"),
    header_row=1,
    branch_codes=BRANCH_CODES,
)


def _full_name(reader: RowReader) -> str | None:
    parts = [part for part in (reader.text("Sigortalı Adı"), reader.text("Sigortalı Soyadı")) if part]
    return " ".join(parts) if parts else None


def _row_kind(reader: RowReader) -> str:
    if fold_upper(reader.text("İpt/Kay")) == "I":
        return RowKind.CANCELLATION
    if "IPTAL" in fold_upper(reader.text("Zeyil Ad")):
        return RowKind.CANCELLATION
    gross = reader.decimal("Brüt Prim")
    return RowKind.CANCELLATION if gross is not None and gross < 0 else RowKind.NEW_BUSINESS


def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
    policy_no = reader.text("Poliçe No")
    if policy_no is None or "POLICE" in fold_upper(policy_no):
        return None

    code = reader.code("Branş")
    branch_id = fmt.lookup_branch(code)
    start_date = reader.date("Vade Başlangıç")

    draft = PolicyDraft(
        policy_no=policy_no,
        renewal_no=reader.text("Tecdit No"),
        endorsement_no=parse_endorsement_number(reader.first_value("Zeyil No")),
        endorsement_type_code=reader.text("Zeyil Kod"),
        branch_code=code,
        branch_name=branch_name(branch_id) if branch_id != Branch.UNCLASSIFIED else code,
        branch_id=branch_id,
        kind=_row_kind(reader),
        issue_date=reader.date("Tanzim Tarihi"),
        start_date=start_date,
        end_date=reader.date("Vade Bitiş"),
        gross_premium=reader.decimal("Brüt Prim"),
        net_premium=reader.decimal("Net Prim"),
        commission=reader.decimal("Komisyon"),
        insured_name=_full_name(reader),
        agent_code=reader.text("Acente"),
    )
    if start_date is None:
        draft.extra_errors.append("Term start date is invalid.")
    return draft


PARSER = CarrierParser(FORMAT, map_row)
