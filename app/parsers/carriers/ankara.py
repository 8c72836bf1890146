"""
app/parsers/carriers/ankara.py

Ankara Sigorta production export.

Endorsement rows carry their own start date which takes precedence over the
policy start date; the "Tahakkuk / İptal" column marks cancellations.
"""

from __future__ import annotations

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, CarrierParser, ParseState, PolicyDraft, RowReader
from app.parsers.branches import Branch, branch_from_keywords
from app.parsers.text import fold_upper, parse_endorsement_number

FORMAT = CarrierFormat(
    carrier_id=9,
    name="Ankara Sigorta",
    filename_patterns=("ankara", "ank"),
    required_columns=("Poliçe No", "Brüt Prim", "Başlangıç"),
    signature_columns=("Tahakkuk / İptal", "Branş"),
    notes="Branch is a free-text label; amounts are in TL columns.",
)

_GROSS = ("Brüt Prim ₺", "Brüt Prim")


def _branch_id(label: str | None) -> int:
    if "GENEL KAZA" in fold_upper(label):
        return Branch.PERSONAL_ACCIDENT
    return branch_from_keywords(label)


def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
    policy_no = reader.text("Poliçe No")
    if policy_no is None:
        return None

    label = reader.text("Branş")
    endorsement_start = reader.date("Zeyil Başlangıç Tarihi")
    start_date = endorsement_start or reader.date("Poliçe Başlangıç Tarihi")
    gross = reader.decimal(*_GROSS)

    marker = fold_upper(reader.text("Tahakkuk / İptal"))
    if "IPTAL" in marker or (gross is not None and gross < 0):
        kind = RowKind.CANCELLATION
    else:
        kind = RowKind.NEW_BUSINESS

    draft = PolicyDraft(
        policy_no=policy_no,
        renewal_no=reader.text("Yenileme No"),
        endorsement_no=parse_endorsement_number(reader.first_value("Zeyil No")),
        endorsement_type_code=reader.text("Zeyil Türü"),
        branch_name=label,
        branch_id=_branch_id(label),
        kind=kind,
        issue_date=reader.date("Poliçe Onay Tarihi"),
        start_date=start_date,
        end_date=reader.date("Poliçe Bitiş Tarihi"),
        endorsement_approval_date=reader.date("Zeyil Onay Tarihi"),
        endorsement_effective_date=endorsement_start,
        gross_premium=gross,
        net_premium=reader.decimal("Net Prim ₺", "Net Prim"),
        commission=reader.decimal("Komisyon ₺", "Komisyon"),
        insured_name=reader.text("Sigortalı Adı / Ünvanı"),
        plate=reader.text("Plaka"),
        agent_code=reader.text("Partaj"),
    )
    if start_date is None:
        draft.extra_errors.append("Policy start date is invalid.")
    return draft


PARSER = CarrierParser(FORMAT, map_row)
