"""
app/parsers/carriers/sompo.py

Sompo Sigorta production report. Column names sit on the third sheet row
under a title block, and section sub-totals are interleaved with data rows.
"""

from __future__ import annotations

from types import MappingProxyType

from app.parsers.base import CarrierFormat, CarrierParser, ParseState, PolicyDraft, RowReader
from app.parsers.branches import Branch, branch_name
from app.parsers.text import fold_column, parse_endorsement_number

PRODUCT_CODES = MappingProxyType(
    {
        "311": Branch.TRAFFIC,
        "307": Branch.MOTOR_OWN_DAMAGE,
        "333": Branch.MOTOR_OWN_DAMAGE,
        "117": Branch.EARTHQUAKE,
        "460": Branch.PERSONAL_ACCIDENT,
        "403": Branch.SEAT_ACCIDENT,
        "110": Branch.HOME,
        "205": Branch.TRANSPORT,
        "455": Branch.TRAVEL,
        "106": Branch.WORKPLACE,
        "438": Branch.WORKPLACE,
        "321": Branch.EXCESS_LIABILITY,
        "805": Branch.FOREIGNER_HEALTH,
        "804": Branch.SUPPLEMENTARY_HEALTH,
        "201": Branch.LEGAL_PROTECTION,
        "303": Branch.GREEN_CARD,
        "512": Branch.ENGINEERING,
        "513": Branch.ENGINEERING,
        "470": Branch.LIABILITY,
    }
)

FORMAT = CarrierFormat(
    carrier_id=61,
    name="Sompo Sigorta",
    filename_patterns=("sompo", "smp"),
    required_columns=("Ürün No", "Poliçe No", "Prim"),
    signature_columns=("Ürün No", "Sigortalı Ünvanı", "Döviz Cinsi"),
    header_row=3,
    branch_codes=PRODUCT_CODES,
    notes="Only an approval date is exported; it is used as the issue date.",
)

_SUMMARY_MARKERS = ("urun", "prim", "toplam")


def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
    product_code = reader.code("Ürün No")
    if product_code is None:
        return None
    folded = fold_column(product_code)
    if any(marker in folded for marker in _SUMMARY_MARKERS):
        return None

    policy_no = reader.text("Poliçe No")
    if policy_no is None:
        return None

    endorsement_no = parse_endorsement_number(reader.first_value("Zeyl No", "Zeyil No"))
    approval_date = reader.date("Onay Tarihi", "Onay Tar")
    branch_id = fmt.lookup_branch(product_code)

    return PolicyDraft(
        policy_no=policy_no,
        renewal_no=reader.text("Yenileme No", "Yenileme"),
        endorsement_no=endorsement_no,
        branch_code=product_code,
        branch_name=branch_name(branch_id) if branch_id != Branch.UNCLASSIFIED else product_code,
        branch_id=branch_id,
        issue_date=approval_date,
        endorsement_approval_date=approval_date if endorsement_no > 0 else None,
        gross_premium=reader.decimal("Brüt Prim"),
        net_premium=reader.decimal("Net Prim"),
        commission=reader.decimal("Komisyon"),
        insured_name=reader.text("Sigortalı Ünvanı"),
    )


PARSER = CarrierParser(FORMAT, map_row)
