"""
app/parsers/carriers/ak_skay.py

AK Sigorta SKAY register ("kayıt defteri") export.

The sheet opens with an eight-row title block, then alternates sections
introduced by banner rows such as ``TAHAKKUK/IPTAL : Iptal``. Every data row
inside a cancellation section is a cancellation and its amounts are made
negative. Section totals and repeated title rows are skipped.
"""

from __future__ import annotations

from decimal import Decimal

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, CarrierParser, ParseState, PolicyDraft, RowReader
from app.parsers.branches import Branch, branch_from_keywords
from app.parsers.text import fold_upper, parse_endorsement_number

FORMAT = CarrierFormat(
    carrier_id=8,
    name="AK Sigorta (SKAY)",
    filename_patterns=("skay", "aksigorta", "ak_sigorta"),
    required_columns=("POLICE NO", "PRIM", "TANZ"),
    policy_columns=("POLICE NO",),
    signature_columns=("ZEYL", "BAS/YUK", "SIGORTALI"),
    header_row=8,
    notes="Two-digit-year dates; cancellation sections are marked by banner rows.",
)

DATE_FORMATS: tuple[str, ...] = ("%d/%m/%y", "%d/%m/%Y", "%d.%m.%y", "%d.%m.%Y")

_SECTION_BANNER = "TAHAKKUK/IPTAL"
_METADATA_MARKERS: tuple[str, ...] = (
    "AK SIGORTA",
    "KAYIT DEFTER",
    "PARA BIRIMI",
    "ACENTA",
    "ACENTE",
    "TARIHLERI ARASI",
)


def _structural_row(reader: RowReader, state: ParseState) -> bool:
    """
    Update section state from banner rows; True when the row holds no policy.
    """

    for cell in reader.cells():
        value = fold_upper(cell)
        if _SECTION_BANNER in value:
            _, _, tail = value.partition(":")
            state.section_kind = RowKind.CANCELLATION if "IPTAL" in tail else RowKind.NEW_BUSINESS
            return True
        if "TOPLAM" in value and "POLICE" not in value:
            return True
        if any(marker in value for marker in _METADATA_MARKERS):
            return True
    return False


def tariff_branch(tariff: str | None) -> int:
    if not tariff:
        return Branch.UNCLASSIFIED
    code = tariff.upper().split("-")[0].strip()
    if code.startswith("T4"):
        return Branch.TRAFFIC
    if code.startswith("K1"):
        return Branch.MOTOR_OWN_DAMAGE
    if code == "ZDS":
        return Branch.EARTHQUAKE
    if code.startswith("Y"):
        return Branch.HOME
    return branch_from_keywords(tariff)


def _negated(value: Decimal | None) -> Decimal | None:
    if value is not None and value > 0:
        return -value
    return value


def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
    if _structural_row(reader, state):
        return None

    policy_no = reader.text(*fmt.policy_columns)
    if policy_no is None or "POLICE" in fold_upper(policy_no):
        return None

    gross = reader.decimal("TOPLAM")
    net = reader.decimal("NET PRIM")
    commission = reader.decimal("KOM TUTARI", "KOMISYON")

    if state.section_kind == RowKind.CANCELLATION:
        gross, net, commission = _negated(gross), _negated(net), _negated(commission)
        kind = RowKind.CANCELLATION
    elif "IPT" in fold_upper(reader.text("TAH TIP")) or (net is not None and net < 0):
        kind = RowKind.CANCELLATION
    else:
        kind = RowKind.NEW_BUSINESS

    if not gross:
        gross = net

    tariff = reader.text("TRF", "TARIFE")
    branch_id = tariff_branch(tariff)

    return PolicyDraft(
        policy_no=policy_no,
        endorsement_no=parse_endorsement_number(reader.first_value("ZEYL", "ZEYIL")),
        branch_code=tariff,
        branch_id=branch_id,
        kind=kind,
        issue_date=reader.date("TANZ", "TANZIM", formats=DATE_FORMATS),
        start_date=reader.date("BAS/YUK", "BASLANGIC", formats=DATE_FORMATS),
        end_date=reader.date("BITIS", formats=DATE_FORMATS),
        gross_premium=gross,
        net_premium=net,
        commission=commission,
        insured_name=reader.text("SIGORTALI"),
    )


PARSER = CarrierParser(FORMAT, map_row)
