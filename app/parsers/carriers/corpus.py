"""
app/parsers/carriers/corpus.py

Corpus Sigorta production export. Product codes are three-character
mnemonics; unknown codes fall back to the product segment label.
"""

from __future__ import annotations

from types import MappingProxyType

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, CarrierParser, ParseState, PolicyDraft, RowReader
from app.parsers.branches import Branch
from app.parsers.text import fold_upper, parse_endorsement_number


def _codes(branch_id: int, *codes: str) -> dict[str, int]:
    return {code: branch_id for code in codes}


PRODUCT_CODES = MappingProxyType(
    {
        **_codes(Branch.TRAFFIC, "TRT", "TR1", "TR4", "TR5", "TR6", "TTT"),
        **_codes(
            Branch.MOTOR_OWN_DAMAGE,
            "FKH", "FKT", "DMR", "KSA", "KSI", "KSM", "KS1", "KS2", "KS3", "KS4", "KS5",
            "PFH", "PFK", "PFM", "PFO", "PFQ", "PFS", "PKM", "PKN", "PKP", "PKR", "PKY",
            "997", "100", "101",
        ),
        **_codes(Branch.EARTHQUAKE, "DSG", "DSK", "DTK"),
        **_codes(
            Branch.PERSONAL_ACCIDENT,
            "FOS", "FRD", "FRK", "GBF", "GFC", "GFK", "GMF", "FFF", "FKB", "FKG", "FKK",
            "FKP", "FKZ", "FK1", "FK2", "ERK", "BFK", "KFK", "KFS", "SAF", "SFK", "KFG", "252",
        ),
        **_codes(Branch.SEAT_ACCIDENT, "TAF"),
        **_codes(Branch.HOME, "DNM", "BTM", "CAM", "KPS", "211", "250", "251", "YK1", "YK2", "YK3"),
        **_codes(Branch.TRANSPORT, "EMN", "EMT", "ENA", "EN2", "EN3", "ABN", "NBA", "KYN", "KIY"),
        **_codes(Branch.HEALTH, "FVS", "DSS", "ASA", "ASC", "SGL"),
        **_codes(Branch.TRAVEL, "GSS", "BSS", "CSS", "SEY", "SSS", "SYH", "SYS", "SYY", "SY1", "YIS"),
        **_codes(Branch.WORKPLACE, "IMS", "INM", "IPS", "ISV", "SPI", "204", "YAP", "YI1"),
        **_codes(Branch.EXCESS_LIABILITY, "IHM", "IHS", "IMM"),
        **_codes(Branch.AGRICULTURE, "810", "820", "830", "840", "850", "860", "870", "890", "900", "910", "920"),
        **_codes(
            Branch.FIRE,
            "EKE", "EKK", "EKO", "EKP", "EK1", "KTY", "KSY", "KAS", "144",
            "YAS", "YI2", "YKK", "YK", "YMM", "YMS",
        ),
        **_codes(Branch.LEGAL_PROTECTION, "HUK"),
        **_codes(Branch.HULL, "GTS", "DTZ", "DYZ", "DZM", "NTS", "NYS", "NY1", "SBR"),
        **_codes(Branch.LIFE, "HYT"),
        **_codes(
            Branch.ENGINEERING,
            "EAR", "ECS", "CAR", "INS", "SIN", "MKK", "MKS", "MKU", "MMM", "MMS",
            "MON", "MSL", "MTA", "MTP", "MUB", "MBD", "MBK", "MDG",
        ),
        **_codes(
            Branch.LIABILITY,
            "EXC", "ASM", "ASN", "ASS", "AUS", "LIS", "SMM", "S15", "TAB", "TSS", "TSY", "TYU", "TPG", "TPP",
        ),
        **_codes(Branch.EDUCATION, "CEG"),
    }
)

FORMAT = CarrierFormat(
    carrier_id=19,
    name="Corpus Sigorta",
    filename_patterns=("corpus",),
    required_columns=("Poliçe No", "Brüt Prim"),
    signature_columns=("ACENTA POL NO", "ORTAKLIK_BEDELI", "SİGORTALI ÜNVANI"),
    branch_codes=PRODUCT_CODES,
    notes="Summary rows are recognised by a non-numeric policy number.",
)


def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
    policy_no = reader.text("POLİÇE NO")
    if policy_no is None or not policy_no.isdigit():
        return None

    endorsement_no = parse_endorsement_number(reader.first_value("ZEYİL NO"))
    product_code = reader.code("ÜRÜN NO")
    segment = reader.text("ÜRÜN SEGMENT")
    label = segment or product_code
    issue_date = reader.date("ONAY TANZİM TARİHİ", "TANZIM TARIHI")
    start_date = reader.date("BAŞLAMA TAR")
    gross = reader.decimal("BRÜT PRİM")

    cancelled = "IPTAL" in fold_upper(reader.text("İPTAL / YÜRÜRLÜK"))
    if gross is not None and gross < 0:
        cancelled = True
    is_endorsement = endorsement_no > 0

    return PolicyDraft(
        policy_no=policy_no,
        renewal_no=reader.text("YENİLEME NO"),
        endorsement_no=endorsement_no,
        branch_code=product_code,
        branch_name=fold_upper(label) or None,
        branch_id=fmt.lookup_branch(product_code.upper() if product_code else None, label),
        kind=RowKind.CANCELLATION if cancelled else RowKind.NEW_BUSINESS,
        issue_date=issue_date,
        start_date=start_date,
        end_date=reader.date("BİTİŞ TAR"),
        endorsement_approval_date=issue_date if is_endorsement else None,
        endorsement_effective_date=start_date if is_endorsement else None,
        gross_premium=gross,
        net_premium=reader.decimal("NET PRİM"),
        commission=reader.decimal("KOMİSYON"),
        insured_name=reader.text("SİGORTALI ÜNVANI"),
        plate=reader.text("PLAKA"),
        agent_code=reader.text("ESKİ MUST KOD"),
    )


PARSER = CarrierParser(FORMAT, map_row)
