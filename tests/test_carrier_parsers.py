from __future__ import annotations

from dataclasses import MISSING, fields
from datetime import datetime
from decimal import Decimal

import pytest

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat
from app.parsers.branches import Branch, branch_from_keywords
from app.parsers.registry import DetectionMethod, get_parser_registry
from app.parsers.workbook import read_workbook

DOGA_HEADER = (
    "Branş",
    "Poliçe No",
    "Zeyil No",
    "Tanzim Tarihi",
    "Vade Başlangıç",
    "Vade Bitiş",
    "Brüt Prim",
    "Net Prim",
    "Komisyon",
    "İpt/Kay",
    "Sbm Havuz",
    "Sigortalı Adı",
    "Sigortalı Soyadı",
)


def parse_file(file_name: str, content: bytes, *, carrier_id: int | None = None):
    workbook = read_workbook(file_name, content)
    match = get_parser_registry().resolve(workbook, carrier_id=carrier_id)
    assert match.parser is not None, f"{file_name} was not detected"
    return match, match.parser.parse_workbook(workbook)


class TestHepiyiParser:
    def test_parses_turkish_amounts_and_defaults_term_to_one_year(self, hepiyi_file, hepiyi_row) -> None:
        content = hepiyi_file(hepiyi_row("HP-1", national_id="12345678901", plate="34 AB 123"))

        match, rows = parse_file("hepiyi_uretim.xlsx", content)

        assert match.parser.carrier_id == 3
        assert match.method == DetectionMethod.FILENAME
        assert len(rows) == 1
        row = rows[0]
        assert row.row_number == 2
        assert row.policy_no == "HP-1"
        assert row.gross_premium == Decimal("1250.50")
        assert row.net_premium == Decimal("1000.00")
        assert row.issue_date == datetime(2024, 3, 15)
        assert row.start_date == datetime(2024, 3, 15)
        assert row.end_date == datetime(2025, 3, 15)
        assert row.branch_id == Branch.TRAFFIC
        assert row.kind == RowKind.NEW_BUSINESS
        assert row.national_id == "12345678901"
        assert row.tax_id is None
        assert row.plate == "34 AB 123"
        assert row.is_valid

    def test_negative_premium_is_a_cancellation(self, hepiyi_file, hepiyi_row) -> None:
        _, rows = parse_file("hepiyi_uretim.xlsx", hepiyi_file(hepiyi_row("HP-2", gross="-500,00", net="-400,00")))

        assert rows[0].kind == RowKind.CANCELLATION
        assert rows[0].gross_premium == Decimal("-500.00")
        assert rows[0].is_valid

    def test_missing_dates_make_the_row_invalid(self, hepiyi_file, hepiyi_row) -> None:
        _, rows = parse_file("hepiyi_uretim.xlsx", hepiyi_file(hepiyi_row("HP-3", date="")))

        assert not rows[0].is_valid
        assert "Issue date or start date is required." in rows[0].errors

    def test_blank_and_header_echo_rows_are_skipped(self, hepiyi_file, hepiyi_row) -> None:
        header_echo = ("Poliçe No", "", "", "", "", "", "", "", "")
        blank_policy = ("", "0", "15.03.2024", "10,00", "", "", "", "", "")
        content = hepiyi_file(hepiyi_row("HP-4"), header_echo, blank_policy, hepiyi_row("HP-5"))

        _, rows = parse_file("hepiyi_uretim.xlsx", content)

        assert [row.policy_no for row in rows] == ["HP-4", "HP-5"]
        assert [row.row_number for row in rows] == [2, 5]


class TestDogaAndKoruParsers:
    def test_doga_layout_is_detected_by_headers(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                DOGA_HEADER,
                ("310", "D-100", "0", "01.04.2024", "01.04.2024", "01.04.2025", 1500.5, 1200, 120, "K", "", "Ali", "Veli"),
                ("340", "D-101", "0", "02.04.2024", "02.04.2024", "02.04.2025", 800, 700, 70, "I", "", "Can", "Er"),
            ]
        )

        match, rows = parse_file("rapor_2024.xlsx", content)

        assert match.parser.carrier_id == 104
        assert match.method == DetectionMethod.HEADERS
        first, second = rows
        assert first.branch_code == "310"
        assert first.branch_id == Branch.MOTOR_OWN_DAMAGE
        assert first.branch_name == "KASKO"
        assert first.gross_premium == Decimal("1500.5")
        assert first.insured_name == "Ali"
        assert first.insured_surname == "Veli"
        assert first.end_date == datetime(2025, 4, 1)
        assert first.kind == RowKind.NEW_BUSINESS
        assert second.branch_id == Branch.TRAFFIC
        assert second.kind == RowKind.CANCELLATION

    def test_sepet_column_routes_the_same_layout_to_koru(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                (*DOGA_HEADER, "Sepet Id"),
                ("310", "K-1", "0", "01.04.2024", "01.04.2024", "01.04.2025", 900, 800, 80, "K", "", "Ali", "Veli", "S1"),
            ]
        )

        match, rows = parse_file("rapor_2024.xlsx", content)

        assert match.parser.carrier_id == 96
        assert rows[0].branch_id == Branch.TRAFFIC

    def test_unknown_branch_code_is_unclassified(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                DOGA_HEADER,
                ("999", "D-102", "0", "01.04.2024", "01.04.2024", "01.04.2025", 100, 90, 9, "K", "", "A", "B"),
            ]
        )

        _, rows = parse_file("doga_uretim.xlsx", content)

        assert rows[0].branch_id == Branch.UNCLASSIFIED
        assert rows[0].branch_name == "999"

    def test_endorsement_rows_carry_endorsement_dates(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                DOGA_HEADER,
                ("310", "D-103", "2", "10.05.2024", "12.05.2024", "01.04.2025", 0, 0, 0, "K", "", "A", "B"),
            ]
        )

        _, rows = parse_file("doga_uretim.xlsx", content)

        row = rows[0]
        assert row.endorsement_no == 2
        assert row.endorsement_approval_date == datetime(2024, 5, 10)
        assert row.endorsement_effective_date == datetime(2024, 5, 12)
        assert row.is_valid


class TestQuickSpreadsheetParser:
    def test_joins_insured_sheet_by_policy_and_endorsement(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                (
                    "PoliceNo",
                    "ZeyilNo",
                    "UrunAd",
                    "TanzimTarihi",
                    "BaslamaTarihi",
                    "BitisTarihi",
                    "BrutPrimTL",
                    "NetPrimTL",
                    "AcenteKomisyonTL",
                    "Plaka",
                ),
                ("Q-1", "0", "Kasko", "01.05.2024", "01.05.2024", "01.05.2025", "3.000,00", "2.500,00", "250,00", "34 QK 001"),
                ("Q-2", "0", "Trafik", "02.05.2024", "02.05.2024", "02.05.2025", "", "700,00", "70,00", ""),
            ],
            title="PoliceListesi",
            extra_sheets={
                "Sigortalilar": [
                    ("PoliceNo", "ZeyilNo", "Tckn", "Vkn", "Ad", "Soyad", "FirmaAd", "Adres"),
                    ("Q-1", "0", "11111111111", "", "Ayşe", "Demir", "", "Kadıköy"),
                    ("Q-2", "0", "", "1234567890", "", "", "Demir Ltd", "Ankara"),
                ]
            },
        )

        match, rows = parse_file("quick_policeler.xlsx", content)

        assert match.parser.carrier_id == 110
        first, second = rows
        assert first.insured_name == "Ayşe"
        assert first.insured_surname == "Demir"
        assert first.national_id == "11111111111"
        assert first.address == "Kadıköy"
        assert first.branch_id == Branch.MOTOR_OWN_DAMAGE
        assert first.commission == Decimal("250.00")
        assert first.plate == "34 QK 001"
        assert second.insured_name == "Demir Ltd"
        assert second.tax_id == "1234567890"
        assert second.gross_premium == Decimal("700.00")


class TestAkSkayParser:
    HEADER = ("POLICE NO", "ZEYL", "TRF", "TANZ", "BAS/YUK", "BITIS", "SIGORTALI", "NET PRIM", "KOM TUTARI", "TOPLAM")

    def _content(self, make_xlsx) -> bytes:
        title_block = [
            ("AK SIGORTA A.S.",),
            ("KAYIT DEFTERI",),
            ("ACENTA: 0042",),
            ("PARA BIRIMI: TL",),
            ("01/01/24 - 31/01/24 TARIHLERI ARASI",),
            ("RAPOR",),
            ("SAYFA 1",),
        ]
        return make_xlsx(
            [
                *title_block,
                self.HEADER,
                ("TAHAKKUK/IPTAL : Tahakkuk",),
                ("1001", "0", "T4", "05/01/24", "05/01/24", "05/01/25", "AYSE KAYA", "800,00", "80,00", "950,00"),
                ("TOPLAM", "", "", "", "", "", "", "800,00", "80,00", "950,00"),
                ("TAHAKKUK/IPTAL : Iptal",),
                ("1002", "1", "K1", "10/01/24", "10/01/24", "05/01/25", "MEHMET ONER", "100,00", "10,00", "120,00"),
            ]
        )

    def test_sections_drive_row_kind_and_sign(self, make_xlsx) -> None:
        match, rows = parse_file("skay_defter.xlsx", self._content(make_xlsx))

        assert match.parser.carrier_id == 8
        assert [row.policy_no for row in rows] == ["1001", "1002"]
        accrual, cancellation = rows

        assert accrual.kind == RowKind.NEW_BUSINESS
        assert accrual.branch_id == Branch.TRAFFIC
        assert accrual.gross_premium == Decimal("950.00")
        assert accrual.issue_date == datetime(2024, 1, 5)
        assert accrual.end_date == datetime(2025, 1, 5)
        assert accrual.insured_name == "AYSE KAYA"

        assert cancellation.kind == RowKind.CANCELLATION
        assert cancellation.branch_id == Branch.MOTOR_OWN_DAMAGE
        assert cancellation.gross_premium == Decimal("-120.00")
        assert cancellation.net_premium == Decimal("-100.00")
        assert cancellation.commission == Decimal("-10.00")
        assert cancellation.endorsement_no == 1


class TestSompoParser:
    def test_fixed_header_row_and_summary_rows(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                ("SOMPO SIGORTA URETIM RAPORU",),
                ("Dönem: 2024/04",),
                (
                    "Ürün No",
                    "Poliçe No",
                    "Zeyl No",
                    "Yenileme No",
                    "Onay Tarihi",
                    "Brüt Prim",
                    "Net Prim",
                    "Komisyon",
                    "Sigortalı Ünvanı",
                    "Döviz Cinsi",
                ),
                ("311", "SP-500", "0", "1", "10.04.2024", "2.000,00", "1.700,00", "170,00", "ABC LTD", "TL"),
                ("Ürün Toplam", "", "", "", "", "2.000,00", "1.700,00", "170,00", "", ""),
            ]
        )

        match, rows = parse_file("sompo_202404.xlsx", content)

        assert match.parser.carrier_id == 61
        assert len(rows) == 1
        row = rows[0]
        assert row.row_number == 4
        assert row.branch_id == Branch.TRAFFIC
        assert row.branch_name == "TRAFİK"
        assert row.issue_date == datetime(2024, 4, 10)
        assert row.start_date is None
        assert row.renewal_no == "1"
        assert row.insured_name == "ABC LTD"
        assert row.is_valid


class TestHdiParser:
    HEADER = (
        "Branş",
        "Poliçe No",
        "Zeyil No",
        "Tecdit No",
        "Tanzim Tarihi",
        "Vade Başlangıç",
        "Vade Bitiş",
        "Brüt Prim",
        "Net Prim",
        "Komisyon",
        "Sigortalı Adı",
        "Sigortalı Soyadı",
    )

    def test_joins_insured_name_parts(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                self.HEADER,
                ("310", "HD-1", "0", "0", "01.05.2024", "01.05.2024", "01.05.2025", "1.000,00", "850,00", "85,00", "Zeynep", "Kara"),
            ]
        )

        match, rows = parse_file("hdi_uretim.xlsx", content)

        assert match.parser.carrier_id == 7
        assert rows[0].insured_name == "Zeynep Kara"
        assert rows[0].branch_id == Branch.TRAFFIC
        assert rows[0].is_valid

    def test_missing_term_start_is_reported(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                self.HEADER,
                ("310", "HD-2", "0", "0", "01.05.2024", "", "01.05.2025", "1.000,00", "850,00", "85,00", "Zeynep", "Kara"),
            ]
        )

        _, rows = parse_file("hdi_uretim.xlsx", content)

        assert rows[0].errors == ("Term start date is invalid.",)


class TestCorpusParser:
    def test_non_numeric_policy_numbers_are_summary_rows(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                (
                    "POLİÇE NO",
                    "ZEYİL NO",
                    "ÜRÜN NO",
                    "ÜRÜN SEGMENT",
                    "ONAY TANZİM TARİHİ",
                    "BAŞLAMA TAR",
                    "BİTİŞ TAR",
                    "BRÜT PRİM",
                    "NET PRİM",
                    "KOMİSYON",
                    "SİGORTALI ÜNVANI",
                    "PLAKA",
                    "İPTAL / YÜRÜRLÜK",
                ),
                ("12345", "0", "TRT", "Trafik", "02.06.2024", "02.06.2024", "02.06.2025", "900,00", "800,00", "80,00", "Veli Demir", "06 XYZ 12", "Yürürlük"),
                ("12346", "1", "XYZ", "Kasko", "03.06.2024", "03.06.2024", "02.06.2025", "-50,00", "-40,00", "-4,00", "Veli Demir", "", "İptal"),
                ("Toplam", "", "", "", "", "", "", "850,00", "", "", "", "", ""),
            ]
        )

        match, rows = parse_file("corpus_uretim.xlsx", content)

        assert match.parser.carrier_id == 19
        assert [row.policy_no for row in rows] == ["12345", "12346"]
        assert rows[0].branch_id == Branch.TRAFFIC
        assert rows[0].plate == "06 XYZ 12"
        assert rows[1].branch_id == Branch.MOTOR_OWN_DAMAGE
        assert rows[1].kind == RowKind.CANCELLATION
        assert rows[1].endorsement_approval_date == datetime(2024, 6, 3)


class TestAnkaraParser:
    def test_endorsement_start_overrides_policy_start(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                (
                    "Poliçe No",
                    "Zeyil No",
                    "Branş",
                    "Poliçe Onay Tarihi",
                    "Poliçe Başlangıç Tarihi",
                    "Poliçe Bitiş Tarihi",
                    "Zeyil Başlangıç Tarihi",
                    "Brüt Prim",
                    "Net Prim",
                    "Sigortalı Adı / Ünvanı",
                    "Tahakkuk / İptal",
                ),
                ("AN-1", "0", "Genel Kaza", "01.07.2024", "01.07.2024", "01.07.2025", "", "1.200,00", "1.000,00", "Ayla Sen", "Tahakkuk"),
                ("AN-1", "1", "Genel Kaza", "01.07.2024", "01.07.2024", "01.07.2025", "15.08.2024", "-200,00", "-150,00", "Ayla Sen", "İptal"),
            ]
        )

        match, rows = parse_file("ankara_police.xlsx", content)

        assert match.parser.carrier_id == 9
        policy, endorsement = rows
        assert policy.branch_id == Branch.PERSONAL_ACCIDENT
        assert policy.start_date == datetime(2024, 7, 1)
        assert policy.kind == RowKind.NEW_BUSINESS
        assert endorsement.start_date == datetime(2024, 8, 15)
        assert endorsement.endorsement_effective_date == datetime(2024, 8, 15)
        assert endorsement.kind == RowKind.CANCELLATION
        assert endorsement.insured_name == "Ayla Sen"


class TestNeovaParser:
    def test_ten_digit_identity_is_a_tax_id(self, make_xlsx) -> None:
        content = make_xlsx(
            [
                (
                    "POLİÇE NO",
                    "ZEYİL NO",
                    "TANZİM TARİHİ",
                    "BAŞLANGIÇ TARİHİ",
                    "BİTİŞ TARİHİ",
                    "BRÜT PRİM",
                    "NET PRİM",
                    "SİGORTALI ADI",
                    "TC KİMLİK NO",
                ),
                ("NV-1", "0", "01.08.2024", "01.08.2024", "01.08.2025", "750,00", "600,00", "Deniz AŞ", "1234567890"),
            ]
        )

        match, rows = parse_file("neova_police.xlsx", content)

        assert match.parser.carrier_id == 4
        assert rows[0].tax_id == "1234567890"
        assert rows[0].national_id is None
        assert rows[0].end_date == datetime(2025, 8, 1)
        assert rows[0].branch_id == Branch.UNCLASSIFIED


class TestUnicoCsvParser:
    def test_semicolon_csv(self, make_csv) -> None:
        content = make_csv(
            [
                (
                    "Poliçe No",
                    "Zeyil No",
                    "Tanzim Tarihi",
                    "Başlama Tarihi",
                    "Bitiş Tarihi",
                    "Brüt Prim",
                    "Net Prim",
                    "Sigortalı Adı",
                    "TC Kimlik No",
                ),
                ("UN-1", "0", "05.09.2024", "05.09.2024", "05.09.2025", "1500.75", "1200.00", "Cem Ak", "12345678901"),
                ("UN-2", "0", "06.09.2024", "06.09.2024", "06.09.2025", "980.00", "800.00", "Ece Su", "10987654321"),
            ]
        )

        match, rows = parse_file("aviva_2024.csv", content)

        assert match.parser.carrier_id == 5
        assert [row.policy_no for row in rows] == ["UN-1", "UN-2"]
        assert rows[0].gross_premium == Decimal("1500.75")
        assert rows[0].national_id == "12345678901"
        assert rows[0].start_date == datetime(2024, 9, 5)


@pytest.mark.parametrize(
    ("file_name", "carrier_id"),
    [
        ("Hepiyi Ekim.xlsx", 3),
        ("KORU_rapor.xlsx", 96),
        ("RaporSonuc (3).xlsx", 104),
        ("Unico_Ekim.xlsx", 5),
    ],
)
def test_filename_patterns_ignore_case_and_separators(file_name: str, carrier_id: int) -> None:
    parser = next(p for p in get_parser_registry().parsers if p.carrier_id == carrier_id and not p.is_xml)

    assert parser.matches_filename(file_name)


class TestCarrierFormatDefaults:
    def test_format_without_a_branch_table_classifies_by_label(self) -> None:
        layout = CarrierFormat(
            carrier_id=99,
            name="Test Sigorta",
            filename_patterns=("test",),
            required_columns=("Poliçe No",),
        )

        assert dict(layout.branch_codes) == {}
        assert layout.lookup_branch("310") == Branch.UNCLASSIFIED
        assert layout.lookup_branch("310", "Trafik Sigortası") == branch_from_keywords("Trafik Sigortası")

    def test_branch_table_default_is_built_per_instance(self) -> None:
        default = next(item for item in fields(CarrierFormat) if item.name == "branch_codes")

        assert default.default is MISSING
        assert default.default_factory() == {}
