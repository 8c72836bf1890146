from __future__ import annotations

import unittest
from datetime import date, datetime
from decimal import Decimal

from app.parsers.branches import Branch, branch_from_keywords, branch_name
from app.parsers.text import (
    add_years,
    clean_code,
    clean_text,
    digits_only,
    fold_column,
    fold_upper,
    parse_date,
    parse_decimal,
    parse_endorsement_number,
    split_person_name,
)


class TestFolding(unittest.TestCase):
    def test_fold_column_drops_diacritics_case_and_separators(self) -> None:
        self.assertEqual(fold_column("Poliçe No"), "policeno")
        self.assertEqual(fold_column("BAŞLANGIÇ_TARİHİ"), "baslangictarihi")
        self.assertEqual(fold_column("İpt/Kay"), "iptkay")

    def test_fold_upper_collapses_whitespace(self) -> None:
        self.assertEqual(fold_upper("  ayşe   yılmaz "), "AYSE YILMAZ")
        self.assertEqual(fold_upper("Mehmet Yılmaz"), fold_upper("MEHMET YILMAZ"))
        self.assertEqual(fold_upper(None), "")


class TestCleaning(unittest.TestCase):
    def test_blank_markers_become_none(self) -> None:
        for value in (None, "", "  ", "-", "nan", float("nan")):
            self.assertIsNone(clean_text(value))

    def test_clean_code_drops_float_suffix(self) -> None:
        self.assertEqual(clean_code(310.0), "310")
        self.assertEqual(clean_code("344.0"), "344")
        self.assertEqual(clean_code("TRT"), "TRT")

    def test_digits_only(self) -> None:
        self.assertEqual(digits_only("123-456 78"), "12345678")
        self.assertIsNone(digits_only("abc"))


class TestParseDecimal(unittest.TestCase):
    def test_turkish_thousands_convention(self) -> None:
        self.assertEqual(parse_decimal("1.234,56"), Decimal("1234.56"))

    def test_english_thousands_convention(self) -> None:
        self.assertEqual(parse_decimal("1,234.56"), Decimal("1234.56"))

    def test_lone_comma_is_decimal_separator(self) -> None:
        self.assertEqual(parse_decimal("99,90"), Decimal("99.90"))

    def test_currency_markers_are_stripped(self) -> None:
        self.assertEqual(parse_decimal("2.500,00 TL"), Decimal("2500.00"))
        self.assertEqual(parse_decimal("₺1.500,25"), Decimal("1500.25"))

    def test_parenthesized_value_is_negative(self) -> None:
        self.assertEqual(parse_decimal("(150,00)"), Decimal("-150.00"))

    def test_numeric_cells_pass_through(self) -> None:
        self.assertEqual(parse_decimal(42), Decimal(42))
        self.assertEqual(parse_decimal(12.5), Decimal("12.5"))

    def test_junk_is_none(self) -> None:
        self.assertIsNone(parse_decimal("abc"))
        self.assertIsNone(parse_decimal(""))
        self.assertIsNone(parse_decimal(True))


class TestParseDate(unittest.TestCase):
    def test_day_first_text(self) -> None:
        self.assertEqual(parse_date("15.03.2024"), datetime(2024, 3, 15))
        self.assertEqual(parse_date("15/03/2024 10:30:00"), datetime(2024, 3, 15, 10, 30))

    def test_iso_text(self) -> None:
        self.assertEqual(parse_date("2024-02-29"), datetime(2024, 2, 29))
        self.assertEqual(parse_date("2024-02-29T08:15:00"), datetime(2024, 2, 29, 8, 15))

    def test_two_digit_year(self) -> None:
        self.assertEqual(parse_date("31/12/23"), datetime(2023, 12, 31))

    def test_ole_serial_number(self) -> None:
        self.assertEqual(parse_date(45000), datetime(2023, 3, 15))

    def test_native_values(self) -> None:
        self.assertEqual(parse_date(date(2024, 1, 2)), datetime(2024, 1, 2))
        self.assertEqual(parse_date(datetime(2024, 1, 2, 3, 4)), datetime(2024, 1, 2, 3, 4))

    def test_unparseable_is_none(self) -> None:
        self.assertIsNone(parse_date("not a date"))
        self.assertIsNone(parse_date(None))
        self.assertIsNone(parse_date("31.02.2024"))


class TestEndorsementNumber(unittest.TestCase):
    def test_accepts_common_spellings(self) -> None:
        self.assertEqual(parse_endorsement_number("1"), 1)
        self.assertEqual(parse_endorsement_number("1.0"), 1)
        self.assertEqual(parse_endorsement_number("1,0"), 1)

    def test_blank_and_junk_are_zero(self) -> None:
        self.assertEqual(parse_endorsement_number(None), 0)
        self.assertEqual(parse_endorsement_number("-"), 0)
        self.assertEqual(parse_endorsement_number("x"), 0)


class TestAddYears(unittest.TestCase):
    def test_leap_day_clamps(self) -> None:
        self.assertEqual(add_years(datetime(2024, 2, 29), 1), datetime(2025, 2, 28))
        self.assertEqual(add_years(datetime(2024, 5, 1), -2), datetime(2022, 5, 1))


class TestSplitPersonName(unittest.TestCase):
    def test_last_word_becomes_the_surname(self) -> None:
        self.assertEqual(split_person_name("AHMET CAN YILDIZ"), ("AHMET CAN", "YILDIZ"))
        self.assertEqual(split_person_name("CEM"), ("CEM", None))
        self.assertEqual(split_person_name(None), (None, None))

    def test_separate_surname_is_kept(self) -> None:
        self.assertEqual(split_person_name(" Ayşe ", "Kaya "), ("Ayşe", "Kaya"))
        self.assertEqual(split_person_name(None, "Kaya"), (None, "Kaya"))


class TestBranchKeywords(unittest.TestCase):
    def test_compound_labels_win(self) -> None:
        self.assertEqual(branch_from_keywords("Yabancı Sağlık"), Branch.FOREIGNER_HEALTH)
        self.assertEqual(branch_from_keywords("Tamamlayıcı Sağlık"), Branch.SUPPLEMENTARY_HEALTH)
        self.assertEqual(branch_from_keywords("Sağlık"), Branch.HEALTH)

    def test_common_products(self) -> None:
        self.assertEqual(branch_from_keywords("Zorunlu Trafik"), Branch.TRAFFIC)
        self.assertEqual(branch_from_keywords("Genişletilmiş Kasko"), Branch.MOTOR_OWN_DAMAGE)
        self.assertEqual(branch_from_keywords("DASK"), Branch.EARTHQUAKE)
        self.assertEqual(branch_from_keywords("FK"), Branch.PERSONAL_ACCIDENT)

    def test_unknown_label_is_unclassified(self) -> None:
        self.assertEqual(branch_from_keywords("Bilinmeyen Ürün"), Branch.UNCLASSIFIED)
        self.assertEqual(branch_from_keywords(None), Branch.UNCLASSIFIED)
        self.assertEqual(branch_name(Branch.UNCLASSIFIED), "SINIFLANDIRILMAMIŞ")


if __name__ == "__main__":
    unittest.main()
