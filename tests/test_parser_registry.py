from __future__ import annotations

import pytest

from app.parsers.registry import DetectionMethod, ParserRegistry, get_parser_registry
from app.parsers.carriers import TABULAR_PARSERS, XML_PARSERS
from app.parsers.workbook import UnsupportedFileTypeError, read_workbook

DOGA_HEADER = ("Branş", "Poliçe No", "Vade Başlangıç", "Vade Bitiş", "Brüt Prim", "İpt/Kay", "Sbm Havuz")
DOGA_ROW = ("310", "D-1", "01.04.2024", "01.04.2025", 100, "K", "")


@pytest.fixture()
def registry() -> ParserRegistry:
    return get_parser_registry()


class TestResolve:
    def test_explicit_carrier_wins_over_filename(self, registry: ParserRegistry, make_xlsx) -> None:
        workbook = read_workbook("doga_uretim.xlsx", make_xlsx([DOGA_HEADER, DOGA_ROW]))

        match = registry.resolve(workbook, carrier_id=3)

        assert match.parser.carrier_id == 3
        assert match.method == DetectionMethod.EXPLICIT

    def test_unknown_explicit_carrier_falls_back_to_detection(self, registry: ParserRegistry, make_xlsx) -> None:
        workbook = read_workbook("doga_uretim.xlsx", make_xlsx([DOGA_HEADER, DOGA_ROW]))

        match = registry.resolve(workbook, carrier_id=999)

        assert match.parser.carrier_id == 104
        assert match.method == DetectionMethod.FILENAME

    def test_explicit_carrier_resolved_through_display_name(self, registry: ParserRegistry, hepiyi_file, hepiyi_row) -> None:
        workbook = read_workbook("upload.xlsx", hepiyi_file(hepiyi_row("HP-1")))

        match = registry.resolve(workbook, carrier_id=200, carrier_names={200: "Hepiyi Sigorta A.Ş."})

        assert match.parser.carrier_id == 3
        assert match.method == DetectionMethod.EXPLICIT

    def test_filename_match_without_required_columns_is_rejected(self, registry: ParserRegistry, make_xlsx) -> None:
        workbook = read_workbook("hepiyi_rapor.xlsx", make_xlsx([DOGA_HEADER, DOGA_ROW]))

        match = registry.resolve(workbook)

        assert match.parser.carrier_id == 104
        assert match.method == DetectionMethod.HEADERS

    def test_generic_headers_without_signature_are_undetected(self, registry: ParserRegistry, make_xlsx) -> None:
        workbook = read_workbook("rapor.xlsx", make_xlsx([("Poliçe No", "Brüt Prim", "Tarih"), ("P-1", 100, "01.01.2024")]))

        match = registry.resolve(workbook)

        assert not match.detected
        assert match.method is None

    def test_header_row_is_found_below_a_title_block(self, registry: ParserRegistry, make_xlsx) -> None:
        content = make_xlsx([("Doğa Sigorta Üretim Raporu",), ("Tarih: Nisan 2024",), DOGA_HEADER, DOGA_ROW])
        workbook = read_workbook("rapor.xlsx", content)

        match = registry.resolve(workbook)

        assert match.parser.carrier_id == 104
        rows = match.parser.parse_workbook(workbook)
        assert [row.row_number for row in rows] == [4]

    def test_header_scan_window_is_configurable(self, make_xlsx) -> None:
        narrow = ParserRegistry(TABULAR_PARSERS, XML_PARSERS, scan_rows=1)
        content = make_xlsx([("Başlık",), DOGA_HEADER, DOGA_ROW])

        match = narrow.resolve(read_workbook("rapor.xlsx", content))

        assert not match.detected


class TestDetectFormat:
    def test_reports_carrier_and_method(self, registry: ParserRegistry, hepiyi_file, hepiyi_row) -> None:
        result = registry.detect_format("hepiyi.xlsx", hepiyi_file(hepiyi_row("HP-1")))

        assert result.detected
        assert result.carrier_id == 3
        assert result.carrier_name == "Hepiyi Sigorta"
        assert result.method == DetectionMethod.FILENAME

    def test_undetected_file_asks_for_an_explicit_carrier(self, registry: ParserRegistry, make_xlsx) -> None:
        result = registry.detect_format("liste.xlsx", make_xlsx([("Ad", "Soyad"), ("A", "B")]))

        assert not result.detected
        assert result.carrier_id is None
        assert "explicitly" in result.message

    def test_unsupported_extension(self, registry: ParserRegistry) -> None:
        with pytest.raises(UnsupportedFileTypeError):
            registry.detect_format("notes.txt", b"hello")


class TestSupportedFormats:
    def test_lists_every_registered_parser(self, registry: ParserRegistry) -> None:
        formats = registry.supported_formats()

        assert len(formats) == len(TABULAR_PARSERS) + len(XML_PARSERS)
        by_name = {item.carrier_name: item for item in formats}
        assert by_name["AK Sigorta (SKAY)"].notes.startswith("Header row 8.")
        assert by_name["Unico Sigorta (XML)"].file_kinds == ("xml",)
        assert "Sepet Id" in by_name["Koru Sigorta"].signature_columns

    def test_get_distinguishes_xml_and_tabular_parsers(self, registry: ParserRegistry) -> None:
        assert registry.get(110).is_xml is False
        assert registry.get(110, xml=True).is_xml is True
        assert registry.get(12345) is None
