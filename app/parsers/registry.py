"""
app/parsers/registry.py

Carrier format detection.

Given a decoded upload and an optional explicit carrier id, the registry
returns exactly one parser or reports the file as undetected. Resolution
order for spreadsheets is explicit id, filename pattern, then header
content; for XML documents structural sniffing runs before filename
matching. Parsers are evaluated in a fixed priority order so layouts with
rare signature columns are tried before generic ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Sequence, Union

from app.config import get_policy_import_settings
from app.domain.policy_import import DetectionResult, SupportedFormat
from app.parsers.base import CarrierParser
from app.parsers.carriers import TABULAR_PARSERS, XML_PARSERS
from app.parsers.text import fold_column
from app.parsers.workbook import Workbook, header_names, read_workbook
from app.parsers.xml_base import XmlCarrierParser

logger = logging.getLogger(__name__)

Parser = Union[CarrierParser, XmlCarrierParser]


class DetectionMethod:
    EXPLICIT = "explicit"
    XML = "xml"
    FILENAME = "filename"
    HEADERS = "headers"


@dataclass(frozen=True)
class FormatMatch:
    parser: Parser | None
    method: str | None = None

    @property
    def detected(self) -> bool:
        return self.parser is not None


UNDETECTED = FormatMatch(parser=None)


class ParserRegistry:
    """
    Ordered collection of carrier parsers with detection logic.
    """

    def __init__(
        self,
        tabular_parsers: Sequence[CarrierParser],
        xml_parsers: Sequence[XmlCarrierParser] = (),
        *,
        scan_rows: int = 10,
        scan_columns: int = 15,
    ) -> None:
        self._tabular = tuple(tabular_parsers)
        self._xml = tuple(xml_parsers)
        self._scan_rows = scan_rows
        self._scan_columns = scan_columns

    @property
    def parsers(self) -> tuple[Parser, ...]:
        return self._tabular + self._xml

    @property
    def scan_rows(self) -> int:
        return self._scan_rows

    @property
    def scan_columns(self) -> int:
        return self._scan_columns

    def get(self, carrier_id: int, *, xml: bool = False) -> Parser | None:
        candidates: Sequence[Parser] = self._xml if xml else self._tabular
        for parser in candidates:
            if parser.carrier_id == carrier_id:
                return parser
        return None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        workbook: Workbook,
        *,
        carrier_id: int | None = None,
        carrier_names: Mapping[int, str] | None = None,
    ) -> FormatMatch:
        """
        Pick the parser for ``workbook``; never guesses a default.
        """

        if carrier_id is not None:
            parser = self._explicit(carrier_id, workbook.is_xml, carrier_names or {})
            if parser is not None:
                return self._matched(workbook, parser, DetectionMethod.EXPLICIT)
            logger.info(
                "No parser registered for explicit carrier_id=%s file=%r; falling back to detection",
                carrier_id,
                workbook.file_name,
            )

        if workbook.is_xml:
            return self._resolve_xml(workbook)
        return self._resolve_tabular(workbook)

    def _explicit(self, carrier_id: int, xml: bool, carrier_names: Mapping[int, str]) -> Parser | None:
        parser = self.get(carrier_id, xml=xml)
        if parser is not None:
            return parser

        display_name = carrier_names.get(carrier_id)
        if not display_name:
            return None
        target = fold_column(display_name)
        candidates: Sequence[Parser] = self._xml if xml else self._tabular
        for parser in candidates:
            names = [fold_column(parser.name), *(fold_column(p) for p in parser.format.filename_patterns)]
            if any(name and (name in target or target in name) for name in names):
                return parser
        return None

    def _resolve_xml(self, workbook: Workbook) -> FormatMatch:
        root = workbook.xml_root
        if root is not None:
            for parser in self._xml:
                if parser.sniff(root):
                    return self._matched(workbook, parser, DetectionMethod.XML)
        for parser in self._xml:
            if parser.matches_filename(workbook.file_name):
                return self._matched(workbook, parser, DetectionMethod.FILENAME)
        return self._undetected(workbook)

    def _resolve_tabular(self, workbook: Workbook) -> FormatMatch:
        header_cache: dict[int, list[str]] = {}

        def headers_for(parser: CarrierParser) -> list[str]:
            key = id(parser)
            if key not in header_cache:
                header_cache[key] = self.headers_for(parser, workbook)
            return header_cache[key]

        for parser in self._tabular:
            if not parser.matches_filename(workbook.file_name):
                continue
            headers = headers_for(parser)
            if headers and not parser.has_required_columns(headers):
                logger.info(
                    "Filename matched carrier_id=%s but required columns are missing file=%r",
                    parser.carrier_id,
                    workbook.file_name,
                )
                continue
            return self._matched(workbook, parser, DetectionMethod.FILENAME)

        for parser in self._tabular:
            if parser.can_parse(headers_for(parser)):
                return self._matched(workbook, parser, DetectionMethod.HEADERS)

        return self._undetected(workbook)

    def headers_for(self, parser: CarrierParser, workbook: Workbook) -> list[str]:
        """
        Column names of the sheet ``parser`` would read, or [] when none.
        """

        sheet = workbook.sheet(parser.format.main_sheet) if parser.format.main_sheet else None
        if sheet is None:
            sheet = workbook.first_sheet
        if sheet is None or not sheet.cells:
            return []
        index = parser.header_index(sheet.cells, scan_rows=self._scan_rows, scan_columns=self._scan_columns)
        if index is None:
            return []
        return [name for name in header_names(sheet.cells[index]) if not name.startswith("Column_")]

    @staticmethod
    def _matched(workbook: Workbook, parser: Parser, method: str) -> FormatMatch:
        logger.info(
            "Carrier format detected file=%r carrier_id=%s name=%r method=%s",
            workbook.file_name,
            parser.carrier_id,
            parser.name,
            method,
        )
        return FormatMatch(parser=parser, method=method)

    @staticmethod
    def _undetected(workbook: Workbook) -> FormatMatch:
        logger.warning("Carrier format not detected file=%r kind=%s", workbook.file_name, workbook.kind)
        return UNDETECTED

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def detect_format(
        self,
        file_name: str,
        content: bytes,
        *,
        carrier_id: int | None = None,
        carrier_names: Mapping[int, str] | None = None,
    ) -> DetectionResult:
        workbook = read_workbook(file_name, content)
        match = self.resolve(workbook, carrier_id=carrier_id, carrier_names=carrier_names)
        if match.parser is None:
            return DetectionResult(
                detected=False,
                message="File format could not be detected. Select the carrier explicitly.",
            )
        carrier_name = (carrier_names or {}).get(match.parser.carrier_id) or match.parser.name
        return DetectionResult(
            detected=True,
            carrier_id=match.parser.carrier_id,
            carrier_name=carrier_name,
            method=match.method,
            message=f"Detected {carrier_name} by {match.method}.",
        )

    def supported_formats(self) -> list[SupportedFormat]:
        formats: list[SupportedFormat] = []
        for parser in self.parsers:
            fmt = parser.format
            notes = [fmt.notes] if fmt.notes else []
            if fmt.header_row is not None:
                notes.insert(0, f"Header row {fmt.header_row}.")
            formats.append(
                SupportedFormat(
                    carrier_id=fmt.carrier_id,
                    carrier_name=fmt.name,
                    file_kinds=fmt.file_kinds,
                    required_columns=fmt.required_columns,
                    signature_columns=fmt.signature_columns,
                    notes=" ".join(notes) or None,
                )
            )
        return formats


@lru_cache(maxsize=1)
def get_parser_registry() -> ParserRegistry:
    """
    Return the process-wide registry over every built-in carrier parser.
    """

    settings = get_policy_import_settings()
    return ParserRegistry(
        TABULAR_PARSERS,
        XML_PARSERS,
        scan_rows=settings.header_scan_rows,
        scan_columns=settings.header_scan_columns,
    )
