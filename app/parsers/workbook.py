"""
app/parsers/workbook.py

Uploaded document decoding.

Spreadsheets are read into raw cell grids (one per sheet) so detection can
scan for the header row before any carrier is chosen; XML documents are
parsed into an element tree with DTD and entity declarations refused.
"""

from __future__ import annotations

import csv
import io
import logging
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Sequence

import openpyxl
import pandas as pd

from app.parsers.text import clean_text, fold_column

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".xlsx", ".xls", ".csv", ".xml")

# Folded fragments; a header row needs one policy and one premium fragment.
_POLICY_KEYWORDS: tuple[str, ...] = ("police", "policy", "polno")
_PREMIUM_KEYWORDS: tuple[str, ...] = ("prim", "premium")

_CSV_DELIMITERS = ",;\t"
_CSV_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "cp1254", "latin-1")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UnsupportedFileTypeError(ValueError):
    """
    Raised when the uploaded file extension is not an accepted import format.
    """


class DocumentReadError(ValueError):
    """
    Raised when an uploaded document cannot be decoded at all.
    """


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SheetGrid:
    """
    Raw cell values of one sheet, row-major, untrimmed.
    """

    name: str
    cells: list[tuple[Any, ...]]


@dataclass(frozen=True)
class SheetRows:
    """
    Header-keyed data rows below a located header row.
    """

    headers: list[str]
    rows: list[dict[str, Any]]
    row_numbers: list[int]


@dataclass(frozen=True)
class Workbook:
    """
    A decoded upload: spreadsheet sheets or an XML root element.
    """

    file_name: str
    kind: str
    sheets: list[SheetGrid] = field(default_factory=list)
    xml_root: ET.Element | None = None

    @property
    def is_xml(self) -> bool:
        return self.kind == "xml"

    @property
    def first_sheet(self) -> SheetGrid | None:
        return self.sheets[0] if self.sheets else None

    def sheet(self, name: str) -> SheetGrid | None:
        target = fold_column(name)
        for sheet in self.sheets:
            if fold_column(sheet.name) == target:
                return sheet
        return None


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def file_kind(file_name: str) -> str:
    """
    Return the lowercase extension without the dot, validating it is supported.
    """

    suffix = PurePath(file_name or "").suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            f"Unsupported file type '{suffix or file_name}'. "
            f"Allowed: {', '.join(SUPPORTED_EXTENSIONS)}."
        )
    return suffix.lstrip(".")


def read_workbook(file_name: str, content: bytes) -> Workbook:
    """
    Decode an uploaded document into a Workbook.
    """

    kind = file_kind(file_name)
    if not content:
        raise DocumentReadError("Uploaded file is empty.")

    if kind == "xlsx":
        sheets = _read_xlsx(content)
    elif kind == "xls":
        sheets = _read_xls(content)
    elif kind == "csv":
        sheets = [_read_csv(content)]
    else:
        return Workbook(file_name=file_name, kind=kind, xml_root=parse_xml(content))

    logger.info(
        "Workbook decoded file=%r kind=%s sheets=%s",
        file_name,
        kind,
        [sheet.name for sheet in sheets],
    )
    return Workbook(file_name=file_name, kind=kind, sheets=sheets)


def _read_xlsx(content: bytes) -> list[SheetGrid]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
        raise DocumentReadError(f"Could not read .xlsx workbook: {exc}") from exc

    try:
        return [
            SheetGrid(name=worksheet.title, cells=list(worksheet.iter_rows(values_only=True)))
            for worksheet in workbook.worksheets
        ]
    finally:
        workbook.close()


def _read_xls(content: bytes) -> list[SheetGrid]:
    try:
        frames = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, engine="xlrd")
    except Exception as exc:  # noqa: BLE001
        raise DocumentReadError(f"Could not read .xls workbook: {exc}") from exc

    sheets: list[SheetGrid] = []
    for name, frame in frames.items():
        frame = frame.astype(object).where(pd.notna(frame), None)
        sheets.append(
            SheetGrid(
                name=str(name),
                cells=[tuple(_from_pandas(value) for value in row) for row in frame.itertuples(index=False)],
            )
        )
    return sheets


def _from_pandas(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def _read_csv(content: bytes) -> SheetGrid:
    text: str | None = None
    for encoding in _CSV_ENCODINGS:
        try:
            text = content.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    if text is None:
        raise DocumentReadError("CSV encoding could not be determined.")

    sample = text[:4096]
    try:
        dialect: Any = csv.Sniffer().sniff(sample, delimiters=_CSV_DELIMITERS)
    except csv.Error:
        dialect = csv.excel

    try:
        cells = [tuple(row) for row in csv.reader(io.StringIO(text, newline=""), dialect)]
    except csv.Error as exc:
        raise DocumentReadError(f"Invalid CSV format: {exc}") from exc
    return SheetGrid(name="csv", cells=cells)


def parse_xml(content: bytes) -> ET.Element:
    """
    Parse XML bytes, refusing documents that declare a DTD or entities.
    """

    head = content[:4096].lstrip().lower()
    if b"<!doctype" in head or b"<!entity" in content.lower():
        raise DocumentReadError("XML documents with DTD or entity declarations are not accepted.")
    try:
        return ET.fromstring(content)
    except ET.ParseError as exc:
        raise DocumentReadError(f"Invalid XML document: {exc}") from exc


# ---------------------------------------------------------------------------
# Header location
# ---------------------------------------------------------------------------


def locate_header_row(
    cells: Sequence[Sequence[Any]],
    *,
    scan_rows: int = 10,
    scan_columns: int = 15,
) -> int | None:
    """
    Return the 0-based index of the first row that looks like a header.

    Only the top-left ``scan_rows`` x ``scan_columns`` block is inspected.
    """

    for index, row in enumerate(cells[:scan_rows]):
        folded = [fold_column(text) for text in (clean_text(cell) for cell in row[:scan_columns]) if text]
        has_policy = any(keyword in value for value in folded for keyword in _POLICY_KEYWORDS)
        has_premium = any(keyword in value for value in folded for keyword in _PREMIUM_KEYWORDS)
        if has_policy and has_premium:
            return index
    return None


def header_names(row: Sequence[Any]) -> list[str]:
    """
    Turn a header row into unique column names, naming blanks by position.
    """

    names: list[str] = []
    seen: dict[str, int] = {}
    for position, cell in enumerate(row, start=1):
        name = clean_text(cell) or f"Column_{position}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 1
        names.append(name)
    return names


def rows_from_grid(cells: Sequence[Sequence[Any]], header_index: int) -> SheetRows:
    """
    Key every non-empty row below ``header_index`` by the header names.
    """

    if header_index >= len(cells):
        return SheetRows(headers=[], rows=[], row_numbers=[])

    headers = header_names(cells[header_index])
    rows: list[dict[str, Any]] = []
    row_numbers: list[int] = []
    for offset, raw in enumerate(cells[header_index + 1 :], start=header_index + 2):
        values = list(raw) + [None] * (len(headers) - len(raw))
        record = {header: values[position] for position, header in enumerate(headers)}
        if all(clean_text(value) is None for value in record.values()):
            continue
        rows.append(record)
        row_numbers.append(offset)
    return SheetRows(headers=headers, rows=rows, row_numbers=row_numbers)
