"""
app/parsers/base.py

Generic carrier parser.

A carrier is described by an immutable ``CarrierFormat`` (id, patterns,
column fragments, branch-code table) plus a row-mapping function. One
``CarrierParser`` instance composes the two and owns the shared pipeline:
column lookup, structural-row skipping, backfill, kind derivation and
validation. Parsers hold no per-call state, so a single instance is shared
across all import sessions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Sequence

from app.domain.policy_import import ParsedRow, RowKind
from app.parsers.branches import Branch, branch_from_keywords, branch_name
from app.parsers.text import (
    DATE_FORMATS,
    clean_code,
    clean_text,
    digits_only,
    fold_column,
    parse_date,
    parse_decimal,
)
from app.parsers.workbook import SheetRows, Workbook, locate_header_row, rows_from_grid
from app.validators.policy_row_validator import PolicyRowValidator

logger = logging.getLogger(__name__)

EMPTY_CODES: Mapping[str, int] = MappingProxyType({})


@dataclass(frozen=True)
class CarrierFormat:
    """
    Static description of one carrier export layout.

    ``header_row`` is the 1-based sheet row holding column names for carriers
    that prepend a banner block; when None the header row is located by
    keyword scan. ``signature_columns`` are rare fragments used only to
    disambiguate content-based detection.
    """

    carrier_id: int
    name: str
    filename_patterns: tuple[str, ...]
    required_columns: tuple[str, ...]
    policy_columns: tuple[str, ...] = ("Poliçe No",)
    signature_columns: tuple[str, ...] = ()
    header_row: int | None = None
    branch_codes: Mapping[str, int] = field(default_factory=lambda: EMPTY_CODES)
    main_sheet: str | None = None
    extra_sheets: tuple[str, ...] = ()
    file_kinds: tuple[str, ...] = ("xlsx", "xls", "csv")
    notes: str | None = None

    def lookup_branch(self, code: str | None, label: str | None = None) -> int:
        """
        Map a native product code to a canonical branch id.

        Falls back to keyword classification of ``label`` and finally to
        the unclassified sentinel.
        """

        if code:
            key = code.strip()
            if key in self.branch_codes:
                return self.branch_codes[key]
            if key.isdigit() and key.lstrip("0") in self.branch_codes:
                return self.branch_codes[key.lstrip("0")]
        if label:
            return branch_from_keywords(label)
        return Branch.UNCLASSIFIED


def fragments_match(fragments: Iterable[str], headers: Iterable[str]) -> bool:
    """
    True when every fragment appears in some header, in either direction.

    Both sides must already be folded with ``fold_column``.
    """

    header_list = [header for header in headers if header]
    return all(
        any(fragment in header or header in fragment for header in header_list)
        for fragment in fragments
        if fragment
    )


class ColumnIndex:
    """
    Resolves requested column names against one sheet's headers.

    Exact folded matches win; otherwise the first header that contains the
    requested fragment (or is contained in it) is used.
    """

    def __init__(self, headers: Iterable[Any]) -> None:
        self._headers: list[tuple[str, str]] = []
        for header in headers:
            if header is None:
                continue
            folded = fold_column(str(header))
            if folded:
                self._headers.append((folded, str(header)))
        self._folded_set = {folded for folded, _ in self._headers}
        self._cache: dict[tuple[str, bool], str | None] = {}

    @property
    def folded_headers(self) -> list[str]:
        return [folded for folded, _ in self._headers]

    def resolve(self, column: str, *, exact: bool = False) -> str | None:
        key = (column, exact)
        if key in self._cache:
            return self._cache[key]

        target = fold_column(column)
        found: str | None = None
        for folded, original in self._headers:
            if folded == target:
                found = original
                break
        if found is None and not exact and target:
            for folded, original in self._headers:
                if target in folded or folded in target:
                    found = original
                    break

        self._cache[key] = found
        return found

    def is_header_echo(self, value: str | None) -> bool:
        if not value:
            return False
        return fold_column(value) in self._folded_set


class RowReader:
    """
    Typed accessors over one raw row.
    """

    def __init__(self, raw: Mapping[str, Any], index: ColumnIndex, row_number: int) -> None:
        self._raw = raw
        self._index = index
        self.row_number = row_number

    def has(self, column: str, *, exact: bool = False) -> bool:
        return self._index.resolve(column, exact=exact) is not None

    def value(self, *columns: str, exact: bool = False) -> Any:
        for column in columns:
            key = self._index.resolve(column, exact=exact)
            if key is not None:
                return self._raw.get(key)
        return None

    def first_value(self, *columns: str, exact: bool = False) -> Any:
        """
        Like value(), but skips columns whose cell is blank.
        """

        for column in columns:
            key = self._index.resolve(column, exact=exact)
            if key is None:
                continue
            cell = self._raw.get(key)
            if clean_text(cell) is not None:
                return cell
        return None

    def text(self, *columns: str, exact: bool = False) -> str | None:
        return clean_text(self.first_value(*columns, exact=exact))

    def code(self, *columns: str, exact: bool = False) -> str | None:
        return clean_code(self.first_value(*columns, exact=exact))

    def decimal(self, *columns: str, exact: bool = False) -> Decimal | None:
        return parse_decimal(self.first_value(*columns, exact=exact))

    def date(
        self,
        *columns: str,
        exact: bool = False,
        formats: tuple[str, ...] = DATE_FORMATS,
    ) -> datetime | None:
        return parse_date(self.first_value(*columns, exact=exact), formats)

    def cells(self) -> list[str]:
        return [text for text in (clean_text(cell) for cell in self._raw.values()) if text]


@dataclass
class PolicyDraft:
    """
    Mutable staging area a row mapper fills before the row is finalized.
    """

    policy_no: str | None
    renewal_no: str | None = None
    endorsement_no: int = 0
    endorsement_type_code: str | None = None
    branch_code: str | None = None
    branch_name: str | None = None
    branch_id: int | None = None
    kind: str | None = None
    issue_date: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    endorsement_approval_date: datetime | None = None
    endorsement_effective_date: datetime | None = None
    gross_premium: Decimal | None = None
    net_premium: Decimal | None = None
    commission: Decimal | None = None
    tax: Decimal | None = None
    insured_name: str | None = None
    insured_surname: str | None = None
    national_id: str | None = None
    tax_id: str | None = None
    address: str | None = None
    plate: str | None = None
    agent_code: str | None = None
    extra_errors: list[str] = field(default_factory=list)


@dataclass
class ParseState:
    """
    Per-call scratch state (section banners, joined lookup sheets).
    """

    section_kind: str | None = None
    lookups: dict[str, Any] = field(default_factory=dict)


RowMapper = Callable[[RowReader, CarrierFormat, ParseState], "PolicyDraft | None"]
StatePreparer = Callable[[Mapping[str, SheetRows]], dict[str, Any]]

_DEFAULT_VALIDATOR = PolicyRowValidator()


def split_identity(value: str | None) -> tuple[str | None, str | None]:
    """
    Split a combined national-id / tax-id cell by digit count.
    """

    digits = digits_only(value)
    if digits is None:
        return None, None
    if len(digits) == 11:
        return digits, None
    if len(digits) == 10:
        return None, digits
    return None, None


def finalize_draft(
    draft: PolicyDraft,
    *,
    row_number: int,
    validator: PolicyRowValidator = _DEFAULT_VALIDATOR,
) -> ParsedRow:
    """
    Apply backfill, kind derivation and validation to a mapped draft.
    """

    gross = draft.gross_premium if draft.gross_premium is not None else draft.net_premium
    issue_date = draft.issue_date or draft.start_date

    kind = draft.kind
    if kind is None:
        signed = gross if gross is not None else draft.net_premium
        kind = RowKind.CANCELLATION if signed is not None and signed < 0 else RowKind.NEW_BUSINESS

    branch_id = draft.branch_id if draft.branch_id is not None else Branch.UNCLASSIFIED
    label = draft.branch_name or branch_name(branch_id)

    errors = validator.validate(
        policy_no=draft.policy_no,
        issue_date=issue_date,
        start_date=draft.start_date,
        gross_premium=gross,
        net_premium=draft.net_premium,
        endorsement_no=draft.endorsement_no,
    )
    errors.extend(message for message in draft.extra_errors if message not in errors)

    return ParsedRow(
        row_number=row_number,
        policy_no=draft.policy_no,
        renewal_no=draft.renewal_no,
        endorsement_no=draft.endorsement_no,
        endorsement_type_code=draft.endorsement_type_code,
        branch_code=draft.branch_code,
        branch_name=label,
        branch_id=branch_id,
        kind=kind,
        issue_date=issue_date,
        start_date=draft.start_date,
        end_date=draft.end_date,
        endorsement_approval_date=draft.endorsement_approval_date,
        endorsement_effective_date=draft.endorsement_effective_date,
        gross_premium=gross,
        net_premium=draft.net_premium,
        commission=draft.commission,
        tax=draft.tax,
        insured_name=draft.insured_name,
        insured_surname=draft.insured_surname,
        national_id=draft.national_id,
        tax_id=draft.tax_id,
        address=draft.address,
        plate=draft.plate,
        agent_code=draft.agent_code,
        errors=tuple(errors),
    )


def broken_row(row_number: int, policy_no: str | None, exc: Exception) -> ParsedRow:
    return ParsedRow(
        row_number=row_number,
        policy_no=policy_no,
        errors=(f"Row could not be parsed: {exc}",),
    )


class CarrierParser:
    """
    Tabular (xlsx/xls/csv) parser for one carrier.
    """

    def __init__(
        self,
        carrier_format: CarrierFormat,
        row_mapper: RowMapper,
        *,
        prepare: StatePreparer | None = None,
        validator: PolicyRowValidator | None = None,
    ) -> None:
        self.format = carrier_format
        self._row_mapper = row_mapper
        self._prepare = prepare
        self._validator = validator or _DEFAULT_VALIDATOR
        self._folded_patterns = tuple(fold_column(p) for p in carrier_format.filename_patterns)
        self._folded_required = tuple(fold_column(c) for c in carrier_format.required_columns)
        self._folded_signature = tuple(fold_column(c) for c in carrier_format.signature_columns)

    def __repr__(self) -> str:
        return f"CarrierParser(carrier_id={self.carrier_id!r}, name={self.name!r})"

    @property
    def carrier_id(self) -> int:
        return self.format.carrier_id

    @property
    def name(self) -> str:
        return self.format.name

    @property
    def is_xml(self) -> bool:
        return False

    # ------------------------------------------------------------------
    # Detection predicates
    # ------------------------------------------------------------------

    def matches_filename(self, file_name: str) -> bool:
        folded = fold_column(file_name)
        return any(pattern and pattern in folded for pattern in self._folded_patterns)

    def has_required_columns(self, headers: Iterable[str]) -> bool:
        folded = [fold_column(str(header)) for header in headers if header is not None]
        return fragments_match(self._folded_required, folded)

    def can_parse(self, headers: Iterable[str]) -> bool:
        """
        Content-only acceptance: every signature and required fragment present.

        Parsers without signature columns never claim a file by content alone.
        """

        if not self._folded_signature:
            return False
        folded = [fold_column(str(header)) for header in headers if header is not None]
        return fragments_match(self._folded_signature, folded) and fragments_match(
            self._folded_required, folded
        )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(
        self,
        rows: Sequence[Mapping[str, Any]],
        *,
        row_numbers: Sequence[int] | None = None,
        extra_sheets: Mapping[str, SheetRows] | None = None,
    ) -> list[ParsedRow]:
        """
        Decode header-keyed rows into normalized records.

        Structural rows (blank policy numbers, header echoes, totals and
        banners the mapper rejects) are skipped. A row whose mapping raises
        is kept as an invalid row so one bad row never aborts the file.
        """

        if not rows:
            return []

        headers: dict[str, None] = {}
        for raw in rows:
            for key in raw:
                if key is not None:
                    headers.setdefault(str(key), None)
        index = ColumnIndex(headers)

        state = ParseState()
        if self._prepare is not None:
            state.lookups = self._prepare(extra_sheets or {})

        parsed: list[ParsedRow] = []
        for position, raw in enumerate(rows):
            row_number = row_numbers[position] if row_numbers is not None else position + 2
            reader = RowReader(raw, index, row_number)
            try:
                draft = self._row_mapper(reader, self.format, state)
            except Exception as exc:  # noqa: BLE001
                policy_no = reader.text(*self.format.policy_columns)
                logger.warning(
                    "Carrier row mapping failed carrier_id=%s row=%s policy_no=%r: %s",
                    self.carrier_id,
                    row_number,
                    policy_no,
                    exc,
                )
                parsed.append(broken_row(row_number, policy_no, exc))
                continue

            if draft is None or not draft.policy_no or index.is_header_echo(draft.policy_no):
                continue
            parsed.append(finalize_draft(draft, row_number=row_number, validator=self._validator))

        return parsed

    def parse_workbook(
        self,
        workbook: Workbook,
        *,
        scan_rows: int = 10,
        scan_columns: int = 15,
    ) -> list[ParsedRow]:
        """
        Select the main sheet, locate its header row and parse it.
        """

        sheet = workbook.sheet(self.format.main_sheet) if self.format.main_sheet else None
        if sheet is None:
            sheet = workbook.first_sheet
        if sheet is None:
            return []

        header_index = self.header_index(sheet.cells, scan_rows=scan_rows, scan_columns=scan_columns)
        if header_index is None:
            return []
        main = rows_from_grid(sheet.cells, header_index)

        extra: dict[str, SheetRows] = {}
        for extra_name in self.format.extra_sheets:
            extra_sheet = workbook.sheet(extra_name)
            if extra_sheet is None or not extra_sheet.cells:
                continue
            extra[extra_name] = rows_from_grid(extra_sheet.cells, 0)

        return self.parse(main.rows, row_numbers=main.row_numbers, extra_sheets=extra)

    def header_index(
        self,
        cells: Sequence[Sequence[Any]],
        *,
        scan_rows: int = 10,
        scan_columns: int = 15,
    ) -> int | None:
        """
        Return the 0-based header row index for this carrier's layout.
        """

        if self.format.header_row is not None:
            index = self.format.header_row - 1
            return index if index < len(cells) else None
        located = locate_header_row(cells, scan_rows=scan_rows, scan_columns=scan_columns)
        if located is None:
            return 0 if cells else None
        return located
