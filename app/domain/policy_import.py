"""
app/domain/policy_import.py

Domain models for carrier policy imports: parsed rows, caller scope, and the
preview/confirm result shapes returned by the import service.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from app.domain.customer_match import CustomerMatchRequest, CustomerMatchResult, MatchConfidence, MatchSignal


class RowKind:
    NEW_BUSINESS = "TAHAKKUK"
    CANCELLATION = "IPTAL"


UNDETECTED_FORMAT = "undetected"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

_DATE_FIELDS = frozenset(
    {
        "issue_date",
        "start_date",
        "end_date",
        "endorsement_approval_date",
        "endorsement_effective_date",
    }
)
_DECIMAL_FIELDS = frozenset({"gross_premium", "net_premium", "commission", "tax"})


@dataclass(frozen=True)
class ParsedRow:
    """
    One normalized policy row produced by a carrier parser.

    Rows are immutable; customer resolution produces an enriched copy via
    ``with_customer``. A row is valid exactly when ``errors`` is empty.
    """

    row_number: int
    policy_no: str | None
    renewal_no: str | None = None
    endorsement_no: int = 0
    endorsement_type_code: str | None = None
    branch_code: str | None = None
    branch_name: str | None = None
    branch_id: int | None = None
    kind: str = RowKind.NEW_BUSINESS
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
    errors: tuple[str, ...] = ()
    customer_id: int | None = None
    match_confidence: str = MatchConfidence.NONE
    match_signal: str = MatchSignal.NONE
    match_candidates: tuple[int, ...] = ()
    customer_auto_created: bool = False
    customer_pending_creation: bool = False

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def is_endorsement(self) -> bool:
        return self.endorsement_no > 0

    @property
    def duplicate_key(self) -> tuple[str, int]:
        return ((self.policy_no or "").strip(), self.endorsement_no)

    @property
    def insured_full_name(self) -> str | None:
        parts = [part for part in (self.insured_name, self.insured_surname) if part]
        return " ".join(parts) if parts else None

    def with_customer(self, match: CustomerMatchResult) -> ParsedRow:
        return replace(
            self,
            customer_id=match.customer_id,
            match_confidence=match.confidence,
            match_signal=match.signal,
            match_candidates=tuple(match.candidates),
            customer_auto_created=match.auto_created,
            customer_pending_creation=match.pending_creation,
        )

    @property
    def has_exact_identity(self) -> bool:
        return self.match_signal in (MatchSignal.NATIONAL_ID, MatchSignal.TAX_ID)

    def identity_request(self) -> CustomerMatchRequest:
        return CustomerMatchRequest(
            national_id=self.national_id,
            tax_id=self.tax_id,
            plate=self.plate,
            name=self.insured_name,
            surname=self.insured_surname,
            address=self.address,
        )

    def to_payload(self) -> dict[str, Any]:
        """
        Serialize to a JSON-safe dict for scratch storage.
        """

        payload = asdict(self)
        for name in _DATE_FIELDS:
            value = payload[name]
            payload[name] = value.isoformat() if value is not None else None
        for name in _DECIMAL_FIELDS:
            value = payload[name]
            payload[name] = str(value) if value is not None else None
        payload["errors"] = list(self.errors)
        payload["match_candidates"] = list(self.match_candidates)
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ParsedRow:
        known = {item.name for item in fields(cls)}
        values: dict[str, Any] = {}
        for name, value in payload.items():
            if name not in known:
                continue
            if name in _DATE_FIELDS and value is not None:
                value = datetime.fromisoformat(value)
            elif name in _DECIMAL_FIELDS and value is not None:
                value = Decimal(value)
            elif name in {"errors", "match_candidates"}:
                value = tuple(value or ())
            values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class CallerContext:
    """
    Owner scope of the current request.
    """

    firm_id: int
    branch_id: int | None = None
    user_id: int | None = None


@dataclass(frozen=True)
class ImportRowError:
    row_number: int
    message: str
    policy_no: str | None = None


@dataclass(frozen=True)
class ImportPreview:
    """
    Result of parsing one uploaded document.
    """

    total_rows: int
    valid_rows: int
    invalid_rows: int
    rows: list[ParsedRow] = field(default_factory=list)
    session_id: str | None = None
    file_name: str | None = None
    carrier_id: int | None = None
    carrier_name: str | None = None
    detected_format: str = UNDETECTED_FORMAT
    detection_method: str | None = None
    message: str | None = None
    error_code: str | None = None

    @property
    def detected(self) -> bool:
        return self.detected_format != UNDETECTED_FORMAT

    @classmethod
    def failure(cls, *, file_name: str | None, code: str, message: str) -> ImportPreview:
        return cls(total_rows=0, valid_rows=0, invalid_rows=0, file_name=file_name, message=message, error_code=code)


@dataclass(frozen=True)
class ImportResult:
    """
    Result of a full or batched confirm.
    """

    success: bool
    total_processed: int = 0
    success_count: int = 0
    failed_count: int = 0
    duplicate_count: int = 0
    new_customers_created: int = 0
    errors: list[ImportRowError] = field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None
    total_valid_rows: int = 0
    processed_so_far: int = 0
    is_completed: bool = False
    has_more_batches: bool = False

    @classmethod
    def failure(cls, *, code: str, message: str) -> ImportResult:
        return cls(success=False, error_code=code, error_message=message)


@dataclass(frozen=True)
class DetectionResult:
    detected: bool
    carrier_id: int | None = None
    carrier_name: str | None = None
    method: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class SupportedFormat:
    carrier_id: int
    carrier_name: str
    file_kinds: tuple[str, ...]
    required_columns: tuple[str, ...]
    signature_columns: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True)
class ImportHistoryEntry:
    id: int
    session_id: str
    file_name: str
    carrier_id: int
    carrier_name: str | None
    total_rows: int
    success_count: int
    duplicate_count: int
    failed_count: int
    status: str
    started_at: datetime | None
    completed_at: datetime | None
    user_id: int | None = None


@dataclass(frozen=True)
class ImportHistoryPage:
    items: list[ImportHistoryEntry] = field(default_factory=list)
    total_count: int = 0
