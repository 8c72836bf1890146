"""
app/services/customer_matching_service.py

Customer identity resolution for imported policy rows.

Signals are tried in a fixed cascade and the first one that decides wins:

    1. National id  -> exact match, or auto-create an individual customer
    2. Tax id       -> exact match, or auto-create an organization customer
    3. Plate        -> latest policy in the lookback window, cross-checked
                       against the insured name (Medium, or Low on mismatch)
    4. Name         -> one customer shares the folded name (Medium), several
                       share it (Low, candidates listed, nothing assigned)

The batch variant pre-loads the firm's customers and plate history once and
creates every missing customer in a single bulk insert at the end, so rows
repeating an id inside one batch share the same new customer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.customer_match import (
    CustomerMatchRequest,
    CustomerMatchResult,
    MatchConfidence,
    MatchSignal,
    OwnerType,
)
from app.domain.policy_import import CallerContext, Clock, utc_now
from app.parsers.text import add_years, fold_upper, split_person_name
from db.repositories.customer_repository import CustomerRepository
from db.repositories.types import CustomerSnapshot, PlateHistoryEntry

logger = logging.getLogger(__name__)

NATIONAL_ID_LENGTH = 11
TAX_ID_LENGTH = 10
_FIRST_NAME_MAX = 150
_SURNAME_MAX = 30
_ADDRESS_MAX = 500


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


def is_valid_national_id(value: str | None) -> bool:
    """
    Eleven digits with a non-zero leading digit.
    """

    if not value or len(value) != NATIONAL_ID_LENGTH:
        return False
    return value.isdigit() and value.isascii() and value[0] != "0"


def is_valid_tax_id(value: str | None) -> bool:
    if not value or len(value) != TAX_ID_LENGTH:
        return False
    return value.isdigit() and value.isascii()


def normalize_name(value: str | None) -> str:
    return fold_upper(value)


def normalize_plate(value: str | None) -> str:
    return fold_upper(value).replace(" ", "")


def customer_name_parts(name: str | None, surname: str | None) -> tuple[str | None, str | None]:
    """
    ``split_person_name`` truncated to the customer name columns.
    """

    first, last = split_person_name(name, surname)
    return (
        first[:_FIRST_NAME_MAX] if first is not None else None,
        last[:_SURNAME_MAX] if last is not None else None,
    )


def _full_name(request: CustomerMatchRequest) -> str:
    parts = [part for part in (request.name, request.surname) if part and part.strip()]
    return normalize_name(" ".join(parts))


def _customer_full_name(customer: CustomerSnapshot) -> str:
    parts = [part for part in (customer.first_name, customer.surname) if part and part.strip()]
    return normalize_name(" ".join(parts))


def _plate_result(request: CustomerMatchRequest, entry: PlateHistoryEntry) -> CustomerMatchResult:
    incoming = _full_name(request)
    recorded = normalize_name(entry.insured_name)
    if incoming and recorded and incoming != recorded:
        # The vehicle may have changed hands; surface it without assigning.
        return CustomerMatchResult(
            confidence=MatchConfidence.LOW,
            signal=MatchSignal.PLATE,
            candidates=(entry.customer_id,),
        )
    return CustomerMatchResult(
        customer_id=entry.customer_id,
        confidence=MatchConfidence.MEDIUM,
        signal=MatchSignal.PLATE,
    )


def _name_result(candidates: Sequence[int]) -> CustomerMatchResult | None:
    unique = sorted(set(candidates))
    if not unique:
        return None
    if len(unique) == 1:
        return CustomerMatchResult(
            customer_id=unique[0],
            confidence=MatchConfidence.MEDIUM,
            signal=MatchSignal.NAME,
        )
    return CustomerMatchResult(
        confidence=MatchConfidence.LOW,
        signal=MatchSignal.NAME,
        candidates=tuple(unique),
    )


# ---------------------------------------------------------------------------
# Batch index
# ---------------------------------------------------------------------------


@dataclass
class CustomerIndex:
    """
    In-memory lookup structures over one firm's customers.
    """

    national_ids: dict[str, int] = field(default_factory=dict)
    tax_ids: dict[str, int] = field(default_factory=dict)
    full_names: dict[str, list[int]] = field(default_factory=dict)
    first_names: dict[str, list[int]] = field(default_factory=dict)
    plates: dict[str, PlateHistoryEntry] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        customers: Iterable[CustomerSnapshot],
        plates: dict[str, PlateHistoryEntry] | None = None,
    ) -> CustomerIndex:
        index = cls()
        for customer in customers:
            if customer.national_id:
                index.national_ids.setdefault(customer.national_id, customer.id)
            if customer.tax_id:
                index.tax_ids.setdefault(customer.tax_id, customer.id)
            full = _customer_full_name(customer)
            if full:
                index.full_names.setdefault(full, []).append(customer.id)
            first = normalize_name(customer.first_name)
            if first:
                index.first_names.setdefault(first, []).append(customer.id)
        for plate, entry in (plates or {}).items():
            index.plates.setdefault(normalize_plate(plate), entry)
        return index

    def name_candidates(self, name: str) -> list[int]:
        return self.full_names.get(name) or self.first_names.get(name) or []

    def unambiguous_names(self) -> dict[str, int]:
        """
        Folded full name -> customer id, for names owned by exactly one customer.
        """

        return {name: ids[0] for name, ids in self.full_names.items() if len(set(ids)) == 1}


@dataclass
class _PendingCustomer:
    payload: dict[str, Any]
    signal: str
    first_row: int
    rows: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CustomerMatchingService:
    """
    Resolves row identity signals to customer ids within one firm.

    The service flushes auto-created customers but never commits; the caller
    owns the transaction.
    """

    def __init__(
        self,
        session: Session,
        *,
        clock: Clock = utc_now,
        plate_lookback_years: int = 2,
        repository: CustomerRepository | None = None,
    ) -> None:
        self._session = session
        self._clock = clock
        self._plate_lookback_years = max(0, plate_lookback_years)
        self._repository = repository or CustomerRepository(session)

    def resolve(self, request: CustomerMatchRequest, caller: CallerContext) -> CustomerMatchResult:
        """
        Run the cascade for one row using targeted lookups.
        """

        firm_id = caller.firm_id

        if is_valid_national_id(request.national_id):
            existing = self._repository.find_by_national_id(firm_id=firm_id, national_id=request.national_id)
            if existing is not None:
                self._backfill(existing.id, request)
                return CustomerMatchResult(
                    customer_id=existing.id,
                    confidence=MatchConfidence.EXACT,
                    signal=MatchSignal.NATIONAL_ID,
                )
            payload = self._new_customer_payload(request, caller, national_id=request.national_id)
            customer_id = self._repository.bulk_create([payload])[0]
            logger.info("Customer auto-created firm_id=%s customer_id=%s signal=national_id", firm_id, customer_id)
            return CustomerMatchResult(
                customer_id=customer_id,
                confidence=MatchConfidence.EXACT,
                signal=MatchSignal.NATIONAL_ID,
                auto_created=True,
            )

        if is_valid_tax_id(request.tax_id):
            existing = self._repository.find_by_tax_id(firm_id=firm_id, tax_id=request.tax_id)
            if existing is not None:
                self._backfill(existing.id, request)
                return CustomerMatchResult(
                    customer_id=existing.id,
                    confidence=MatchConfidence.EXACT,
                    signal=MatchSignal.TAX_ID,
                )
            payload = self._new_customer_payload(request, caller, tax_id=request.tax_id)
            customer_id = self._repository.bulk_create([payload])[0]
            logger.info("Customer auto-created firm_id=%s customer_id=%s signal=tax_id", firm_id, customer_id)
            return CustomerMatchResult(
                customer_id=customer_id,
                confidence=MatchConfidence.EXACT,
                signal=MatchSignal.TAX_ID,
                auto_created=True,
            )

        plate = normalize_plate(request.plate)
        if plate:
            history = self._repository.plate_history(
                firm_id=firm_id,
                plates=[plate],
                since=self._lookback_start(),
            )
            entry = history.get(plate)
            if entry is not None:
                return _plate_result(request, entry)

        name = _full_name(request)
        if name:
            index = CustomerIndex.build(self._repository.list_for_firm(firm_id))
            result = _name_result(index.name_candidates(name))
            if result is not None:
                return result

        return CustomerMatchResult.no_match()

    def resolve_batch(
        self,
        requests: Sequence[CustomerMatchRequest],
        caller: CallerContext,
        *,
        index: CustomerIndex | None = None,
        create_missing: bool = True,
    ) -> list[CustomerMatchResult]:
        """
        Run the cascade over many rows against pre-loaded indexes.

        Results are returned in request order. Missing customers are created
        in one bulk insert after every row has been evaluated; the id indexes
        are updated right after so callers reusing ``index`` see them.

        With ``create_missing=False`` nothing is written: unknown well-formed
        identifiers come back Exact with ``pending_creation`` set and no
        customer id, and existing customers are not back-filled.
        """

        if not requests:
            return []

        firm_id = caller.firm_id
        if index is None:
            index = self.load_index(caller, plates=[request.plate for request in requests])

        results: list[CustomerMatchResult | None] = [None] * len(requests)
        pending_national: dict[str, _PendingCustomer] = {}
        pending_tax: dict[str, _PendingCustomer] = {}
        backfills: dict[int, CustomerMatchRequest] = {}

        for position, request in enumerate(requests):
            if is_valid_national_id(request.national_id):
                customer_id = index.national_ids.get(request.national_id)
                if customer_id is not None:
                    backfills.setdefault(customer_id, request)
                    results[position] = CustomerMatchResult(
                        customer_id=customer_id,
                        confidence=MatchConfidence.EXACT,
                        signal=MatchSignal.NATIONAL_ID,
                    )
                    continue
                pending = pending_national.get(request.national_id)
                if pending is None:
                    pending_national[request.national_id] = _PendingCustomer(
                        payload=self._new_customer_payload(request, caller, national_id=request.national_id),
                        signal=MatchSignal.NATIONAL_ID,
                        first_row=position,
                    )
                else:
                    pending.rows.append(position)
                continue

            if is_valid_tax_id(request.tax_id):
                customer_id = index.tax_ids.get(request.tax_id)
                if customer_id is not None:
                    backfills.setdefault(customer_id, request)
                    results[position] = CustomerMatchResult(
                        customer_id=customer_id,
                        confidence=MatchConfidence.EXACT,
                        signal=MatchSignal.TAX_ID,
                    )
                    continue
                pending = pending_tax.get(request.tax_id)
                if pending is None:
                    pending_tax[request.tax_id] = _PendingCustomer(
                        payload=self._new_customer_payload(request, caller, tax_id=request.tax_id),
                        signal=MatchSignal.TAX_ID,
                        first_row=position,
                    )
                else:
                    pending.rows.append(position)
                continue

            plate = normalize_plate(request.plate)
            entry = index.plates.get(plate) if plate else None
            if entry is not None:
                results[position] = _plate_result(request, entry)
                continue

            name = _full_name(request)
            name_result = _name_result(index.name_candidates(name)) if name else None
            results[position] = name_result or CustomerMatchResult.no_match()

        pending_all = list(pending_national.values()) + list(pending_tax.values())
        if not create_missing:
            for pending in pending_all:
                for position in (pending.first_row, *pending.rows):
                    results[position] = CustomerMatchResult(
                        confidence=MatchConfidence.EXACT,
                        signal=pending.signal,
                        pending_creation=True,
                    )
            return [result or CustomerMatchResult.no_match() for result in results]

        if pending_all:
            created_ids = self._repository.bulk_create([pending.payload for pending in pending_all])
            for pending, customer_id in zip(pending_all, created_ids):
                results[pending.first_row] = CustomerMatchResult(
                    customer_id=customer_id,
                    confidence=MatchConfidence.EXACT,
                    signal=pending.signal,
                    auto_created=True,
                )
                for position in pending.rows:
                    results[position] = CustomerMatchResult(
                        customer_id=customer_id,
                        confidence=MatchConfidence.EXACT,
                        signal=pending.signal,
                    )
                national_id = pending.payload.get("national_id")
                tax_id = pending.payload.get("tax_id")
                if national_id:
                    index.national_ids[national_id] = customer_id
                if tax_id:
                    index.tax_ids[tax_id] = customer_id
            logger.info(
                "Customers auto-created firm_id=%s count=%s",
                firm_id,
                len(created_ids),
            )

        for customer_id, request in backfills.items():
            self._backfill(customer_id, request)

        return [result or CustomerMatchResult.no_match() for result in results]

    def load_index(self, caller: CallerContext, *, plates: Iterable[str | None] = ()) -> CustomerIndex:
        """
        Pre-load the caller firm's customers and recent plate history.
        """

        customers = self._repository.list_for_firm(caller.firm_id)
        plate_keys = [key for key in (normalize_plate(plate) for plate in plates) if key]
        history: dict[str, PlateHistoryEntry] = {}
        if plate_keys:
            history = self._repository.plate_history(
                firm_id=caller.firm_id,
                plates=plate_keys,
                since=self._lookback_start(),
            )
        return CustomerIndex.build(customers, history)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookback_start(self) -> datetime:
        now = self._clock().replace(tzinfo=None)
        return add_years(now, -self._plate_lookback_years)

    def _new_customer_payload(
        self,
        request: CustomerMatchRequest,
        caller: CallerContext,
        *,
        national_id: str | None = None,
        tax_id: str | None = None,
    ) -> dict[str, Any]:
        first_name, surname = customer_name_parts(request.name, request.surname)
        address = request.address.strip()[:_ADDRESS_MAX] if request.address and request.address.strip() else None
        return {
            "firm_id": caller.firm_id,
            "branch_id": caller.branch_id,
            "owner_type": OwnerType.ORGANIZATION if tax_id else OwnerType.INDIVIDUAL,
            "first_name": first_name,
            "surname": surname,
            "national_id": national_id,
            "tax_id": tax_id,
            "address": address,
        }

    def _backfill(self, customer_id: int, request: CustomerMatchRequest) -> None:
        first_name, surname = customer_name_parts(request.name, request.surname)
        values = {
            "first_name": first_name,
            "surname": surname,
            "national_id": request.national_id if is_valid_national_id(request.national_id) else None,
            "tax_id": request.tax_id if is_valid_tax_id(request.tax_id) else None,
            "address": request.address.strip()[:_ADDRESS_MAX] if request.address else None,
        }
        try:
            # A failed statement must not abort the enclosing import transaction.
            with self._session.begin_nested():
                self._repository.backfill_empty_fields(customer_id, values)
        except SQLAlchemyError as exc:
            logger.warning(
                "Customer back-fill failed customer_id=%s (import continues): %s",
                customer_id,
                exc,
            )
