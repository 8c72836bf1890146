"""
Customer lookups and bulk creation used by import identity resolution.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.orm import Session

from db.models.customer import Customer
from db.models.policy import Policy
from db.repositories.types import CustomerSnapshot, PlateHistoryEntry

_DEFAULT_CHUNK_SIZE = 500
_BACKFILL_COLUMNS = ("first_name", "surname", "national_id", "tax_id", "address")


def _snapshot(customer: Customer) -> CustomerSnapshot:
    return CustomerSnapshot(
        id=customer.id,
        first_name=customer.first_name,
        surname=customer.surname,
        national_id=customer.national_id,
        tax_id=customer.tax_id,
        address=customer.address,
        owner_type=customer.owner_type,
    )


class CustomerRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_firm(self, firm_id: int) -> list[CustomerSnapshot]:
        stmt = select(Customer).where(Customer.firm_id == firm_id).order_by(Customer.id)
        return [_snapshot(customer) for customer in self._session.scalars(stmt)]

    def find_by_national_id(self, *, firm_id: int, national_id: str) -> CustomerSnapshot | None:
        stmt = (
            select(Customer)
            .where(Customer.firm_id == firm_id, Customer.national_id == national_id)
            .order_by(Customer.id)
            .limit(1)
        )
        customer = self._session.scalars(stmt).first()
        return _snapshot(customer) if customer is not None else None

    def find_by_tax_id(self, *, firm_id: int, tax_id: str) -> CustomerSnapshot | None:
        stmt = (
            select(Customer)
            .where(Customer.firm_id == firm_id, Customer.tax_id == tax_id)
            .order_by(Customer.id)
            .limit(1)
        )
        customer = self._session.scalars(stmt).first()
        return _snapshot(customer) if customer is not None else None

    def plate_history(
        self,
        *,
        firm_id: int,
        plates: Iterable[str],
        since: datetime,
    ) -> dict[str, PlateHistoryEntry]:
        """
        Map each requested plate key to its most recent policy in the window.

        Keys are compact uppercase plates ("34ABC123"); stored plates are
        compared in the same form so spacing differences do not matter.
        """

        wanted = sorted({plate for plate in plates if plate})
        if not wanted:
            return {}

        stored_key = func.replace(func.upper(Policy.plate), " ", "")
        stmt = (
            select(stored_key, Policy.plate, Policy.customer_id, Policy.insured_name, Policy.start_date)
            .where(
                Policy.firm_id == firm_id,
                stored_key.in_(wanted),
                Policy.customer_id.is_not(None),
                Policy.start_date >= since,
            )
            .order_by(Policy.start_date.desc(), Policy.id.desc())
        )
        history: dict[str, PlateHistoryEntry] = {}
        for key, plate, customer_id, insured_name, start_date in self._session.execute(stmt):
            if key in history:
                continue
            history[key] = PlateHistoryEntry(
                plate=plate,
                customer_id=customer_id,
                insured_name=insured_name,
                start_date=start_date,
            )
        return history

    def bulk_create(
        self,
        payloads: Sequence[dict[str, Any]],
        *,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
    ) -> list[int]:
        """
        Insert customers and return their ids in payload order.

        Does not commit; the caller owns the transaction.
        """

        if not payloads:
            return []

        size = max(1, chunk_size)
        created_ids: list[int] = []
        for start in range(0, len(payloads), size):
            chunk = list(payloads[start : start + size])
            stmt = insert(Customer).returning(Customer.id, sort_by_parameter_order=True)
            created_ids.extend(self._session.scalars(stmt, chunk).all())
        return created_ids

    def backfill_empty_fields(self, customer_id: int, values: dict[str, Any]) -> bool:
        """
        Copy ``values`` onto columns that are currently empty. Populated
        columns are never overwritten. Returns True when anything changed.
        """

        customer = self._session.get(Customer, customer_id)
        if customer is None:
            return False

        changes: dict[str, Any] = {}
        for column in _BACKFILL_COLUMNS:
            incoming = values.get(column)
            if incoming and not (getattr(customer, column) or "").strip():
                changes[column] = incoming
        if not changes:
            return False

        self._session.execute(update(Customer).where(Customer.id == customer_id).values(**changes))
        return True
