"""
Read access to the carrier and branch reference tables.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.carrier import InsuranceBranch, InsuranceCarrier


class CarrierRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_carrier(self, carrier_id: int) -> InsuranceCarrier | None:
        return self._session.get(InsuranceCarrier, carrier_id)

    def carrier_names(self, *, active_only: bool = True) -> dict[int, str]:
        stmt = select(InsuranceCarrier.id, InsuranceCarrier.name)
        if active_only:
            stmt = stmt.where(InsuranceCarrier.is_active.is_(True))
        return {carrier_id: name for carrier_id, name in self._session.execute(stmt)}

    def branch_names(self) -> dict[int, str]:
        stmt = select(InsuranceBranch.id, InsuranceBranch.name)
        return {branch_id: name for branch_id, name in self._session.execute(stmt)}
