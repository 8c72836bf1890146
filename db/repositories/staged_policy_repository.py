"""
Repository for the staged policy pool written by carrier imports.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from db.models.staged_policy import StagedPolicy

_DEFAULT_CHUNK_SIZE = 1000
_DUPLICATE_KEY_COLUMNS = ("firm_id", "carrier_id", "policy_no", "endorsement_no")


class StagedPolicyRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def existing_keys(self, *, firm_id: int, carrier_id: int) -> set[tuple[str, int]]:
        """
        Return every (policy number, endorsement number) already staged for
        the firm and carrier.
        """

        stmt = select(StagedPolicy.policy_no, StagedPolicy.endorsement_no).where(
            StagedPolicy.firm_id == firm_id,
            StagedPolicy.carrier_id == carrier_id,
        )
        return {(policy_no.strip(), endorsement_no or 0) for policy_no, endorsement_no in self._session.execute(stmt)}

    def bulk_insert(
        self,
        payloads: Sequence[dict[str, Any]],
        *,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
    ) -> int:
        """
        Insert staged rows in chunks, skipping rows that collide with the
        duplicate-key constraint. Returns the number of rows inserted.

        Does not commit; the caller owns the transaction.
        """

        if not payloads:
            return 0

        size = max(1, chunk_size)
        insert = self._dialect_insert()
        inserted = 0
        for start in range(0, len(payloads), size):
            chunk = list(payloads[start : start + size])
            stmt = (
                insert(StagedPolicy)
                .values(chunk)
                .on_conflict_do_nothing(index_elements=list(_DUPLICATE_KEY_COLUMNS))
                .returning(StagedPolicy.id)
            )
            inserted += len(self._session.scalars(stmt).all())
        return inserted

    def _dialect_insert(self) -> Any:
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise RuntimeError(f"Unsupported database dialect for staged policy inserts: {dialect}")
