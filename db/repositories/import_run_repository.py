"""
Repository for import run lifecycle persistence and history lookup.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.carrier import InsuranceCarrier
from db.models.import_run import ImportRunStatus, PolicyImportRun


class ImportRunRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_run(
        self,
        *,
        session_id: str,
        file_name: str,
        carrier_id: int,
        firm_id: int,
        user_id: int | None,
        total_rows: int,
        started_at: datetime | None = None,
    ) -> PolicyImportRun:
        run = PolicyImportRun(
            session_id=session_id,
            file_name=file_name[:255],
            carrier_id=carrier_id,
            firm_id=firm_id,
            user_id=user_id,
            total_rows=total_rows,
            status=ImportRunStatus.RUNNING,
            started_at=started_at or datetime.now(timezone.utc),
        )
        self._session.add(run)
        self._session.flush()
        return run

    def get_by_session(self, session_id: str) -> PolicyImportRun | None:
        stmt = select(PolicyImportRun).where(PolicyImportRun.session_id == session_id)
        return self._session.scalars(stmt).first()

    def record_progress(
        self,
        *,
        session_id: str,
        success_count: int,
        duplicate_count: int,
        failed_count: int,
        new_customers_created: int,
    ) -> PolicyImportRun | None:
        run = self.get_by_session(session_id)
        if run is None:
            return None
        run.success_count += success_count
        run.duplicate_count += duplicate_count
        run.failed_count += failed_count
        run.new_customers_created += new_customers_created
        return run

    def mark_finished(
        self,
        *,
        session_id: str,
        status: str,
        completed_at: datetime | None = None,
    ) -> PolicyImportRun | None:
        run = self.get_by_session(session_id)
        if run is None:
            return None
        run.status = status
        run.completed_at = completed_at or datetime.now(timezone.utc)
        return run

    def list_runs(
        self,
        *,
        firm_id: int,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[tuple[PolicyImportRun, str | None]], int]:
        """
        Page through a firm's import runs, newest first, with carrier names.
        """

        size = max(1, page_size)
        offset = (max(1, page) - 1) * size

        count_stmt = select(func.count()).select_from(PolicyImportRun).where(PolicyImportRun.firm_id == firm_id)
        total = int(self._session.scalar(count_stmt) or 0)

        stmt: Select[tuple[PolicyImportRun, str | None]] = (
            select(PolicyImportRun, InsuranceCarrier.name)
            .outerjoin(InsuranceCarrier, InsuranceCarrier.id == PolicyImportRun.carrier_id)
            .where(PolicyImportRun.firm_id == firm_id)
            .order_by(PolicyImportRun.started_at.desc(), PolicyImportRun.id.desc())
            .offset(offset)
            .limit(size)
        )
        rows = [(run, carrier_name) for run, carrier_name in self._session.execute(stmt)]
        return rows, total
