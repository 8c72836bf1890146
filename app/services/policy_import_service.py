"""
app/services/policy_import_service.py

Service layer for carrier policy import orchestration.

Flow:

    1. parse_upload   - decode the file, pick the carrier parser, parse rows,
                        match customers for valid rows (no writes), open a session
    2. confirm_batch  - commit one window of valid rows, resumable across
       confirm_full     requests; or commit all valid rows in one
                        retry-wrapped transaction
    3. abandon / TTL  - release the session and its scratch payload

Duplicates are keyed on (policy number, endorsement number) within the
caller's firm and the session's carrier. Confirm entry points never raise:
session, window and storage failures come back as ``ImportResult`` values
carrying an ``error_code``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_policy_import_settings
from app.domain.customer_match import CustomerMatchResult
from app.domain.policy_import import (
    CallerContext,
    Clock,
    DetectionResult,
    ImportHistoryEntry,
    ImportHistoryPage,
    ImportPreview,
    ImportResult,
    ImportRowError,
    ParsedRow,
    SupportedFormat,
    utc_now,
)
from app.mappers.policy_mapper import PolicyMapper, StagingContext
from app.parsers.registry import ParserRegistry, get_parser_registry
from app.parsers.workbook import DocumentReadError, UnsupportedFileTypeError, read_workbook
from app.services.commit_retry import CommitRetryExhaustedError, run_with_retry
from app.services.customer_matching_service import CustomerMatchingService, normalize_name
from app.services.import_session_store import ImportSession, ImportSessionStore
from db.models.import_run import ImportRunStatus
from db.repositories.carrier_repository import CarrierRepository
from db.repositories.errors import ScratchStorageError
from db.repositories.import_run_repository import ImportRunRepository
from db.repositories.staged_policy_repository import StagedPolicyRepository
from db.repositories.storage import LocalScratchStorage

logger = logging.getLogger(__name__)


class ImportErrorCode:
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_FORBIDDEN = "session_forbidden"
    SESSION_STATE = "session_state"
    INVALID_WINDOW = "invalid_window"
    PERSISTENCE = "persistence_error"
    CANCELLED = "cancelled"
    INTERNAL = "internal_error"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ImportSessionNotFoundError(ValueError):
    """
    Raised when a session id is unknown or its session has expired.
    """

    code = ImportErrorCode.SESSION_NOT_FOUND


class ImportSessionOwnershipError(ValueError):
    """
    Raised when the caller does not own the session.
    """

    code = ImportErrorCode.SESSION_FORBIDDEN


class ImportSessionStateError(ValueError):
    """
    Raised when the session can no longer accept confirmations.
    """

    code = ImportErrorCode.SESSION_STATE


class InvalidBatchWindowError(ValueError):
    """
    Raised for an empty session id or an invalid skip/take window.
    """

    code = ImportErrorCode.INVALID_WINDOW


class ImportPersistenceError(RuntimeError):
    """
    Raised when staged rows or customers cannot be persisted.
    """

    code = ImportErrorCode.PERSISTENCE


class ImportCancelledError(RuntimeError):
    """
    Raised when a cooperative cancellation signal stops a parse or write.
    """

    code = ImportErrorCode.CANCELLED


_EXPECTED_ERRORS = (
    ImportSessionNotFoundError,
    ImportSessionOwnershipError,
    ImportSessionStateError,
    InvalidBatchWindowError,
    ImportPersistenceError,
    ImportCancelledError,
)


def _check_cancelled(cancel_event: threading.Event | None, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ImportCancelledError(f"Import cancelled during {stage}.")


def _row_errors(rows: Sequence[ParsedRow]) -> list[ImportRowError]:
    return [
        ImportRowError(row_number=row.row_number, message="; ".join(row.errors), policy_no=row.policy_no)
        for row in rows
        if not row.is_valid
    ]


@dataclass(frozen=True)
class _WindowOutcome:
    processed: int
    inserted: int
    duplicates: int
    new_customers: int
    new_keys: frozenset[tuple[str, int]]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class PolicyImportService:
    """
    Coordinates parsing, customer resolution, session state and staging writes.
    """

    def __init__(
        self,
        *,
        store: ImportSessionStore,
        registry: ParserRegistry | None = None,
        mapper: PolicyMapper | None = None,
        clock: Clock = utc_now,
        insert_chunk_size: int = 1000,
        commit_max_retries: int = 2,
        plate_lookback_years: int = 2,
        log_validation_errors: bool = True,
    ) -> None:
        self._store = store
        self._registry = registry or get_parser_registry()
        self._mapper = mapper or PolicyMapper()
        self._clock = clock
        self._insert_chunk_size = max(1, insert_chunk_size)
        self._commit_max_retries = max(0, commit_max_retries)
        self._plate_lookback_years = plate_lookback_years
        self._log_validation_errors = log_validation_errors

    @property
    def store(self) -> ImportSessionStore:
        return self._store

    # ------------------------------------------------------------------
    # Parse / preview
    # ------------------------------------------------------------------

    def parse_upload(
        self,
        *,
        file_name: str,
        content: bytes,
        caller: CallerContext,
        db: Session,
        carrier_id: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ImportPreview:
        """
        Parse one uploaded document and open an import session for it.

        Unsupported extensions and unreadable documents raise
        ``UnsupportedFileTypeError`` / ``DocumentReadError``. An undetected
        format is a normal result: zero rows and no session. Any other
        failure comes back as a preview carrying an ``error_code``.
        """

        try:
            return self._parse_upload(
                file_name=file_name,
                content=content,
                caller=caller,
                db=db,
                carrier_id=carrier_id,
                cancel_event=cancel_event,
            )
        except (UnsupportedFileTypeError, DocumentReadError, ImportPersistenceError, ImportCancelledError):
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Policy file parse failed unexpectedly file=%r", file_name)
            return ImportPreview.failure(
                file_name=file_name,
                code=ImportErrorCode.INTERNAL,
                message="File could not be parsed.",
            )

    def _parse_upload(
        self,
        *,
        file_name: str,
        content: bytes,
        caller: CallerContext,
        db: Session,
        carrier_id: int | None,
        cancel_event: threading.Event | None,
    ) -> ImportPreview:
        workbook = read_workbook(file_name, content)
        _check_cancelled(cancel_event, "parse")

        carrier_names = self._carrier_names(db)
        match = self._registry.resolve(workbook, carrier_id=carrier_id, carrier_names=carrier_names)
        if match.parser is None:
            return ImportPreview(
                total_rows=0,
                valid_rows=0,
                invalid_rows=0,
                file_name=file_name,
                message="File format could not be detected. Select the carrier explicitly.",
            )

        parser = match.parser
        rows = parser.parse_workbook(
            workbook,
            scan_rows=self._registry.scan_rows,
            scan_columns=self._registry.scan_columns,
        )
        _check_cancelled(cancel_event, "parse")
        self._log_invalid_rows(rows, file_name=file_name, carrier_id=parser.carrier_id)

        rows = self._resolve_customers(rows, caller=caller, db=db)
        _check_cancelled(cancel_event, "customer resolution")

        carrier_name = carrier_names.get(parser.carrier_id) or parser.name
        try:
            session = self._store.create(
                owner=caller,
                carrier_id=parser.carrier_id,
                carrier_name=carrier_name,
                file_name=file_name,
                rows=rows,
            )
        except ScratchStorageError as exc:
            raise ImportPersistenceError("Failed to stage parsed rows for confirmation.") from exc

        valid_rows = session.valid_rows
        logger.info(
            "Policy file parsed file=%r carrier_id=%s method=%s total=%s valid=%s session_id=%s",
            file_name,
            parser.carrier_id,
            match.method,
            len(rows),
            valid_rows,
            session.session_id,
        )
        return ImportPreview(
            total_rows=len(rows),
            valid_rows=valid_rows,
            invalid_rows=len(rows) - valid_rows,
            rows=rows,
            session_id=session.session_id,
            file_name=file_name,
            carrier_id=parser.carrier_id,
            carrier_name=carrier_name,
            detected_format=parser.name,
            detection_method=match.method,
        )

    def detect_format(
        self,
        *,
        file_name: str,
        content: bytes,
        db: Session,
        carrier_id: int | None = None,
    ) -> DetectionResult:
        return self._registry.detect_format(
            file_name,
            content,
            carrier_id=carrier_id,
            carrier_names=self._carrier_names(db),
        )

    def supported_formats(self) -> list[SupportedFormat]:
        return self._registry.supported_formats()

    # ------------------------------------------------------------------
    # Confirm
    # ------------------------------------------------------------------

    def confirm_batch(
        self,
        *,
        session_id: str,
        caller: CallerContext,
        skip: int,
        take: int,
        db: Session,
        cancel_event: threading.Event | None = None,
    ) -> ImportResult:
        """
        Commit valid rows ``[skip, skip + take)`` of a session.

        Batches must be requested in increasing ``skip`` order. The final
        batch completes the session and releases its scratch payload.
        """

        try:
            if skip < 0 or take <= 0:
                raise InvalidBatchWindowError("skip must be >= 0 and take must be > 0.")
            session = self._require_session(session_id, caller)
            with session.lock:
                self._ensure_open(session)
                self._store.extend(session)
                return self._confirm_window(
                    session,
                    caller=caller,
                    skip=skip,
                    take=take,
                    db=db,
                    cancel_event=cancel_event,
                )
        except _EXPECTED_ERRORS as exc:
            return self._failure(exc, session_id=session_id)
        except Exception:  # noqa: BLE001
            logger.exception("Batch confirm failed unexpectedly session_id=%s", session_id)
            return ImportResult.failure(code=ImportErrorCode.INTERNAL, message="Import failed unexpectedly.")

    def confirm_full(
        self,
        *,
        session_id: str,
        caller: CallerContext,
        db: Session,
        cancel_event: threading.Event | None = None,
    ) -> ImportResult:
        """
        Commit every valid row of a session in one retry-wrapped transaction.
        """

        try:
            session = self._require_session(session_id, caller)
            with session.lock:
                self._ensure_open(session)
                self._store.extend(session)
                return self._confirm_all(session, caller=caller, db=db, cancel_event=cancel_event)
        except _EXPECTED_ERRORS as exc:
            return self._failure(exc, session_id=session_id)
        except Exception:  # noqa: BLE001
            logger.exception("Full confirm failed unexpectedly session_id=%s", session_id)
            return ImportResult.failure(code=ImportErrorCode.INTERNAL, message="Import failed unexpectedly.")

    def abandon(self, *, session_id: str, caller: CallerContext) -> None:
        session = self._require_session(session_id, caller)
        with session.lock:
            if self._store.abandon(session):
                logger.info("Import session abandoned session_id=%s firm_id=%s", session_id, caller.firm_id)

    def sweep_expired_sessions(self) -> int:
        return self._store.sweep()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def import_history(
        self,
        *,
        caller: CallerContext,
        db: Session,
        page: int = 1,
        page_size: int = 20,
    ) -> ImportHistoryPage:
        runs, total = ImportRunRepository(db).list_runs(firm_id=caller.firm_id, page=page, page_size=page_size)
        return ImportHistoryPage(
            items=[
                ImportHistoryEntry(
                    id=run.id,
                    session_id=run.session_id,
                    file_name=run.file_name,
                    carrier_id=run.carrier_id,
                    carrier_name=carrier_name,
                    total_rows=run.total_rows,
                    success_count=run.success_count,
                    duplicate_count=run.duplicate_count,
                    failed_count=run.failed_count,
                    status=run.status,
                    started_at=run.started_at,
                    completed_at=run.completed_at,
                    user_id=run.user_id,
                )
                for run, carrier_name in runs
            ],
            total_count=total,
        )

    # ------------------------------------------------------------------
    # Confirm internals
    # ------------------------------------------------------------------

    def _confirm_window(
        self,
        session: ImportSession,
        *,
        caller: CallerContext,
        skip: int,
        take: int,
        db: Session,
        cancel_event: threading.Event | None,
    ) -> ImportResult:
        rows = self._session_rows(session)
        valid = [row for row in rows if row.is_valid]
        total_valid = len(valid)
        if skip > total_valid:
            raise InvalidBatchWindowError(f"skip={skip} is beyond the {total_valid} valid rows.")

        if not session.caches_loaded:
            self._load_caches(session, db=db)
        session.mark_active()
        self._ensure_run(session, db=db)

        window = valid[skip : skip + take]
        outcome = self._write_rows(
            window,
            session=session,
            caller=caller,
            db=db,
            seen_keys=session.duplicate_keys or set(),
            name_index=session.name_index or {},
            cancel_event=cancel_event,
        )
        # Keys join the session set only once their write is committed.
        if session.duplicate_keys is not None:
            session.duplicate_keys.update(outcome.new_keys)

        session.processed_so_far = max(session.processed_so_far, skip + len(window))
        has_more = session.processed_so_far < total_valid
        self._record_run_progress(session, outcome, finished=not has_more, db=db)

        if has_more:
            self._store.extend(session)
        else:
            self._store.complete(session)

        # Invalid rows are reported once, by the batch that completes the session.
        errors = [] if has_more else _row_errors(rows)

        logger.info(
            "Import batch confirmed session_id=%s skip=%s take=%s inserted=%s duplicates=%s progress=%s/%s",
            session.session_id,
            skip,
            take,
            outcome.inserted,
            outcome.duplicates,
            session.processed_so_far,
            total_valid,
        )
        return ImportResult(
            success=True,
            total_processed=outcome.processed,
            success_count=outcome.inserted,
            failed_count=len(errors),
            duplicate_count=outcome.duplicates,
            new_customers_created=outcome.new_customers,
            errors=errors,
            total_valid_rows=total_valid,
            processed_so_far=session.processed_so_far,
            is_completed=not has_more,
            has_more_batches=has_more,
        )

    def _confirm_all(
        self,
        session: ImportSession,
        *,
        caller: CallerContext,
        db: Session,
        cancel_event: threading.Event | None,
    ) -> ImportResult:
        rows = self._session_rows(session)
        valid = [row for row in rows if row.is_valid]
        staged = StagedPolicyRepository(db)
        matcher = self._matcher(db)

        def attempt() -> _WindowOutcome:
            seen_keys = staged.existing_keys(firm_id=caller.firm_id, carrier_id=session.carrier_id)
            name_index = matcher.load_index(caller).unambiguous_names()
            return self._write_rows(
                valid,
                session=session,
                caller=caller,
                db=db,
                seen_keys=seen_keys,
                name_index=name_index,
                cancel_event=cancel_event,
                retryable=True,
            )

        self._ensure_run(session, db=db)
        try:
            outcome = run_with_retry(attempt, max_retries=self._commit_max_retries, on_retry=db.rollback)
        except CommitRetryExhaustedError as exc:
            raise ImportPersistenceError(f"Failed to persist staged policies: {exc.last_error}") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise ImportPersistenceError(f"Failed to persist staged policies: {exc}") from exc

        session.processed_so_far = len(valid)
        self._record_run_progress(session, outcome, finished=True, db=db)
        self._store.complete(session)

        errors = _row_errors(rows)
        logger.info(
            "Import confirmed session_id=%s inserted=%s duplicates=%s invalid=%s",
            session.session_id,
            outcome.inserted,
            outcome.duplicates,
            len(errors),
        )
        return ImportResult(
            success=True,
            total_processed=outcome.processed,
            success_count=outcome.inserted,
            failed_count=len(errors),
            duplicate_count=outcome.duplicates,
            new_customers_created=outcome.new_customers,
            errors=errors,
            total_valid_rows=len(valid),
            processed_so_far=len(valid),
            is_completed=True,
            has_more_batches=False,
        )

    def _write_rows(
        self,
        rows: Sequence[ParsedRow],
        *,
        session: ImportSession,
        caller: CallerContext,
        db: Session,
        seen_keys: set[tuple[str, int]],
        name_index: Mapping[str, int],
        cancel_event: threading.Event | None,
        retryable: bool = False,
    ) -> _WindowOutcome:
        """
        Deduplicate, create missing customers, map and bulk-insert ``rows``
        in one transaction.

        ``seen_keys`` is only read; keys written here are returned so the
        caller can merge them after a successful commit.
        """

        context = StagingContext(
            caller=caller,
            carrier_id=session.carrier_id,
            session_id=session.session_id,
            file_name=session.file_name,
            now=self._clock(),
        )
        window_keys: set[tuple[str, int]] = set()
        to_write: list[ParsedRow] = []
        duplicates = 0

        for row in rows:
            key = row.duplicate_key
            if key in seen_keys or key in window_keys:
                duplicates += 1
                continue
            window_keys.add(key)
            to_write.append(row)

        repository = StagedPolicyRepository(db)
        inserted = 0
        try:
            _check_cancelled(cancel_event, "customer creation")
            identities = self._finalize_customers(to_write, caller=caller, db=db)
            new_customers = sum(1 for match in identities.values() if match.auto_created)

            payloads: list[dict[str, Any]] = []
            for position, row in enumerate(to_write):
                match = identities.get(position)
                customer_id = match.customer_id if match is not None else row.customer_id
                if customer_id is None:
                    customer_id = name_index.get(normalize_name(row.insured_full_name))
                payloads.append(self._mapper.to_staged_payload(row, context, customer_id=customer_id))

            for start in range(0, len(payloads), self._insert_chunk_size):
                _check_cancelled(cancel_event, "bulk write")
                chunk = payloads[start : start + self._insert_chunk_size]
                inserted += repository.bulk_insert(chunk, chunk_size=self._insert_chunk_size)
            db.commit()
        except ImportCancelledError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            if retryable:
                raise
            db.rollback()
            raise ImportPersistenceError(f"Failed to persist staged policies: {exc}") from exc

        # Rows rejected by the unique constraint lost a race with another import.
        raced = len(payloads) - inserted
        if raced:
            logger.warning(
                "Concurrent duplicates skipped at insert session_id=%s count=%s",
                session.session_id,
                raced,
            )
        return _WindowOutcome(
            processed=len(rows),
            inserted=inserted,
            duplicates=duplicates + raced,
            new_customers=new_customers,
            new_keys=frozenset(window_keys),
        )

    def _load_caches(self, session: ImportSession, *, db: Session) -> None:
        duplicate_keys = StagedPolicyRepository(db).existing_keys(
            firm_id=session.owner.firm_id,
            carrier_id=session.carrier_id,
        )
        name_index = self._matcher(db).load_index(session.owner).unambiguous_names()
        session.load_caches(duplicate_keys=duplicate_keys, name_index=name_index)
        logger.info(
            "Import session caches loaded session_id=%s existing_keys=%s names=%s",
            session.session_id,
            len(duplicate_keys),
            len(name_index),
        )

    def _ensure_run(self, session: ImportSession, *, db: Session) -> None:
        repository = ImportRunRepository(db)
        if repository.get_by_session(session.session_id) is not None:
            return
        try:
            repository.create_run(
                session_id=session.session_id,
                file_name=session.file_name,
                carrier_id=session.carrier_id,
                firm_id=session.owner.firm_id,
                user_id=session.owner.user_id,
                total_rows=session.total_rows,
                started_at=self._clock(),
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise ImportPersistenceError("Failed to record import run.") from exc

    def _record_run_progress(
        self,
        session: ImportSession,
        outcome: _WindowOutcome,
        *,
        finished: bool,
        db: Session,
    ) -> None:
        repository = ImportRunRepository(db)
        invalid_rows = session.total_rows - session.valid_rows
        try:
            repository.record_progress(
                session_id=session.session_id,
                success_count=outcome.inserted,
                duplicate_count=outcome.duplicates,
                failed_count=invalid_rows if finished else 0,
                new_customers_created=outcome.new_customers,
            )
            if finished:
                repository.mark_finished(
                    session_id=session.session_id,
                    status=ImportRunStatus.PARTIAL if invalid_rows else ImportRunStatus.COMPLETED,
                    completed_at=self._clock(),
                )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Import run history update failed session_id=%s: %s", session.session_id, exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_session(self, session_id: str, caller: CallerContext) -> ImportSession:
        if not session_id or not session_id.strip():
            raise InvalidBatchWindowError("session_id is required.")
        session = self._store.get(session_id.strip())
        if session is None:
            raise ImportSessionNotFoundError("Import session not found or expired.")
        if not session.is_owned_by(caller):
            logger.warning(
                "Import session access denied session_id=%s firm_id=%s user_id=%s",
                session_id,
                caller.firm_id,
                caller.user_id,
            )
            raise ImportSessionOwnershipError("Import session belongs to another user.")
        return session

    @staticmethod
    def _ensure_open(session: ImportSession) -> None:
        if session.is_terminal:
            raise ImportSessionStateError(f"Import session is already {session.state}.")

    def _session_rows(self, session: ImportSession) -> list[ParsedRow]:
        try:
            return self._store.rows(session)
        except ScratchStorageError as exc:
            raise ImportPersistenceError(str(exc)) from exc

    def _resolve_customers(self, rows: list[ParsedRow], *, caller: CallerContext, db: Session) -> list[ParsedRow]:
        positions = [position for position, row in enumerate(rows) if row.is_valid]
        if not positions:
            return rows

        requests = [rows[position].identity_request() for position in positions]
        try:
            matches = self._matcher(db).resolve_batch(requests, caller, create_missing=False)
        except SQLAlchemyError as exc:
            db.rollback()
            raise ImportPersistenceError("Failed to resolve customers for parsed rows.") from exc

        enriched = list(rows)
        for position, match in zip(positions, matches):
            enriched[position] = rows[position].with_customer(match)
        return enriched

    def _finalize_customers(
        self,
        rows: Sequence[ParsedRow],
        *,
        caller: CallerContext,
        db: Session,
    ) -> dict[int, CustomerMatchResult]:
        """
        Create pending customers and back-fill matched ones inside the open
        transaction. Results are keyed by position in ``rows``; only rows
        matched on a national or tax id appear.
        """

        positions = [position for position, row in enumerate(rows) if row.has_exact_identity]
        if not positions:
            return {}
        matcher = self._matcher(db)
        matches = matcher.resolve_batch(
            [rows[position].identity_request() for position in positions],
            caller,
            index=matcher.load_index(caller),
        )
        return dict(zip(positions, matches))

    def _matcher(self, db: Session) -> CustomerMatchingService:
        return CustomerMatchingService(db, clock=self._clock, plate_lookback_years=self._plate_lookback_years)

    @staticmethod
    def _carrier_names(db: Session) -> dict[int, str]:
        try:
            return CarrierRepository(db).carrier_names()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Carrier reference list unavailable, using parser names: %s", exc)
            return {}

    def _log_invalid_rows(self, rows: Sequence[ParsedRow], *, file_name: str, carrier_id: int) -> None:
        if not self._log_validation_errors:
            return
        for row in rows:
            if row.is_valid:
                continue
            logger.warning(
                "Policy row invalid file=%r carrier_id=%s row=%s policy_no=%r errors=%r",
                file_name,
                carrier_id,
                row.row_number,
                row.policy_no,
                list(row.errors),
            )

    @staticmethod
    def _failure(exc: Exception, *, session_id: str) -> ImportResult:
        code = getattr(exc, "code", ImportErrorCode.INTERNAL)
        logger.info("Import confirm rejected session_id=%s code=%s: %s", session_id, code, exc)
        return ImportResult.failure(code=code, message=str(exc))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_policy_import_service() -> PolicyImportService:
    """
    Build and cache the import service with env-driven settings.
    """
    settings = get_policy_import_settings()
    store = ImportSessionStore(
        storage=LocalScratchStorage(settings.scratch_dir),
        ttl=timedelta(minutes=settings.session_ttl_minutes),
    )
    return PolicyImportService(
        store=store,
        insert_chunk_size=settings.insert_chunk_size,
        commit_max_retries=settings.commit_max_retries,
        plate_lookback_years=settings.plate_lookback_years,
        log_validation_errors=settings.log_validation_errors,
    )
