"""
app/services/import_session_store.py

In-process registry of parsed-but-unconfirmed import sessions.

A session owns its scratch payload and its duplicate-key / name caches. It
moves through explicit states:

    created -> caches_loaded -> active -> completed | abandoned

Extending a session's expiry only moves its deadline. Scratch storage is
released exactly once, by whichever terminal transition happens first
(completion, explicit abandonment or TTL expiry).
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Sequence

from app.domain.policy_import import CallerContext, Clock, ParsedRow, utc_now
from db.repositories.errors import ScratchStorageError
from db.repositories.storage import ScratchStorageBackend

logger = logging.getLogger(__name__)


class ImportSessionState:
    CREATED = "created"
    CACHES_LOADED = "caches_loaded"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    TERMINAL = frozenset({COMPLETED, ABANDONED})


class ImportSession:
    """
    One parsed upload awaiting confirmation.

    Callers must hold ``lock`` while confirming batches; the caches below are
    not safe under concurrent mutation.
    """

    def __init__(
        self,
        *,
        session_id: str,
        owner: CallerContext,
        carrier_id: int,
        carrier_name: str,
        file_name: str,
        storage_path: str,
        total_rows: int,
        valid_rows: int,
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        self.session_id = session_id
        self.owner = owner
        self.carrier_id = carrier_id
        self.carrier_name = carrier_name
        self.file_name = file_name
        self.storage_path = storage_path
        self.total_rows = total_rows
        self.valid_rows = valid_rows
        self.created_at = created_at
        self.expires_at = expires_at
        self.state = ImportSessionState.CREATED
        self.lock = threading.Lock()
        self.processed_so_far = 0
        self.duplicate_keys: set[tuple[str, int]] | None = None
        self.name_index: dict[str, int] | None = None
        self._rows: list[ParsedRow] | None = None
        self._released = False

    def __repr__(self) -> str:
        return f"ImportSession(session_id={self.session_id!r}, state={self.state!r}, carrier_id={self.carrier_id!r})"

    @property
    def is_terminal(self) -> bool:
        return self.state in ImportSessionState.TERMINAL

    @property
    def caches_loaded(self) -> bool:
        return self.duplicate_keys is not None and self.name_index is not None

    @property
    def rows_resident(self) -> bool:
        return self._rows is not None

    def is_owned_by(self, caller: CallerContext) -> bool:
        return self.owner.firm_id == caller.firm_id and self.owner.user_id == caller.user_id

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def load_caches(self, *, duplicate_keys: set[tuple[str, int]], name_index: dict[str, int]) -> None:
        if self.is_terminal:
            raise RuntimeError(f"Cannot load caches for a {self.state} session.")
        self.duplicate_keys = duplicate_keys
        self.name_index = name_index
        self.state = ImportSessionState.CACHES_LOADED

    def mark_active(self) -> None:
        if self.state == ImportSessionState.CACHES_LOADED:
            self.state = ImportSessionState.ACTIVE


class ImportSessionStore:
    """
    Thread-safe session registry with TTL expiry and exactly-once cleanup.
    """

    def __init__(
        self,
        *,
        storage: ScratchStorageBackend,
        ttl: timedelta = timedelta(minutes=30),
        clock: Clock = utc_now,
    ) -> None:
        self._storage = storage
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[str, ImportSession] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def create(
        self,
        *,
        owner: CallerContext,
        carrier_id: int,
        carrier_name: str,
        file_name: str,
        rows: Sequence[ParsedRow],
    ) -> ImportSession:
        """
        Write ``rows`` to scratch storage and register a new session.

        The row list is not kept resident; the first confirmation reloads it.
        """

        session_id = uuid.uuid4().hex
        stored = self._storage.save(session_id=session_id, payload=[row.to_payload() for row in rows])
        now = self._clock()
        session = ImportSession(
            session_id=session_id,
            owner=owner,
            carrier_id=carrier_id,
            carrier_name=carrier_name,
            file_name=file_name,
            storage_path=stored.storage_path,
            total_rows=len(rows),
            valid_rows=sum(1 for row in rows if row.is_valid),
            created_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._sessions[session_id] = session
        logger.info(
            "Import session created session_id=%s carrier_id=%s rows=%s valid=%s bytes=%s",
            session_id,
            carrier_id,
            session.total_rows,
            session.valid_rows,
            stored.size_bytes,
        )
        return session

    def get(self, session_id: str) -> ImportSession | None:
        """
        Return the live session, expiring it first if its deadline passed.
        """

        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            self._release(session, ImportSessionState.ABANDONED, reason="expired")
            return None
        return session

    def rows(self, session: ImportSession) -> list[ParsedRow]:
        """
        The session's full row list, loaded from scratch storage on first use.
        """

        if session._rows is None:
            if session.is_terminal:
                raise ScratchStorageError("Import session payload has already been released.")
            payload = self._storage.load(storage_path=session.storage_path)
            session._rows = [ParsedRow.from_payload(item) for item in payload]
        return session._rows

    def extend(self, session: ImportSession) -> None:
        """
        Push the session's expiry out by one TTL. Never releases storage.
        """

        with self._lock:
            if session.is_terminal:
                return
            session.expires_at = self._clock() + self._ttl
            self._sessions[session.session_id] = session

    def complete(self, session: ImportSession) -> bool:
        return self._release(session, ImportSessionState.COMPLETED, reason="completed")

    def abandon(self, session: ImportSession) -> bool:
        return self._release(session, ImportSessionState.ABANDONED, reason="abandoned")

    def sweep(self) -> int:
        """
        Release every expired session. Returns how many were released.

        Sessions whose lock is held by an in-flight confirm are skipped and
        picked up by a later sweep if they are still expired then.
        """

        now = self._clock()
        with self._lock:
            expired = [session for session in self._sessions.values() if session.is_expired(now)]
        released = 0
        for session in expired:
            if not session.lock.acquire(blocking=False):
                continue
            try:
                if session.is_expired(self._clock()) and self._release(
                    session, ImportSessionState.ABANDONED, reason="expired"
                ):
                    released += 1
            finally:
                session.lock.release()
        if released:
            logger.info("Expired import sessions swept count=%s", released)
        return released

    def _release(self, session: ImportSession, state: str, *, reason: str) -> bool:
        with self._lock:
            if session._released:
                return False
            session._released = True
            session.state = state
            if self._sessions.get(session.session_id) is session:
                del self._sessions[session.session_id]

        session._rows = None
        session.duplicate_keys = None
        session.name_index = None
        try:
            self._storage.delete(storage_path=session.storage_path)
        except ScratchStorageError as exc:
            logger.warning(
                "Scratch payload cleanup failed session_id=%s path=%r: %s",
                session.session_id,
                session.storage_path,
                exc,
            )
        logger.info("Import session released session_id=%s state=%s reason=%s", session.session_id, state, reason)
        return True
