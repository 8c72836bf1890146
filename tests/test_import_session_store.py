from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from app.domain.policy_import import CallerContext, ParsedRow
from app.services.import_session_store import ImportSessionState, ImportSessionStore
from db.repositories.errors import ScratchStorageError
from db.repositories.storage import LocalScratchStorage
from db.repositories.types import StoredPayloadMetadata


def sample_rows() -> list[ParsedRow]:
    return [
        ParsedRow(
            row_number=2,
            policy_no="HP-1",
            start_date=datetime(2024, 3, 15),
            gross_premium=Decimal("1250.50"),
            customer_id=41,
            match_candidates=(41, 42),
        ),
        ParsedRow(row_number=3, policy_no="HP-2", errors=("Issue date or start date is required.",)),
    ]


class CountingStorage:
    """
    In-memory scratch backend recording deletes, optionally failing them.
    """

    def __init__(self, *, fail_delete: bool = False) -> None:
        self.payloads: dict[str, list[dict[str, Any]]] = {}
        self.deleted: list[str] = []
        self.fail_delete = fail_delete

    def save(self, *, session_id: str, payload: list[dict[str, Any]]) -> StoredPayloadMetadata:
        path = f"mem/{session_id}.json"
        self.payloads[path] = payload
        return StoredPayloadMetadata(storage_path=path, size_bytes=len(payload), checksum="", stored_at=datetime.now())

    def load(self, *, storage_path: str) -> list[dict[str, Any]]:
        if storage_path not in self.payloads:
            raise ScratchStorageError("missing")
        return self.payloads[storage_path]

    def delete(self, *, storage_path: str) -> None:
        self.deleted.append(storage_path)
        if self.fail_delete:
            raise ScratchStorageError("disk unavailable")
        self.payloads.pop(storage_path, None)


@pytest.fixture()
def storage() -> CountingStorage:
    return CountingStorage()


@pytest.fixture()
def store(storage: CountingStorage, clock) -> ImportSessionStore:
    return ImportSessionStore(storage=storage, ttl=timedelta(minutes=30), clock=clock)


def open_session(store: ImportSessionStore, caller: CallerContext):
    return store.create(
        owner=caller,
        carrier_id=3,
        carrier_name="Hepiyi Sigorta",
        file_name="hepiyi.xlsx",
        rows=sample_rows(),
    )


class TestSessionLifecycle:
    def test_create_counts_rows_and_keeps_the_payload_out_of_memory(self, store, caller, clock) -> None:
        session = open_session(store, caller)

        assert session.total_rows == 2
        assert session.valid_rows == 1
        assert session.state == ImportSessionState.CREATED
        assert session.expires_at == clock() + timedelta(minutes=30)
        assert not session.rows_resident
        assert store.get(session.session_id) is session

    def test_rows_reload_from_storage_with_types_restored(self, store, caller) -> None:
        session = open_session(store, caller)

        rows = store.rows(session)

        assert rows == sample_rows()
        assert rows[0].gross_premium == Decimal("1250.50")
        assert rows[0].match_candidates == (41, 42)
        assert session.rows_resident

    def test_cache_loading_moves_the_session_to_active(self, store, caller) -> None:
        session = open_session(store, caller)

        session.load_caches(duplicate_keys={("HP-9", 0)}, name_index={"ALI VELI": 5})
        assert session.state == ImportSessionState.CACHES_LOADED
        assert session.caches_loaded
        session.mark_active()
        assert session.state == ImportSessionState.ACTIVE

    def test_ownership_requires_the_same_firm_and_user(self, store, caller) -> None:
        session = open_session(store, caller)

        assert session.is_owned_by(CallerContext(firm_id=1, branch_id=99, user_id=7))
        assert not session.is_owned_by(CallerContext(firm_id=1, branch_id=10, user_id=8))
        assert not session.is_owned_by(CallerContext(firm_id=2, branch_id=10, user_id=7))


class TestRelease:
    def test_completion_releases_storage_exactly_once(self, store, storage, caller) -> None:
        session = open_session(store, caller)
        store.rows(session)

        assert store.complete(session) is True
        assert store.complete(session) is False
        assert store.abandon(session) is False
        assert storage.deleted == [session.storage_path]
        assert session.state == ImportSessionState.COMPLETED
        assert not session.rows_resident
        assert len(store) == 0

    def test_released_session_cannot_reload_rows_or_caches(self, store, caller) -> None:
        session = open_session(store, caller)
        store.abandon(session)

        with pytest.raises(ScratchStorageError):
            store.rows(session)
        with pytest.raises(RuntimeError):
            session.load_caches(duplicate_keys=set(), name_index={})

    def test_get_expires_a_session_past_its_deadline(self, store, storage, caller, clock) -> None:
        session = open_session(store, caller)

        clock.advance(minutes=30)

        assert store.get(session.session_id) is None
        assert session.state == ImportSessionState.ABANDONED
        assert storage.deleted == [session.storage_path]

    def test_extend_moves_the_deadline_but_never_releases(self, store, storage, caller, clock) -> None:
        session = open_session(store, caller)

        clock.advance(minutes=25)
        store.extend(session)
        clock.advance(minutes=25)

        assert store.get(session.session_id) is session
        assert storage.deleted == []

    def test_extend_ignores_terminal_sessions(self, store, caller) -> None:
        session = open_session(store, caller)
        store.complete(session)

        store.extend(session)

        assert len(store) == 0

    def test_sweep_only_releases_expired_sessions(self, store, caller, clock) -> None:
        stale = open_session(store, caller)
        clock.advance(minutes=20)
        fresh = open_session(store, caller)
        clock.advance(minutes=15)

        assert store.sweep() == 1
        assert stale.state == ImportSessionState.ABANDONED
        assert store.get(fresh.session_id) is fresh

    def test_sweep_skips_a_session_whose_lock_is_held(self, store, caller, clock) -> None:
        session = open_session(store, caller)
        clock.advance(minutes=31)

        with session.lock:
            assert store.sweep() == 0
            assert not session.is_terminal
            assert len(store) == 1

        assert store.sweep() == 1
        assert session.state == ImportSessionState.ABANDONED

    def test_session_extended_while_locked_survives_the_next_sweep(self, store, caller, clock) -> None:
        session = open_session(store, caller)
        clock.advance(minutes=31)

        with session.lock:
            store.sweep()
            store.extend(session)

        assert store.sweep() == 0
        assert store.get(session.session_id) is session

    def test_failed_cleanup_is_logged_and_the_session_still_released(self, caller, clock, caplog) -> None:
        failing = CountingStorage(fail_delete=True)
        store = ImportSessionStore(storage=failing, ttl=timedelta(minutes=30), clock=clock)
        session = open_session(store, caller)

        with caplog.at_level(logging.WARNING, logger="app.services.import_session_store"):
            assert store.abandon(session) is True

        assert "Scratch payload cleanup failed" in caplog.text
        assert len(store) == 0
        assert store.abandon(session) is False


class TestLocalScratchStorage:
    def test_round_trips_a_payload_under_a_dated_folder(self, scratch_storage: LocalScratchStorage) -> None:
        stored = scratch_storage.save(session_id="abc123", payload=[{"policy_no": "HP-1"}])

        assert stored.storage_path.endswith("/abc123.json")
        assert scratch_storage.load(storage_path=stored.storage_path) == [{"policy_no": "HP-1"}]

        scratch_storage.delete(storage_path=stored.storage_path)
        scratch_storage.delete(storage_path=stored.storage_path)
        with pytest.raises(ScratchStorageError):
            scratch_storage.load(storage_path=stored.storage_path)

    @pytest.mark.parametrize("session_id", ["", "../escape", "a b"])
    def test_rejects_unsafe_session_ids(self, scratch_storage: LocalScratchStorage, session_id: str) -> None:
        with pytest.raises(ScratchStorageError):
            scratch_storage.save(session_id=session_id, payload=[])
