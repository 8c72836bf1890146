from __future__ import annotations

from typing import Iterator

import pytest

from app.config import get_policy_import_settings
from app.scheduler.jobs import build_scheduler


@pytest.fixture()
def fresh_settings() -> Iterator[None]:
    get_policy_import_settings.cache_clear()
    yield
    get_policy_import_settings.cache_clear()


def test_defaults_apply_without_environment(monkeypatch, fresh_settings) -> None:
    for name in ("POLICY_IMPORT_SESSION_TTL_MINUTES", "POLICY_IMPORT_DEFAULT_BATCH_SIZE"):
        monkeypatch.delenv(name, raising=False)

    settings = get_policy_import_settings()

    assert settings.session_ttl_minutes == 30
    assert settings.default_batch_size == 500


def test_environment_overrides_and_bad_values_fall_back(monkeypatch, fresh_settings) -> None:
    monkeypatch.setenv("POLICY_IMPORT_SESSION_TTL_MINUTES", "45")
    monkeypatch.setenv("POLICY_IMPORT_INSERT_CHUNK_SIZE", "lots")
    monkeypatch.setenv("POLICY_IMPORT_DEFAULT_BATCH_SIZE", "0")
    monkeypatch.setenv("POLICY_IMPORT_SCRATCH_DIR", "   ")
    monkeypatch.setenv("POLICY_IMPORT_LOG_VALIDATION_ERRORS", "no")

    settings = get_policy_import_settings()

    assert settings.session_ttl_minutes == 45
    assert settings.insert_chunk_size == 1000
    assert settings.default_batch_size == 1
    assert settings.scratch_dir == "data/import_sessions"
    assert settings.log_validation_errors is False


def test_scheduler_registers_the_session_sweep(monkeypatch, fresh_settings) -> None:
    monkeypatch.setenv("POLICY_IMPORT_SWEEP_INTERVAL_SECONDS", "15")

    scheduler = build_scheduler()

    job = scheduler.get_job("sweep_import_sessions")
    assert job is not None
    assert job.trigger.interval.total_seconds() == 15
