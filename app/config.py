"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class PolicyImportSettings:
    """
    Runtime settings for carrier policy imports.
    """

    session_ttl_minutes: int = 30
    scratch_dir: str = "data/import_sessions"
    max_upload_bytes: int = 10 * 1024 * 1024
    default_batch_size: int = 500
    insert_chunk_size: int = 1000
    commit_max_retries: int = 2
    plate_lookback_years: int = 2
    header_scan_rows: int = 10
    header_scan_columns: int = 15
    sweep_interval_seconds: int = 60
    log_validation_errors: bool = True


@lru_cache(maxsize=1)
def get_policy_import_settings() -> PolicyImportSettings:
    """
    Return cached policy import settings from environment variables.
    """

    return PolicyImportSettings(
        session_ttl_minutes=max(1, _get_int_env("POLICY_IMPORT_SESSION_TTL_MINUTES", 30)),
        scratch_dir=_get_str_env("POLICY_IMPORT_SCRATCH_DIR", "data/import_sessions"),
        max_upload_bytes=max(1, _get_int_env("POLICY_IMPORT_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)),
        default_batch_size=max(1, _get_int_env("POLICY_IMPORT_DEFAULT_BATCH_SIZE", 500)),
        insert_chunk_size=max(1, _get_int_env("POLICY_IMPORT_INSERT_CHUNK_SIZE", 1000)),
        commit_max_retries=max(0, _get_int_env("POLICY_IMPORT_COMMIT_MAX_RETRIES", 2)),
        plate_lookback_years=max(0, _get_int_env("POLICY_IMPORT_PLATE_LOOKBACK_YEARS", 2)),
        header_scan_rows=max(1, _get_int_env("POLICY_IMPORT_HEADER_SCAN_ROWS", 10)),
        header_scan_columns=max(1, _get_int_env("POLICY_IMPORT_HEADER_SCAN_COLUMNS", 15)),
        sweep_interval_seconds=max(1, _get_int_env("POLICY_IMPORT_SWEEP_INTERVAL_SECONDS", 60)),
        log_validation_errors=_get_bool_env("POLICY_IMPORT_LOG_VALIDATION_ERRORS", True),
    )
