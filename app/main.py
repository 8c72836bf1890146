from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import FastAPI

logger = logging.getLogger(__name__)

_POSITIVE_INT_SETTINGS = (
    "POLICY_IMPORT_SESSION_TTL_MINUTES",
    "POLICY_IMPORT_MAX_UPLOAD_BYTES",
    "POLICY_IMPORT_DEFAULT_BATCH_SIZE",
    "POLICY_IMPORT_INSERT_CHUNK_SIZE",
    "POLICY_IMPORT_SWEEP_INTERVAL_SECONDS",
)

_CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})


def _startup_errors() -> list[str]:
    """
    Collect every configuration problem instead of stopping at the first.

    - A database URL must resolve from DATABASE_URL, CLOUD_DATABASE_URL
      (cloud-like ENVIRONMENT) or LOCAL_DATABASE_URL.
    - Numeric import settings, when set, must be positive integers.
    - POLICY_IMPORT_SCRATCH_DIR, when set, must not be blank.
    """

    from db.config import load_env_files

    load_env_files()
    errors: list[str] = []

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    has_url = bool(os.getenv("DATABASE_URL", "").strip()) or bool(os.getenv("LOCAL_DATABASE_URL", "").strip())
    if environment in _CLOUD_ENVIRONMENTS and os.getenv("CLOUD_DATABASE_URL", "").strip():
        has_url = True
    if not has_url:
        errors.append("No database URL configured. Set DATABASE_URL, LOCAL_DATABASE_URL or CLOUD_DATABASE_URL.")

    for name in _POSITIVE_INT_SETTINGS:
        raw_value = os.getenv(name)
        if raw_value is not None and (not raw_value.strip().isdigit() or int(raw_value.strip()) <= 0):
            errors.append(f"{name}={raw_value!r} must be a positive integer.")

    scratch_dir = os.getenv("POLICY_IMPORT_SCRATCH_DIR")
    if scratch_dir is not None and not scratch_dir.strip():
        errors.append("POLICY_IMPORT_SCRATCH_DIR is set but blank.")

    return errors


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _verify_import_tables() -> None:
    """
    Fail startup when the database is unreachable or a migration is missing.

    Does NOT auto-migrate; run ``alembic upgrade head`` first.
    """
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy.exc import SQLAlchemyError

    import db.models  # noqa: F401 - registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    try:
        present = set(sa_inspect(get_engine()).get_table_names())
    except SQLAlchemyError as exc:
        raise RuntimeError("Policy import database is unavailable.") from exc

    missing = sorted(set(Base.metadata.tables) - present)
    if missing:
        logger.critical("Import tables missing from the database: %s. Run 'alembic upgrade head'.", ", ".join(missing))
        raise RuntimeError(f"Import tables missing: {', '.join(missing)}. Run migrations and restart.")


def _prepare_scratch_dir() -> Path:
    from app.config import get_policy_import_settings

    scratch_dir = Path(get_policy_import_settings().scratch_dir)
    try:
        scratch_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Import scratch directory {scratch_dir} is not writable.") from exc
    return scratch_dir


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Check tables and scratch storage, then run the session sweeper until shutdown."""
    _verify_import_tables()
    scratch_dir = _prepare_scratch_dir()
    logger.info("Import tables verified, scratch storage at %s", scratch_dir)

    from app.scheduler.jobs import build_scheduler, run_session_sweep

    scheduler = build_scheduler()
    scheduler.start()
    logger.info("Session sweeper started with %d job(s)", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        run_session_sweep()
        logger.info("Session sweeper stopped")


def create_app() -> FastAPI:
    """
    Build the policy import API.
    """

    errors = _startup_errors()
    if errors:
        raise RuntimeError("Startup validation failed:\n" + "\n".join(f"  - {error}" for error in errors))
    _configure_logging()

    application = FastAPI(
        title="Policy Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import policy_import_router
    from app.services.policy_import_service import get_policy_import_service

    application.include_router(policy_import_router)

    @application.get("/health")
    def healthcheck() -> dict[str, object]:
        return {"status": "ok", "open_import_sessions": len(get_policy_import_service().store)}

    return application


app = create_app()
