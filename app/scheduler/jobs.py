"""
app/scheduler/jobs.py

APScheduler-based maintenance scheduler for the import service.

Schedule
--------
  sweep_import_sessions - every ``POLICY_IMPORT_SWEEP_INTERVAL_SECONDS``
                          (default 60s); releases sessions idle past their
                          TTL together with their scratch payloads

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_policy_import_settings
from app.services.policy_import_service import get_policy_import_service

logger = logging.getLogger(__name__)


def run_session_sweep() -> None:
    """
    Release expired import sessions. Failures are logged, never raised.
    """
    try:
        released = get_policy_import_service().sweep_expired_sessions()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Import session sweep failed: %s", exc)
        return
    if released:
        logger.info("Import session sweep released=%d", released)


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_policy_import_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_session_sweep,
        trigger="interval",
        seconds=settings.sweep_interval_seconds,
        id="sweep_import_sessions",
        name="Expired import session sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    return scheduler
