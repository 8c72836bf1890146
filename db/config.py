"""
db/config.py

Environment-driven database configuration for the policy import service.
"""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILENAMES: tuple[str, ...] = (".env", ".env.local")
CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
SUPPORTED_URL_PREFIXES: tuple[str, ...] = ("postgresql", "sqlite")


def load_env_files(root: Path | None = None) -> list[Path]:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` under ``root``.

    Variables already present in the process environment win. Returns the
    files that were read.
    """

    base_dir = root or PROJECT_ROOT
    loaded: list[Path] = []
    for filename in ENV_FILENAMES:
        env_path = base_dir / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            if key and key not in os.environ:
                os.environ[key] = value.strip().strip('"').strip("'")
        loaded.append(env_path)
    return loaded


def normalize_database_url(url: str) -> str:
    """
    Rewrite bare postgres URLs to the psycopg 3 driver; leave others untouched.
    """

    url = url.strip()
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def is_cloud_environment() -> bool:
    return os.getenv("ENVIRONMENT", "local").strip().lower() in CLOUD_ENVIRONMENTS


def resolve_database_url() -> str:
    """
    Resolve the application database URL.

    Priority:
    1) DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    3) LOCAL_DATABASE_URL

    PostgreSQL serves production; SQLite is accepted for local runs and tests.
    """

    load_env_files()

    candidates = [os.getenv("DATABASE_URL")]
    if is_cloud_environment():
        candidates.append(os.getenv("CLOUD_DATABASE_URL"))
    candidates.append(os.getenv("LOCAL_DATABASE_URL"))

    for candidate in candidates:
        if candidate and candidate.strip():
            url = normalize_database_url(candidate)
            if not url.startswith(SUPPORTED_URL_PREFIXES):
                raise RuntimeError(
                    f"Unsupported database URL scheme in {url.split(':', 1)[0]!r}. "
                    "Use a PostgreSQL or SQLite URL."
                )
            return url

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
