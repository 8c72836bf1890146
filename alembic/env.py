from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_database_url, resolve_database_url
from db.models import (  # noqa: F401 - imports trigger Base.metadata registration
    Customer,
    InsuranceBranch,
    InsuranceCarrier,
    Policy,
    PolicyImportRun,
    StagedPolicy,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_url() -> str:
    """
    Resolve the policy import database URL for migrations.

    Priority:
    1) `-x db_url=...` override
    2) ALEMBIC_DATABASE_URL
    3) sqlalchemy.url from the ini file, when one is used
    4) the application URL (DATABASE_URL / CLOUD_DATABASE_URL / LOCAL_DATABASE_URL)

    The migrations rely on PostgreSQL server defaults, so other dialects are refused.
    """

    load_env_files()

    x_args = context.get_x_argument(as_dictionary=True)
    override = (
        x_args.get("db_url")
        or os.getenv("ALEMBIC_DATABASE_URL")
        or (config.get_main_option("sqlalchemy.url") or "").strip()
    )
    url = normalize_database_url(override) if override else resolve_database_url()

    if not url.startswith("postgresql"):
        raise RuntimeError("Policy import migrations target PostgreSQL only.")
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _migration_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
