# recalltrial/migrations/env.py
from __future__ import annotations

import importlib
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

config = context.config
if config.config_file_name and os.path.exists(config.config_file_name):
    fileConfig(config.config_file_name)

from recalltrial.models.base import Base  # noqa: E402

# every module that declares a table; autogenerate only sees what is imported
for _mod in ("recalltrial.models.user", "recalltrial.models.trial", "recalltrial.models.reminder"):
    importlib.import_module(_mod)

_missing = {"users", "trials", "reminders"} - set(Base.metadata.tables)
if _missing:
    raise RuntimeError(f"[env.py] Missing tables in Base.metadata: {sorted(_missing)}")


def sync_url() -> str:
    """Alembic runs on a sync driver; the app URL names an async one."""
    url = (
        os.getenv("DATABASE_URL")
        or os.getenv("POSTGRES_DSN")
        or "postgresql+psycopg://app:app@db:5432/app"
    )
    for async_driver, sync_driver in (("+asyncpg", "+psycopg"), ("+aiosqlite", "")):
        url = url.replace(async_driver, sync_driver)
    return url


config.set_main_option("sqlalchemy.url", sync_url())

COMPARE = dict(
    target_metadata=Base.metadata,
    compare_type=True,
    compare_server_default=True,
)


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        print(f"[env.py] migrating {connection.engine.url!r}", flush=True)
        context.configure(connection=connection, **COMPARE)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
