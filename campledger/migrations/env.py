"""
campledger/migrations/env.py — Alembic environment for the budget ledger schema.

The database URL is taken from the same config classes the app uses, so
migrations and the running service always agree on the target:

  FLASK_ENV=production   → ProductionConfig (DATABASE_URL, postgres:// normalised)
  FLASK_ENV=development  → DevelopmentConfig (DATABASE_URL or local default)
  TEST_RUN=1             → TestingConfig (TEST_DATABASE_URL)

campledger.config loads .env itself, so nothing is read here directly.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# ── Make `campledger` importable from a source checkout ───────────────────
_project_root = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_project_root))

import campledger.app.models  # noqa: E402,F401  (registers budget tables on db.metadata)
from campledger.app.extensions import db  # noqa: E402
from campledger.config import ActiveConfig, config_by_name  # noqa: E402

target_metadata = db.metadata

# ── Target database ───────────────────────────────────────────────────────
_config_class = config_by_name["testing"] if os.getenv("TEST_RUN") else ActiveConfig
db_url = _config_class.SQLALCHEMY_DATABASE_URI
if not db_url:
    raise RuntimeError(
        f"{_config_class.__name__} has no database URL. "
        "Set DATABASE_URL (or TEST_DATABASE_URL with TEST_RUN=1)."
    )

# ── Alembic config ────────────────────────────────────────────────────────
config = context.config
config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    """Emits the budget schema DDL as SQL without connecting."""
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # cost_category is a VARCHAR holding enum values; compare column
            # types so a widened category length shows up in autogenerate.
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
