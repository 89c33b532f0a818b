"""
Alembic environment.

Resolves the database URL (environment first, then `papervault.core.config`),
switches it to the psycopg v3 SQLAlchemy dialect and runs the raw-SQL
revisions in `alembic/versions/`.
"""

import os
import sys
from logging.config import fileConfig
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

dotenv_path = os.path.join(project_root, ".env")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path, override=False)

DB_URL: Optional[str] = os.getenv("DATABASE_URL")
if not DB_URL:
    from papervault.core.config import settings

    DB_URL = settings.database_url

if not DB_URL:
    raise RuntimeError("DATABASE_URL is not set in the environment or configuration.")

# SQLAlchemy wants the explicit psycopg (v3) dialect.
if DB_URL.startswith("postgresql://"):
    DB_URL = DB_URL.replace("postgresql://", "postgresql+psycopg://", 1)

alembic_config = context.config
alembic_config.set_main_option("sqlalchemy.url", DB_URL)

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name, disable_existing_loggers=False)

# Revisions are raw SQL; there is no SQLAlchemy metadata to autogenerate from.
target_metadata = None


def run_migrations_offline() -> None:
    """Emits the SQL instead of executing it."""
    context.configure(
        url=DB_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        {"sqlalchemy.url": DB_URL},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
