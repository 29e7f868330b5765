"""Alembic environment for the biller spend database (PostgreSQL only).

Autogenerate diffs against schema.metadata. SQLite needs no migrations:
store.py creates its tables on connect.
"""

import os
import sys
from logging.config import fileConfig

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

from dotenv import load_dotenv
load_dotenv(os.path.join(ROOT, ".env"))

from alembic import context
from sqlalchemy import create_engine

from schema import metadata
from store import POSTGRES_DSN

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def database_url():
    """store.py's DSN, routed to the psycopg3 driver."""
    dsn = config.get_main_option("sqlalchemy.url") or POSTGRES_DSN
    if dsn.startswith("postgresql://"):
        dsn = dsn.replace("postgresql://", "postgresql+psycopg://", 1)
    return dsn


def run_migrations():
    opts = {"target_metadata": metadata, "compare_type": True}
    if context.is_offline_mode():
        context.configure(url=database_url(), literal_binds=True, **opts)
        with context.begin_transaction():
            context.run_migrations()
        return

    engine = create_engine(database_url())
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **opts)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


run_migrations()
