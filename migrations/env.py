import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

# Project root holds database.py and the models package
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.append(ROOT_DIR)

from database import Base  # noqa: E402
import models  # noqa: E402,F401  registers every table on Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url():
    """DATABASE_URL from the environment (or .env), else alembic.ini's sqlalchemy.url."""
    load_dotenv(os.path.join(ROOT_DIR, '.env'))
    url = os.getenv('DATABASE_URL') or config.get_main_option("sqlalchemy.url")
    if not url:
        raise ValueError("DATABASE_URL environment variable not set or loaded")
    return url


def _migrate(**configure_kwargs):
    # SQLite cannot ALTER most constraints in place
    context.configure(target_metadata=target_metadata, render_as_batch=True, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    _migrate(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section['sqlalchemy.url'] = _database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _migrate(connection=connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
