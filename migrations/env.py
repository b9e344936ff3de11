"""
Alembic environment for the shop schema.

The database URL comes from the app (``DATABASE_URL`` normalised by
app.core.database) unless overridden with ``alembic -x db_url=...``. SQLite
migrations run in batch mode so ALTER-style operations work there too.
"""
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

import app.models  # noqa: E402,F401  registers coupon, city, banned_ip, setting, orders, logs
from app.core.database import DATABASE_URL  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

db_url = context.get_x_argument(as_dictionary=True).get("db_url") or str(DATABASE_URL)
config.set_main_option("sqlalchemy.url", db_url)

target_metadata = SQLModel.metadata


def _configure_options(dialect_name: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": dialect_name == "sqlite",
    }


def run_migrations_offline() -> None:
    """Print the SQL for ``alembic upgrade --sql`` instead of executing it."""
    dialect_name = db_url.split(":", 1)[0].split("+", 1)[0]
    context.configure(url=db_url, literal_binds=True, **_configure_options(dialect_name))
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_options(connection.dialect.name))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
