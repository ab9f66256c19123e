"""
authcore/migrations/env.py — Alembic environment.

The database URL comes from the same config class the app would load
(AUTHCORE_ENV / FLASK_ENV, see authcore.config), so `alembic upgrade head`
and create_app() always agree on the target database. An explicit
`-x db_url=...` on the command line wins over both.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from authcore.app.extensions import db
from authcore.app.models import associations, permission, role, user  # noqa: F401
from authcore.config import ActiveConfig

target_metadata = db.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    url = context.get_x_argument(as_dictionary=True).get("db_url") or ActiveConfig.SQLALCHEMY_DATABASE_URI
    if not url:
        raise RuntimeError(
            "No database URL configured. Set DATABASE_URL or pass -x db_url=<url>."
        )
    return url


db_url = _database_url()
config.set_main_option("sqlalchemy.url", db_url)

# SQLite cannot ALTER most constraints in place; batch mode rebuilds the table.
_render_as_batch = db_url.startswith("sqlite")


def run_migrations_offline() -> None:
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=_render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
