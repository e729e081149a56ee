"""Migration runner for the mint_records schema.

The target database comes from the service settings (``MINT_DATABASE_URL`` or
the development SQLite default). ``alembic -x database_url=...`` overrides it
for one-off runs against another database.
"""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from sqlalchemy import create_engine, pool

from alembic import context  # type: ignore[import-untyped]
from mint_registry.models import Base
from mint_registry.utils.config import ensure_runtime_configuration, get_settings

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _target_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("database_url")
    if override:
        return override
    return ensure_runtime_configuration(get_settings()).resolved_database_url


def _configure(url: str, /, **options: Any) -> None:
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table.
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        transaction_per_migration=True,
        **options,
    )


def _emit_sql(url: str) -> None:
    _configure(url, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _apply(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _configure(url, connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


database_url = _target_url()
if context.is_offline_mode():
    _emit_sql(database_url)
else:
    _apply(database_url)
