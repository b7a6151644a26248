"""Idempotent schema touch-ups run after ``create_all``.

``create_all`` creates missing tables with their single-column indexes; the
composite indexes the report and listing queries lean on are added here so an
existing database picks them up on the next start. Nothing here drops or
rewrites data.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


SECONDARY_INDEXES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("sales", "ix_sales_user_timestamp", ("user_id", "timestamp")),
    ("orders", "ix_orders_status_created", ("status", "created_at")),
    ("user_activity_log", "ix_activity_user_created", ("user_id", "created_at")),
)


def run_migrations(engine: Engine) -> None:
    existing_tables = set(inspect(engine).get_table_names())
    for table, name, cols in SECONDARY_INDEXES:
        if table in existing_tables:
            _create_index_if_not_exists(engine, table, name, cols)
