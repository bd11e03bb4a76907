"""Dialect-aware INSERT for upserts (PostgreSQL in production, SQLite locally)."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def upsert_insert(db: AsyncSession, table: Any) -> Any:  # noqa: ANN401
    """Return an INSERT supporting on_conflict_do_update for the session's backend."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(table)
    return pg_insert(table)
