"""Dialect-aware INSERT ... ON CONFLICT construction.

PostgreSQL and SQLite both implement ON CONFLICT; SQLAlchemy exposes it
through dialect-specific `insert()` constructs with the same API.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def conflict_insert(db: AsyncSession, model: Any) -> Any:  # noqa: ANN401
    """Return an `insert()` for `model` supporting `on_conflict_do_*` on the session's dialect."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    msg = f"ON CONFLICT upserts are not supported on dialect {dialect!r}"
    raise RuntimeError(msg)
