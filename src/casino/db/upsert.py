"""Dialect-aware INSERT ... ON CONFLICT DO NOTHING."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from casino.db.base import Base


async def insert_ignore(db: AsyncSession, model: type[Base], **values: Any) -> bool:  # noqa: ANN401
    """Insert a row unless it conflicts with an existing key.

    Returns True if a row was inserted, False if the key already existed.
    """
    dialect = db.get_bind().dialect.name
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    stmt = insert(model).values(**values).on_conflict_do_nothing()
    result = await db.execute(stmt)
    return (result.rowcount or 0) > 0
