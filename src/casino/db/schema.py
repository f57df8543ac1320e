"""Idempotent schema bootstrap, run once from the application lifespan."""

from __future__ import annotations

import logging

from sqlalchemy import Connection, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

import casino.db.models  # noqa: F401  (registers tables on Base.metadata)
from casino.config import get_settings
from casino.db.base import Base

logger = logging.getLogger(__name__)


def _create_tables(conn: Connection) -> list[str]:
    """Create missing tables and backfill columns added after the auth schema.

    Returns the names of the columns that had to be added.
    """
    Base.metadata.create_all(conn, checkfirst=True)

    added: list[str] = []
    columns = {c["name"] for c in inspect(conn).get_columns("users")}
    if "chip_balance" not in columns:
        default = int(get_settings().starting_chip_balance)
        conn.execute(
            text(f"ALTER TABLE users ADD COLUMN chip_balance INTEGER NOT NULL DEFAULT {default}")  # noqa: S608
        )
        added.append("users.chip_balance")
    return added


async def ensure_schema(engine: AsyncEngine) -> bool:
    """Make sure every table and column this service needs exists.

    Safe to call repeatedly. Returns True when the schema is ready, False if
    the database rejected the bootstrap (the service then reports degraded
    readiness instead of failing at startup).
    """
    try:
        async with engine.begin() as conn:
            added = await conn.run_sync(_create_tables)
    except SQLAlchemyError:
        logger.error("Schema bootstrap failed", exc_info=True)
        return False

    if added:
        logger.info("Schema bootstrap added columns: %s", ", ".join(added))
    return True
