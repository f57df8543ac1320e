"""Chip balance ledger with optimistic concurrency.

Every mutation is a compare-and-swap on the balance the caller last observed:
the UPDATE only matches while ``chip_balance`` still equals that value, so two
writers racing on the same stale balance cannot both succeed. Functions here
flush but never commit; the caller owns the transaction.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from casino.config import get_settings
from casino.db.models import User
from casino.errors import (
    AccountNotFound,
    BalanceConflict,
    InsufficientFunds,
    LedgerContention,
    StorageUnavailable,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerResult:
    previous_balance: int
    new_balance: int
    delta: int


def redact_user_id(user_id: str) -> str:
    """Truncate a user id for logs (first 4 chars + '***')."""
    if not user_id or len(user_id) < 4:
        return "***"
    return f"{user_id[:4]}***"


async def get_chip_balance(db: AsyncSession, user_id: str) -> int | None:
    """Return the stored balance, or None if the user has no account."""
    try:
        result = await db.execute(select(User.chip_balance).where(User.id == user_id))
    except SQLAlchemyError as e:
        raise StorageUnavailable("get_chip_balance") from e
    return result.scalar_one_or_none()


async def apply_delta(
    db: AsyncSession,
    user_id: str,
    delta: int,
    expected_previous_balance: int,
) -> LedgerResult:
    """Apply ``delta`` if the stored balance still equals ``expected_previous_balance``.

    Raises:
        ValueError: delta is not an integer.
        AccountNotFound: the user has no chip account.
        BalanceConflict: the stored balance differs from the expected one
            (carries the authoritative balance).
        InsufficientFunds: the new balance would be negative. Nothing is written.
        StorageUnavailable: the database failed.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        msg = f"delta must be an integer, got {type(delta).__name__}"
        raise ValueError(msg)

    current = await get_chip_balance(db, user_id)
    if current is None:
        raise AccountNotFound(user_id)
    if current != expected_previous_balance:
        raise BalanceConflict(current_balance=current, expected_balance=expected_previous_balance)

    new_balance = expected_previous_balance + delta
    if new_balance < 0:
        raise InsufficientFunds(current_balance=current, delta=delta)

    try:
        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.chip_balance == expected_previous_balance)
            .values(chip_balance=new_balance, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await db.flush()
    except SQLAlchemyError as e:
        raise StorageUnavailable("apply_delta") from e

    if result.rowcount == 0:
        # Another writer changed the balance between our read and the write
        current = await get_chip_balance(db, user_id)
        if current is None:
            raise AccountNotFound(user_id)
        raise BalanceConflict(current_balance=current, expected_balance=expected_previous_balance)

    return LedgerResult(
        previous_balance=expected_previous_balance,
        new_balance=new_balance,
        delta=delta,
    )


async def credit_with_retry(
    db: AsyncSession,
    user_id: str,
    delta: int,
    *,
    max_attempts: int | None = None,
    base_delay: float | None = None,
) -> LedgerResult:
    """Apply ``delta`` against the freshly read balance, retrying on conflict.

    Each attempt re-reads the balance, so the delta is applied exactly once to
    whatever balance is current. Backoff doubles per attempt. After
    ``max_attempts`` conflicts, raises LedgerContention with a Retry-After hint.
    InsufficientFunds is not retried.
    """
    settings = get_settings()
    attempts = max_attempts if max_attempts is not None else settings.ledger_max_attempts
    delay = base_delay if base_delay is not None else settings.ledger_retry_base_delay_seconds

    for attempt in range(attempts):
        current = await get_chip_balance(db, user_id)
        if current is None:
            raise AccountNotFound(user_id)
        try:
            return await apply_delta(db, user_id, delta, current)
        except BalanceConflict:
            logger.info(
                "Ledger conflict for %s (attempt %d/%d)",
                redact_user_id(user_id), attempt + 1, attempts,
            )
            if attempt + 1 < attempts:
                await asyncio.sleep(delay * (2 ** attempt))

    logger.warning("Ledger contention for %s after %d attempts", redact_user_id(user_id), attempts)
    raise LedgerContention(attempts=attempts, retry_after=settings.ledger_retry_after_seconds)
