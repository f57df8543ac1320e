"""Chip balance endpoints: read the balance and settle game rounds."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from casino.achievements.engine import AchievementEngine
from casino.achievements.rules import AchievementDefinition
from casino.auth.dependencies import get_current_user
from casino.database import get_session
from casino.db.models import User
from casino.dependencies import get_redis_dep
from casino.economy.ledger import apply_delta, get_chip_balance, redact_user_id
from casino.economy.limits import check_delta_limits
from casino.economy.schemas import (
    ChipBalanceResponse,
    ChipUpdateRequest,
    ChipUpdateResponse,
    EarnedAchievementItem,
)
from casino.economy.throttle import check_update_throttle, mark_update
from casino.errors import AccountNotFound, CasinoError, StorageUnavailable
from casino.stats.service import RoundRecord, is_tracked_game, record_game_round

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chips", tags=["Chips"])


@router.get("/balance", response_model=ChipBalanceResponse)
async def get_balance(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Current chip balance for the caller."""
    balance = await get_chip_balance(db, user.id)
    if balance is None:
        raise AccountNotFound(user.id)
    return ChipBalanceResponse(balance=balance)


async def _settle_round(db: AsyncSession, user: User, body: ChipUpdateRequest) -> tuple[int, int]:
    """Apply the delta and fold the round into stats in one transaction.

    Returns (previous_balance, new_balance).
    """
    expected = body.previous_balance
    if expected is None:
        expected = await get_chip_balance(db, user.id)
        if expected is None:
            raise AccountNotFound(user.id)

    try:
        result = await apply_delta(db, user.id, body.delta, expected)
        if body.outcome is not None and is_tracked_game(body.game_type):
            await record_game_round(
                db,
                user.id,
                RoundRecord(
                    game_type=body.game_type,
                    outcome=body.outcome,
                    chip_delta=body.delta,
                    hand_count=body.hand_count,
                    wins_increment=body.wins_increment,
                    losses_increment=body.losses_increment,
                    biggest_win_candidate=body.biggest_win_candidate,
                ),
            )
        await db.commit()
    except CasinoError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageUnavailable("chips_update") from e

    return result.previous_balance, result.new_balance


async def _grant_achievements(
    db: AsyncSession,
    redis: object,
    user: User,
    balance: int,
    body: ChipUpdateRequest,
) -> list[AchievementDefinition]:
    """Grant achievements earned by the settled round.

    Storage failures are logged and yield no grants; the round is already committed.
    """
    engine = AchievementEngine(db, redis)
    try:
        granted = await engine.check_and_grant(
            user.id,
            balance,
            recent_win_amount=body.delta if body.delta > 0 else None,
            game_type=body.game_type,
        )
        await db.commit()
    except (StorageUnavailable, SQLAlchemyError):
        await db.rollback()
        logger.warning("Achievement check failed for %s", redact_user_id(user.id), exc_info=True)
        return []
    return granted


@router.post("/update", response_model=ChipUpdateResponse)
async def update_chips(
    body: ChipUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Settle one game round against the caller's balance."""
    await check_update_throttle(redis, user.id)
    check_delta_limits(body.game_type, body.delta)

    previous, balance = await _settle_round(db, user, body)
    await mark_update(redis, user.id)

    if body.delta > 0:
        logger.info(
            "Win recorded: user=%s game=%s delta=%d balance=%d->%d",
            redact_user_id(user.id), body.game_type, body.delta, previous, balance,
        )

    granted = await _grant_achievements(db, redis, user, balance, body)
    return ChipUpdateResponse(
        balance=balance,
        previous_balance=previous,
        delta=body.delta,
        achievements=[EarnedAchievementItem(id=a.id, name=a.name, icon=a.icon) for a in granted],
    )
