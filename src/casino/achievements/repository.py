"""Database operations for earned achievements."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from casino.achievements.rules import get_achievement_by_id
from casino.db.models import UserAchievement
from casino.db.upsert import insert_ignore


async def get_user_achievements(db: AsyncSession, user_id: str) -> list[UserAchievement]:
    """Earned achievements in the order they were earned. Unknown ids are dropped."""
    result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.earned_at)
    )
    return [ua for ua in result.scalars() if get_achievement_by_id(ua.achievement_id) is not None]


async def get_earned_achievement_ids(db: AsyncSession, user_id: str) -> frozenset[str]:
    result = await db.execute(
        select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
    )
    return frozenset(aid for aid in result.scalars() if get_achievement_by_id(aid) is not None)


async def has_achievement(db: AsyncSession, user_id: str, achievement_id: str) -> bool:
    result = await db.execute(
        select(UserAchievement.achievement_id).where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_id == achievement_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def grant_achievement(
    db: AsyncSession,
    user_id: str,
    achievement_id: str,
    game_type: str | None = None,
) -> bool:
    """Insert the earned row. Returns True if newly granted, False if it already existed."""
    if await has_achievement(db, user_id, achievement_id):
        return False

    # A concurrent grant may land between the check and the insert
    return await insert_ignore(
        db,
        UserAchievement,
        user_id=user_id,
        achievement_id=achievement_id,
        earned_at=datetime.now(timezone.utc),
        game_type=game_type,
    )


async def get_achievement_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(UserAchievement).where(UserAchievement.user_id == user_id)
    )
    return int(result.scalar_one())
