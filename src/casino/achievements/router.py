"""Achievement catalog and per-user unlock status."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from casino.achievements.engine import AchievementEngine
from casino.achievements.rules import ACHIEVEMENTS, get_achievement_by_id, get_achievements_by_category
from casino.achievements.schemas import (
    AchievementResponse,
    AchievementStatusResponse,
    AllAchievementsResponse,
    UserAchievementsResponse,
)
from casino.auth.dependencies import get_current_user
from casino.database import get_session
from casino.db.models import User

router = APIRouter(prefix="/api/v1", tags=["Achievements"])


# ── Public endpoints ──


@router.get("/achievements", response_model=AllAchievementsResponse)
async def list_achievements():
    """Full achievement catalog."""
    return AllAchievementsResponse(
        achievements=[AchievementResponse.from_definition(a) for a in ACHIEVEMENTS]
    )


@router.get("/achievements/categories/{category}", response_model=AllAchievementsResponse)
async def list_achievements_by_category(category: str):
    """Catalog filtered by category. Unknown categories give an empty list."""
    return AllAchievementsResponse(
        achievements=[AchievementResponse.from_definition(a) for a in get_achievements_by_category(category)]
    )


@router.get("/achievements/{achievement_id}", response_model=AchievementResponse)
async def get_achievement(achievement_id: str):
    achievement = get_achievement_by_id(achievement_id)
    if achievement is None:
        raise HTTPException(status_code=404, detail="Achievement not found")
    return AchievementResponse.from_definition(achievement)


# ── Authenticated endpoints ──


@router.get("/users/me/achievements", response_model=UserAchievementsResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Catalog with the caller's unlock status and overall progress."""
    engine = AchievementEngine(db, redis=None)
    items = await engine.get_achievements_with_status(user.id)
    progress = await engine.get_achievement_progress(user.id, items)

    return UserAchievementsResponse(
        achievements=[
            AchievementStatusResponse(
                id=item.achievement.id,
                name=item.achievement.name,
                description=item.achievement.description,
                category=item.achievement.category,
                icon=item.achievement.icon,
                is_unlocked=item.is_unlocked,
                earned_at=item.earned_at,
                game_type=item.game_type,
            )
            for item in items
        ],
        total=int(progress["total"]),
        unlocked=int(progress["unlocked"]),
        percentage=round(progress["percentage"], 1),
    )
