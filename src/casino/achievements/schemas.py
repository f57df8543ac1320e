"""Pydantic response models for achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from casino.achievements.rules import AchievementDefinition


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    icon: str

    @classmethod
    def from_definition(cls, a: AchievementDefinition) -> AchievementResponse:
        return cls(id=a.id, name=a.name, description=a.description, category=a.category, icon=a.icon)


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]


class AchievementStatusResponse(AchievementResponse):
    is_unlocked: bool
    earned_at: datetime | None = None
    game_type: str | None = None


class UserAchievementsResponse(BaseModel):
    achievements: list[AchievementStatusResponse]
    total: int
    unlocked: int
    percentage: float
