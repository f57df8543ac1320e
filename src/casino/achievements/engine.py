"""Achievement engine: builds the stats snapshot, evaluates rules, grants and announces."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from casino.achievements import repository
from casino.achievements.rules import (
    ACHIEVEMENT_CHECKS,
    ACHIEVEMENTS,
    AchievementCheckContext,
    AchievementCheckFn,
    AchievementDefinition,
    evaluate,
)
from casino.economy.ledger import redact_user_id
from casino.errors import StorageUnavailable
from casino.stats.service import get_aggregate_user_stats, get_user_rank

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AchievementWithStatus:
    achievement: AchievementDefinition
    is_unlocked: bool
    earned_at: datetime | None
    game_type: str | None


class AchievementEngine:
    """Evaluates achievement rules for a user and persists new grants."""

    def __init__(
        self,
        db: AsyncSession,
        redis: object,
        checks: Mapping[str, AchievementCheckFn] = ACHIEVEMENT_CHECKS,
    ) -> None:
        self.db = db
        self.redis = redis
        self.checks = checks

    async def _run(self, operation: str, run: Callable[[], Awaitable[T]]) -> T:
        try:
            return await run()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"achievements:{operation}") from e

    async def build_context(
        self,
        user_id: str,
        current_chip_balance: int,
        *,
        recent_win_amount: int | None = None,
        game_type: str | None = None,
    ) -> AchievementCheckContext:
        """Assemble a fresh statistics snapshot for the user."""
        existing = await self._run(
            "get_earned_achievement_ids",
            lambda: repository.get_earned_achievement_ids(self.db, user_id),
        )
        stats = await self._run("get_aggregate_user_stats", lambda: get_aggregate_user_stats(self.db, user_id))
        rank = await self._run("get_user_rank", lambda: get_user_rank(self.db, user_id))

        return AchievementCheckContext(
            user_id=user_id,
            overall_rank=rank,
            total_wins=stats.total_wins,
            total_losses=stats.total_losses,
            total_hands_played=stats.total_hands_played,
            biggest_win=stats.biggest_win,
            total_net_profit=stats.total_net_profit,
            current_chip_balance=current_chip_balance,
            recent_win_amount=recent_win_amount,
            game_type=game_type,
            existing_achievement_ids=existing,
        )

    async def check_and_grant(
        self,
        user_id: str,
        current_chip_balance: int,
        *,
        recent_win_amount: int | None = None,
        game_type: str | None = None,
        achievements: Sequence[AchievementDefinition] = ACHIEVEMENTS,
    ) -> list[AchievementDefinition]:
        """Grant every achievement that newly qualifies.

        Returns the newly granted definitions in catalog order (may be empty).
        Rules run through ``evaluate``; storage failures propagate.
        """
        context = await self.build_context(
            user_id,
            current_chip_balance,
            recent_win_amount=recent_win_amount,
            game_type=game_type,
        )

        by_id = {a.id: a for a in achievements}
        granted: list[AchievementDefinition] = []
        for result in evaluate(context, self.checks, achievements):
            achievement = by_id[result.achievement_id]
            newly = await self._run(
                f"grant_achievement:{achievement.id}",
                lambda a=achievement, r=result: repository.grant_achievement(self.db, user_id, a.id, r.game_type),
            )
            if newly:
                granted.append(achievement)
                logger.info("Achievement unlocked for %s: %s", redact_user_id(user_id), achievement.name)

        if granted:
            await self._run("flush", self.db.flush)
            await self._emit_achievements_earned(user_id, granted)
        return granted

    async def _emit_achievements_earned(
        self,
        user_id: str,
        granted: Sequence[AchievementDefinition],
    ) -> None:
        """Fan the grants out to connected clients via Redis pub/sub."""
        if self.redis is None:
            return
        try:
            await self.redis.publish(  # type: ignore[attr-defined]
                "pubsub:achievement_earned",
                json.dumps({
                    "user_id": user_id,
                    "achievements": [
                        {"id": a.id, "name": a.name, "icon": a.icon} for a in granted
                    ],
                }),
            )
        except Exception:
            logger.warning("Failed to publish achievement_earned notification", exc_info=True)

    async def get_achievements_with_status(self, user_id: str) -> list[AchievementWithStatus]:
        earned = await self._run("get_user_achievements", lambda: repository.get_user_achievements(self.db, user_id))
        earned_map = {ua.achievement_id: ua for ua in earned}

        items = []
        for achievement in ACHIEVEMENTS:
            ua = earned_map.get(achievement.id)
            items.append(AchievementWithStatus(
                achievement=achievement,
                is_unlocked=ua is not None,
                earned_at=ua.earned_at if ua else None,
                game_type=ua.game_type if ua else None,
            ))
        return items

    async def get_unlocked_achievements(self, user_id: str) -> list[AchievementWithStatus]:
        return [a for a in await self.get_achievements_with_status(user_id) if a.is_unlocked]

    async def get_achievement_progress(
        self,
        user_id: str,
        items: Sequence[AchievementWithStatus] | None = None,
    ) -> dict[str, float | int]:
        """{total, unlocked, percentage} over the whole catalog.

        Pass ``items`` from ``get_achievements_with_status`` to avoid a second read.
        """
        if items is None:
            items = await self.get_achievements_with_status(user_id)
        unlocked = sum(1 for a in items if a.is_unlocked)
        total = len(items)
        return {
            "total": total,
            "unlocked": unlocked,
            "percentage": unlocked * 100 / total if total else 0.0,
        }
