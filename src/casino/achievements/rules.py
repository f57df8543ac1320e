"""Achievement catalog and rule predicates.

To add an achievement:
1. Add its definition to ACHIEVEMENTS
2. Add its check function to ACHIEVEMENT_CHECKS
3. Write unit tests
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

AchievementCategory = Literal["leaderboard", "gameplay", "milestone"]

LOW_BALANCE_THRESHOLD = 1000


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    category: AchievementCategory
    icon: str


@dataclass(frozen=True)
class AchievementCheckContext:
    """Statistics snapshot assembled fresh for every check. Never persisted."""

    user_id: str
    overall_rank: int | None
    total_wins: int
    total_losses: int
    total_hands_played: int
    biggest_win: int
    total_net_profit: int
    current_chip_balance: int
    recent_win_amount: int | None = None
    game_type: str | None = None
    existing_achievement_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class AchievementCheckResult:
    achievement_id: str
    should_grant: bool
    game_type: str | None = None


AchievementCheckFn = Callable[[AchievementCheckContext], AchievementCheckResult]


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        id="rising_star",
        name="Rising Star",
        description="Enter the top 50 leaderboard",
        category="leaderboard",
        icon="\U0001f31f",
    ),
    AchievementDefinition(
        id="high_roller",
        name="High Roller",
        description="Reach the top 10 on the leaderboard",
        category="leaderboard",
        icon="\U0001f48e",
    ),
    AchievementDefinition(
        id="champion",
        name="Champion",
        description="Reach #1 position on the leaderboard",
        category="leaderboard",
        icon="\U0001f3c6",
    ),
    AchievementDefinition(
        id="consistent",
        name="Consistent Winner",
        description="Win 100 hands across all games",
        category="milestone",
        icon="\U0001f3af",
    ),
    AchievementDefinition(
        id="comeback",
        name="Comeback King",
        description="Win after dropping below 1,000 chips",
        category="gameplay",
        icon="\U0001f525",
    ),
)


def _rank_within(achievement_id: str, limit: int) -> AchievementCheckFn:
    def check(context: AchievementCheckContext) -> AchievementCheckResult:
        if achievement_id in context.existing_achievement_ids:
            return AchievementCheckResult(achievement_id, should_grant=False)
        rank = context.overall_rank
        return AchievementCheckResult(achievement_id, should_grant=rank is not None and rank <= limit)

    check.__name__ = f"check_{achievement_id}"
    return check


check_rising_star = _rank_within("rising_star", 50)
check_high_roller = _rank_within("high_roller", 10)


def check_champion(context: AchievementCheckContext) -> AchievementCheckResult:
    if "champion" in context.existing_achievement_ids:
        return AchievementCheckResult("champion", should_grant=False)
    return AchievementCheckResult("champion", should_grant=context.overall_rank == 1)


def check_consistent(context: AchievementCheckContext) -> AchievementCheckResult:
    if "consistent" in context.existing_achievement_ids:
        return AchievementCheckResult("consistent", should_grant=False)
    return AchievementCheckResult(
        "consistent",
        should_grant=context.total_wins >= 100,
        game_type=context.game_type,
    )


def check_comeback(context: AchievementCheckContext) -> AchievementCheckResult:
    """Grant when the balance before the latest win was below the low-balance threshold.

    The pre-round balance is reconstructed as current balance minus the
    latest win, which assumes nothing else moved the balance in between.
    """
    if "comeback" in context.existing_achievement_ids:
        return AchievementCheckResult("comeback", should_grant=False)

    win = context.recent_win_amount
    if win is None or win <= 0:
        return AchievementCheckResult("comeback", should_grant=False, game_type=context.game_type)

    was_low = context.current_chip_balance - win < LOW_BALANCE_THRESHOLD
    return AchievementCheckResult("comeback", should_grant=was_low, game_type=context.game_type)


ACHIEVEMENT_CHECKS: Mapping[str, AchievementCheckFn] = {
    "rising_star": check_rising_star,
    "high_roller": check_high_roller,
    "champion": check_champion,
    "consistent": check_consistent,
    "comeback": check_comeback,
}


def evaluate(
    context: AchievementCheckContext,
    checks: Mapping[str, AchievementCheckFn] = ACHIEVEMENT_CHECKS,
    achievements: Sequence[AchievementDefinition] = ACHIEVEMENTS,
) -> list[AchievementCheckResult]:
    """Run the predicate of every catalog entry and return the ones that should grant.

    This is the entry point for rule evaluation. Results follow catalog order.
    An entry without a predicate, or whose predicate raises, is logged and skipped.
    """
    results: list[AchievementCheckResult] = []
    for achievement in achievements:
        check = checks.get(achievement.id)
        if check is None:
            logger.warning("No check function for achievement: %s", achievement.id)
            continue

        try:
            result = check(context)
        except Exception:
            logger.error("Failed to evaluate achievement %s", achievement.id, exc_info=True)
            continue

        if result.should_grant:
            results.append(result)
    return results


def get_achievement_by_id(achievement_id: str) -> AchievementDefinition | None:
    """Catalog lookup; None if the id is unknown."""
    for achievement in ACHIEVEMENTS:
        if achievement.id == achievement_id:
            return achievement
    return None


def get_achievements_by_category(category: str) -> list[AchievementDefinition]:
    """All achievements in a category; empty for an unknown category."""
    return [a for a in ACHIEVEMENTS if a.category == category]
