"""Game round statistics and chip-balance leaderboard rank."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from casino.db.models import GameStats, User
from casino.db.upsert import insert_ignore
from casino.errors import StorageUnavailable

logger = logging.getLogger(__name__)

# Games whose rounds report full stat payloads
GAME_TYPES: tuple[str, ...] = ("blackjack", "baccarat")

GameRoundOutcome = Literal["win", "loss", "push"]


@dataclass(frozen=True)
class RoundRecord:
    game_type: str
    outcome: GameRoundOutcome
    chip_delta: int
    hand_count: int = 1
    wins_increment: int | None = None
    losses_increment: int | None = None
    # None with hand_count > 1 means "unknown per-hand win": leave biggest_win alone
    biggest_win_candidate: int | None = None


@dataclass(frozen=True)
class AggregateStats:
    total_wins: int = 0
    total_losses: int = 0
    total_hands_played: int = 0
    biggest_win: int = 0
    total_net_profit: int = 0


def is_tracked_game(game_type: str) -> bool:
    return game_type in GAME_TYPES


def calculate_win_rate(total_wins: int, total_losses: int) -> float:
    """Win percentage over decided hands (pushes excluded)."""
    decided = total_wins + total_losses
    return (total_wins / decided) * 100 if decided > 0 else 0.0


async def record_game_round(db: AsyncSession, user_id: str, record: RoundRecord) -> None:
    """Fold one settled round into the user's stats for that game.

    Increments are applied in SQL so concurrent rounds do not lose updates.
    """
    wins = record.wins_increment
    if wins is None:
        wins = 1 if record.outcome == "win" else 0
    losses = record.losses_increment
    if losses is None:
        losses = 1 if record.outcome == "loss" else 0

    candidate = record.biggest_win_candidate
    if candidate is None and record.hand_count <= 1:
        candidate = record.chip_delta

    if candidate is not None and candidate > 0:
        biggest_win = case(
            (GameStats.biggest_win < candidate, candidate),
            else_=GameStats.biggest_win,
        )
    else:
        biggest_win = GameStats.biggest_win

    now = datetime.now(timezone.utc)
    try:
        await insert_ignore(
            db,
            GameStats,
            user_id=user_id,
            game_type=record.game_type,
            total_wins=0,
            total_losses=0,
            hands_played=0,
            biggest_win=0,
            net_profit=0,
            updated_at=now,
        )
        await db.execute(
            update(GameStats)
            .where(GameStats.user_id == user_id, GameStats.game_type == record.game_type)
            .values(
                total_wins=GameStats.total_wins + wins,
                total_losses=GameStats.total_losses + losses,
                hands_played=GameStats.hands_played + record.hand_count,
                biggest_win=biggest_win,
                net_profit=GameStats.net_profit + record.chip_delta,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await db.flush()
    except SQLAlchemyError as e:
        raise StorageUnavailable("record_game_round") from e


async def get_all_user_game_stats(db: AsyncSession, user_id: str) -> list[GameStats]:
    result = await db.execute(
        select(GameStats).where(GameStats.user_id == user_id).order_by(GameStats.game_type)
    )
    return list(result.scalars().all())


async def get_aggregate_user_stats(db: AsyncSession, user_id: str) -> AggregateStats:
    """Sum stats across all games for the achievement snapshot."""
    result = await db.execute(
        select(
            func.coalesce(func.sum(GameStats.total_wins), 0),
            func.coalesce(func.sum(GameStats.total_losses), 0),
            func.coalesce(func.sum(GameStats.hands_played), 0),
            func.coalesce(func.max(GameStats.biggest_win), 0),
            func.coalesce(func.sum(GameStats.net_profit), 0),
        ).where(GameStats.user_id == user_id)
    )
    wins, losses, hands, biggest, net = result.one()
    return AggregateStats(
        total_wins=int(wins),
        total_losses=int(losses),
        total_hands_played=int(hands),
        biggest_win=int(biggest),
        total_net_profit=int(net),
    )


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


async def get_user_rank(db: AsyncSession, user_id: str) -> int | None:
    """1-based rank by chip balance; ties broken by user id. None if unknown user."""
    result = await db.execute(select(User.chip_balance).where(User.id == user_id))
    balance = result.scalar_one_or_none()
    if balance is None:
        return None

    higher = await db.execute(
        select(func.count()).select_from(User).where(
            or_(
                User.chip_balance > balance,
                and_(User.chip_balance == balance, User.id < user_id),
            )
        )
    )
    return int(higher.scalar_one()) + 1


async def get_top_players(db: AsyncSession, limit: int) -> list[tuple[str, str, int]]:
    """(user_id, name, chip_balance) ordered by balance desc, then id."""
    result = await db.execute(
        select(User.id, User.name, User.chip_balance)
        .order_by(User.chip_balance.desc(), User.id)
        .limit(limit)
    )
    return [(row.id, row.name, row.chip_balance) for row in result]


async def get_total_player_count(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(User))
    return int(result.scalar_one())
