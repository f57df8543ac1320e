"""ORM models for users, missions, achievements and game statistics.

The users table is owned by the external auth service; this service only
reads identity columns and mutates ``chip_balance``.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from casino.db.base import Base


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, server_default="")
    chip_balance: Mapped[int] = mapped_column(Integer, nullable=False, server_default="10000")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Missions
# ---------------------------------------------------------------------------


class MissionProgress(Base):
    """Per-user mission completion. completed_date is a calendar date, NULL = never."""

    __tablename__ = "mission_progress"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    mission_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class UserAchievement(Base):
    """Achievements earned by users; the composite key prevents duplicates."""

    __tablename__ = "user_achievements"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    achievement_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    game_type: Mapped[str | None] = mapped_column(String(16), nullable=True)


# ---------------------------------------------------------------------------
# Game statistics
# ---------------------------------------------------------------------------


class GameStats(Base):
    """Aggregate round statistics per user and game."""

    __tablename__ = "game_stats"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    game_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    total_wins: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_losses: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    hands_played: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    biggest_win: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    net_profit: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
