"""Daily missions: per-day completion state and one-time-per-day rewards.

Completion is derived on every read by comparing the stored calendar date with
today's date in the reference timezone, so a new day needs no reset job.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from casino.config import get_settings
from casino.db.models import MissionProgress as MissionProgressRow
from casino.db.upsert import insert_ignore
from casino.economy.ledger import credit_with_retry, get_chip_balance, redact_user_id
from casino.errors import CasinoError, StorageUnavailable
from casino.missions.catalog import MissionType

logger = logging.getLogger(__name__)


class MissionStatus(str, enum.Enum):
    GRANTED = "granted"
    ALREADY_COMPLETED = "already_completed"


@dataclass(frozen=True)
class MissionProgress:
    mission: MissionType
    completed_date: date | None
    completed_today: bool


@dataclass(frozen=True)
class MissionCompletionResult:
    status: MissionStatus
    progress: MissionProgress
    chip_balance: int | None


def mission_day(now: datetime | None = None) -> date:
    """Today's calendar date in the mission reference timezone."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(get_settings().mission_timezone)).date()


async def get_mission_progress(
    db: AsyncSession,
    user_id: str,
    mission: MissionType,
    *,
    now: datetime | None = None,
) -> MissionProgress:
    """Read progress, creating the (empty) progress row on first access."""
    try:
        await insert_ignore(
            db,
            MissionProgressRow,
            user_id=user_id,
            mission_id=mission.id,
            completed_date=None,
        )
        result = await db.execute(
            select(MissionProgressRow.completed_date).where(
                MissionProgressRow.user_id == user_id,
                MissionProgressRow.mission_id == mission.id,
            )
        )
    except SQLAlchemyError as e:
        raise StorageUnavailable("get_mission_progress") from e

    completed_date = result.scalar_one_or_none()
    return MissionProgress(
        mission=mission,
        completed_date=completed_date,
        completed_today=completed_date is not None and completed_date == mission_day(now),
    )


async def _stamp_completion(
    db: AsyncSession,
    user_id: str,
    mission: MissionType,
    today: date,
) -> bool:
    """Set completed_date to today unless it already is. True if this call stamped it."""
    result = await db.execute(
        update(MissionProgressRow)
        .where(
            MissionProgressRow.user_id == user_id,
            MissionProgressRow.mission_id == mission.id,
            or_(
                MissionProgressRow.completed_date.is_(None),
                MissionProgressRow.completed_date != today,
            ),
        )
        .values(completed_date=today)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) > 0


async def complete_mission(
    db: AsyncSession,
    user_id: str,
    mission: MissionType,
    *,
    now: datetime | None = None,
) -> MissionCompletionResult:
    """Complete a mission for today and credit its reward.

    The date stamp and the ledger credit commit together or not at all. A
    second call on the same day (or a concurrent call that loses the stamp)
    returns ALREADY_COMPLETED and leaves the balance untouched.
    """
    today = mission_day(now)
    progress = await get_mission_progress(db, user_id, mission, now=now)

    stamped = False
    if not progress.completed_today:
        try:
            stamped = await _stamp_completion(db, user_id, mission, today)
            if stamped:
                await credit_with_retry(db, user_id, mission.reward)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageUnavailable("complete_mission") from e
        except CasinoError:
            await db.rollback()
            raise

    if stamped:
        logger.info("Mission %s completed by %s (+%d chips)", mission.id, redact_user_id(user_id), mission.reward)
        status = MissionStatus.GRANTED
    else:
        status = MissionStatus.ALREADY_COMPLETED

    progress = await get_mission_progress(db, user_id, mission, now=now)
    chip_balance = await get_chip_balance(db, user_id)
    return MissionCompletionResult(status=status, progress=progress, chip_balance=chip_balance)


async def reset_mission_progress(
    db: AsyncSession,
    user_id: str,
    mission: MissionType,
) -> tuple[MissionProgress, int | None]:
    """Clear today's completion (debug/test tooling only). Returns (progress, balance)."""
    await get_mission_progress(db, user_id, mission)
    try:
        await db.execute(
            update(MissionProgressRow)
            .where(
                MissionProgressRow.user_id == user_id,
                MissionProgressRow.mission_id == mission.id,
            )
            .values(completed_date=None)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageUnavailable("reset_mission_progress") from e

    progress = await get_mission_progress(db, user_id, mission)
    return progress, await get_chip_balance(db, user_id)
