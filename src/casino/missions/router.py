"""Daily mission endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from casino.auth.dependencies import get_current_user
from casino.config import get_settings
from casino.database import get_session
from casino.db.models import User
from casino.economy.ledger import get_chip_balance
from casino.missions.catalog import MissionType, all_missions, get_mission
from casino.missions.schemas import (
    MissionCompleteResponse,
    MissionListResponse,
    MissionProgressResponse,
    MissionResponse,
)
from casino.missions.service import (
    MissionStatus,
    complete_mission,
    get_mission_progress,
    reset_mission_progress,
)

router = APIRouter(prefix="/api/v1/missions", tags=["Missions"])


def _mission_or_404(mission_id: str) -> MissionType:
    mission = get_mission(mission_id)
    if mission is None:
        raise HTTPException(status_code=404, detail="Mission not found")
    return mission


@router.get("", response_model=MissionListResponse)
async def list_missions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """All missions with the caller's progress for today."""
    items = []
    for mission in all_missions():
        progress = await get_mission_progress(db, user.id, mission)
        items.append(MissionResponse.from_progress(progress))
    # Persist lazily created progress rows
    await db.commit()
    return MissionListResponse(missions=items)


@router.get("/{mission_id}", response_model=MissionProgressResponse)
async def get_mission_detail(
    mission_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Progress for one mission plus the current chip balance."""
    mission = _mission_or_404(mission_id)
    progress = await get_mission_progress(db, user.id, mission)
    balance = await get_chip_balance(db, user.id)
    await db.commit()
    return MissionProgressResponse(
        mission=MissionResponse.from_progress(progress),
        chip_balance=balance,
    )


@router.post("/{mission_id}/complete", response_model=MissionCompleteResponse)
async def complete(
    mission_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Complete the mission for today. Repeat calls report already_completed."""
    mission = _mission_or_404(mission_id)
    result = await complete_mission(db, user.id, mission)
    return MissionCompleteResponse(
        status=result.status,
        mission=MissionResponse.from_progress(result.progress),
        reward_granted=mission.reward if result.status is MissionStatus.GRANTED else 0,
        chip_balance=result.chip_balance,
    )


@router.delete("/{mission_id}/progress", response_model=MissionProgressResponse)
async def reset_progress(
    mission_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Clear today's completion. Answers 404 unless debug is enabled."""
    if not get_settings().debug:
        raise HTTPException(status_code=404, detail="Not found")
    mission = _mission_or_404(mission_id)
    progress, balance = await reset_mission_progress(db, user.id, mission)
    return MissionProgressResponse(
        mission=MissionResponse.from_progress(progress),
        chip_balance=balance,
    )
