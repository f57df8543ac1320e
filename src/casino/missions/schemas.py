"""Pydantic response models for mission endpoints."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from casino.missions.service import MissionProgress, MissionStatus


class MissionResponse(BaseModel):
    id: str
    title: str
    description: str
    reward: int
    completed_today: bool
    completed_date: date | None = None

    @classmethod
    def from_progress(cls, progress: MissionProgress) -> MissionResponse:
        return cls(
            id=progress.mission.id,
            title=progress.mission.title,
            description=progress.mission.description,
            reward=progress.mission.reward,
            completed_today=progress.completed_today,
            completed_date=progress.completed_date,
        )


class MissionListResponse(BaseModel):
    missions: list[MissionResponse]


class MissionProgressResponse(BaseModel):
    mission: MissionResponse
    chip_balance: int | None


class MissionCompleteResponse(BaseModel):
    status: MissionStatus
    mission: MissionResponse
    reward_granted: int
    chip_balance: int | None
