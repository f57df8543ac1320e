"""Static mission catalog."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MissionType:
    id: str
    title: str
    description: str
    reward: int


DAILY_LOGIN = MissionType(
    id="daily-login",
    title="Daily Login",
    description="Log in every day to claim bonus chips.",
    reward=1000,
)

MISSIONS: dict[str, MissionType] = {m.id: m for m in (DAILY_LOGIN,)}


def all_missions() -> list[MissionType]:
    return list(MISSIONS.values())


def get_mission(mission_id: str) -> MissionType | None:
    return MISSIONS.get(mission_id)
