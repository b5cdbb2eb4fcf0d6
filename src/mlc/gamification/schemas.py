"""Pydantic response models for gamification endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: int
    name: str
    description: str
    icon: str
    type: str
    criteria: dict[str, Any]
    points: int
    unlocked: bool = False
    unlocked_at: datetime | None = None


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]
    total_available: int
    total_unlocked: int
    total_points: int


# --- Streak ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    active_today: bool = False
    at_risk: bool = False
