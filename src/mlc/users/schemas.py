"""Request/response schemas for profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Difficulty = Literal["BEGINNER", "INTERMEDIATE", "ADVANCED"]
LearningStyle = Literal["visual", "auditory", "reading", "kinesthetic", "mixed"]


class ProfileResponse(BaseModel):
    id: int
    email: str
    name: str
    avatar_url: str | None = None
    role: str
    is_admin: bool = False
    timezone: str
    daily_goal: int
    reminder_time: str | None = None
    email_notifications: bool
    push_notifications: bool
    preferred_difficulty: str | None = None
    preferred_categories: list[str] = []
    learning_style: str | None = None
    created_at: datetime


class ProfileUpdateRequest(BaseModel):
    """Partial update: only fields present in the request body change."""

    name: str | None = Field(default=None, min_length=1, max_length=128)
    timezone: str | None = Field(default=None, max_length=64)
    daily_goal: int | None = Field(default=None, ge=1, le=50)
    reminder_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    email_notifications: bool | None = None
    push_notifications: bool | None = None
    preferred_difficulty: Difficulty | None = None
    preferred_categories: list[str] | None = None
    learning_style: LearningStyle | None = None
