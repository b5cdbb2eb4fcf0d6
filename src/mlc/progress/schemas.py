"""Request/response schemas for progress endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ProgressWriteRequest(BaseModel):
    """A progress write. Omitted fields keep their stored values."""

    completed: bool | None = None
    score: int | None = Field(default=None, ge=0, le=100)
    time_spent: int | None = Field(default=None, ge=0)
    video_progress: float | None = Field(default=None, ge=0, le=100)
    quiz_answers: dict[str, Any] | None = None


class ProgressRecordRequest(ProgressWriteRequest):
    lesson_id: int


class ProgressResponse(BaseModel):
    lesson_id: int
    completed: bool
    score: int | None = None
    time_spent: int = 0
    attempts: int = 1
    video_progress: float | None = None
    quiz_answers: dict[str, Any] | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None


class StreakSummary(BaseModel):
    current_streak: int
    longest_streak: int


class UnlockedAchievement(BaseModel):
    id: int
    name: str
    description: str
    icon: str
    points: int


class QuizSummary(BaseModel):
    score: int
    earned_points: float
    total_points: float
    correct: dict[str, bool]


class RecordProgressResponse(BaseModel):
    progress: ProgressResponse
    streak: StreakSummary | None = None
    new_achievements: list[UnlockedAchievement] = []
    quiz: QuizSummary | None = None


class ProgressListResponse(BaseModel):
    progress: list[ProgressResponse]
    total: int
    completed: int
