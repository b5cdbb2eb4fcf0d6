"""Request/response schemas for admin endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from mlc.lessons.service import DIFFICULTIES, LESSON_TYPES
from mlc.progress.quiz_scorer import validate_quiz


def _one_of(value: str | None, allowed: tuple[str, ...], field: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in allowed:
        msg = f"{field} must be one of {', '.join(allowed)}"
        raise ValueError(msg)
    return normalized


class _LessonFields(BaseModel):
    """Lesson type, difficulty and quiz data are checked the same way on create and update."""

    @field_validator("type", check_fields=False)
    @classmethod
    def normalize_type(cls, v: str | None) -> str | None:
        return _one_of(v, LESSON_TYPES, "type")

    @field_validator("difficulty", check_fields=False)
    @classmethod
    def normalize_difficulty(cls, v: str | None) -> str | None:
        return _one_of(v, DIFFICULTIES, "difficulty")

    @field_validator("quiz_data", check_fields=False)
    @classmethod
    def check_quiz_data(cls, v: Any) -> Any:  # noqa: ANN401
        validate_quiz(v)
        return v


# --- Lessons ---


class LessonCreateRequest(_LessonFields):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    content: str = Field(min_length=1)
    type: str
    difficulty: str
    estimated_duration: int = Field(default=5, ge=1, le=600)
    category_id: int
    tags: list[str] = []
    video_url: str | None = None
    video_thumbnail: str | None = None
    quiz_data: Any = None
    meta_description: str | None = None
    is_published: bool = False


class LessonUpdateRequest(_LessonFields):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    type: str | None = None
    difficulty: str | None = None
    estimated_duration: int | None = Field(default=None, ge=1, le=600)
    category_id: int | None = None
    tags: list[str] | None = None
    video_url: str | None = None
    video_thumbnail: str | None = None
    quiz_data: Any = None
    meta_description: str | None = None
    is_published: bool | None = None


class PublishRequest(BaseModel):
    is_published: bool


class AdminLessonResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: str
    content: str
    type: str
    difficulty: str
    estimated_duration: int
    category_id: int
    category: str
    tags: list[str] = []
    video_url: str | None = None
    video_thumbnail: str | None = None
    quiz_data: Any = None
    meta_description: str | None = None
    is_published: bool
    published_at: datetime | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime
    view_count: int = 0
    bookmark_count: int = 0
    completion_rate: int = 0


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AdminLessonListResponse(BaseModel):
    lessons: list[AdminLessonResponse]
    pagination: Pagination


class LessonActionResponse(BaseModel):
    success: bool = True
    message: str
    lesson: AdminLessonResponse


# --- Categories ---


class CategoryCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    slug: str | None = Field(default=None, max_length=120)
    is_active: bool = True
    sort_order: int = 0


class AdminCategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    is_active: bool
    sort_order: int
    lesson_count: int = 0


# --- Users ---


class AdminUserResponse(BaseModel):
    id: int
    external_id: str
    name: str
    email: str
    role: str
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    total_lessons: int
    completed_lessons: int
    current_streak: int
    longest_streak: int


class AdminUserListResponse(BaseModel):
    users: list[AdminUserResponse]
    pagination: Pagination


class UserStatusRequest(BaseModel):
    is_active: bool


class ActionResponse(BaseModel):
    success: bool = True
    message: str


# --- Stats ---


class StreakReminderResponse(BaseModel):
    at_risk: int
    sent: int
    skipped: int
    failed: int
