"""Request/response schemas for lesson, category and bookmark endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str


class LessonSummary(BaseModel):
    id: int
    title: str
    slug: str
    description: str
    type: str
    difficulty: str
    duration: int
    category: str
    category_slug: str
    tags: list[str] = []
    completed: bool = False
    bookmarked: bool = False
    created_at: datetime


class LessonDetail(LessonSummary):
    content: str
    video_url: str | None = None
    video_thumbnail: str | None = None
    quiz_data: Any = None
    meta_description: str | None = None
    published_at: datetime | None = None


class LessonListResponse(BaseModel):
    lessons: list[LessonSummary]
    total: int


class BookmarkToggleRequest(BaseModel):
    lesson_id: int


class BookmarkToggleResponse(BaseModel):
    is_bookmarked: bool
    message: str


class BookmarkResponse(BaseModel):
    lesson: LessonSummary
    bookmarked_at: datetime


class BookmarkListResponse(BaseModel):
    bookmarks: list[BookmarkResponse]
