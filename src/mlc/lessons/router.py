"""Lesson catalog, category and bookmark endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.auth.dependencies import get_current_user, get_current_user_optional
from mlc.database import get_session
from mlc.db.models import Lesson, User
from mlc.lessons.schemas import (
    BookmarkListResponse,
    BookmarkResponse,
    BookmarkToggleRequest,
    BookmarkToggleResponse,
    CategoryResponse,
    LessonDetail,
    LessonListResponse,
    LessonSummary,
)
from mlc.lessons.service import (
    bookmarked_lesson_ids,
    completed_lesson_ids,
    get_published_lesson,
    list_active_categories,
    list_bookmarks,
    list_published_lessons,
    toggle_bookmark,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Lessons"])


def lesson_summary(lesson: Lesson, *, completed: bool = False, bookmarked: bool = False) -> LessonSummary:
    return LessonSummary(
        id=lesson.id,
        title=lesson.title,
        slug=lesson.slug,
        description=lesson.description,
        type=lesson.type,
        difficulty=lesson.difficulty,
        duration=lesson.estimated_duration,
        category=lesson.category.name,
        category_slug=lesson.category.slug,
        tags=lesson.tags or [],
        completed=completed,
        bookmarked=bookmarked,
        created_at=lesson.created_at,
    )


@router.get("/lessons", response_model=LessonListResponse)
async def list_lessons(
    category: str | None = Query(None),
    type: str | None = Query(None),  # noqa: A002
    difficulty: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
) -> LessonListResponse:
    """Published lessons. Authenticated callers also get completed/bookmarked flags."""
    lessons, total = await list_published_lessons(
        db,
        category=category,
        lesson_type=type,
        difficulty=difficulty,
        search=search,
        limit=limit,
        offset=offset,
    )
    completed: set[int] = set()
    bookmarked: set[int] = set()
    if user is not None:
        ids = [lesson.id for lesson in lessons]
        completed = await completed_lesson_ids(db, user.id, ids)
        bookmarked = await bookmarked_lesson_ids(db, user.id, ids)

    return LessonListResponse(
        lessons=[
            lesson_summary(
                lesson,
                completed=lesson.id in completed,
                bookmarked=lesson.id in bookmarked,
            )
            for lesson in lessons
        ],
        total=total,
    )


@router.get("/lessons/{lesson_id}", response_model=LessonDetail)
async def get_lesson(
    lesson_id: int,
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
) -> LessonDetail:
    """A single published lesson with its full content."""
    lesson = await get_published_lesson(db, lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")

    completed = bookmarked = False
    if user is not None:
        completed = lesson.id in await completed_lesson_ids(db, user.id, [lesson.id])
        bookmarked = lesson.id in await bookmarked_lesson_ids(db, user.id, [lesson.id])

    summary = lesson_summary(lesson, completed=completed, bookmarked=bookmarked)
    return LessonDetail(
        **summary.model_dump(),
        content=lesson.content,
        video_url=lesson.video_url,
        video_thumbnail=lesson.video_thumbnail,
        quiz_data=lesson.quiz_data,
        meta_description=lesson.meta_description,
        published_at=lesson.published_at,
    )


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_session)) -> list[CategoryResponse]:
    """Active categories in display order."""
    categories = await list_active_categories(db)
    return [
        CategoryResponse(id=c.id, name=c.name, slug=c.slug, description=c.description)
        for c in categories
    ]


# ---------------------------------------------------------------------------
# Bookmarks
# ---------------------------------------------------------------------------


@router.get("/bookmarks", response_model=BookmarkListResponse)
async def get_bookmarks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BookmarkListResponse:
    """The caller's bookmarked lessons, newest first."""
    bookmarks = await list_bookmarks(db, user.id)
    ids = [b.lesson_id for b in bookmarks]
    completed = await completed_lesson_ids(db, user.id, ids)
    return BookmarkListResponse(
        bookmarks=[
            BookmarkResponse(
                lesson=lesson_summary(b.lesson, completed=b.lesson_id in completed, bookmarked=True),
                bookmarked_at=b.created_at,
            )
            for b in bookmarks
        ]
    )


@router.post("/bookmarks", response_model=BookmarkToggleResponse)
async def post_bookmark(
    body: BookmarkToggleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BookmarkToggleResponse:
    """Toggle a bookmark on a published lesson."""
    try:
        is_bookmarked = await toggle_bookmark(db, user.id, body.lesson_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail="Lesson not found") from e
    await db.commit()

    logger.info("bookmark_toggled", user_id=user.id, lesson_id=body.lesson_id, bookmarked=is_bookmarked)
    return BookmarkToggleResponse(
        is_bookmarked=is_bookmarked,
        message="Lesson bookmarked!" if is_bookmarked else "Bookmark removed!",
    )
