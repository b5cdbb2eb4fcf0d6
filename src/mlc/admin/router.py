"""Admin API: lessons, categories, users, stats, analytics, streak reminders."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.admin import service
from mlc.admin.schemas import (
    ActionResponse,
    AdminCategoryResponse,
    AdminLessonListResponse,
    AdminLessonResponse,
    AdminUserListResponse,
    AdminUserResponse,
    CategoryCreateRequest,
    LessonActionResponse,
    LessonCreateRequest,
    LessonUpdateRequest,
    Pagination,
    PublishRequest,
    StreakReminderResponse,
    UserStatusRequest,
)
from mlc.auth.dependencies import require_admin
from mlc.config import get_settings
from mlc.database import get_session
from mlc.db.models import Category, Lesson, User
from mlc.redis_client import get_redis_optional

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


def _page_limit(limit: int) -> int:
    return min(limit, get_settings().admin_page_size_max)


def _lesson_response(lesson: Lesson, row: service.AdminLessonRow | None = None) -> AdminLessonResponse:
    return AdminLessonResponse(
        id=lesson.id,
        title=lesson.title,
        slug=lesson.slug,
        description=lesson.description,
        content=lesson.content,
        type=lesson.type,
        difficulty=lesson.difficulty,
        estimated_duration=lesson.estimated_duration,
        category_id=lesson.category_id,
        category=lesson.category.name,
        tags=lesson.tags or [],
        video_url=lesson.video_url,
        video_thumbnail=lesson.video_thumbnail,
        quiz_data=lesson.quiz_data,
        meta_description=lesson.meta_description,
        is_published=lesson.is_published,
        published_at=lesson.published_at,
        created_by=lesson.created_by,
        created_at=lesson.created_at,
        updated_at=lesson.updated_at,
        view_count=row.view_count if row else 0,
        bookmark_count=row.bookmark_count if row else 0,
        completion_rate=row.completion_rate if row else 0,
    )


def _category_response(category: Category, lesson_count: int = 0) -> AdminCategoryResponse:
    return AdminCategoryResponse(
        id=category.id,
        name=category.name,
        slug=category.slug,
        description=category.description,
        is_active=category.is_active,
        sort_order=category.sort_order,
        lesson_count=lesson_count,
    )


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


@router.get("/lessons", response_model=AdminLessonListResponse)
async def list_lessons(
    search: str | None = Query(None, max_length=200),
    status: str = Query("all", pattern="^(all|published|draft)$"),
    category: str | None = Query(None),
    type: str | None = Query(None),  # noqa: A002
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminLessonListResponse:
    """All lessons, drafts included, with view/bookmark counts and completion rate."""
    limit = _page_limit(limit)
    rows, total = await service.list_lessons(
        db,
        search=search,
        status=status,
        category=category,
        lesson_type=type,
        page=page,
        limit=limit,
    )
    return AdminLessonListResponse(
        lessons=[_lesson_response(row.lesson, row) for row in rows],
        pagination=_pagination(page, limit, total),
    )


@router.post("/lessons", response_model=AdminLessonResponse, status_code=201)
async def create_lesson(
    body: LessonCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminLessonResponse:
    """Create a lesson. The slug is generated from the title and made unique."""
    try:
        lesson = await service.create_lesson(db, body.model_dump(), admin.external_id)
    except service.NotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    logger.info("admin_lesson_created", lesson_id=lesson.id, admin_id=admin.id)
    return _lesson_response(lesson)


@router.get("/lessons/{lesson_id}", response_model=AdminLessonResponse)
async def get_lesson(
    lesson_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminLessonResponse:
    try:
        lesson = await service.get_lesson(db, lesson_id)
    except service.NotFoundError as e:
        raise HTTPException(status_code=404, detail="Lesson not found") from e
    return _lesson_response(lesson)


@router.put("/lessons/{lesson_id}", response_model=AdminLessonResponse)
async def update_lesson(
    lesson_id: int,
    body: LessonUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminLessonResponse:
    """Partial update. Fields left out of the body are unchanged."""
    try:
        lesson = await service.update_lesson(db, lesson_id, body.model_dump(exclude_unset=True))
    except service.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    logger.info("admin_lesson_updated", lesson_id=lesson_id, admin_id=admin.id)
    return _lesson_response(lesson)


@router.delete("/lessons/{lesson_id}", response_model=ActionResponse)
async def delete_lesson(
    lesson_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ActionResponse:
    try:
        await service.delete_lesson(db, lesson_id)
    except service.NotFoundError as e:
        raise HTTPException(status_code=404, detail="Lesson not found") from e
    await db.commit()
    logger.info("admin_lesson_deleted", lesson_id=lesson_id, admin_id=admin.id)
    return ActionResponse(message="Lesson deleted successfully!")


@router.patch("/lessons/{lesson_id}/publish", response_model=LessonActionResponse)
async def publish_lesson(
    lesson_id: int,
    body: PublishRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> LessonActionResponse:
    """Publish or unpublish a lesson."""
    try:
        lesson = await service.set_lesson_published(db, lesson_id, body.is_published)
    except service.NotFoundError as e:
        raise HTTPException(status_code=404, detail="Lesson not found") from e
    await db.commit()
    return LessonActionResponse(
        lesson=_lesson_response(lesson),
        message="Lesson published successfully!" if body.is_published else "Lesson unpublished successfully!",
    )


@router.post("/lessons/{lesson_id}/duplicate", response_model=LessonActionResponse, status_code=201)
async def duplicate_lesson(
    lesson_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> LessonActionResponse:
    """Copy a lesson as an unpublished draft."""
    try:
        lesson = await service.duplicate_lesson(db, lesson_id, admin.external_id)
    except service.NotFoundError as e:
        raise HTTPException(status_code=404, detail="Lesson not found") from e
    await db.commit()
    return LessonActionResponse(lesson=_lesson_response(lesson), message="Lesson duplicated successfully!")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@router.get("/categories", response_model=list[AdminCategoryResponse])
async def list_categories(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[AdminCategoryResponse]:
    """Every category with its lesson count."""
    return [_category_response(c, n) for c, n in await service.list_categories(db)]


@router.post("/categories", response_model=AdminCategoryResponse, status_code=201)
async def create_category(
    body: CategoryCreateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminCategoryResponse:
    try:
        category = await service.create_category(
            db,
            name=body.name,
            description=body.description,
            slug=body.slug,
            is_active=body.is_active,
            sort_order=body.sort_order,
        )
    except service.SlugConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return _category_response(category)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def _user_response(row: service.AdminUserRow) -> AdminUserResponse:
    user = row.user
    return AdminUserResponse(
        id=user.id,
        external_id=user.external_id,
        name=user.name or "Unknown",
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        last_login_at=user.last_login_at,
        created_at=user.created_at,
        total_lessons=row.total_lessons,
        completed_lessons=row.completed_lessons,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
    )


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    role: str | None = Query(None),
    status: str | None = Query(None, pattern="^(all|active|inactive)$"),
    activity: str | None = Query(None, pattern="^(all|recent|inactive)$"),
    search: str | None = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminUserListResponse:
    """Users with progress and streak stats."""
    limit = _page_limit(limit)
    rows, total = await service.list_users(
        db,
        role=role,
        status=status,
        activity=activity,
        search=search,
        page=page,
        limit=limit,
    )
    return AdminUserListResponse(
        users=[_user_response(row) for row in rows],
        pagination=_pagination(page, limit, total),
    )


@router.get("/users/export")
async def export_users(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Download all users with their stats as CSV."""
    content = await service.export_users_csv(db)
    filename = f"users-export-{datetime.now(timezone.utc).date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.patch("/users/{user_id}/status", response_model=ActionResponse)
async def set_user_status(
    user_id: int,
    body: UserStatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ActionResponse:
    """Activate or deactivate a user. Users are never hard-deleted."""
    if user_id == admin.id and not body.is_active:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    try:
        await service.set_user_active(db, user_id, body.is_active)
    except service.NotFoundError as e:
        raise HTTPException(status_code=404, detail="User not found") from e
    await db.commit()
    return ActionResponse(message=f"User {'activated' if body.is_active else 'deactivated'} successfully!")


@router.post("/users/{user_id}/reset-progress", response_model=ActionResponse)
async def reset_user_progress(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ActionResponse:
    """Delete the user's progress rows and zero their streak."""
    try:
        deleted = await service.reset_user_progress(db, user_id)
    except service.NotFoundError as e:
        raise HTTPException(status_code=404, detail="User not found") from e
    await db.commit()
    logger.info("admin_progress_reset", user_id=user_id, admin_id=admin.id, deleted=deleted)
    return ActionResponse(message="User progress reset successfully!")


# ---------------------------------------------------------------------------
# Stats, analytics, reminders
# ---------------------------------------------------------------------------


@router.get("/stats")
async def get_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    """Headline counters for the dashboard."""
    return await service.dashboard_stats(db)


@router.get("/analytics")
async def get_analytics(
    range: str = Query("7d", pattern="^(7d|30d|90d)$"),  # noqa: A002
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """User, lesson and streak aggregates over the trailing 7, 30 or 90 days."""
    return await service.analytics(db, range)


@router.post("/streak-reminders", response_model=StreakReminderResponse)
async def send_streak_reminders(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> StreakReminderResponse:
    """Email learners whose streak ends unless they complete a lesson today."""
    result = await service.send_streak_reminders(db, get_redis_optional())
    logger.info("streak_reminders_sent", admin_id=admin.id, **result)
    return StreakReminderResponse(**result)
