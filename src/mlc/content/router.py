"""Blogs, careers and announcements: public reads and admin CRUD."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.auth.dependencies import require_admin
from mlc.content import service
from mlc.content.schemas import (
    AnnouncementCreateRequest,
    AnnouncementResponse,
    AnnouncementToggleRequest,
    AnnouncementUpdateRequest,
    BlogCreateRequest,
    BlogResponse,
    BlogUpdateRequest,
    CareerCreateRequest,
    CareerResponse,
    CareerUpdateRequest,
    ContentActionResponse,
)
from mlc.database import get_session
from mlc.db.models import Announcement, Blog, Career, User
from mlc.db.slugs import SlugConflictError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Content"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin Content"])


def _not_found(kind: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} not found")


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


@router.get("/blogs", response_model=list[BlogResponse])
async def list_blogs(
    search: str | None = Query(None, max_length=200),
    category: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> list[Blog]:
    """Published blog posts, newest first."""
    return await service.list_blogs(db, search=search, category=category)


@router.get("/blogs/{slug}", response_model=BlogResponse)
async def get_blog(slug: str, db: AsyncSession = Depends(get_session)) -> Blog:
    blog = await service.get_published_blog(db, slug)
    if blog is None:
        raise _not_found("Blog")
    return blog


@router.get("/careers", response_model=list[CareerResponse])
async def list_careers(
    department: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> list[Career]:
    """Open positions: published and not expired."""
    return await service.list_careers(db, department=department)


@router.get("/careers/{slug}", response_model=CareerResponse)
async def get_career(slug: str, db: AsyncSession = Depends(get_session)) -> Career:
    career = await service.get_published_career(db, slug)
    if career is None:
        raise _not_found("Career")
    return career


@router.get("/announcements", response_model=list[AnnouncementResponse])
async def list_announcements(
    audience: str | None = Query(None, max_length=50),
    db: AsyncSession = Depends(get_session),
) -> list[Announcement]:
    """Announcements currently live for the given audience."""
    return await service.list_live_announcements(db, audience)


@router.post("/announcements/{announcement_id}/click", response_model=ContentActionResponse)
async def click_announcement(
    announcement_id: int,
    db: AsyncSession = Depends(get_session),
) -> ContentActionResponse:
    try:
        await service.record_announcement_click(db, announcement_id)
    except service.ContentNotFoundError as e:
        raise _not_found("Announcement") from e
    await db.commit()
    return ContentActionResponse(message="Click recorded")


# ---------------------------------------------------------------------------
# Admin: blogs
# ---------------------------------------------------------------------------


@admin_router.get("/blogs", response_model=list[BlogResponse])
async def admin_list_blogs(
    search: str | None = Query(None, max_length=200),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[Blog]:
    """All blog posts, drafts included."""
    return await service.list_blogs(db, published_only=False, search=search)


@admin_router.post("/blogs", response_model=BlogResponse, status_code=201)
async def admin_create_blog(
    body: BlogCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Blog:
    try:
        blog = await service.create_blog(db, body.model_dump(), admin.external_id)
    except SlugConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    logger.info("admin_blog_created", blog_id=blog.id, admin_id=admin.id)
    return blog


@admin_router.get("/blogs/{blog_id}", response_model=BlogResponse)
async def admin_get_blog(
    blog_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Blog:
    try:
        return await service.get_item(db, Blog, blog_id)
    except service.ContentNotFoundError as e:
        raise _not_found("Blog") from e


@admin_router.put("/blogs/{blog_id}", response_model=BlogResponse)
async def admin_update_blog(
    blog_id: int,
    body: BlogUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Blog:
    try:
        blog = await service.update_blog(db, blog_id, body.model_dump(exclude_unset=True), admin.external_id)
    except service.ContentNotFoundError as e:
        raise _not_found("Blog") from e
    except SlugConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return blog


@admin_router.delete("/blogs/{blog_id}", response_model=ContentActionResponse)
async def admin_delete_blog(
    blog_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentActionResponse:
    try:
        await service.delete_item(db, Blog, blog_id)
    except service.ContentNotFoundError as e:
        raise _not_found("Blog") from e
    await db.commit()
    return ContentActionResponse(message="Blog deleted successfully!")


# ---------------------------------------------------------------------------
# Admin: careers
# ---------------------------------------------------------------------------


@admin_router.get("/careers", response_model=list[CareerResponse])
async def admin_list_careers(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[Career]:
    """All postings, drafts and expired included."""
    return await service.list_careers(db, published_only=False)


@admin_router.post("/careers", response_model=CareerResponse, status_code=201)
async def admin_create_career(
    body: CareerCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Career:
    try:
        career = await service.create_career(db, body.model_dump(), admin.external_id)
    except SlugConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    logger.info("admin_career_created", career_id=career.id, admin_id=admin.id)
    return career


@admin_router.get("/careers/{career_id}", response_model=CareerResponse)
async def admin_get_career(
    career_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Career:
    try:
        return await service.get_item(db, Career, career_id)
    except service.ContentNotFoundError as e:
        raise _not_found("Career") from e


@admin_router.put("/careers/{career_id}", response_model=CareerResponse)
async def admin_update_career(
    career_id: int,
    body: CareerUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Career:
    try:
        career = await service.update_career(
            db, career_id, body.model_dump(exclude_unset=True), admin.external_id
        )
    except service.ContentNotFoundError as e:
        raise _not_found("Career") from e
    except SlugConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return career


@admin_router.delete("/careers/{career_id}", response_model=ContentActionResponse)
async def admin_delete_career(
    career_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentActionResponse:
    try:
        await service.delete_item(db, Career, career_id)
    except service.ContentNotFoundError as e:
        raise _not_found("Career") from e
    await db.commit()
    return ContentActionResponse(message="Career deleted successfully!")


# ---------------------------------------------------------------------------
# Admin: announcements
# ---------------------------------------------------------------------------


@admin_router.get("/announcements", response_model=list[AnnouncementResponse])
async def admin_list_announcements(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[Announcement]:
    return await service.list_announcements(db)


@admin_router.post("/announcements", response_model=AnnouncementResponse, status_code=201)
async def admin_create_announcement(
    body: AnnouncementCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Announcement:
    announcement = await service.create_announcement(db, body.model_dump(), admin.external_id)
    await db.commit()
    return announcement


@admin_router.put("/announcements/{announcement_id}", response_model=AnnouncementResponse)
async def admin_update_announcement(
    announcement_id: int,
    body: AnnouncementUpdateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Announcement:
    try:
        announcement = await service.update_announcement(
            db, announcement_id, body.model_dump(exclude_unset=True)
        )
    except service.ContentNotFoundError as e:
        raise _not_found("Announcement") from e
    await db.commit()
    return announcement


@admin_router.patch("/announcements/{announcement_id}/toggle", response_model=ContentActionResponse)
async def admin_toggle_announcement(
    announcement_id: int,
    body: AnnouncementToggleRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentActionResponse:
    try:
        await service.set_announcement_active(db, announcement_id, body.is_active)
    except service.ContentNotFoundError as e:
        raise _not_found("Announcement") from e
    await db.commit()
    state = "activated" if body.is_active else "deactivated"
    return ContentActionResponse(message=f"Announcement {state} successfully!")


@admin_router.delete("/announcements/{announcement_id}", response_model=ContentActionResponse)
async def admin_delete_announcement(
    announcement_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentActionResponse:
    try:
        await service.delete_item(db, Announcement, announcement_id)
    except service.ContentNotFoundError as e:
        raise _not_found("Announcement") from e
    await db.commit()
    return ContentActionResponse(message="Announcement deleted successfully!")
