"""Site content: blogs, careers and announcements."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.db.models import Announcement, Blog, Career
from mlc.db.slugs import SlugConflictError, slug_exists, slugify, unique_slug
from mlc.lessons.service import search_clause

logger = logging.getLogger(__name__)

ContentT = TypeVar("ContentT", Blog, Career, Announcement)

BLOG_FIELDS = (
    "title",
    "description",
    "content",
    "excerpt",
    "featured_image",
    "tags",
    "category",
    "is_published",
)
CAREER_FIELDS = (
    "title",
    "description",
    "content",
    "department",
    "location",
    "job_type",
    "experience",
    "salary",
    "requirements",
    "benefits",
    "is_published",
    "expires_at",
)
ANNOUNCEMENT_FIELDS = (
    "title",
    "content",
    "type",
    "priority",
    "target_audience",
    "is_active",
    "is_published",
    "published_at",
    "expires_at",
)


class ContentNotFoundError(ValueError):
    """The requested content item does not exist."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _not_expired(model: Any, now: datetime) -> Any:  # noqa: ANN401
    return or_(model.expires_at.is_(None), model.expires_at > now)


async def _get(db: AsyncSession, model: type[ContentT], item_id: int) -> ContentT:
    item = await db.get(model, item_id)
    if item is None:
        msg = f"{model.__name__} {item_id} not found"
        raise ContentNotFoundError(msg)
    return item


async def _resolve_slug(
    db: AsyncSession, model: Any, title: str, slug: str | None, current: str | None = None  # noqa: ANN401
) -> str:
    """An explicit slug must be free; otherwise one is generated from the title."""
    if not slug:
        return await unique_slug(db, model, title)
    slug = slugify(slug)
    if slug != current and await slug_exists(db, model, slug):
        msg = f"Slug already exists: {slug}"
        raise SlugConflictError(msg)
    return slug


def _stamp_published(item: Blog | Career | Announcement, now: datetime) -> None:
    if item.is_published and item.published_at is None:
        item.published_at = now


async def _create_slugged(
    db: AsyncSession,
    model: type[ContentT],
    fields: tuple[str, ...],
    data: dict[str, Any],
    created_by: str,
) -> ContentT:
    now = _utcnow()
    values = {k: v for k, v in data.items() if k in fields}
    item = model(
        **values,
        slug=await _resolve_slug(db, model, data["title"], data.get("slug")),
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    _stamp_published(item, now)
    db.add(item)
    await db.flush()
    logger.info("%s %s created by %s", model.__name__, item.slug, created_by)
    return item


async def _update_slugged(
    db: AsyncSession,
    model: type[ContentT],
    fields: tuple[str, ...],
    item_id: int,
    updates: dict[str, Any],
    edited_by: str,
) -> ContentT:
    item = await _get(db, model, item_id)
    if updates.get("slug"):
        item.slug = await _resolve_slug(db, model, item.title, updates["slug"], current=item.slug)
    for key, value in updates.items():
        if key in fields:
            setattr(item, key, value)
    now = _utcnow()
    _stamp_published(item, now)
    item.last_edited_by = edited_by
    item.updated_at = now
    await db.flush()
    return item


async def delete_item(db: AsyncSession, model: type[ContentT], item_id: int) -> None:
    item = await _get(db, model, item_id)
    await db.delete(item)
    await db.flush()
    logger.info("%s %s deleted", model.__name__, item_id)


async def get_item(db: AsyncSession, model: type[ContentT], item_id: int) -> ContentT:
    return await _get(db, model, item_id)


# ---------------------------------------------------------------------------
# Blogs
# ---------------------------------------------------------------------------


async def create_blog(db: AsyncSession, data: dict[str, Any], created_by: str) -> Blog:
    return await _create_slugged(db, Blog, BLOG_FIELDS, data, created_by)


async def update_blog(db: AsyncSession, blog_id: int, updates: dict[str, Any], edited_by: str) -> Blog:
    return await _update_slugged(db, Blog, BLOG_FIELDS, blog_id, updates, edited_by)


async def list_blogs(
    db: AsyncSession,
    *,
    published_only: bool = True,
    search: str | None = None,
    category: str | None = None,
) -> list[Blog]:
    stmt = select(Blog)
    if published_only:
        stmt = stmt.where(Blog.is_published.is_(True))
    if search:
        stmt = stmt.where(search_clause(search, Blog.title, Blog.description, Blog.content))
    if category:
        stmt = stmt.where(Blog.category == category)
    order = Blog.published_at.desc() if published_only else Blog.created_at.desc()
    result = await db.execute(stmt.order_by(order, Blog.id.desc()))
    return list(result.scalars().all())


async def get_published_blog(db: AsyncSession, slug: str) -> Blog | None:
    result = await db.execute(select(Blog).where(Blog.slug == slug, Blog.is_published.is_(True)))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Careers
# ---------------------------------------------------------------------------


async def create_career(db: AsyncSession, data: dict[str, Any], created_by: str) -> Career:
    return await _create_slugged(db, Career, CAREER_FIELDS, data, created_by)


async def update_career(db: AsyncSession, career_id: int, updates: dict[str, Any], edited_by: str) -> Career:
    return await _update_slugged(db, Career, CAREER_FIELDS, career_id, updates, edited_by)


async def list_careers(
    db: AsyncSession,
    *,
    published_only: bool = True,
    department: str | None = None,
    now: datetime | None = None,
) -> list[Career]:
    """Careers; the public view hides unpublished and expired postings."""
    stmt = select(Career)
    if published_only:
        stmt = stmt.where(Career.is_published.is_(True), _not_expired(Career, now or _utcnow()))
    if department:
        stmt = stmt.where(Career.department == department)
    result = await db.execute(stmt.order_by(Career.created_at.desc(), Career.id.desc()))
    return list(result.scalars().all())


async def get_published_career(db: AsyncSession, slug: str, now: datetime | None = None) -> Career | None:
    result = await db.execute(
        select(Career).where(
            Career.slug == slug,
            Career.is_published.is_(True),
            _not_expired(Career, now or _utcnow()),
        )
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------


async def create_announcement(db: AsyncSession, data: dict[str, Any], created_by: str) -> Announcement:
    now = _utcnow()
    values = {k: v for k, v in data.items() if k in ANNOUNCEMENT_FIELDS}
    values.setdefault("target_audience", ["all"])
    announcement = Announcement(**values, created_by=created_by, created_at=now, updated_at=now)
    _stamp_published(announcement, now)
    db.add(announcement)
    await db.flush()
    return announcement


async def update_announcement(db: AsyncSession, announcement_id: int, updates: dict[str, Any]) -> Announcement:
    announcement = await _get(db, Announcement, announcement_id)
    for key, value in updates.items():
        if key in ANNOUNCEMENT_FIELDS:
            setattr(announcement, key, value)
    now = _utcnow()
    _stamp_published(announcement, now)
    announcement.updated_at = now
    await db.flush()
    return announcement


async def set_announcement_active(db: AsyncSession, announcement_id: int, is_active: bool) -> Announcement:
    return await update_announcement(db, announcement_id, {"is_active": is_active})


async def list_announcements(db: AsyncSession) -> list[Announcement]:
    result = await db.execute(select(Announcement).order_by(Announcement.created_at.desc(), Announcement.id.desc()))
    return list(result.scalars().all())


async def list_live_announcements(
    db: AsyncSession, audience: str | None = None, now: datetime | None = None
) -> list[Announcement]:
    """Active, published, started and unexpired announcements, optionally for one audience."""
    now = now or _utcnow()
    result = await db.execute(
        select(Announcement)
        .where(
            Announcement.is_active.is_(True),
            Announcement.is_published.is_(True),
            or_(Announcement.published_at.is_(None), Announcement.published_at <= now),
            _not_expired(Announcement, now),
        )
        .order_by(Announcement.published_at.desc(), Announcement.id.desc())
    )
    announcements = list(result.scalars().all())
    if audience:
        announcements = [
            a for a in announcements if not a.target_audience or {"all", audience} & set(a.target_audience)
        ]
    return announcements


async def record_announcement_click(db: AsyncSession, announcement_id: int) -> None:
    result = await db.execute(
        update(Announcement)
        .where(Announcement.id == announcement_id)
        .values(click_count=Announcement.click_count + 1)
    )
    if result.rowcount == 0:
        msg = f"Announcement {announcement_id} not found"
        raise ContentNotFoundError(msg)
