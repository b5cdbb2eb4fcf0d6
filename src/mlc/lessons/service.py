"""Lesson catalog queries and bookmarks."""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.db.models import Category, Lesson, UserBookmark, UserProgress

logger = logging.getLogger(__name__)

QUIZ = "QUIZ"
LESSON_TYPES = ("TEXT", "VIDEO", QUIZ)
DIFFICULTIES = ("BEGINNER", "INTERMEDIATE", "ADVANCED")


def search_clause(term: str, *columns: object) -> object:
    """Case-insensitive substring match over `columns`. `%` and `_` in `term` match literally."""
    literal = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{literal}%"
    return or_(*(col.ilike(pattern, escape="\\") for col in columns))  # type: ignore[attr-defined]


async def list_published_lessons(
    db: AsyncSession,
    *,
    category: str | None = None,
    lesson_type: str | None = None,
    difficulty: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Lesson], int]:
    """Published lessons, newest first, with optional filters.

    `category` matches either the category slug or its name.
    Returns (page, total matching).
    """
    stmt = select(Lesson).join(Category, Lesson.category_id == Category.id).where(
        Lesson.is_published.is_(True)
    )
    if category:
        stmt = stmt.where(or_(Category.slug == category, Category.name == category))
    if lesson_type:
        stmt = stmt.where(Lesson.type == lesson_type.upper())
    if difficulty:
        stmt = stmt.where(Lesson.difficulty == difficulty.upper())
    if search:
        stmt = stmt.where(search_clause(search, Lesson.title, Lesson.description))

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    result = await db.execute(
        stmt.order_by(Lesson.created_at.desc(), Lesson.id.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), int(total)


async def get_published_lesson(db: AsyncSession, lesson_id: int) -> Lesson | None:
    result = await db.execute(
        select(Lesson).where(Lesson.id == lesson_id, Lesson.is_published.is_(True))
    )
    return result.scalar_one_or_none()


async def completed_lesson_ids(db: AsyncSession, user_id: int, lesson_ids: list[int]) -> set[int]:
    if not lesson_ids:
        return set()
    result = await db.execute(
        select(UserProgress.lesson_id).where(
            UserProgress.user_id == user_id,
            UserProgress.lesson_id.in_(lesson_ids),
            UserProgress.completed.is_(True),
        )
    )
    return set(result.scalars().all())


async def bookmarked_lesson_ids(db: AsyncSession, user_id: int, lesson_ids: list[int]) -> set[int]:
    if not lesson_ids:
        return set()
    result = await db.execute(
        select(UserBookmark.lesson_id).where(
            UserBookmark.user_id == user_id,
            UserBookmark.lesson_id.in_(lesson_ids),
        )
    )
    return set(result.scalars().all())


async def list_active_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(
        select(Category).where(Category.is_active.is_(True)).order_by(Category.sort_order, Category.name)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Bookmarks
# ---------------------------------------------------------------------------


async def list_bookmarks(db: AsyncSession, user_id: int) -> list[UserBookmark]:
    result = await db.execute(
        select(UserBookmark)
        .where(UserBookmark.user_id == user_id)
        .order_by(UserBookmark.created_at.desc(), UserBookmark.id.desc())
    )
    return list(result.scalars().all())


async def toggle_bookmark(db: AsyncSession, user_id: int, lesson_id: int) -> bool:
    """Add the bookmark if absent, remove it if present. Returns the new state.

    Raises:
        ValueError: If the lesson does not exist or is not published.
    """
    removed = await db.execute(
        delete(UserBookmark).where(
            UserBookmark.user_id == user_id,
            UserBookmark.lesson_id == lesson_id,
        )
    )
    if removed.rowcount:
        await db.flush()
        return False

    if await get_published_lesson(db, lesson_id) is None:
        msg = f"Lesson {lesson_id} not found"
        raise ValueError(msg)

    db.add(UserBookmark(user_id=user_id, lesson_id=lesson_id))
    await db.flush()
    logger.info("User %s bookmarked lesson %s", user_id, lesson_id)
    return True
