"""Admin business logic: lesson and category management, users, analytics."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.db.models import Category, Lesson, User, UserBookmark, UserProgress, UserStreak
from mlc.db.slugs import SlugConflictError, slug_exists, slugify, unique_slug
from mlc.email.service import get_email_service
from mlc.gamification.streak_service import reset_streak, users_with_streak_at_risk
from mlc.lessons.service import search_clause

logger = logging.getLogger(__name__)

ANALYTICS_RANGES = {"7d": 7, "30d": 30, "90d": 90}
LESSON_FIELDS = (
    "title",
    "description",
    "content",
    "type",
    "difficulty",
    "estimated_duration",
    "category_id",
    "tags",
    "video_url",
    "video_thumbnail",
    "quiz_data",
    "meta_description",
    "is_published",
)


class NotFoundError(ValueError):
    """The referenced row does not exist."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _rate(part: int, whole: int) -> int:
    return round(part * 100 / whole) if whole else 0


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


@dataclass
class AdminLessonRow:
    lesson: Lesson
    view_count: int
    bookmark_count: int
    completion_count: int

    @property
    def completion_rate(self) -> int:
        return _rate(self.completion_count, self.view_count)


def _lesson_stat_columns() -> tuple[Any, Any, Any]:
    views = (
        select(func.count(UserProgress.id))
        .where(UserProgress.lesson_id == Lesson.id)
        .correlate(Lesson)
        .scalar_subquery()
    )
    completions = (
        select(func.count(UserProgress.id))
        .where(UserProgress.lesson_id == Lesson.id, UserProgress.completed.is_(True))
        .correlate(Lesson)
        .scalar_subquery()
    )
    bookmarks = (
        select(func.count(UserBookmark.id))
        .where(UserBookmark.lesson_id == Lesson.id)
        .correlate(Lesson)
        .scalar_subquery()
    )
    return views, bookmarks, completions


async def list_lessons(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: str = "all",
    category: str | None = None,
    lesson_type: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[AdminLessonRow], int]:
    """All lessons (drafts included) with engagement counts. Returns (page, total)."""
    filters: list[Any] = []
    if search:
        filters.append(search_clause(search, Lesson.title, Lesson.description))
    if status in ("published", "draft"):
        filters.append(Lesson.is_published.is_(status == "published"))
    if category and category != "all":
        filters.append(
            Lesson.category_id.in_(
                select(Category.id).where((Category.name == category) | (Category.slug == category))
            )
        )
    if lesson_type and lesson_type != "all":
        filters.append(Lesson.type == lesson_type.upper())

    total = (await db.execute(select(func.count(Lesson.id)).where(*filters))).scalar_one()

    views, bookmarks, completions = _lesson_stat_columns()
    result = await db.execute(
        select(Lesson, views, bookmarks, completions)
        .where(*filters)
        .order_by(Lesson.created_at.desc(), Lesson.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = [
        AdminLessonRow(lesson=lesson, view_count=v, bookmark_count=b, completion_count=c)
        for lesson, v, b, c in result.all()
    ]
    return rows, int(total)


async def get_lesson(db: AsyncSession, lesson_id: int) -> Lesson:
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        msg = f"Lesson {lesson_id} not found"
        raise NotFoundError(msg)
    return lesson


async def _require_category(db: AsyncSession, category_id: int) -> None:
    if await db.get(Category, category_id) is None:
        msg = f"Category {category_id} not found"
        raise NotFoundError(msg)


async def create_lesson(db: AsyncSession, data: dict[str, Any], created_by: str) -> Lesson:
    """Create a lesson with a unique slug derived from its title."""
    await _require_category(db, data["category_id"])
    values = {k: v for k, v in data.items() if k in LESSON_FIELDS}
    values.setdefault("tags", [])

    now = _utcnow()
    lesson = Lesson(
        **values,
        slug=await unique_slug(db, Lesson, data["title"]),
        created_by=created_by,
        published_at=now if values.get("is_published") else None,
        created_at=now,
        updated_at=now,
    )
    db.add(lesson)
    await db.flush()
    await db.refresh(lesson, ["category"])
    logger.info("Lesson %s created as %s by %s", lesson.id, lesson.slug, created_by)
    return lesson


async def update_lesson(db: AsyncSession, lesson_id: int, updates: dict[str, Any]) -> Lesson:
    """Apply a partial update. The slug is immutable."""
    lesson = await get_lesson(db, lesson_id)
    updates = {k: v for k, v in updates.items() if k in LESSON_FIELDS}
    if "category_id" in updates:
        await _require_category(db, updates["category_id"])
    for key, value in updates.items():
        setattr(lesson, key, value)
    if lesson.is_published and lesson.published_at is None:
        lesson.published_at = _utcnow()
    lesson.updated_at = _utcnow()
    await db.flush()
    await db.refresh(lesson, ["category"])
    return lesson


async def set_lesson_published(db: AsyncSession, lesson_id: int, is_published: bool) -> Lesson:
    return await update_lesson(db, lesson_id, {"is_published": is_published})


async def delete_lesson(db: AsyncSession, lesson_id: int) -> None:
    lesson = await get_lesson(db, lesson_id)
    await db.delete(lesson)
    await db.flush()
    logger.info("Lesson %s deleted", lesson_id)


async def duplicate_lesson(db: AsyncSession, lesson_id: int, created_by: str) -> Lesson:
    """Copy a lesson as an unpublished draft titled "<title> (Copy)"."""
    original = await get_lesson(db, lesson_id)
    now = _utcnow()
    copy = Lesson(
        title=f"{original.title} (Copy)",
        slug=await unique_slug(db, Lesson, f"{original.slug}-copy"),
        description=original.description,
        content=original.content,
        type=original.type,
        difficulty=original.difficulty,
        estimated_duration=original.estimated_duration,
        category_id=original.category_id,
        tags=list(original.tags or []),
        video_url=original.video_url,
        video_thumbnail=original.video_thumbnail,
        quiz_data=original.quiz_data,
        meta_description=original.meta_description,
        is_published=False,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    db.add(copy)
    await db.flush()
    await db.refresh(copy, ["category"])
    return copy


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


async def list_categories(db: AsyncSession) -> list[tuple[Category, int]]:
    """Every category (inactive included) with its lesson count."""
    lesson_count = (
        select(func.count(Lesson.id))
        .where(Lesson.category_id == Category.id)
        .correlate(Category)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Category, lesson_count).order_by(Category.sort_order, Category.name)
    )
    return [(category, int(count)) for category, count in result.all()]


async def create_category(
    db: AsyncSession,
    name: str,
    description: str,
    slug: str | None = None,
    is_active: bool = True,
    sort_order: int = 0,
) -> Category:
    """
    Create a category.

    Raises:
        SlugConflictError: If the name or the (given or generated) slug is taken.
    """
    final_slug = slugify(slug or name)
    if await slug_exists(db, Category, final_slug):
        msg = f"Slug already exists: {final_slug}"
        raise SlugConflictError(msg)
    existing = await db.execute(select(Category.id).where(Category.name == name))
    if existing.first() is not None:
        msg = f"Category name already exists: {name}"
        raise SlugConflictError(msg)

    category = Category(
        name=name,
        description=description,
        slug=final_slug,
        is_active=is_active,
        sort_order=sort_order,
    )
    db.add(category)
    await db.flush()
    logger.info("Category %s created", category.slug)
    return category


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@dataclass
class AdminUserRow:
    user: User
    total_lessons: int
    completed_lessons: int
    current_streak: int
    longest_streak: int


def _user_stat_columns() -> tuple[Any, Any]:
    total = (
        select(func.count(UserProgress.id))
        .where(UserProgress.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    completed = (
        select(func.count(UserProgress.id))
        .where(UserProgress.user_id == User.id, UserProgress.completed.is_(True))
        .correlate(User)
        .scalar_subquery()
    )
    return total, completed


def _user_filters(
    role: str | None,
    status: str | None,
    activity: str | None,
    search: str | None,
    now: datetime,
) -> list[Any]:
    filters: list[Any] = []
    if role and role != "all":
        filters.append(User.role == role.upper())
    if status in ("active", "inactive"):
        filters.append(User.is_active.is_(status == "active"))
    if activity == "recent":
        filters.append(User.last_login_at >= now - timedelta(days=7))
    elif activity == "inactive":
        filters.append(
            (User.last_login_at < now - timedelta(days=30)) | User.last_login_at.is_(None)
        )
    if search:
        filters.append(search_clause(search, User.name, User.email))
    return filters


async def list_users(
    db: AsyncSession,
    *,
    role: str | None = None,
    status: str | None = None,
    activity: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
    now: datetime | None = None,
) -> tuple[list[AdminUserRow], int]:
    """Users with progress and streak stats, newest first. Returns (page, total)."""
    filters = _user_filters(role, status, activity, search, now or _utcnow())
    total = (await db.execute(select(func.count(User.id)).where(*filters))).scalar_one()

    total_col, completed_col = _user_stat_columns()
    stmt = (
        select(User, total_col, completed_col)
        .where(*filters)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    if limit:
        stmt = stmt.offset((page - 1) * limit).limit(limit)
    result = await db.execute(stmt)

    rows = []
    for user, total_lessons, completed_lessons in result.all():
        streak = user.streak
        rows.append(
            AdminUserRow(
                user=user,
                total_lessons=int(total_lessons),
                completed_lessons=int(completed_lessons),
                current_streak=streak.current_streak if streak else 0,
                longest_streak=streak.longest_streak if streak else 0,
            )
        )
    return rows, int(total)


async def set_user_active(db: AsyncSession, user_id: int, is_active: bool) -> User:
    user = await db.get(User, user_id)
    if user is None:
        msg = f"User {user_id} not found"
        raise NotFoundError(msg)
    user.is_active = is_active
    user.updated_at = _utcnow()
    await db.flush()
    logger.info("User %s %s", user_id, "activated" if is_active else "deactivated")
    return user


async def reset_user_progress(db: AsyncSession, user_id: int) -> int:
    """Delete all progress rows and zero the streak. Returns rows deleted."""
    if await db.get(User, user_id) is None:
        msg = f"User {user_id} not found"
        raise NotFoundError(msg)
    result = await db.execute(delete(UserProgress).where(UserProgress.user_id == user_id))
    await reset_streak(db, user_id)
    logger.info("Reset progress for user %s (%d rows)", user_id, result.rowcount)
    return int(result.rowcount or 0)


CSV_HEADER = (
    "ID",
    "Name",
    "Email",
    "Role",
    "Status",
    "Created At",
    "Total Lessons",
    "Completed Lessons",
    "Current Streak",
    "Longest Streak",
)


async def export_users_csv(db: AsyncSession) -> str:
    """All users with their stats as CSV text."""
    rows, _ = await list_users(db, limit=0)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        user = row.user
        writer.writerow(
            (
                user.id,
                user.name,
                user.email,
                user.role,
                "Active" if user.is_active else "Inactive",
                _as_utc(user.created_at).isoformat(),
                row.total_lessons,
                row.completed_lessons,
                row.current_streak,
                row.longest_streak,
            )
        )
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Stats and analytics
# ---------------------------------------------------------------------------


async def _count(db: AsyncSession, column: Any, *filters: Any) -> int:  # noqa: ANN401
    return int((await db.execute(select(func.count(column)).where(*filters))).scalar_one())


async def dashboard_stats(db: AsyncSession) -> dict[str, int]:
    """Headline counters for the admin dashboard."""
    return {
        "total_users": await _count(db, User.id),
        "active_users": await _count(db, User.id, User.is_active.is_(True)),
        "total_lessons": await _count(db, Lesson.id),
        "published_lessons": await _count(db, Lesson.id, Lesson.is_published.is_(True)),
        "total_progress": await _count(db, UserProgress.id),
        "completed_lessons": await _count(db, UserProgress.id, UserProgress.completed.is_(True)),
        "total_streaks": await _count(db, UserStreak.user_id),
        "active_streaks": await _count(db, UserStreak.user_id, UserStreak.current_streak > 0),
    }


def _daily_series(start: date, days: int, values: list[tuple[date, Any]], distinct: bool) -> list[dict]:
    buckets: dict[date, set[Any] | int] = {}
    for day, value in values:
        if distinct:
            buckets.setdefault(day, set()).add(value)  # type: ignore[union-attr]
        else:
            buckets[day] = buckets.get(day, 0) + 1  # type: ignore[operator]
    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        bucket = buckets.get(day, 0)
        series.append({"date": day.isoformat(), "count": len(bucket) if isinstance(bucket, set) else bucket})
    return series


STREAK_BUCKETS = ((0, 0), (1, 2), (3, 6), (7, 29), (30, None))


async def analytics(db: AsyncSession, range_key: str = "7d", now: datetime | None = None) -> dict[str, Any]:
    """
    Aggregates over the trailing `range_key` window, computed from stored rows.

    Raises:
        ValueError: Unknown range.
    """
    if range_key not in ANALYTICS_RANGES:
        msg = f"Unknown range: {range_key}"
        raise ValueError(msg)
    now = now or _utcnow()
    days = ANALYTICS_RANGES[range_key]
    first_day = (now - timedelta(days=days - 1)).date()
    start = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)

    total_users = await _count(db, User.id)
    new_users = await _count(db, User.id, User.created_at >= start)

    activity = await db.execute(
        select(UserProgress.user_id, UserProgress.updated_at).where(UserProgress.updated_at >= start)
    )
    activity_rows = [(_as_utc(ts).date(), uid) for uid, ts in activity.all()]
    active_users = len({uid for _, uid in activity_rows})

    completions = await db.execute(
        select(UserProgress.id, UserProgress.completed_at).where(
            UserProgress.completed.is_(True), UserProgress.completed_at >= start
        )
    )
    completion_rows = [(_as_utc(ts).date(), pid) for pid, ts in completions.all()]

    # Retention: of the users who signed up in the last 14 days, how many were active in the last 7.
    cohort_start = now - timedelta(days=14)
    cohort = await _count(db, User.id, User.created_at >= cohort_start)
    retained = (
        await db.execute(
            select(func.count(func.distinct(UserProgress.user_id)))
            .join(User, User.id == UserProgress.user_id)
            .where(User.created_at >= cohort_start, UserProgress.updated_at >= now - timedelta(days=7))
        )
    ).scalar_one()

    avg_time = (
        await db.execute(
            select(func.avg(UserProgress.time_spent)).where(UserProgress.completed.is_(True))
        )
    ).scalar_one()

    completion_count = func.count(UserProgress.id)
    popular = await db.execute(
        select(Lesson.id, Lesson.title, completion_count, func.avg(UserProgress.score))
        .join(UserProgress, UserProgress.lesson_id == Lesson.id)
        .where(UserProgress.completed.is_(True))
        .group_by(Lesson.id, Lesson.title)
        .order_by(completion_count.desc(), Lesson.id)
        .limit(5)
    )

    streaks = (await db.execute(select(UserStreak.current_streak))).scalars().all()
    streak_distribution = [
        {
            "min": low,
            "max": high,
            "user_count": sum(1 for s in streaks if s >= low and (high is None or s <= high)),
        }
        for low, high in STREAK_BUCKETS
    ]

    return {
        "range": range_key,
        "user_stats": {
            "total_users": total_users,
            "new_users": new_users,
            "active_users": active_users,
            "retention_rate": _rate(int(retained), cohort),
        },
        "lesson_stats": {
            "total_lessons": await _count(db, Lesson.id, Lesson.is_published.is_(True)),
            "completions": len(completion_rows),
            "total_completions": await _count(db, UserProgress.id, UserProgress.completed.is_(True)),
            "average_completion_seconds": round(float(avg_time), 1) if avg_time is not None else 0.0,
        },
        "popular_lessons": [
            {
                "id": lesson_id,
                "title": title,
                "completions": int(count),
                "average_score": round(float(avg_score)) if avg_score is not None else 0,
            }
            for lesson_id, title, count, avg_score in popular.all()
        ],
        "daily_active_users": _daily_series(first_day, days, activity_rows, distinct=True),
        "daily_completions": _daily_series(first_day, days, completion_rows, distinct=False),
        "streak_distribution": streak_distribution,
    }


# ---------------------------------------------------------------------------
# Streak reminders
# ---------------------------------------------------------------------------


async def send_streak_reminders(
    db: AsyncSession, redis: object | None = None, now: datetime | None = None
) -> dict[str, int]:
    """Email every at-risk learner who has email notifications on."""
    at_risk = await users_with_streak_at_risk(db, now)
    email_service = get_email_service(redis)  # type: ignore[arg-type]
    sent = skipped = failed = 0
    for user, streak in at_risk:
        if not user.email_notifications or not user.email:
            skipped += 1
            continue
        try:
            ok = await email_service.send_template(
                user.email,
                "streak_reminder",
                {"display_name": user.name, "streak": streak.current_streak},
            )
        except Exception:
            logger.warning("Streak reminder failed for user %s", user.id, exc_info=True)
            ok = False
        if ok:
            sent += 1
        else:
            failed += 1
    logger.info("Streak reminders: %d at risk, %d sent, %d skipped", len(at_risk), sent, skipped)
    return {"at_risk": len(at_risk), "sent": sent, "skipped": skipped, "failed": failed}
