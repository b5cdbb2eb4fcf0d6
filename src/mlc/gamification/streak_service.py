"""Streak tracking: consecutive calendar days with at least one completed lesson."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.db.models import User, UserStreak
from mlc.db.upsert import conflict_insert
from mlc.redis_client import publish_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    changed: bool


def resolve_timezone(tz_name: str | None) -> ZoneInfo:
    """Return the ZoneInfo for a learner's timezone, UTC when unknown."""
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back to UTC", tz_name)
    return ZoneInfo("UTC")


def local_now(now: datetime | None, tz_name: str | None) -> datetime:
    """`now` (default: current UTC time) expressed in the learner's timezone."""
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(tz_name))


def local_today(now: datetime | None, tz_name: str | None) -> date:
    """Day-truncated `now` in the learner's timezone."""
    return local_now(now, tz_name).date()


def compute_streak(
    last_activity_date: date | None,
    current_streak: int,
    longest_streak: int,
    today: date,
) -> StreakUpdate:
    """Apply one day of activity to a streak.

    - Already active today: unchanged.
    - Active yesterday: streak continues (+1).
    - Anything else (gap, or never active): streak restarts at 1.
    """
    if last_activity_date == today:
        return StreakUpdate(
            current_streak=current_streak,
            longest_streak=max(longest_streak, current_streak),
            last_activity_date=last_activity_date,
            changed=False,
        )

    if last_activity_date is not None and last_activity_date == today - timedelta(days=1):
        new_current = current_streak + 1
    else:
        new_current = 1

    return StreakUpdate(
        current_streak=new_current,
        longest_streak=max(longest_streak, new_current),
        last_activity_date=today,
        changed=True,
    )


async def get_or_create_streak(db: AsyncSession, user_id: int) -> UserStreak:
    """Get the user's streak row, creating an empty one if missing."""
    stmt = conflict_insert(db, UserStreak).values(
        user_id=user_id,
        current_streak=0,
        longest_streak=0,
        updated_at=datetime.now(timezone.utc),
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))

    result = await db.execute(
        select(UserStreak)
        .where(UserStreak.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def update_streak(
    db: AsyncSession, user_id: int, today: date, redis: object | None = None
) -> UserStreak:
    """Record activity for `today` on the user's streak. Same-day repeats are no-ops.

    A changed streak is announced on `pubsub:streak_updated` when Redis is given.
    """
    streak = await get_or_create_streak(db, user_id)
    update = compute_streak(
        streak.last_activity_date,
        streak.current_streak,
        streak.longest_streak,
        today,
    )
    if update.changed:
        streak.current_streak = update.current_streak
        streak.longest_streak = update.longest_streak
        streak.last_activity_date = update.last_activity_date
        streak.updated_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("Streak for user %s is now %d", user_id, streak.current_streak)
        await publish_event(
            redis,
            "pubsub:streak_updated",
            {
                "user_id": user_id,
                "current_streak": streak.current_streak,
                "longest_streak": streak.longest_streak,
                "last_activity_date": today.isoformat(),
            },
        )
    return streak


async def reset_streak(db: AsyncSession, user_id: int) -> UserStreak:
    """Zero both counters (admin progress reset)."""
    streak = await get_or_create_streak(db, user_id)
    streak.current_streak = 0
    streak.longest_streak = 0
    streak.last_activity_date = None
    streak.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return streak


async def users_with_streak_at_risk(
    db: AsyncSession, now: datetime | None = None
) -> list[tuple[User, UserStreak]]:
    """Learners whose active streak ends unless they complete a lesson today.

    "Today" is evaluated per learner in their own timezone.
    """
    result = await db.execute(
        select(User, UserStreak)
        .join(UserStreak, UserStreak.user_id == User.id)
        .where(
            UserStreak.current_streak > 0,
            UserStreak.last_activity_date.is_not(None),
            User.is_active.is_(True),
        )
    )
    at_risk = []
    for user, streak in result.all():
        today = local_today(now, user.timezone)
        if streak.last_activity_date == today - timedelta(days=1):
            at_risk.append((user, streak))
    return at_risk
