"""Achievement unlocking with duplicate prevention and notification."""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.config import get_settings
from mlc.db.models import Achievement, Lesson, User, UserAchievement, UserProgress, UserStreak
from mlc.db.upsert import conflict_insert
from mlc.email.service import get_email_service
from mlc.gamification.achievement_rules import PERFECT_SCORE, AchievementAggregates, evaluate
from mlc.gamification.catalog import ACHIEVEMENT_CATALOG, ensure_achievements
from mlc.gamification.streak_service import local_now
from mlc.lessons.service import QUIZ
from mlc.redis_client import publish_event

logger = logging.getLogger(__name__)


async def _count_progress(db: AsyncSession, *conditions: object) -> int:
    result = await db.execute(select(func.count(UserProgress.id)).where(*conditions))
    return int(result.scalar_one())


async def _count_quiz_scores(db: AsyncSession, user_id: int, minimum: int) -> int:
    """Quiz attempts scoring at least `minimum`. Scores on other lesson types never count."""
    result = await db.execute(
        select(func.count(UserProgress.id))
        .join(Lesson, UserProgress.lesson_id == Lesson.id)
        .where(
            UserProgress.user_id == user_id,
            Lesson.type == QUIZ,
            UserProgress.score >= minimum,
        )
    )
    return int(result.scalar_one())


async def gather_aggregates(
    db: AsyncSession,
    user: User,
    now: datetime | None = None,
    current_streak: int | None = None,
) -> AchievementAggregates:
    """Read the learner's all-time counters from the store.

    Must run after the triggering progress write has been flushed.
    """
    settings = get_settings()
    local = local_now(now, user.timezone)
    local_midnight = datetime.combine(local.date(), time.min, tzinfo=local.tzinfo)
    day_start_utc = local_midnight.astimezone(timezone.utc)

    if current_streak is None:
        streak_row = await db.get(UserStreak, user.id)
        current_streak = streak_row.current_streak if streak_row else 0

    mine = UserProgress.user_id == user.id
    return AchievementAggregates(
        completed_lessons=await _count_progress(db, mine, UserProgress.completed.is_(True)),
        current_streak=current_streak,
        scores_above_90_count=await _count_quiz_scores(db, user.id, settings.high_score_threshold),
        perfect_score_count=await _count_quiz_scores(db, user.id, PERFECT_SCORE),
        lessons_completed_today=await _count_progress(
            db,
            mine,
            UserProgress.completed.is_(True),
            UserProgress.completed_at >= day_start_utc,
        ),
        local_time=local.time().replace(microsecond=0),
    )


async def load_catalog(db: AsyncSession) -> list[Achievement]:
    """Active catalog rows, inserting any catalog entries missing from the table."""
    result = await db.execute(select(Achievement).order_by(Achievement.sort_order, Achievement.id))
    rows = list(result.scalars().all())

    known = {row.name for row in rows}
    if any(entry["name"] not in known for entry in ACHIEVEMENT_CATALOG):
        await ensure_achievements(db)
        result = await db.execute(select(Achievement).order_by(Achievement.sort_order, Achievement.id))
        rows = list(result.scalars().all())

    return [row for row in rows if row.is_active]


async def unlocked_names(db: AsyncSession, user_id: int) -> set[str]:
    result = await db.execute(
        select(Achievement.name)
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .where(UserAchievement.user_id == user_id)
    )
    return set(result.scalars().all())


async def unlock_achievement(
    db: AsyncSession,
    user_id: int,
    achievement: Achievement,
    now: datetime | None = None,
) -> bool:
    """Insert the unlock record. Returns False if the user already had it."""
    stmt = conflict_insert(db, UserAchievement).values(
        user_id=user_id,
        achievement_id=achievement.id,
        unlocked_at=now or datetime.now(timezone.utc),
    )
    result = await db.execute(
        stmt.on_conflict_do_nothing(index_elements=["user_id", "achievement_id"])
    )
    return result.rowcount == 1


async def check_and_unlock(
    db: AsyncSession,
    redis: object | None,
    user: User,
    now: datetime | None = None,
    current_streak: int | None = None,
) -> list[Achievement]:
    """Evaluate every catalog rule for `user` and unlock the newly met ones.

    Returns the achievements unlocked by this call. Duplicate unlocks
    (concurrent evaluation) are silently skipped.
    """
    now = now or datetime.now(timezone.utc)
    catalog = await load_catalog(db)
    aggregates = await gather_aggregates(db, user, now, current_streak)
    already = await unlocked_names(db, user.id)

    awarded: list[Achievement] = []
    for achievement in evaluate(catalog, aggregates, already):
        if await unlock_achievement(db, user.id, achievement, now):
            awarded.append(achievement)

    if not awarded:
        return awarded

    await db.flush()
    logger.info(
        "User %s unlocked %s", user.id, ", ".join(a.name for a in awarded)
    )
    for achievement in awarded:
        await _emit_achievement_unlocked(redis, user, achievement)
    return awarded


async def _emit_achievement_unlocked(
    redis: object | None,
    user: User,
    achievement: Achievement,
) -> None:
    """Push the unlock over Redis pub/sub and email the learner."""
    await publish_event(
        redis,
        "pubsub:achievement_unlocked",
        {
            "user_id": user.id,
            "achievement_id": achievement.id,
            "achievement_name": achievement.name,
            "icon": achievement.icon,
            "points": achievement.points,
        },
    )

    if not user.email_notifications or not user.email:
        return
    try:
        email_service = get_email_service(redis)  # type: ignore[arg-type]
        await email_service.send_template(
            user.email,
            "achievement_unlocked",
            {
                "display_name": user.name,
                "achievement_name": achievement.name,
                "description": achievement.description,
                "icon": achievement.icon,
                "points": achievement.points,
            },
        )
    except Exception:
        logger.warning("Failed to send achievement email to user %s", user.id, exc_info=True)


async def list_user_achievements(
    db: AsyncSession, user_id: int
) -> list[tuple[Achievement, UserAchievement | None]]:
    """Active catalog entries paired with the user's unlock record, if any."""
    catalog = await load_catalog(db)
    result = await db.execute(select(UserAchievement).where(UserAchievement.user_id == user_id))
    unlocks = {ua.achievement_id: ua for ua in result.scalars().all()}
    return [(achievement, unlocks.get(achievement.id)) for achievement in catalog]
