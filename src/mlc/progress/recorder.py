"""Progress recording: upsert a learner's lesson progress, then streak and achievements."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.db.models import Achievement, Lesson, User, UserProgress, UserStreak
from mlc.db.upsert import conflict_insert
from mlc.gamification.achievement_service import check_and_unlock
from mlc.gamification.streak_service import local_today, update_streak
from mlc.lessons.service import QUIZ
from mlc.progress.quiz_scorer import QuizResult, extract_questions, score_quiz

logger = logging.getLogger(__name__)


class LessonNotFoundError(ValueError):
    """The lesson does not exist or is not published."""


@dataclass
class ProgressUpdate:
    """Fields of a progress write. None means "not supplied, keep stored value"."""

    completed: bool | None = None
    score: int | None = None
    time_spent: int | None = None
    video_progress: float | None = None
    quiz_answers: dict[str, Any] | None = None


@dataclass
class RecordResult:
    progress: UserProgress
    streak: UserStreak | None = None
    unlocked_achievements: list[Achievement] = field(default_factory=list)
    quiz_result: QuizResult | None = None


class ProgressRecorder:
    """Records one progress write and its gamification follow-ups.

    Nothing is committed here; the caller commits once the whole sequence
    has succeeded.
    """

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis

    async def _get_published_lesson(self, lesson_id: int) -> Lesson:
        lesson = await self.db.get(Lesson, lesson_id)
        if lesson is None or not lesson.is_published:
            msg = f"Lesson {lesson_id} not found"
            raise LessonNotFoundError(msg)
        return lesson

    async def _upsert(
        self, user_id: int, lesson_id: int, update: ProgressUpdate, now: datetime
    ) -> UserProgress:
        supplied: dict[str, Any] = {
            key: getattr(update, key)
            for key in ("score", "time_spent", "video_progress", "quiz_answers")
            if getattr(update, key) is not None
        }
        completing = update.completed is True

        stmt = conflict_insert(self.db, UserProgress).values(
            user_id=user_id,
            lesson_id=lesson_id,
            completed=completing,
            completed_at=now if completing else None,
            attempts=1,
            created_at=now,
            updated_at=now,
            **supplied,
        )

        set_: dict[str, Any] = {
            "attempts": UserProgress.__table__.c.attempts + 1,
            "updated_at": now,
        }
        for key in supplied:
            set_[key] = stmt.excluded[key]
        # Completion is sticky: a later completed=false write never clears it.
        if completing:
            set_["completed"] = True
            set_["completed_at"] = now

        await self.db.execute(
            stmt.on_conflict_do_update(index_elements=["user_id", "lesson_id"], set_=set_)
        )
        await self.db.flush()

        result = await self.db.execute(
            select(UserProgress)
            .where(UserProgress.user_id == user_id, UserProgress.lesson_id == lesson_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def record(
        self,
        user: User,
        lesson_id: int,
        update: ProgressUpdate,
        now: datetime | None = None,
    ) -> RecordResult:
        """Persist `update` for (user, lesson) and run the completion follow-ups.

        Raises:
            LessonNotFoundError: Unknown or unpublished lesson.
            InvalidQuizError: The lesson's stored quiz data is malformed.
        """
        now = now or datetime.now(timezone.utc)
        lesson = await self._get_published_lesson(lesson_id)

        quiz_result = None
        if lesson.type == QUIZ:
            # Quiz scores are only ever computed here; a client-sent score is dropped.
            update.score = None
            if update.quiz_answers is not None:
                quiz_result = score_quiz(extract_questions(lesson.quiz_data), update.quiz_answers)
                update.score = quiz_result.score

        progress = await self._upsert(user.id, lesson.id, update, now)
        result = RecordResult(progress=progress, quiz_result=quiz_result)

        if update.completed is True:
            streak = await update_streak(self.db, user.id, local_today(now, user.timezone), self.redis)
            result.streak = streak
            result.unlocked_achievements = await check_and_unlock(
                self.db, self.redis, user, now, current_streak=streak.current_streak
            )
            logger.info(
                "User %s completed lesson %s (attempt %d, streak %d)",
                user.id,
                lesson.id,
                progress.attempts,
                streak.current_streak,
            )

        return result


async def get_progress(db: AsyncSession, user_id: int, lesson_id: int) -> UserProgress | None:
    result = await db.execute(
        select(UserProgress).where(
            UserProgress.user_id == user_id,
            UserProgress.lesson_id == lesson_id,
        )
    )
    return result.scalar_one_or_none()


async def list_progress(db: AsyncSession, user_id: int) -> list[UserProgress]:
    result = await db.execute(
        select(UserProgress)
        .where(UserProgress.user_id == user_id)
        .order_by(UserProgress.updated_at.desc())
    )
    return list(result.scalars().all())
