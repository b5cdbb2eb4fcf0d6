"""Progress API endpoints: record and read a learner's lesson progress."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.auth.dependencies import get_current_user
from mlc.database import get_session
from mlc.db.models import User, UserProgress
from mlc.progress.quiz_scorer import InvalidQuizError
from mlc.progress.recorder import (
    LessonNotFoundError,
    ProgressRecorder,
    ProgressUpdate,
    RecordResult,
    get_progress,
    list_progress,
)
from mlc.progress.schemas import (
    ProgressListResponse,
    ProgressRecordRequest,
    ProgressResponse,
    ProgressWriteRequest,
    QuizSummary,
    RecordProgressResponse,
    StreakSummary,
    UnlockedAchievement,
)
from mlc.redis_client import get_redis_optional

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Progress"])


def progress_response(progress: UserProgress) -> ProgressResponse:
    return ProgressResponse(
        lesson_id=progress.lesson_id,
        completed=progress.completed,
        score=progress.score,
        time_spent=progress.time_spent,
        attempts=progress.attempts,
        video_progress=progress.video_progress,
        quiz_answers=progress.quiz_answers,
        completed_at=progress.completed_at,
        updated_at=progress.updated_at,
    )


def _record_response(result: RecordResult) -> RecordProgressResponse:
    return RecordProgressResponse(
        progress=progress_response(result.progress),
        streak=(
            StreakSummary(
                current_streak=result.streak.current_streak,
                longest_streak=result.streak.longest_streak,
            )
            if result.streak is not None
            else None
        ),
        new_achievements=[
            UnlockedAchievement(
                id=a.id,
                name=a.name,
                description=a.description,
                icon=a.icon,
                points=a.points,
            )
            for a in result.unlocked_achievements
        ],
        quiz=(
            QuizSummary(
                score=result.quiz_result.score,
                earned_points=result.quiz_result.earned_points,
                total_points=result.quiz_result.total_points,
                correct=result.quiz_result.correct,
            )
            if result.quiz_result is not None
            else None
        ),
    )


async def _record(
    db: AsyncSession,
    user: User,
    lesson_id: int,
    body: ProgressWriteRequest,
) -> RecordProgressResponse:
    update = ProgressUpdate(
        completed=body.completed,
        score=body.score,
        time_spent=body.time_spent,
        video_progress=body.video_progress,
        quiz_answers=body.quiz_answers,
    )
    recorder = ProgressRecorder(db, get_redis_optional())
    try:
        result = await recorder.record(user, lesson_id, update)
    except LessonNotFoundError as e:
        raise HTTPException(status_code=404, detail="Lesson not found") from e
    except InvalidQuizError as e:
        logger.warning("invalid_quiz_data", lesson_id=lesson_id, error=str(e))
        raise HTTPException(status_code=422, detail=str(e)) from e

    await db.commit()
    logger.info(
        "progress_recorded",
        user_id=user.id,
        lesson_id=lesson_id,
        completed=result.progress.completed,
        new_achievements=[a.name for a in result.unlocked_achievements],
    )
    return _record_response(result)


@router.get("/progress", response_model=ProgressListResponse)
async def list_my_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressListResponse:
    """All of the caller's progress rows, most recently updated first."""
    rows = await list_progress(db, user.id)
    return ProgressListResponse(
        progress=[progress_response(p) for p in rows],
        total=len(rows),
        completed=sum(1 for p in rows if p.completed),
    )


@router.post("/progress", response_model=RecordProgressResponse)
async def record_progress(
    body: ProgressRecordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RecordProgressResponse:
    """Record progress for the lesson named in the body."""
    return await _record(db, user, body.lesson_id, body)


@router.get("/lessons/{lesson_id}/progress", response_model=ProgressResponse | None)
async def get_lesson_progress(
    lesson_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressResponse | None:
    """The caller's progress on one lesson, or null before the first interaction."""
    progress = await get_progress(db, user.id, lesson_id)
    return progress_response(progress) if progress else None


@router.post("/lessons/{lesson_id}/progress", response_model=RecordProgressResponse)
async def record_lesson_progress(
    lesson_id: int,
    body: ProgressWriteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RecordProgressResponse:
    """Record progress for the lesson in the path."""
    return await _record(db, user, lesson_id, body)
