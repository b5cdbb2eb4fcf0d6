"""Gamification API endpoints: achievements and streaks."""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.auth.dependencies import get_current_user
from mlc.database import get_session
from mlc.db.models import User
from mlc.gamification.achievement_service import list_user_achievements
from mlc.gamification.schemas import (
    AchievementListResponse,
    AchievementResponse,
    StreakResponse,
)
from mlc.gamification.streak_service import get_or_create_streak, local_today

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/achievements", response_model=AchievementListResponse)
async def list_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AchievementListResponse:
    """Full catalog with the caller's unlock state."""
    pairs = await list_user_achievements(db, user.id)
    await db.commit()

    items = [
        AchievementResponse(
            id=a.id,
            name=a.name,
            description=a.description,
            icon=a.icon,
            type=a.type,
            criteria=a.criteria or {},
            points=a.points,
            unlocked=ua is not None,
            unlocked_at=ua.unlocked_at if ua else None,
        )
        for a, ua in pairs
    ]
    unlocked = [i for i in items if i.unlocked]
    return AchievementListResponse(
        achievements=items,
        total_available=len(items),
        total_unlocked=len(unlocked),
        total_points=sum(i.points for i in unlocked),
    )


@router.get("/users/me/streak", response_model=StreakResponse)
async def get_my_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StreakResponse:
    """Current and longest streak, evaluated against the caller's local day."""
    streak = await get_or_create_streak(db, user.id)
    await db.commit()

    today = local_today(None, user.timezone)
    last = streak.last_activity_date
    # A streak whose last day is older than yesterday is already broken.
    broken = last is None or last < today - timedelta(days=1)
    return StreakResponse(
        current_streak=0 if broken else streak.current_streak,
        longest_streak=streak.longest_streak,
        last_activity_date=last,
        active_today=last == today,
        at_risk=last == today - timedelta(days=1) and streak.current_streak > 0,
    )
