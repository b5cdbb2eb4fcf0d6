"""Profile router: /api/v1/profile."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.auth.dependencies import get_current_user, is_admin
from mlc.database import get_session
from mlc.db.models import User
from mlc.users.schemas import ProfileResponse, ProfileUpdateRequest
from mlc.users.service import update_profile

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Profile"])


def _profile_response(user: User) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
        role=user.role,
        is_admin=is_admin(user),
        timezone=user.timezone,
        daily_goal=user.daily_goal,
        reminder_time=user.reminder_time,
        email_notifications=user.email_notifications,
        push_notifications=user.push_notifications,
        preferred_difficulty=user.preferred_difficulty,
        preferred_categories=user.preferred_categories or [],
        learning_style=user.learning_style,
        created_at=user.created_at,
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: User = Depends(get_current_user)) -> ProfileResponse:
    """Get own profile and learning preferences."""
    return _profile_response(user)


@router.put("/profile", response_model=ProfileResponse)
async def put_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Update profile fields and learning preferences."""
    updates = body.model_dump(exclude_unset=True)
    try:
        user = await update_profile(db, user, updates)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    await db.commit()
    logger.info("profile_updated", user_id=user.id, fields=sorted(updates))
    return _profile_response(user)
