"""User management business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from mlc.config import get_settings
from mlc.db.models import Category, User
from mlc.db.upsert import conflict_insert
from mlc.gamification.streak_service import get_or_create_streak, resolve_timezone

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PROFILE_FIELDS = (
    "name",
    "timezone",
    "daily_goal",
    "reminder_time",
    "email_notifications",
    "push_notifications",
    "preferred_difficulty",
    "preferred_categories",
    "learning_style",
)
NULLABLE_PROFILE_FIELDS = frozenset({"reminder_time", "preferred_difficulty", "learning_style"})


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def upsert_identity_user(
    db: AsyncSession,
    external_id: str,
    email: str = "",
    name: str | None = None,
    avatar_url: str | None = None,
    *,
    overwrite: bool = True,
) -> tuple[User, bool]:
    """
    Create the local user for an identity-provider account, or refresh it.

    With `overwrite=False` an existing row is left untouched (used when
    provisioning lazily from a session token that may carry fewer claims
    than the webhook did).

    Returns:
        (user, created)
    """
    now = datetime.now(timezone.utc)
    values: dict[str, Any] = {
        "external_id": external_id,
        "email": email or "",
        "name": name or "User",
        "avatar_url": avatar_url,
        "timezone": get_settings().default_timezone,
        "preferred_categories": [],
        "created_at": now,
        "updated_at": now,
    }
    stmt = conflict_insert(db, User).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=["external_id"])
    result = await db.execute(stmt)
    created = result.rowcount == 1

    user = await get_user_by_external_id(db, external_id)
    if user is None:
        msg = f"User {external_id} vanished during upsert"
        raise RuntimeError(msg)

    if created:
        await get_or_create_streak(db, user.id)
        logger.info("user_created", user_id=user.id, external_id=external_id)
    elif overwrite:
        if email:
            user.email = email
        if name:
            user.name = name
        if avatar_url is not None:
            user.avatar_url = avatar_url
        user.updated_at = now
        logger.info("user_updated", user_id=user.id, external_id=external_id)

    await db.flush()
    return user, created


def _validate_profile(updates: dict[str, Any]) -> None:
    tz_name = updates.get("timezone")
    if tz_name is not None and resolve_timezone(tz_name).key != tz_name:
        msg = f"Unknown timezone: {tz_name}"
        raise ValueError(msg)

    reminder = updates.get("reminder_time")
    if reminder is not None:
        try:
            datetime.strptime(reminder, "%H:%M")
        except ValueError:
            msg = "reminder_time must be HH:MM"
            raise ValueError(msg) from None


async def update_profile(db: AsyncSession, user: User, updates: dict[str, Any]) -> User:
    """
    Apply profile/preference updates. Only keys present in `updates` change.

    Raises:
        ValueError: On unknown timezone, malformed reminder time, or unknown
            preferred category slugs.
    """
    updates = {
        k: v
        for k, v in updates.items()
        if k in PROFILE_FIELDS and (v is not None or k in NULLABLE_PROFILE_FIELDS)
    }
    _validate_profile(updates)

    categories = updates.get("preferred_categories")
    if categories:
        result = await db.execute(select(Category.slug).where(Category.slug.in_(categories)))
        known = set(result.scalars().all())
        unknown = sorted(set(categories) - known)
        if unknown:
            msg = f"Unknown categories: {', '.join(unknown)}"
            raise ValueError(msg)

    for key, value in updates.items():
        setattr(user, key, value)
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return user


async def touch_last_login(db: AsyncSession, user: User) -> None:
    user.last_login_at = datetime.now(timezone.utc)
    await db.flush()
