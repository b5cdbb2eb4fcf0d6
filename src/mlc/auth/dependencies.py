"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.auth.jwt import verify_session_token
from mlc.config import get_settings
from mlc.database import get_session
from mlc.db.models import User
from mlc.users.service import get_user_by_external_id, upsert_identity_user

_bearer = HTTPBearer(auto_error=False)


async def _resolve_user(token: str, db: AsyncSession) -> User:
    try:
        payload = verify_session_token(token)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    external_id = str(payload["sub"])
    user = await get_user_by_external_id(db, external_id)
    if user is None:
        # The webhook may not have arrived yet; provision from the token claims.
        user, _ = await upsert_identity_user(
            db,
            external_id,
            email=payload.get("email", ""),
            name=payload.get("name"),
            avatar_url=payload.get("picture"),
            overwrite=False,
        )
        await db.commit()
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Verify the session token and return the local User.

    Raises 401 without a valid token, 403 for deactivated accounts.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return await _resolve_user(credentials.credentials, db)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Like get_current_user, but anonymous requests yield None."""
    if credentials is None:
        return None
    return await _resolve_user(credentials.credentials, db)


def is_admin(user: User) -> bool:
    return user.role == "ADMIN" or user.external_id in get_settings().admin_user_ids


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only administrators. 403 otherwise."""
    if not is_admin(user):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
