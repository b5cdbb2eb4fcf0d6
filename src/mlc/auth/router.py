"""Identity-provider webhook endpoint: POST /api/webhooks/identity."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.auth.webhooks import WebhookVerificationError, verify_webhook
from mlc.config import get_settings
from mlc.database import get_session
from mlc.email.service import get_email_service
from mlc.redis_client import get_redis_optional
from mlc.users.service import get_user_by_external_id, touch_last_login, upsert_identity_user

logger = structlog.get_logger()

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


def _primary_email(data: dict[str, Any]) -> str:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            return address.get("email_address", "")
    return addresses[0].get("email_address", "") if addresses else ""


def _display_name(data: dict[str, Any]) -> str:
    name = f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip()
    return name or data.get("username") or "User"


@router.post("/identity")
async def identity_webhook(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Receive account lifecycle events from the identity provider.

    user.created provisions the learner and sends the welcome email,
    user.updated refreshes email/name/avatar, user.deleted deactivates the
    account, session.created records the login. Anything else is acknowledged.
    """
    settings = get_settings()
    if not settings.webhook_secret:
        logger.error("webhook_secret_missing")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    body = await request.body()
    headers = {k.lower(): v for k, v in request.headers.items()}
    try:
        event = verify_webhook(
            settings.webhook_secret,
            headers,
            body,
            tolerance_seconds=settings.webhook_tolerance_seconds,
        )
    except WebhookVerificationError as e:
        logger.warning("webhook_rejected", reason=str(e), svix_id=headers.get("svix-id"))
        raise HTTPException(status_code=400, detail=str(e)) from e

    event_type = event.get("type", "")
    data: dict[str, Any] = event.get("data") or {}
    log = logger.bind(event_type=event_type, svix_id=headers.get("svix-id"))

    if event_type in ("user.created", "user.updated"):
        external_id = data.get("id")
        if not external_id:
            raise HTTPException(status_code=400, detail="Event has no user id")
        user, created = await upsert_identity_user(
            db,
            external_id,
            email=_primary_email(data),
            name=_display_name(data),
            avatar_url=data.get("image_url"),
        )
        await db.commit()
        log.info("identity_user_synced", user_id=user.id, created=created)

        if created and event_type == "user.created" and user.email:
            try:
                email_service = get_email_service(get_redis_optional())
                await email_service.send_template(user.email, "welcome", {"display_name": user.name})
            except Exception:
                log.warning("welcome_email_failed", user_id=user.id, exc_info=True)

    elif event_type == "user.deleted":
        user = await get_user_by_external_id(db, data.get("id", ""))
        if user is not None:
            user.is_active = False
            await db.commit()
            log.info("identity_user_deactivated", user_id=user.id)

    elif event_type == "session.created":
        user = await get_user_by_external_id(db, data.get("user_id", ""))
        if user is not None:
            await touch_last_login(db, user)
            await db.commit()

    else:
        log.info("webhook_ignored")

    return {"received": True}
