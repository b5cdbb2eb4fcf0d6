"""
Identity-provider webhook signature verification (Svix scheme).

The signed content is ``"{msg_id}.{timestamp}.{body}"``, HMAC-SHA256'd with
the base64 secret that follows the ``whsec_`` prefix. The ``svix-signature``
header holds one or more space-separated ``v1,<base64 signature>`` entries.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Any

SECRET_PREFIX = "whsec_"


class WebhookVerificationError(ValueError):
    """Raised when a webhook delivery cannot be authenticated."""


def _decode_secret(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    try:
        return base64.b64decode(secret)
    except ValueError as e:
        msg = "Webhook secret is not valid base64"
        raise WebhookVerificationError(msg) from e


def sign(secret: str, msg_id: str, timestamp: int | str, body: bytes) -> str:
    """Compute the ``v1,<signature>`` header value for a delivery."""
    key = _decode_secret(secret)
    to_sign = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(key, to_sign, hashlib.sha256).digest()
    return f"v1,{base64.b64encode(digest).decode()}"


def verify_webhook(
    secret: str,
    headers: dict[str, str],
    body: bytes,
    tolerance_seconds: int = 300,
    now: float | None = None,
) -> dict[str, Any]:
    """
    Authenticate a webhook delivery and return its decoded JSON payload.

    Args:
        secret: The endpoint's signing secret (``whsec_...``).
        headers: Lower-cased request headers.
        body: Raw request body, exactly as received.
        tolerance_seconds: Maximum clock skew for the delivery timestamp.

    Raises:
        WebhookVerificationError: Missing headers, stale timestamp, or no
            matching signature.
    """
    msg_id = headers.get("svix-id")
    timestamp = headers.get("svix-timestamp")
    signatures = headers.get("svix-signature")
    if not msg_id or not timestamp or not signatures:
        msg = "Missing webhook signature headers"
        raise WebhookVerificationError(msg)

    try:
        sent_at = int(timestamp)
    except ValueError:
        msg = "Invalid webhook timestamp"
        raise WebhookVerificationError(msg) from None

    current = time.time() if now is None else now
    if abs(current - sent_at) > tolerance_seconds:
        msg = "Webhook timestamp outside tolerance"
        raise WebhookVerificationError(msg)

    expected = sign(secret, msg_id, sent_at, body).split(",", 1)[1]
    for entry in signatures.split(" "):
        version, _, candidate = entry.partition(",")
        if version == "v1" and hmac.compare_digest(candidate, expected):
            break
    else:
        msg = "No matching webhook signature"
        raise WebhookVerificationError(msg)

    try:
        payload: dict[str, Any] = json.loads(body)
    except ValueError as e:
        msg = "Webhook body is not valid JSON"
        raise WebhookVerificationError(msg) from e
    return payload
