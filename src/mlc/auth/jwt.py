"""
RS256 session token verification.

Session tokens are issued by the external identity provider; this service
only holds the provider's public key. The `sub` claim is the provider's
user id (`User.external_id`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from mlc.config import get_settings

_public_key: str | None = None


def _load_public_key() -> str:
    """Load the provider's public key from disk (cached after first call)."""
    global _public_key  # noqa: PLW0603
    if _public_key is None:
        settings = get_settings()
        _public_key = Path(settings.auth_jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset cached keys (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_session_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a session token.

    Args:
        token: The encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    public_key = _load_public_key()
    settings = get_settings()
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            public_key,
            algorithms=[settings.auth_jwt_algorithm],
            issuer=settings.auth_jwt_issuer or None,
            leeway=settings.auth_jwt_leeway_seconds,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)

    return payload
