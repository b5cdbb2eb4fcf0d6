"""Middleware registration."""

from fastapi import FastAPI

from mlc.config import Settings
from mlc.middleware.cors import setup_cors
from mlc.middleware.error_handler import setup_error_handlers
from mlc.middleware.logging import setup_logging
from mlc.middleware.rate_limit import RateLimitMiddleware
from mlc.middleware.request_id import RequestIdMiddleware

# Probes must never be throttled; identity webhooks arrive in bursts from a
# handful of provider IPs and are authenticated by signature instead.
RATE_LIMIT_EXEMPT_PATHS = frozenset({"/health", "/ready", "/api/webhooks/identity"})


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap everything, including 429 responses from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        exempt_paths=RATE_LIMIT_EXEMPT_PATHS,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
