"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mlc.config import Settings


def allowed_origins(settings: Settings) -> list[str]:
    """Configured origins plus the frontend that email links point at."""
    origins = list(settings.cors_origins)
    frontend = settings.frontend_base_url.rstrip("/")
    if frontend and frontend not in origins:
        origins.append(frontend)
    return origins


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the learner app and admin console to call the API.

    `cors_origin_regex` covers per-branch preview deployments of the frontend.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(settings),
        allow_origin_regex=settings.cors_origin_regex or None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        # Content-Disposition carries the filename of the admin CSV export.
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Content-Disposition"],
    )
