"""
HTTP middleware stack: request correlation, CORS and response headers.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from kds_shared.config.settings import settings
from kds_shared.infrastructure.correlation import (
    REQUEST_ID_HEADER,
    STATION_HEADER,
    CorrelationIdMiddleware,
)

# Station display dev servers
DEV_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Hardening headers on every response. Feed responses under /api/ are
    additionally marked no-store so a display never renders a cached board.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if request.url.path.startswith("/api/"):
            response.headers.setdefault("Cache-Control", "no-store")
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000"
        return response


def cors_origins() -> list[str]:
    configured = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    return configured or list(DEV_ORIGINS)


def register_middlewares(app: FastAPI) -> None:
    # Added last runs first: correlation wraps everything else
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER, STATION_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=0 if settings.environment == "development" else 600,
    )
    app.add_middleware(CorrelationIdMiddleware)
