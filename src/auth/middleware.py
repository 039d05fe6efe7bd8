"""Internal API key middleware.

Extraction endpoints are called service-to-service by the deal-room backend
with ``Authorization: Bearer <TEXT_EXTRACTOR_API_KEY>``. When no key is
configured the check is skipped, which is only acceptable in development.
"""

import logging
import secrets
from collections.abc import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.core.config import get_settings

logger = logging.getLogger(__name__)


# Paths that don't require authentication
PUBLIC_PATHS = {
    "/",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/health/live",
    "/health/ready",
    "/health/startup",
    "/metrics",
}


def is_public_path(path: str) -> bool:
    """Check if a path is public (no auth required)."""
    if path in PUBLIC_PATHS:
        return True
    return path.startswith("/metrics/")


def get_bearer_token(auth_header: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Rejects requests that do not carry the internal API key."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()

        if not settings.auth_enabled or request.method == "OPTIONS":
            return await call_next(request)

        if is_public_path(request.url.path):
            return await call_next(request)

        token = get_bearer_token(request.headers.get("Authorization"))
        if token is None or not secrets.compare_digest(token, settings.text_extractor_api_key):
            logger.warning(
                "Rejected request with missing or invalid internal API key",
                extra={
                    "security_event": "invalid_api_key",
                    "path": request.url.path,
                    "method": request.method,
                    "client_ip": request.client.host if request.client else "unknown",
                },
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "error": "Unauthorized: Invalid internal API key."},
                headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)
