from __future__ import annotations

import time
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from tagger.utils.logging import get_logger

if TYPE_CHECKING:
    from fastapi import Request
    from starlette.types import ASGIApp

logger = get_logger(__name__)


class SecurityMiddleware(BaseHTTPMiddleware):
    """Adds security headers to JSON API responses and logs tag endpoint timings."""

    def __init__(self, app: ASGIApp, *, tags_path_prefix: str = "/api/v1/tags"):
        super().__init__(app)
        self._tags_path_prefix = tags_path_prefix

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        # The API serves JSON only
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"

        response.headers["Cache-Control"] = "no-store"

        if request.url.path.startswith(self._tags_path_prefix):
            logger.info(
                "%s %s -> %d in %.1f ms",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                },
            )

        return response
