from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .api.middleware.security import SecurityMiddleware
from .api.v1.router import api_router
from .config import settings
from .core.errors import GenerationError, TaggerError
from .dependencies import get_vector_index
from .utils.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    if settings.ensure_collection_on_startup:
        # Raises VectorDatabaseError, which aborts startup
        await get_vector_index().ensure_collection(settings.collection_name, settings.vector_size)
    yield


async def tagger_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map core failures to a generic 500; details stay in the server log."""
    logger.error(
        "Request %s %s failed: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
        extra={"error_type": type(exc).__name__},
    )
    if isinstance(exc, GenerationError):
        message = "LLM operation failed"
    else:
        message = "Database or embedding operation failed"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message},
    )


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Prompt Tagger API",
        debug=settings.debug,
        version="0.1.0",
        root_path=settings.root_path or "",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            "X-Requested-With",
        ],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    # Proxy headers (X-Forwarded-*) when behind ALB/ingress
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    # Trusted hosts (configure in env for production)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(SecurityMiddleware, tags_path_prefix=f"{settings.api_prefix}/tags")

    app.add_exception_handler(TaggerError, tagger_error_handler)

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
