from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from tagger.config import settings
from tagger.core.errors import VectorDatabaseError
from tagger.core.repositories.vector_index import VectorIndex  # noqa: TCH001
from tagger.dependencies import get_vector_index

router = APIRouter()


@router.get("/")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "service": "prompt-tagger-api",
            "version": "0.1.0"
        }
    )


@router.get("/ready")
async def readiness_check(index: VectorIndex = Depends(get_vector_index)):
    """Readiness check endpoint."""
    db_status = "connected"
    status_code = status.HTTP_200_OK
    try:
        await index.ping()
    except VectorDatabaseError:
        db_status = "unavailable"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if status_code == status.HTTP_200_OK else "not_ready",
            "vector_database": db_status,
            "collection": settings.collection_name,
            "api_prefix": settings.api_prefix
        }
    )
