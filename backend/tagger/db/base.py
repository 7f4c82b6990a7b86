from __future__ import annotations

import math
from functools import lru_cache

from qdrant_client import AsyncQdrantClient

from tagger.config import settings
from tagger.utils.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_qdrant_client() -> AsyncQdrantClient:
    """Return a cached async Qdrant client.

    The client is reentrant and shared by every request and pipeline task.
    """
    logger.debug("Initializing Qdrant client for %s", settings.qdrant_url)
    if not settings.qdrant_url:
        raise RuntimeError("qdrant_url is required for the vector index client")
    return AsyncQdrantClient(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        prefer_grpc=settings.qdrant_prefer_grpc,
        # qdrant-client takes whole seconds
        timeout=math.ceil(settings.backend_timeout),
    )
