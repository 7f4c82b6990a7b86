from __future__ import annotations

from functools import lru_cache

from tagger.config import settings
from tagger.core.repositories.implementations.qdrant.vector_index import QdrantVectorIndex
from tagger.core.repositories.vector_index import VectorIndex
from tagger.core.services.embedding_service import Embedder, OpenAIEmbedder
from tagger.core.services.generation_service import OpenAITextGenerator, TextGenerator
from tagger.core.services.tagging_service import TaggingService
from tagger.db.base import get_qdrant_client
from tagger.utils.logging import get_logger
from tagger.utils.openai_client import get_openai_client

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_vector_index() -> VectorIndex:
    """Return the shared vector index bound to the configured collection."""
    return QdrantVectorIndex(get_qdrant_client(), settings.collection_name)


@lru_cache(maxsize=1)
def get_embedder() -> Embedder:
    return OpenAIEmbedder(get_openai_client(), settings.embedding_model)


@lru_cache(maxsize=1)
def get_text_generator() -> TextGenerator:
    return OpenAITextGenerator(
        get_openai_client(),
        settings.llm_model,
        temperature=settings.llm_temperature,
    )


@lru_cache(maxsize=1)
def get_tagging_service() -> TaggingService:
    """Construct the TaggingService with shared backend clients.

    The clients hold no per-request state, so one instance serves every request.
    """
    logger.debug("Building tagging service (concurrency=%d)", settings.embedding_concurrency)
    return TaggingService(
        embedder=get_embedder(),
        index=get_vector_index(),
        generator=get_text_generator(),
        concurrency=settings.embedding_concurrency,
        match_score_threshold=settings.match_score_threshold,
        search_score_threshold=settings.search_score_threshold,
        search_limit=settings.search_limit,
        call_timeout=settings.backend_timeout,
    )
