from __future__ import annotations

from functools import lru_cache

from openai import AsyncOpenAI

from tagger.config import settings
from tagger.utils.logging import get_logger


@lru_cache(maxsize=1)
def get_openai_client() -> AsyncOpenAI:
    """Return a singleton client for the OpenAI-compatible model endpoint.

    Both text generation and embeddings go through this client. Ollama serves the
    same API under `/v1`, which is the default `APP_LLM_BASE_URL`.
    """
    logger = get_logger(__name__)
    logger.debug("Initializing OpenAI-compatible client for %s", settings.llm_base_url)
    return AsyncOpenAI(
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        timeout=settings.backend_timeout,
    )
