from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from openai import OpenAIError

from tagger.core.errors import EmbeddingBackendError, EmbeddingMissing
from tagger.utils.logging import get_logger

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = get_logger(__name__)


class Embedder(ABC):
    """Turns one text into one embedding vector.

    No batching at this layer; callers fan out and bound concurrency themselves.
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:  # pragma: no cover - interface only
        """Return the embedding of `text`.

        Raises:
            EmbeddingBackendError: If the backend call fails
            EmbeddingMissing: If the backend answers without a vector
        """


class OpenAIEmbedder(Embedder):
    """Embedder backed by an OpenAI-compatible `/embeddings` endpoint."""

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    async def embed(self, text: str) -> list[float]:
        try:
            resp = await self._client.embeddings.create(model=self._model, input=text)
        except OpenAIError as err:
            logger.error("Failed to create embedding with %s: %s", self._model, err)
            raise EmbeddingBackendError(f"Embedding backend call failed: {err}") from err

        if not resp.data:
            logger.error("Embedding backend returned no vectors for model %s", self._model)
            raise EmbeddingMissing()
        return list(resp.data[0].embedding)
