from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from tagger.core.errors import EmbeddingBackendError
from tagger.core.models.tag import VocabularyPoint
from tagger.utils.concurrency import bounded_gather
from tagger.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tagger.core.models.tag import TagRow
    from tagger.core.repositories.vector_index import VectorIndex
    from tagger.core.services.embedding_service import Embedder

logger = get_logger(__name__)


class BatchIngestPipeline:
    """Embeds vocabulary rows and writes them to the vector index in one upsert.

    All-or-nothing at the embedding stage: if any row fails to embed, nothing is
    written.
    """

    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        *,
        concurrency: int = 1,
        call_timeout: float | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._embedder = embedder
        self._index = index
        self._concurrency = concurrency
        self._call_timeout = call_timeout

    async def ingest(self, rows: Sequence[TagRow]) -> int:
        """Embed and upsert `rows`, returning the number of points written."""
        if not rows:
            logger.info("No rows to ingest")
            return 0

        logger.info("Embedding %d rows concurrently (concurrency=%d)", len(rows), self._concurrency)
        points = await bounded_gather(rows, self._build_point, concurrency=self._concurrency)

        logger.info("Generated %d embeddings. Upserting to database...", len(points))
        await self._index.upsert(points)
        logger.info("Ingest finished successfully")
        return len(points)

    async def _build_point(self, row: TagRow) -> VocabularyPoint:
        try:
            async with asyncio.timeout(self._call_timeout):
                vector = await self._embedder.embed(row.name)
        except TimeoutError as err:
            raise EmbeddingBackendError(f"Embedding timed out after {self._call_timeout}s") from err
        return VocabularyPoint.from_row(row, vector)
