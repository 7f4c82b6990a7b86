from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from tagger.core.errors import EmbeddingBackendError, VectorDatabaseError
from tagger.core.models.tag import TagScore
from tagger.core.services.extraction_service import CandidateExtractor
from tagger.core.services.ingest_service import BatchIngestPipeline
from tagger.core.services.validation_service import ValidationPipeline
from tagger.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tagger.core.models.tag import StructuredTags, TagRow, ValidationReport
    from tagger.core.repositories.vector_index import VectorIndex
    from tagger.core.services.embedding_service import Embedder
    from tagger.core.services.generation_service import TextGenerator

logger = get_logger(__name__)


class TaggingService:
    """Entry point used by the API: extraction, validation, search and ingest.

    Keeps application logic (thresholds, limits, composition) outside transport layer.
    """

    def __init__(
        self,
        *,
        embedder: Embedder,
        index: VectorIndex,
        generator: TextGenerator,
        concurrency: int = 1,
        match_score_threshold: float = 0.8,
        search_score_threshold: float = 0.6,
        search_limit: int = 32,
        call_timeout: float | None = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._extractor = CandidateExtractor(generator)
        self._validation = ValidationPipeline(
            embedder,
            index,
            concurrency=concurrency,
            score_threshold=match_score_threshold,
            call_timeout=call_timeout,
        )
        self._ingest = BatchIngestPipeline(
            embedder,
            index,
            concurrency=concurrency,
            call_timeout=call_timeout,
        )
        self._search_score_threshold = search_score_threshold
        self._search_limit = search_limit
        self._call_timeout = call_timeout

    async def extract(self, prompt: str) -> StructuredTags:
        return await self._extractor.extract(prompt)

    async def candidates(self, prompt: str) -> list[str]:
        return await self._extractor.extract_candidates(prompt)

    async def validate(self, candidates: Sequence[str]) -> set[str]:
        return await self._validation.validate(candidates)

    async def validate_detailed(self, candidates: Sequence[str]) -> ValidationReport:
        return await self._validation.validate_detailed(candidates)

    async def generate_tags(self, prompt: str) -> set[str]:
        """Extract candidate tags from `prompt` and keep the ones the vocabulary confirms."""
        structured = await self._extractor.extract(prompt)
        return await self._validation.validate(structured.to_flat_list())

    async def ingest(self, rows: Sequence[TagRow]) -> int:
        return await self._ingest.ingest(rows)

    async def search(self, prompt: str) -> list[TagScore]:
        """Return vocabulary entries close to the whole prompt, best first."""
        try:
            async with asyncio.timeout(self._call_timeout):
                vector = await self._embedder.embed(prompt)
        except TimeoutError as err:
            raise EmbeddingBackendError(f"Embedding timed out after {self._call_timeout}s") from err

        try:
            async with asyncio.timeout(self._call_timeout):
                hits = await self._index.search_nearest(
                    vector,
                    k=self._search_limit,
                    score_threshold=self._search_score_threshold,
                    with_payload=True,
                )
        except TimeoutError as err:
            raise VectorDatabaseError(f"Search timed out after {self._call_timeout}s") from err

        results = [TagScore(name=hit.name, score=hit.score) for hit in hits if hit.name is not None]
        logger.debug("Search returned %d tags for prompt of length %d", len(results), len(prompt))
        return results
