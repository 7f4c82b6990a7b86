from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from tagger.core.errors import EmbeddingBackendError, TaggerError, VectorDatabaseError
from tagger.core.models.tag import CandidateFailure, TagMatch, ValidationReport
from tagger.utils.concurrency import bounded_gather
from tagger.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from tagger.core.repositories.vector_index import VectorIndex
    from tagger.core.services.embedding_service import Embedder

logger = get_logger(__name__)

DEFAULT_MATCH_SCORE_THRESHOLD = 0.8


class ValidationPipeline:
    """Confirms candidate tags against the vocabulary stored in a vector index.

    Each candidate is embedded, then looked up with a single nearest-neighbour
    search. A hit at or above `score_threshold` confirms the candidate as the
    hit's canonical name. At most `concurrency` embed+search chains run at once.

    Example:
        ["girl", "hair pink"] -> {"1girl", "pink_hair"}
    """

    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        *,
        concurrency: int = 1,
        score_threshold: float = DEFAULT_MATCH_SCORE_THRESHOLD,
        call_timeout: float | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._embedder = embedder
        self._index = index
        self._concurrency = concurrency
        self._score_threshold = score_threshold
        self._call_timeout = call_timeout

    async def validate(self, candidates: Sequence[str]) -> set[str]:
        """Return the canonical names confirmed by `candidates`.

        Fail-fast: the first embedding or search failure cancels the remaining
        work and is raised; there is no partial result.
        """
        unique = _unique_candidates(candidates)
        if not unique:
            return set()

        logger.info("Validating %d candidate tags (concurrency=%d)", len(unique), self._concurrency)
        matches = await bounded_gather(unique, self._match_one, concurrency=self._concurrency)
        confirmed = {match.name for match in matches if match is not None}
        logger.info("Confirmed %d unique tags from %d candidates", len(confirmed), len(unique))
        return confirmed

    async def validate_detailed(self, candidates: Sequence[str]) -> ValidationReport:
        """Validate every candidate, recording failures per candidate instead of raising."""
        unique = _unique_candidates(candidates)
        report = ValidationReport()
        if not unique:
            return report

        async def _attempt(candidate: str) -> TagMatch | CandidateFailure | None:
            try:
                return await self._match_one(candidate)
            except TaggerError as err:
                return CandidateFailure(
                    candidate=candidate,
                    error_type=type(err).__name__,
                    message=str(err),
                )

        outcomes = await bounded_gather(unique, _attempt, concurrency=self._concurrency)
        for outcome in outcomes:
            if isinstance(outcome, TagMatch):
                report.matches.append(outcome)
                report.tags.add(outcome.name)
            elif isinstance(outcome, CandidateFailure):
                report.failures.append(outcome)

        if report.failures:
            logger.warning("%d of %d candidates failed validation", len(report.failures), len(unique))
        return report

    async def _match_one(self, candidate: str) -> TagMatch | None:
        try:
            async with asyncio.timeout(self._call_timeout):
                vector = await self._embedder.embed(candidate)
        except TimeoutError as err:
            raise EmbeddingBackendError(f"Embedding timed out after {self._call_timeout}s") from err

        try:
            async with asyncio.timeout(self._call_timeout):
                hits = await self._index.search_nearest(
                    vector,
                    k=1,
                    score_threshold=self._score_threshold,
                    with_payload=True,
                )
        except TimeoutError as err:
            raise VectorDatabaseError(f"Search timed out after {self._call_timeout}s") from err

        top = hits[0] if hits else None
        if top is not None and top.name is not None:
            logger.info("Candidate '%s' validated as -> '%s' (score: %.2f)", candidate, top.name, top.score)
            return TagMatch(candidate=candidate, name=top.name, score=top.score)

        logger.info("Candidate '%s' did not find a confident match in the vector database", candidate)
        return None


def _unique_candidates(candidates: Iterable[str]) -> list[str]:
    # Same text, same lookup; blank text has nothing to embed
    return [c for c in dict.fromkeys(candidates) if c.strip()]
