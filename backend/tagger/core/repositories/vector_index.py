from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tagger.core.models.tag import ScoredPayload, VocabularyPoint


class VectorIndex(ABC):
    """Abstract interface over a remote vector store holding the tag vocabulary.

    Implementations perform network I/O and must be safe to call from many tasks
    at once. Every backend failure is raised as `VectorDatabaseError`.
    """

    @abstractmethod
    async def ensure_collection(self, name: str, dimensionality: int) -> None:  # pragma: no cover - interface only
        """Create the collection if absent, or confirm the existing one matches.

        Idempotent. Any failure other than "already exists" is fatal to startup.
        """

    @abstractmethod
    async def upsert(self, points: Sequence[VocabularyPoint]) -> None:  # pragma: no cover
        """Write all points in one call. On failure assume no point landed."""

    @abstractmethod
    async def search_nearest(
        self,
        vector: Sequence[float],
        *,
        k: int,
        score_threshold: float,
        with_payload: bool = True,
        categories: Sequence[int] | None = None,
    ) -> list[ScoredPayload]:  # pragma: no cover
        """Return up to `k` hits scoring at least `score_threshold`, best first.

        Args:
            vector: Query embedding
            k: Maximum number of hits
            score_threshold: Minimum cosine similarity for a hit to qualify
            with_payload: Whether to return stored payloads
            categories: Optional allow-list for the payload `category` field

        An empty list means no point qualified; it is not an error.
        """

    @abstractmethod
    async def ping(self) -> None:  # pragma: no cover
        """Raise `VectorDatabaseError` if the backend is unreachable."""
