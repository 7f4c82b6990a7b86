"""Tests for the TaggingService facade."""

from __future__ import annotations

import pytest
from conftest import CANDIDATE_VECTORS, FakeEmbedder, FakeTextGenerator, FakeVectorIndex

from tagger.core.errors import EmbeddingBackendError, VectorDatabaseError
from tagger.core.services.tagging_service import TaggingService


def _service(embedder, index, **kwargs) -> TaggingService:
    return TaggingService(embedder=embedder, index=index, generator=FakeTextGenerator(), **kwargs)


class TestSearch:
    @pytest.mark.asyncio
    async def test_hits_above_threshold_best_first(self, embedder, vocab_index):
        embedder.vectors["pinkish girl"] = [0.9, 0.7, 0.0]
        results = await _service(embedder, vocab_index).search("pinkish girl")
        assert [r.name for r in results] == ["1girl", "pink_hair"]
        assert vocab_index.search_calls[0]["k"] == 32
        assert vocab_index.search_calls[0]["score_threshold"] == 0.6

    @pytest.mark.asyncio
    async def test_embedding_timeout_is_backend_error(self, vocab_index):
        embedder = FakeEmbedder(CANDIDATE_VECTORS, delay=1.0)
        service = _service(embedder, vocab_index, call_timeout=0.01)
        with pytest.raises(EmbeddingBackendError, match="timed out"):
            await service.search("girl")
        assert vocab_index.search_calls == []

    @pytest.mark.asyncio
    async def test_search_timeout_is_database_error(self, embedder):
        service = _service(embedder, FakeVectorIndex(delay=1.0), call_timeout=0.01)
        with pytest.raises(VectorDatabaseError, match="timed out"):
            await service.search("girl")


class TestValidateDetailed:
    @pytest.mark.asyncio
    async def test_uses_match_threshold_and_reports_failures(self, vocab_index):
        embedder = FakeEmbedder(CANDIDATE_VECTORS, fail_on={"bookshelves"})
        service = _service(embedder, vocab_index, match_score_threshold=0.9)

        report = await service.validate_detailed(["girl", "hair pink", "bookshelves"])

        # "hair pink" scores about 0.99 and "girl" 0.95
        assert report.tags == {"1girl", "pink_hair"}
        assert [f.candidate for f in report.failures] == ["bookshelves"]
