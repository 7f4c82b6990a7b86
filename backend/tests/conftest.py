"""Deterministic in-memory stand-ins for the embedding, vector and LLM backends."""

from __future__ import annotations

import asyncio
import math
from typing import Any

import pytest

from tagger.core.errors import EmbeddingBackendError, EmbeddingMissing, GenerationError, VectorDatabaseError
from tagger.core.models.tag import ScoredPayload
from tagger.core.repositories.vector_index import VectorIndex
from tagger.core.services.embedding_service import Embedder
from tagger.core.services.generation_service import TextGenerator

# 3-dim unit vectors; each vocabulary entry owns one axis
VOCAB_VECTORS = {
    "1girl": [1.0, 0.0, 0.0],
    "pink_hair": [0.0, 1.0, 0.0],
    "library": [0.0, 0.0, 1.0],
}

CANDIDATE_VECTORS = {
    "girl": [0.95, math.sqrt(1 - 0.95**2), 0.0],  # cosine 0.95 with 1girl
    "1 girl": [1.0, 0.0, 0.0],
    "hair pink": [0.0, 0.9, 0.1],
    "bookshelves": [0.0, 0.1, 0.9],
    "blurry": [0.5, 0.5, math.sqrt(0.5)],  # below 0.8 against every entry
}


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeEmbedder(Embedder):
    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        *,
        default: list[float] | None = None,
        fail_on: set[str] | None = None,
        missing_on: set[str] | None = None,
        delay: float = 0.0,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.vectors = dict(vectors or {})
        self.default = default
        self.fail_on = fail_on or set()
        self.missing_on = missing_on or set()
        self.delay = delay
        self.delays = delays or {}
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(text, self.delay))
            if text in self.fail_on:
                raise EmbeddingBackendError(f"backend down for {text!r}")
            if text in self.missing_on:
                raise EmbeddingMissing()
            if text in self.vectors:
                return list(self.vectors[text])
            if self.default is not None:
                return list(self.default)
            raise EmbeddingBackendError(f"no vector configured for {text!r}")
        finally:
            self.active -= 1


class FakeVectorIndex(VectorIndex):
    def __init__(self, *, fail_search: bool = False, fail_upsert: bool = False, delay: float = 0.0) -> None:
        self.points: dict[int, tuple[list[float], dict[str, Any]]] = {}
        self.fail_search = fail_search
        self.fail_upsert = fail_upsert
        self.fail_ping = False
        self.delay = delay
        self.upsert_calls: list[list[Any]] = []
        self.search_calls: list[dict[str, Any]] = []
        self.ensured: list[tuple[str, int]] = []

    def add(self, point_id: int, vector: list[float], payload: dict[str, Any]) -> None:
        self.points[point_id] = (list(vector), dict(payload))

    async def ensure_collection(self, name: str, dimensionality: int) -> None:
        self.ensured.append((name, dimensionality))

    async def upsert(self, points) -> None:
        self.upsert_calls.append(list(points))
        if self.fail_upsert:
            raise VectorDatabaseError("upsert rejected")
        for p in points:
            self.add(p.id, p.vector, p.payload.model_dump())

    async def search_nearest(self, vector, *, k, score_threshold, with_payload=True, categories=None):
        await asyncio.sleep(self.delay)
        if self.fail_search:
            raise VectorDatabaseError("search failed")
        self.search_calls.append({"vector": list(vector), "k": k, "score_threshold": score_threshold})
        hits = []
        for stored, payload in self.points.values():
            if categories and payload.get("category") not in categories:
                continue
            score = cosine(list(vector), stored)
            if score >= score_threshold:
                hits.append(ScoredPayload(payload=payload if with_payload else {}, score=score))
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:k]

    async def ping(self) -> None:
        if self.fail_ping:
            raise VectorDatabaseError("unreachable")


class FakeTextGenerator(TextGenerator):
    def __init__(self, response: str = "", *, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def generate(self, system: str, prompt: str, *, json_mode: bool = False) -> str:
        self.calls.append({"system": system, "prompt": prompt, "json_mode": json_mode})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def vocab_index() -> FakeVectorIndex:
    index = FakeVectorIndex()
    for point_id, (name, vector) in enumerate(VOCAB_VECTORS.items(), start=1):
        index.add(point_id, vector, {"name": name, "category": 0})
    return index


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder({**CANDIDATE_VECTORS, **VOCAB_VECTORS})


@pytest.fixture
def failing_generator() -> FakeTextGenerator:
    return FakeTextGenerator(error=GenerationError("ollama unreachable"))
