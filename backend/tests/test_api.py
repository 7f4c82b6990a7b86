"""End-to-end tests for the HTTP API with in-memory backends."""

from __future__ import annotations

import json

import pytest
from conftest import FakeTextGenerator
from fastapi.testclient import TestClient

from tagger.api.v1.endpoints.tags import NEGATIVE_TAGS, POSITIVE_TAGS
from tagger.core.services.tagging_service import TaggingService
from tagger.dependencies import get_tagging_service, get_vector_index
from tagger.main import app

STRUCTURED_RESPONSE = "```json\n" + json.dumps(
    {"subject": ["girl", "hair pink"], "environment": ["bookshelves"], "quality": ["blurry"]}
) + "\n```"


@pytest.fixture
def generator() -> FakeTextGenerator:
    return FakeTextGenerator(STRUCTURED_RESPONSE)


@pytest.fixture
def client(embedder, vocab_index, generator):
    service = TaggingService(
        embedder=embedder,
        index=vocab_index,
        generator=generator,
        concurrency=2,
    )
    app.dependency_overrides[get_tagging_service] = lambda: service
    app.dependency_overrides[get_vector_index] = lambda: vocab_index
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestGenerateTags:
    def test_returns_validated_tags(self, client):
        resp = client.post("/api/v1/tags/generate", json={"prompt": "a girl with pink hair among bookshelves"})
        assert resp.status_code == 200
        body = resp.json()
        assert body == {"tags": ["1girl", "library", "pink_hair"]}

    def test_positive_and_negative_lists_on_request(self, client):
        resp = client.post(
            "/api/v1/tags/generate",
            json={"prompt": "a girl", "include_positive": True, "include_negative": True},
        )
        body = resp.json()
        assert body["positive"] == POSITIVE_TAGS
        assert body["negative"] == NEGATIVE_TAGS

    def test_only_requested_list_is_included(self, client):
        resp = client.post("/api/v1/tags/generate", json={"prompt": "a girl", "include_negative": True})
        body = resp.json()
        assert "positive" not in body
        assert body["negative"] == NEGATIVE_TAGS

    def test_llm_failure_is_generic_500(self, client, generator):
        generator.response = "not json at all"
        resp = client.post("/api/v1/tags/generate", json={"prompt": "a girl"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "LLM operation failed"}

    def test_embedding_failure_is_generic_500(self, client, embedder):
        embedder.fail_on = {"hair pink"}
        resp = client.post("/api/v1/tags/generate", json={"prompt": "a girl"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Database or embedding operation failed"}
        assert "hair pink" not in resp.text

    def test_empty_prompt_rejected(self, client):
        resp = client.post("/api/v1/tags/generate", json={"prompt": ""})
        assert resp.status_code == 422


class TestExtractionEndpoints:
    def test_structured(self, client):
        resp = client.post("/api/v1/tags/structured", json={"prompt": "a girl"})
        assert resp.status_code == 200
        assert resp.json() == {
            "subject": ["girl", "hair pink"],
            "environment": ["bookshelves"],
            "quality": ["blurry"],
        }

    def test_candidates(self, client, generator):
        generator.response = "1girl, pink_hair, library"
        resp = client.post("/api/v1/tags/candidates", json={"prompt": "a girl"})
        assert resp.json() == ["1girl", "pink_hair", "library"]


class TestValidateAndSearch:
    def test_validate(self, client):
        resp = client.post("/api/v1/tags/validate", json={"candidates": ["girl", "girl", "blurry", "1 girl"]})
        assert resp.status_code == 200
        assert resp.json() == ["1girl"]

    def test_validate_empty(self, client):
        resp = client.post("/api/v1/tags/validate", json={"candidates": []})
        assert resp.json() == []

    def test_validate_detailed_reports_failed_candidates(self, client, embedder):
        embedder.fail_on = {"hair pink"}
        resp = client.post("/api/v1/tags/validate/detailed", json={"candidates": ["girl", "hair pink", "blurry"]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["tags"] == ["1girl"]
        assert [m["name"] for m in body["matches"]] == ["1girl"]
        assert body["failures"] == [{"candidate": "hair pink", "error_type": "EmbeddingBackendError"}]
        assert "backend down" not in resp.text

    def test_search_best_first(self, client, embedder):
        embedder.vectors["pinkish girl"] = [0.9, 0.7, 0.0]
        resp = client.post("/api/v1/tags/search", json={"prompt": "pinkish girl"})
        assert resp.status_code == 200
        names = [hit["name"] for hit in resp.json()]
        assert names == ["1girl", "pink_hair"]


class TestIngest:
    def test_ingest_rows(self, client, embedder, vocab_index):
        embedder.vectors["cat"] = [0.6, 0.8, 0.0]
        resp = client.post(
            "/api/v1/tags/ingest",
            json={"rows": [{"tag_id": 99, "name": "cat", "category": 0, "count": 5}]},
        )
        assert resp.status_code == 201
        assert resp.json() == {"ingested": 1}
        assert vocab_index.points[99][1] == {"name": "cat", "category": 0}

    def test_duplicate_ids_rejected(self, client, vocab_index):
        row = {"tag_id": 1, "name": "cat", "category": 0, "count": 5}
        resp = client.post("/api/v1/tags/ingest", json={"rows": [row, row]})
        assert resp.status_code == 422
        assert vocab_index.upsert_calls == []


class TestHealth:
    def test_liveness(self, client):
        resp = client.get("/api/v1/health/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_readiness(self, client):
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_readiness_reports_unreachable_index(self, client, vocab_index):
        vocab_index.fail_ping = True
        resp = client.get("/api/v1/health/ready")
        assert resp.status_code == 503
        assert resp.json()["vector_database"] == "unavailable"

    def test_security_headers(self, client):
        resp = client.get("/api/v1/health/")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_startup_ensures_collection(monkeypatch, vocab_index):
    monkeypatch.setattr("tagger.main.get_vector_index", lambda: vocab_index)
    with TestClient(app):
        pass
    assert len(vocab_index.ensured) == 1

