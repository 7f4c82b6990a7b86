from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from .base import AppBaseModel, CategoryId, TagId


class TagRow(AppBaseModel):
    """One vocabulary entry from a bulk source."""

    tag_id: TagId = Field(description="Unique tag id, becomes the point id")
    name: str = Field(min_length=1, description="Canonical tag name")
    category: CategoryId = Field(description="Tag category")
    count: int = Field(default=0, ge=0, description="Usage count, informational only")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"tag_id": 470575, "name": "1girl", "category": 0, "count": 4225150}
            ]
        }
    }


class TagPayload(AppBaseModel):
    """Payload stored next to each vocabulary vector."""

    name: str
    category: CategoryId


class VocabularyPoint(AppBaseModel):
    """A vocabulary entry as persisted in the vector index."""

    id: TagId
    vector: list[float]
    payload: TagPayload

    @classmethod
    def from_row(cls, row: TagRow, vector: list[float]) -> VocabularyPoint:
        return cls(
            id=row.tag_id,
            vector=vector,
            payload=TagPayload(name=row.name, category=row.category),
        )


class ScoredPayload(AppBaseModel):
    """A single nearest-neighbour hit, payload as returned by the index."""

    payload: dict[str, Any] = Field(default_factory=dict)
    score: float

    @property
    def name(self) -> str | None:
        """Canonical name from the payload, None when absent or not a string."""
        value = self.payload.get("name")
        return value if isinstance(value, str) else None


class TagScore(AppBaseModel):
    name: str
    score: float


class StructuredTags(AppBaseModel):
    """Tags extracted from a prompt, grouped by category.

    Each list is ordered from most to least salient.
    """

    subject: list[str] = Field(default_factory=list)
    environment: list[str] = Field(default_factory=list)
    quality: list[str] = Field(default_factory=list)

    # Models tend to add commentary keys; only the three categories matter.
    model_config = ConfigDict(extra="ignore")

    def to_flat_list(self) -> list[str]:
        """Concatenate subject, environment and quality. Duplicates are kept."""
        return [*self.subject, *self.environment, *self.quality]


class TagMatch(AppBaseModel):
    candidate: str
    name: str
    score: float


class CandidateFailure(AppBaseModel):
    candidate: str
    error_type: str
    message: str


class ValidationReport(AppBaseModel):
    """Per-candidate outcome of a validation call that does not stop on errors."""

    tags: set[str] = Field(default_factory=set)
    matches: list[TagMatch] = Field(default_factory=list)
    failures: list[CandidateFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
