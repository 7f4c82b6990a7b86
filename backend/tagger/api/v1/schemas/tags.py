from __future__ import annotations

from pydantic import Field, field_validator

from tagger.core.models.base import AppBaseModel
from tagger.core.models.tag import TagMatch, TagRow  # noqa: TCH001


class PromptRequest(AppBaseModel):
    prompt: str = Field(min_length=1, max_length=4000, description="Natural-language prompt")


class GenerateTagsRequest(PromptRequest):
    include_positive: bool | None = None
    include_negative: bool | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "prompt": "a girl with pink hair reading in a sunlit library, watercolor",
                    "include_positive": True,
                    "include_negative": False,
                }
            ]
        }
    }


class GenerateTagsResponse(AppBaseModel):
    positive: list[str] | None = None
    tags: list[str]
    negative: list[str] | None = None


class ValidateTagsRequest(AppBaseModel):
    candidates: list[str] = Field(default_factory=list, max_length=500)


class FailedCandidate(AppBaseModel):
    candidate: str
    error_type: str


class ValidationReportResponse(AppBaseModel):
    """Per-candidate validation outcome. Backend error details are not exposed."""

    tags: list[str]
    matches: list[TagMatch]
    failures: list[FailedCandidate]


class IngestRequest(AppBaseModel):
    rows: list[TagRow]

    @field_validator("rows")
    @classmethod
    def validate_unique_ids(cls, v: list[TagRow]) -> list[TagRow]:
        """Reject batches that would upsert the same point twice."""
        seen: set[int] = set()
        for row in v:
            if row.tag_id in seen:
                raise ValueError(f"Duplicate tag_id {row.tag_id} in batch")
            seen.add(row.tag_id)
        return v


class IngestResponse(AppBaseModel):
    ingested: int
