from __future__ import annotations

from fastapi import APIRouter, Depends, status

from tagger.api.v1.schemas.tags import (
    FailedCandidate,
    GenerateTagsRequest,
    GenerateTagsResponse,
    IngestRequest,
    IngestResponse,
    PromptRequest,
    ValidateTagsRequest,
    ValidationReportResponse,
)
from tagger.core.models.tag import StructuredTags, TagScore
from tagger.core.services.tagging_service import TaggingService  # noqa: TCH001
from tagger.dependencies import get_tagging_service

router = APIRouter()

# Fixed quality boosters and suppressors, prepended/appended on request
POSITIVE_TAGS = [
    "masterpiece",
    "best quality",
    "very aesthetic",
    "absurdres",
    "amazing quality",
]

NEGATIVE_TAGS = [
    "bad quality",
    "worst quality",
    "worst detail",
    "bad hands",
    "bad anatomy",
    "extra fingers",
]


@router.post("/generate", response_model=GenerateTagsResponse, response_model_exclude_none=True)
async def generate_tags(
    payload: GenerateTagsRequest,
    service: TaggingService = Depends(get_tagging_service),
):
    """Extract tags from a prompt and return the ones confirmed by the vocabulary."""
    tags = await service.generate_tags(payload.prompt)
    return GenerateTagsResponse(
        positive=list(POSITIVE_TAGS) if payload.include_positive else None,
        tags=sorted(tags),
        negative=list(NEGATIVE_TAGS) if payload.include_negative else None,
    )


@router.post("/structured", response_model=StructuredTags)
async def structured_tags(
    payload: PromptRequest,
    service: TaggingService = Depends(get_tagging_service),
):
    return await service.extract(payload.prompt)


@router.post("/candidates", response_model=list[str])
async def candidate_tags(
    payload: PromptRequest,
    service: TaggingService = Depends(get_tagging_service),
):
    return await service.candidates(payload.prompt)


@router.post("/validate", response_model=list[str])
async def validate_tags(
    payload: ValidateTagsRequest,
    service: TaggingService = Depends(get_tagging_service),
):
    """Validate caller-supplied candidates. The result is a set, returned sorted."""
    tags = await service.validate(payload.candidates)
    return sorted(tags)


@router.post("/validate/detailed", response_model=ValidationReportResponse)
async def validate_tags_detailed(
    payload: ValidateTagsRequest,
    service: TaggingService = Depends(get_tagging_service),
):
    """Validate every candidate and report which ones failed instead of failing the request."""
    report = await service.validate_detailed(payload.candidates)
    return ValidationReportResponse(
        tags=sorted(report.tags),
        matches=report.matches,
        failures=[
            FailedCandidate(candidate=f.candidate, error_type=f.error_type) for f in report.failures
        ],
    )


@router.post("/search", response_model=list[TagScore])
async def search_tags(
    payload: PromptRequest,
    service: TaggingService = Depends(get_tagging_service),
):
    """Nearest vocabulary entries for the whole prompt, best first."""
    return await service.search(payload.prompt)


@router.post("/ingest", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
async def ingest_tags(
    payload: IngestRequest,
    service: TaggingService = Depends(get_tagging_service),
):
    ingested = await service.ingest(payload.rows)
    return IngestResponse(ingested=ingested)
