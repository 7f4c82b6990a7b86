from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from tagger.core.errors import LlmResponseMalformed
from tagger.core.models.tag import StructuredTags
from tagger.utils.logging import get_logger

if TYPE_CHECKING:
    from tagger.core.services.generation_service import TextGenerator

logger = get_logger(__name__)

STRUCTURED_TAGS_INSTRUCTIONS = (
    "You are an expert tagger for an AI image generator. Extract descriptive tags from the user's prompt.\n"
    "Respond with a single JSON object and nothing else: no prose, no markdown, no code fences.\n"
    "The object must have exactly these keys:\n"
    '- "subject": tags about who or what is depicted (count, appearance, clothing, pose, expression)\n'
    '- "environment": tags about background, location, lighting, time of day, weather\n'
    '- "quality": tags about art style, medium, composition, overall quality\n'
    "Each value is an array of lowercase snake_case strings ordered from most to least salient. "
    "Use an empty array when a category does not apply."
)

CANDIDATE_LIST_INSTRUCTIONS = (
    "You are an expert tagger for an AI image generator. Extract all relevant tags from the user's prompt. "
    "Format the tags as a single comma-separated list. Use lowercase and snake_case for multi-word tags. "
    "Be comprehensive and include tags for subject, appearance, clothing, lighting, background, and overall style."
)

# Stripped from both ends of a model answer before JSON decoding
_WRAPPER_CHARS = "`'\" \t\r\n"
_JSON_LANGUAGE_TAG = "json"


def clean_json_output(raw: str) -> str:
    """Remove markdown fencing models add around JSON despite being told not to.

    Strips backticks, quotes and whitespace from both ends, then a leading
    `json` language tag left behind by a ```json fence.
    """
    cleaned = raw.strip(_WRAPPER_CHARS)
    if cleaned.startswith(_JSON_LANGUAGE_TAG):
        cleaned = cleaned[len(_JSON_LANGUAGE_TAG):]
    return cleaned.strip()


def parse_structured_tags(raw: str) -> StructuredTags:
    """Decode a model answer into StructuredTags, raising `LlmResponseMalformed` on failure."""
    cleaned = clean_json_output(raw)
    try:
        return StructuredTags.model_validate_json(cleaned)
    except ValidationError as err:
        logger.warning("LLM returned malformed structured tags: %s", raw[:500])
        raise LlmResponseMalformed(raw, reason=str(err)) from err


def parse_candidate_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.strip().split(",") if item.strip()]


def _compose_prompt(prompt: str) -> str:
    return f'USER PROMPT: "{prompt}"'


class CandidateExtractor:
    """Turns a free-text prompt into candidate tags using a text-generation backend."""

    def __init__(self, generator: TextGenerator) -> None:
        self._generator = generator

    async def extract(self, prompt: str) -> StructuredTags:
        """Return tags grouped into subject, environment and quality."""
        logger.info("Extracting structured tags - prompt length: %d", len(prompt))
        raw = await self._generator.generate(
            STRUCTURED_TAGS_INSTRUCTIONS,
            _compose_prompt(prompt),
            json_mode=True,
        )
        logger.debug("Raw structured tags response: %s", raw[:500])
        tags = parse_structured_tags(raw)
        logger.info(
            "Extracted tags - subject: %d, environment: %d, quality: %d",
            len(tags.subject), len(tags.environment), len(tags.quality),
        )
        return tags

    async def extract_candidates(self, prompt: str) -> list[str]:
        """Return a flat comma-separated tag list in the order the model produced it."""
        raw = await self._generator.generate(CANDIDATE_LIST_INSTRUCTIONS, _compose_prompt(prompt))
        candidates = parse_candidate_list(raw)
        logger.info("Extracted %d candidate tags", len(candidates))
        return candidates
