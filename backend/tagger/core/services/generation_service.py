from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from openai import OpenAIError

from tagger.core.errors import GenerationError
from tagger.utils.logging import get_logger

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = get_logger(__name__)


class TextGenerator(ABC):
    """One RPC: (system prompt, user prompt) -> text."""

    @abstractmethod
    async def generate(self, system: str, prompt: str, *, json_mode: bool = False) -> str:  # pragma: no cover
        """Return the model's raw text answer. Backend failures raise `GenerationError`."""


class OpenAITextGenerator(TextGenerator):
    """TextGenerator backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(self, client: AsyncOpenAI, model: str, *, temperature: float = 0.0) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature

    async def generate(self, system: str, prompt: str, *, json_mode: bool = False) -> str:
        extra: dict[str, Any] = {}
        if json_mode:
            extra["response_format"] = {"type": "json_object"}

        try:
            logger.debug("Making LLM call with model %s (json_mode=%s)", self._model, json_mode)
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                temperature=self._temperature,
                **extra,
            )
        except OpenAIError as err:
            logger.error("Failed to generate response from LLM: %s", err)
            logger.error("Error type: %s", type(err).__name__)
            raise GenerationError(f"Failed to generate response from LLM: {err}") from err

        if not response.choices:
            raise GenerationError("LLM returned no choices")

        message = response.choices[0].message
        if getattr(message, "refusal", None):
            logger.warning("LLM refused to process the prompt: %s", message.refusal)
            raise GenerationError("LLM refused to process the prompt")
        return message.content or ""
