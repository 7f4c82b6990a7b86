from __future__ import annotations


class TaggerError(Exception):
    """Base class for every backend-facing failure raised by the core."""


class GenerationError(TaggerError):
    """The text-generation backend failed or returned unusable output."""


class LlmResponseMalformed(GenerationError):
    """The model answered, but not with the JSON document that was asked for.

    The raw response is kept for diagnostics; it is never shown to API clients.
    """

    def __init__(self, raw: str, reason: str | None = None) -> None:
        self.raw = raw
        self.reason = reason
        message = "Failed to parse LLM response as JSON"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EmbeddingError(TaggerError):
    """Embedding could not be produced."""


class EmbeddingBackendError(EmbeddingError):
    """The embedding backend call failed (network, HTTP status, timeout)."""


class EmbeddingMissing(EmbeddingError):
    """The embedding backend answered successfully but returned no vector."""

    def __init__(self, message: str = "Could not find a generated embedding in the response") -> None:
        super().__init__(message)


class VectorDatabaseError(TaggerError):
    """A vector index operation failed; carries the backend message."""
