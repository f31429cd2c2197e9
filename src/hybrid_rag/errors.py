"""Error taxonomy shared by ingestion, retrieval, and routing."""

from __future__ import annotations


class HybridRagError(Exception):
    """Base class for every error raised by this package."""


class ExtractionError(HybridRagError):
    """A parser could not read a file. Never escapes `TextExtractor.extract`."""


class StructuredOutputError(HybridRagError):
    """LLM output did not contain the expected JSON object."""


class RetrievalError(HybridRagError):
    """The similarity-search service failed."""


class IndexingError(HybridRagError):
    """The index rejected a chunk write during ingestion."""


class DocumentNotFoundError(HybridRagError):
    """A file id could not be resolved for the requesting owner."""


class SummarizationError(HybridRagError):
    """The full-document summarization path failed."""


class GenerationError(HybridRagError):
    """Base class for failures producing text from the LLM."""


class ContentBlockedError(GenerationError):
    """The provider refused to return content for safety-policy reasons."""

    def __init__(self, categories: tuple[str, ...] = ()) -> None:
        self.categories = tuple(categories)
        message = "AI response was blocked by the provider."
        if self.categories:
            message += f" Blocked categories: {', '.join(self.categories)}."
        super().__init__(message)


class ProviderError(GenerationError):
    """The provider was unreachable, rejected the request, or stopped abnormally."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"AI response generation failed. Reason: {reason}.")


class AIUnavailableError(GenerationError):
    """The LLM capability was constructed without a usable provider."""

    def __init__(self, reason: str = "AI service is not available.") -> None:
        self.reason = reason
        super().__init__(reason)
