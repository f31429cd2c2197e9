"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(slots=True, frozen=True)
class DocumentChunk:
    """A context-tagged slice of a document, ready for indexing.

    `start_offset` and `end_offset` bound the slice in the original text,
    before the source header was prepended.
    """

    content: str
    source_name: str
    chunk_id: str
    owner_id: str = ""
    file_id: str = ""
    start_offset: int = 0
    end_offset: int = 0


@dataclass(slots=True, frozen=True)
class ChunkMetadata:
    file_name: str | None
    owner_id: str
    file_id: str
    chunk_id: str


@dataclass(slots=True, frozen=True)
class RetrievedChunk:
    """A similarity-search hit. `score` is a 0..1 similarity."""

    content: str
    score: float
    metadata: ChunkMetadata


@dataclass(slots=True, frozen=True)
class SpecificQuery:
    """Query answerable from a bounded passage of a document."""

    reason: str = ""

    @property
    def type(self) -> str:
        return "specific"


@dataclass(slots=True, frozen=True)
class BroadQuery:
    """Query asking for an overview of a whole document."""

    reason: str = ""

    @property
    def type(self) -> str:
        return "broad"


QueryAnalysis = SpecificQuery | BroadQuery


class SearchType(str, Enum):
    RAG = "rag"
    RAG_FALLBACK = "rag_fallback"
    SUMMARY = "summary"
    SUMMARY_REQUIRES_FILE = "summary_requires_file"
    SUMMARY_INSUFFICIENT_CONTENT = "summary_insufficient_content"
    SUMMARY_ERROR = "summary_error"


@dataclass(slots=True, frozen=True)
class Source:
    title: str
    type: str = "document"


@dataclass(slots=True)
class RouterResult:
    """Answer produced for one routed query."""

    message: str
    search_type: SearchType
    sources: list[Source] = field(default_factory=list)
    source_count: int | None = None

    def to_payload(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "searchType": self.search_type.value,
            "sources": [{"title": s.title, "type": s.type} for s in self.sources],
        }
        if self.source_count is not None:
            metadata["source_count"] = self.source_count
        return {"message": self.message, "metadata": metadata}


@dataclass(slots=True)
class IngestionResult:
    chunks_added: int
    message: str = ""


@dataclass(slots=True, frozen=True)
class DocumentRecord:
    """A stored user file that the summarization path can resolve."""

    file_id: str
    owner_id: str
    name: str
    path: str
