import json
import re
from collections.abc import Callable

import pytest

from hybrid_rag.llm.provider import Completed, CompletionOutcome
from hybrid_rag.llm.service import LanguageModel
from hybrid_rag.types import ChunkMetadata, RetrievedChunk

_ORIGINAL_QUERY = re.compile(r'Original Query: "(?P<query>.*)" Corrected Query:', re.DOTALL)


class FakeProvider:
    """Answers by prompt kind and records every call."""

    def __init__(
        self,
        *,
        query_type: str = "specific",
        answer: CompletionOutcome | None = None,
        correction: CompletionOutcome | None = None,
        classification: CompletionOutcome | None = None,
    ) -> None:
        self.query_type = query_type
        self.answer = answer or Completed(text="Grounded answer.")
        self.correction = correction
        self.classification = classification
        self.calls: list[tuple[str, str]] = []

    def complete(self, prompt: str, system_instruction: str | None = None) -> CompletionOutcome:
        if "classify its intent" in prompt:
            self.calls.append(("classify", prompt))
            return self.classification or Completed(
                text=json.dumps({"type": self.query_type, "reason": "scripted"})
            )
        match = _ORIGINAL_QUERY.search(prompt)
        if match is not None:
            self.calls.append(("correct", prompt))
            return self.correction or Completed(text=match.group("query"))
        self.calls.append(("answer", prompt))
        return self.answer

    def count(self, kind: str) -> int:
        return sum(1 for call_kind, _ in self.calls if call_kind == kind)

    def prompts(self, kind: str) -> list[str]:
        return [prompt for call_kind, prompt in self.calls if call_kind == kind]


class StubIndex:
    """Vector index returning canned hits and recording search filters."""

    def __init__(self, hits: list[RetrievedChunk] | None = None, error: Exception | None = None) -> None:
        self.hits = hits or []
        self.error = error
        self.searches: list[dict[str, object]] = []

    def add_documents(self, chunks: list[object]) -> int:
        return len(chunks)

    def search(self, query: str, *, limit: int, filters: dict[str, str]) -> list[RetrievedChunk]:
        self.searches.append({"query": query, "limit": limit, "filters": dict(filters)})
        if self.error is not None:
            raise self.error
        return self.hits[:limit]

    def delete_file(self, file_id: str, owner_id: str) -> int:
        return 0


@pytest.fixture
def make_llm() -> Callable[..., tuple[LanguageModel, FakeProvider]]:
    def _make(**kwargs: object) -> tuple[LanguageModel, FakeProvider]:
        provider = FakeProvider(**kwargs)
        return LanguageModel(provider), provider

    return _make


@pytest.fixture
def make_hit() -> Callable[..., RetrievedChunk]:
    def _make(
        score: float,
        *,
        file_name: str | None = "handbook.pdf",
        content: str = "Employees accrue 20 vacation days per year.",
        file_id: str = "file-1",
        chunk_id: str = "handbook.pdf_chunk_0",
    ) -> RetrievedChunk:
        return RetrievedChunk(
            content=content,
            score=score,
            metadata=ChunkMetadata(
                file_name=file_name,
                owner_id="user-1",
                file_id=file_id,
                chunk_id=chunk_id,
            ),
        )

    return _make


@pytest.fixture
def stub_index_cls() -> type[StubIndex]:
    return StubIndex
