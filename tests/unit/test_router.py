import pytest

from hybrid_rag.errors import ContentBlockedError, ProviderError, RetrievalError
from hybrid_rag.ingest.parser import TextExtractor
from hybrid_rag.llm.provider import Blocked, Completed, Failed
from hybrid_rag.retrieval.retriever import ChunkRetriever
from hybrid_rag.routing.catalog import InMemoryDocumentCatalog, InMemoryProfileStore
from hybrid_rag.routing.router import (
    FILE_FALLBACK_MESSAGE,
    LIBRARY_FALLBACK_MESSAGE,
    SELECT_FILE_MESSAGE,
    HybridRouter,
    format_sources,
    is_context_sufficient,
)
from hybrid_rag.types import DocumentRecord, SearchType, Source

_LONG_TEXT = "The onboarding guide explains accounts, laptops, and security training. " * 10


def _router(llm, index, *, catalog=None, profiles=None) -> HybridRouter:
    return HybridRouter(
        llm=llm,
        retriever=ChunkRetriever(index),
        catalog=catalog or InMemoryDocumentCatalog(),
        extractor=TextExtractor(),
        profiles=profiles,
    )


def _catalog_with(tmp_path, text: str, *, name: str = "guide.txt") -> InMemoryDocumentCatalog:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    catalog = InMemoryDocumentCatalog()
    catalog.add(DocumentRecord(file_id="file-1", owner_id="user-1", name=name, path=str(path)))
    return catalog


def test_gate_requires_score_strictly_above_threshold(make_hit) -> None:
    assert is_context_sufficient([make_hit(0.65)], 0.65) is False
    assert is_context_sufficient([make_hit(0.6501)], 0.65) is True
    assert is_context_sufficient([], 0.65) is False


def test_gate_only_trusts_top_ranked_score(make_hit) -> None:
    assert is_context_sufficient([make_hit(0.7), make_hit(0.1), make_hit(0.05)], 0.65) is True
    assert is_context_sufficient([make_hit(0.6), make_hit(0.6), make_hit(0.6)], 0.65) is False


def test_sources_deduplicated_in_first_seen_order(make_hit) -> None:
    hits = [
        make_hit(0.9, file_name="b.pdf"),
        make_hit(0.8, file_name="a.pdf"),
        make_hit(0.7, file_name="b.pdf"),
        make_hit(0.6, file_name="a.pdf"),
        make_hit(0.5, file_name="b.pdf"),
    ]

    assert format_sources(hits) == [Source(title="b.pdf"), Source(title="a.pdf")]
    assert format_sources([make_hit(0.9, file_name=None)]) == [Source(title="Unknown Document")]


def test_confident_specific_query_answers_with_rag(make_llm, make_hit, stub_index_cls) -> None:
    llm, provider = make_llm(query_type="specific")
    index = stub_index_cls(
        [
            make_hit(0.9, file_name="handbook.pdf", content="Vacation is 20 days."),
            make_hit(0.8, file_name="benefits.pdf", content="Dental is included."),
            make_hit(0.7, file_name="handbook.pdf", content="Sick leave is 10 days."),
            make_hit(0.6, file_name="benefits.pdf", content="Vision is optional."),
            make_hit(0.5, file_name="handbook.pdf", content="Holidays follow the calendar."),
        ]
    )

    result = _router(llm, index).route("How many vacation days?", "user-1")

    assert result.search_type is SearchType.RAG
    assert result.message == "Grounded answer."
    assert result.sources == [Source(title="handbook.pdf"), Source(title="benefits.pdf")]
    assert result.source_count == 5
    assert provider.count("answer") == 1

    prompt = provider.prompts("answer")[0]
    assert "Vacation is 20 days.\n\nDental is included.\n\nSick leave is 10 days." in prompt
    assert 'Question: "How many vacation days?"' in prompt


def test_rag_prompt_uses_profile_and_corrected_query(make_llm, make_hit, stub_index_cls) -> None:
    llm, provider = make_llm(correction=Completed(text="How many vacation days?"))
    profiles = InMemoryProfileStore()
    profiles.set_profile("user-1", "Prefers bullet points.")
    index = stub_index_cls([make_hit(0.91)])

    _router(llm, index, profiles=profiles).route("how mny vacaton days", "user-1")

    assert index.searches[0]["query"] == "How many vacation days?"
    prompt = provider.prompts("answer")[0]
    assert "Tailor your response to this user's profile: Prefers bullet points." in prompt
    assert 'Question: "How many vacation days?"' in prompt


def test_search_is_scoped_to_owner_and_optionally_file(make_llm, make_hit, stub_index_cls) -> None:
    llm, _ = make_llm()
    index = stub_index_cls([make_hit(0.1)])
    router = _router(llm, index)

    router.route("question", "user-1")
    router.route("question", "user-1", "file-9")

    assert index.searches[0]["filters"] == {"owner_id": "user-1"}
    assert index.searches[1]["filters"] == {"owner_id": "user-1", "file_id": "file-9"}
    assert all(search["limit"] == 5 for search in index.searches)


def test_low_confidence_falls_back_without_llm_answer(make_llm, make_hit, stub_index_cls) -> None:
    llm, provider = make_llm()
    index = stub_index_cls([make_hit(0.65), make_hit(0.64)])

    result = _router(llm, index).route("question", "user-1", "file-1")

    assert result.search_type is SearchType.RAG_FALLBACK
    assert result.message == FILE_FALLBACK_MESSAGE
    assert "selected document" in result.message
    assert result.sources == []
    assert provider.count("answer") == 0


def test_no_chunks_library_wide_fallback_wording(make_llm, stub_index_cls) -> None:
    llm, provider = make_llm()

    result = _router(llm, stub_index_cls([])).route("question", "user-1")

    assert result.search_type is SearchType.RAG_FALLBACK
    assert result.message == LIBRARY_FALLBACK_MESSAGE
    assert "uploaded documents" in result.message
    assert "selected document" not in result.message
    assert FILE_FALLBACK_MESSAGE != LIBRARY_FALLBACK_MESSAGE
    assert provider.count("answer") == 0


def test_retrieval_failure_propagates(make_llm, stub_index_cls) -> None:
    llm, _ = make_llm()
    index = stub_index_cls(error=TimeoutError("vector db timeout"))

    with pytest.raises(RetrievalError):
        _router(llm, index).route("question", "user-1")


@pytest.mark.parametrize(
    ("outcome", "expected"),
    [(Blocked(("HARM_CATEGORY_HARASSMENT",)), ContentBlockedError), (Failed("UNAVAILABLE"), ProviderError)],
)
def test_generation_failure_propagates(make_llm, make_hit, stub_index_cls, outcome, expected) -> None:
    llm, _ = make_llm(answer=outcome)

    with pytest.raises(expected):
        _router(llm, stub_index_cls([make_hit(0.95)])).route("question", "user-1")


def test_broad_query_without_file_requires_selection(make_llm, stub_index_cls) -> None:
    llm, provider = make_llm(query_type="broad")
    index = stub_index_cls([])

    result = _router(llm, index).route("summarize this", "user-1")

    assert result.search_type is SearchType.SUMMARY_REQUIRES_FILE
    assert result.message == SELECT_FILE_MESSAGE
    assert result.sources == []
    assert index.searches == []
    assert provider.count("answer") == 0


def test_broad_query_summarizes_full_document(tmp_path, make_llm, stub_index_cls) -> None:
    llm, provider = make_llm(query_type="broad")
    index = stub_index_cls([])
    catalog = _catalog_with(tmp_path, _LONG_TEXT)

    result = _router(llm, index, catalog=catalog).route("summarize this", "user-1", "file-1")

    assert result.search_type is SearchType.SUMMARY
    assert result.message == "Grounded answer."
    assert result.sources == [Source(title="guide.txt")]
    assert index.searches == []
    assert provider.count("correct") == 0
    assert "security training" in provider.prompts("answer")[0]
    assert 'Original Query: "summarize this"' in provider.prompts("answer")[0]


def test_broad_query_truncates_document_to_ten_thousand_chars(tmp_path, make_llm, stub_index_cls) -> None:
    llm, provider = make_llm(query_type="broad")
    catalog = _catalog_with(tmp_path, "a" * 10_000 + "TAIL-MARKER")

    _router(llm, stub_index_cls([]), catalog=catalog).route("summarize", "user-1", "file-1")

    prompt = provider.prompts("answer")[0]
    assert "a" * 10_000 in prompt
    assert "TAIL-MARKER" not in prompt


def test_broad_query_with_short_document_is_insufficient(tmp_path, make_llm, stub_index_cls) -> None:
    llm, provider = make_llm(query_type="broad")
    catalog = _catalog_with(tmp_path, "   " + "x" * 99 + "   ")

    result = _router(llm, stub_index_cls([]), catalog=catalog).route("summarize", "user-1", "file-1")

    assert result.search_type is SearchType.SUMMARY_INSUFFICIENT_CONTENT
    assert result.sources == [Source(title="guide.txt")]
    assert provider.count("answer") == 0


def test_broad_query_unknown_file_becomes_summary_error(make_llm, stub_index_cls) -> None:
    llm, _ = make_llm(query_type="broad")

    result = _router(llm, stub_index_cls([])).route("summarize", "user-1", "missing")

    assert result.search_type is SearchType.SUMMARY_ERROR
    assert result.sources == []
    assert "error" in result.message


def test_broad_query_llm_failure_becomes_summary_error(tmp_path, make_llm, stub_index_cls) -> None:
    llm, _ = make_llm(query_type="broad", answer=Blocked(("HARM_CATEGORY_DANGEROUS_CONTENT",)))
    catalog = _catalog_with(tmp_path, _LONG_TEXT)

    result = _router(llm, stub_index_cls([]), catalog=catalog).route("summarize", "user-1", "file-1")

    assert result.search_type is SearchType.SUMMARY_ERROR
    assert "HARM_CATEGORY" not in result.message


def test_broad_query_owner_mismatch_is_not_resolved(tmp_path, make_llm, stub_index_cls) -> None:
    llm, provider = make_llm(query_type="broad")
    catalog = _catalog_with(tmp_path, _LONG_TEXT)

    result = _router(llm, stub_index_cls([]), catalog=catalog).route("summarize", "user-2", "file-1")

    assert result.search_type is SearchType.SUMMARY_ERROR
    assert provider.count("answer") == 0


@pytest.mark.parametrize("query_type", ["specific", "broad"])
def test_router_takes_exactly_one_path(tmp_path, make_llm, make_hit, stub_index_cls, query_type) -> None:
    llm, provider = make_llm(query_type=query_type)
    index = stub_index_cls([make_hit(0.9)])
    catalog = _catalog_with(tmp_path, _LONG_TEXT)

    result = _router(llm, index, catalog=catalog).route("question", "user-1", "file-1")

    if query_type == "specific":
        assert result.search_type is SearchType.RAG
        assert len(index.searches) == 1
    else:
        assert result.search_type is SearchType.SUMMARY
        assert index.searches == []
        assert provider.count("correct") == 0
    assert provider.count("answer") == 1


def test_result_payload_shape(make_llm, make_hit, stub_index_cls) -> None:
    llm, _ = make_llm()

    payload = _router(llm, stub_index_cls([make_hit(0.9)])).route("q", "user-1").to_payload()

    assert payload == {
        "message": "Grounded answer.",
        "metadata": {
            "searchType": "rag",
            "sources": [{"title": "handbook.pdf", "type": "document"}],
            "source_count": 1,
        },
    }
