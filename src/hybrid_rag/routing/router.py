"""Hybrid query router: classify, then summarize or run confidence-gated RAG."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from hybrid_rag.config import RetrievalConfig, SummaryConfig
from hybrid_rag.errors import DocumentNotFoundError, SummarizationError
from hybrid_rag.ingest.parser import TextExtractor
from hybrid_rag.llm.service import LanguageModel
from hybrid_rag.prompts import build_rag_prompt
from hybrid_rag.retrieval.retriever import ChunkRetriever
from hybrid_rag.routing.catalog import DocumentCatalog, ProfileStore
from hybrid_rag.routing.classifier import QueryClassifier
from hybrid_rag.routing.corrector import QueryCorrector
from hybrid_rag.types import (
    BroadQuery,
    RetrievedChunk,
    RouterResult,
    SearchType,
    Source,
)

SELECT_FILE_MESSAGE = (
    "To get a summary, please first select a specific file to chat with from the "
    "'My Files' menu."
)
INSUFFICIENT_CONTENT_MESSAGE = (
    "The selected document doesn't have enough content to generate a summary."
)
SUMMARY_ERROR_MESSAGE = (
    "I encountered an error while trying to summarize the document. Please try again."
)
FILE_FALLBACK_MESSAGE = (
    "I couldn't find a confident answer for that in the selected document. "
    "Please try rephrasing your question with more specific keywords."
)
LIBRARY_FALLBACK_MESSAGE = (
    "I couldn't find a confident answer for that in your uploaded documents. "
    "Please try rephrasing your question or uploading more relevant files."
)
UNKNOWN_DOCUMENT = "Unknown Document"


class HybridRouter:
    """Routes one query end to end and holds no state between queries.

    Broad queries are answered by summarizing the bound document's full text.
    Specific queries go through correction, owner/file-scoped retrieval, and a
    top-1 confidence gate; below the gate a fixed fallback is returned without
    calling the LLM.

    Failures on the broad path become a `summary_error` result. Retrieval and
    generation failures on the specific path propagate to the caller.
    """

    def __init__(
        self,
        *,
        llm: LanguageModel,
        retriever: ChunkRetriever,
        catalog: DocumentCatalog,
        extractor: TextExtractor,
        profiles: ProfileStore | None = None,
        classifier: QueryClassifier | None = None,
        corrector: QueryCorrector | None = None,
        retrieval_config: RetrievalConfig | None = None,
        summary_config: SummaryConfig | None = None,
    ) -> None:
        self.llm = llm
        self.retriever = retriever
        self.catalog = catalog
        self.extractor = extractor
        self.profiles = profiles
        self.classifier = classifier or QueryClassifier(llm)
        self.corrector = corrector or QueryCorrector(llm)
        self.retrieval_config = retrieval_config or RetrievalConfig()
        self.summary_config = summary_config or SummaryConfig()

    def route(self, query: str, owner_id: str, file_id: str | None = None) -> RouterResult:
        analysis = self.classifier.classify(query)
        logger.info(f"[RAG Router] Query classified as: {analysis.type}. Reason: {analysis.reason}")

        if isinstance(analysis, BroadQuery):
            return self._handle_broad_query(query, owner_id, file_id)
        return self._handle_specific_query(query, owner_id, file_id)

    def _handle_broad_query(self, query: str, owner_id: str, file_id: str | None) -> RouterResult:
        if not file_id:
            return RouterResult(
                message=SELECT_FILE_MESSAGE,
                search_type=SearchType.SUMMARY_REQUIRES_FILE,
            )

        try:
            return self._summarize_file(query, owner_id, file_id)
        except SummarizationError:
            logger.exception(f"Error in broad query handling for file {file_id}")
            return RouterResult(message=SUMMARY_ERROR_MESSAGE, search_type=SearchType.SUMMARY_ERROR)

    def _summarize_file(self, query: str, owner_id: str, file_id: str) -> RouterResult:
        # Reads the whole document through the extractor, bypassing the chunk index.
        try:
            record = self.catalog.get(file_id, owner_id)
            if record is None:
                raise DocumentNotFoundError(f"File {file_id} not found for summarization.")

            content = self.extractor.extract(record.path)
            source = Source(title=record.name)
            if len(content.strip()) < self.summary_config.min_content_chars:
                return RouterResult(
                    message=INSUFFICIENT_CONTENT_MESSAGE,
                    search_type=SearchType.SUMMARY_INSUFFICIENT_CONTENT,
                    sources=[source],
                )

            summary = self.llm.summarize_document(
                content,
                query,
                max_chars=self.summary_config.max_content_chars,
            )
        except Exception as exc:
            raise SummarizationError(str(exc)) from exc

        return RouterResult(message=summary, search_type=SearchType.SUMMARY, sources=[source])

    def _handle_specific_query(
        self, query: str, owner_id: str, file_id: str | None
    ) -> RouterResult:
        corrected_query = self.corrector.correct(query)
        if file_id:
            logger.info(f"[RAG Service] Scoping search to fileId: {file_id}")
        else:
            logger.info(f"[RAG Service] Searching across all documents for user: {owner_id}")

        chunks = self.retriever.search(
            corrected_query,
            owner_id=owner_id,
            file_id=file_id,
            limit=self.retrieval_config.top_k,
        )
        logger.info(f"[RAG Service] Found {len(chunks)} relevant chunks.")
        for rank, chunk in enumerate(chunks, start=1):
            logger.debug(f"  {rank}. Score: {chunk.score:.4f} | Content: {chunk.content[:80]!r}")

        threshold = self.retrieval_config.confidence_threshold
        if not is_context_sufficient(chunks, threshold):
            reason = (
                "No relevant chunks found"
                if not chunks
                else f"Top score ({chunks[0].score:.4f}) is not above threshold of {threshold}"
            )
            logger.info(f"[RAG Service] Context insufficient. Reason: {reason}.")
            return RouterResult(
                message=FILE_FALLBACK_MESSAGE if file_id else LIBRARY_FALLBACK_MESSAGE,
                search_type=SearchType.RAG_FALLBACK,
            )

        logger.info(f"[RAG Service] Context sufficient (top score: {chunks[0].score:.4f}).")
        context = "\n\n".join(chunk.content for chunk in chunks)
        profile = self.profiles.get_profile(owner_id) if self.profiles is not None else ""
        answer = self.llm.generate_text(build_rag_prompt(corrected_query, context, profile))
        return RouterResult(
            message=answer,
            search_type=SearchType.RAG,
            sources=format_sources(chunks),
            source_count=len(chunks),
        )


def is_context_sufficient(chunks: Sequence[RetrievedChunk], threshold: float) -> bool:
    """Only the top-ranked score is trusted, and it must be strictly above `threshold`."""
    return bool(chunks) and chunks[0].score > threshold


def format_sources(chunks: Sequence[RetrievedChunk]) -> list[Source]:
    unique: dict[str, Source] = {}
    for chunk in chunks:
        name = chunk.metadata.file_name or UNKNOWN_DOCUMENT
        if name not in unique:
            unique[name] = Source(title=name)
    return list(unique.values())
