"""Vector index contract and concrete adapters."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from math import sqrt
from typing import Any, Protocol

from loguru import logger

from hybrid_rag.retrieval.embedder import Embedder
from hybrid_rag.types import ChunkMetadata, DocumentChunk, RetrievedChunk


class VectorIndex(Protocol):
    """Similarity-search service the router and ingestion pipeline consume."""

    def add_documents(self, chunks: list[DocumentChunk]) -> int:
        """Persist chunks and return how many were actually stored."""

    def search(
        self,
        query: str,
        *,
        limit: int,
        filters: dict[str, str],
    ) -> list[RetrievedChunk]:
        """Return up to `limit` chunks matching `filters`, best score first."""

    def delete_file(self, file_id: str, owner_id: str) -> int:
        """Remove every chunk of one file and return how many were removed."""


@dataclass(slots=True)
class _StoredVector:
    chunk: DocumentChunk
    embedding: list[float]


class InMemoryVectorIndex:
    """Deterministic vector index used for tests and local prototyping."""

    def __init__(self, embedder: Embedder) -> None:
        self._embedder = embedder
        self._store: dict[tuple[str, str, str], _StoredVector] = {}

    def __len__(self) -> int:
        return len(self._store)

    def add_documents(self, chunks: list[DocumentChunk]) -> int:
        if not chunks:
            return 0
        embeddings = self._embedder.embed_documents([chunk.content for chunk in chunks])
        if len(chunks) != len(embeddings):
            raise ValueError("chunks and embeddings must have the same length")
        for chunk, embedding in zip(chunks, embeddings, strict=True):
            self._store[(chunk.owner_id, chunk.file_id, chunk.chunk_id)] = _StoredVector(
                chunk=chunk, embedding=embedding
            )
        return len(chunks)

    def search(
        self,
        query: str,
        *,
        limit: int,
        filters: dict[str, str],
    ) -> list[RetrievedChunk]:
        query_embedding = self._embedder.embed_query(query)
        candidates = [
            record
            for record in self._store.values()
            if _metadata_match(_chunk_filter_fields(record.chunk), filters)
        ]
        ranked = sorted(
            (
                RetrievedChunk(
                    content=record.chunk.content,
                    score=max(0.0, min(1.0, _cosine_similarity(query_embedding, record.embedding))),
                    metadata=ChunkMetadata(
                        file_name=record.chunk.source_name,
                        owner_id=record.chunk.owner_id,
                        file_id=record.chunk.file_id,
                        chunk_id=record.chunk.chunk_id,
                    ),
                )
                for record in candidates
            ),
            key=lambda item: item.score,
            reverse=True,
        )
        return ranked[:limit]

    def delete_file(self, file_id: str, owner_id: str) -> int:
        doomed = [
            key
            for key, record in self._store.items()
            if record.chunk.file_id == file_id and record.chunk.owner_id == owner_id
        ]
        for key in doomed:
            del self._store[key]
        return len(doomed)


class LangChainVectorIndex:
    """Adapter over any LangChain `VectorStore`.

    Chunk provenance is flattened into document metadata so it can be used for
    filtering. Stores disagree on the shape of the `filter` argument (dict for
    Chroma/FAISS, callable for the core in-memory store), so the translation is
    pluggable through `filter_builder`.
    """

    def __init__(
        self,
        store: Any,
        *,
        filter_builder: Callable[[dict[str, str]], Any] | None = None,
    ) -> None:
        from langchain_core.documents import Document

        self._store = store
        self._document_cls = Document
        self._filter_builder = filter_builder or dict
        self._ids_by_file: dict[tuple[str, str], list[str]] = {}

    def add_documents(self, chunks: list[DocumentChunk]) -> int:
        if not chunks:
            return 0
        docs = [
            self._document_cls(
                page_content=chunk.content,
                metadata={
                    **_chunk_filter_fields(chunk),
                    "file_name": chunk.source_name,
                    "chunk_id": chunk.chunk_id,
                },
            )
            for chunk in chunks
        ]
        ids = list(self._store.add_documents(docs, ids=[_store_id(chunk) for chunk in chunks]) or [])
        for chunk, stored_id in zip(chunks, ids):
            self._ids_by_file.setdefault((chunk.owner_id, chunk.file_id), []).append(stored_id)
        return len(ids)

    def search(
        self,
        query: str,
        *,
        limit: int,
        filters: dict[str, str],
    ) -> list[RetrievedChunk]:
        docs_and_scores = self._store.similarity_search_with_relevance_scores(
            query,
            k=limit,
            filter=self._filter_builder(filters),
        )
        results: list[RetrievedChunk] = []
        for doc, score in docs_and_scores:
            metadata = doc.metadata or {}
            results.append(
                RetrievedChunk(
                    content=doc.page_content,
                    score=max(0.0, min(1.0, float(score))),
                    metadata=ChunkMetadata(
                        file_name=metadata.get("file_name"),
                        owner_id=str(metadata.get("owner_id", "")),
                        file_id=str(metadata.get("file_id", "")),
                        chunk_id=str(metadata.get("chunk_id", "")),
                    ),
                )
            )
        return results

    def delete_file(self, file_id: str, owner_id: str) -> int:
        # LangChain stores only delete by id, so ids written here are remembered per file.
        ids = self._ids_by_file.pop((owner_id, file_id), [])
        if ids:
            self._store.delete(ids=ids)
        logger.info(f"Deleted {len(ids)} chunk(s) for file {file_id}")
        return len(ids)


def _store_id(chunk: DocumentChunk) -> str:
    return f"{chunk.owner_id}:{chunk.file_id}:{chunk.chunk_id}"


def _chunk_filter_fields(chunk: DocumentChunk) -> dict[str, str]:
    return {"owner_id": chunk.owner_id, "file_id": chunk.file_id}


def _metadata_match(metadata: dict[str, Any], metadata_filter: dict[str, str] | None) -> bool:
    if not metadata_filter:
        return True
    for key, value in metadata_filter.items():
        if metadata.get(key) != value:
            return False
    return True


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)


def metadata_filter_predicate(filters: dict[str, str]) -> Callable[[Any], bool]:
    """`filter_builder` for stores that take a document predicate."""

    def _predicate(doc: Any) -> bool:
        return _metadata_match(doc.metadata or {}, filters)

    return _predicate
