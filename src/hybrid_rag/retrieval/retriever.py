"""Owner/file-scoped retrieval over the vector index."""

from __future__ import annotations

from loguru import logger

from hybrid_rag.config import RetrievalConfig
from hybrid_rag.errors import RetrievalError
from hybrid_rag.retrieval.vector_store import VectorIndex
from hybrid_rag.types import RetrievedChunk


class ChunkRetriever:
    """Thin contract to the similarity-search service.

    Searches are always scoped to one owner; a `file_id` narrows them further
    to a single document. Results come back best score first.
    """

    def __init__(self, index: VectorIndex, config: RetrievalConfig | None = None) -> None:
        self.index = index
        self.config = config or RetrievalConfig()

    def search(
        self,
        query: str,
        *,
        owner_id: str,
        file_id: str | None = None,
        limit: int | None = None,
    ) -> list[RetrievedChunk]:
        filters = build_filters(owner_id, file_id)
        try:
            hits = self.index.search(query, limit=limit or self.config.top_k, filters=filters)
        except Exception as exc:
            raise RetrievalError(f"Similarity search failed: {exc}") from exc

        ranked = sorted(hits, key=lambda hit: hit.score, reverse=True)
        logger.debug(f"Retrieved {len(ranked)} chunk(s) with filters {filters}")
        return ranked


def build_filters(owner_id: str, file_id: str | None = None) -> dict[str, str]:
    filters = {"owner_id": owner_id}
    if file_id:
        filters["file_id"] = file_id
    return filters
