"""End-to-end ingest pipeline: extract -> chunk -> index -> catalog."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from hybrid_rag.errors import IndexingError
from hybrid_rag.ingest.chunker import OverlapChunker
from hybrid_rag.ingest.parser import TextExtractor
from hybrid_rag.retrieval.vector_store import VectorIndex
from hybrid_rag.routing.catalog import DocumentCatalog
from hybrid_rag.types import DocumentRecord, IngestionResult


class IngestPipeline:
    """Coordinates extraction, chunking, and index writes for one file.

    The reported `chunks_added` is always the count the index accepted. A file
    that yields no text is still registered in the catalog but never touches
    the index. A failed index write unregisters the document again.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: OverlapChunker,
        index: VectorIndex,
        catalog: DocumentCatalog,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._index = index
        self._catalog = catalog

    def ingest_file(
        self,
        path: str | Path,
        *,
        owner_id: str,
        file_id: str,
        source_name: str | None = None,
    ) -> IngestionResult:
        file_path = Path(path)
        name = source_name or file_path.name
        logger.info(f"Processing file: {name}")

        self._catalog.add(
            DocumentRecord(file_id=file_id, owner_id=owner_id, name=name, path=str(file_path))
        )

        text = self._extractor.extract(file_path)
        if not text:
            logger.warning(f"No text content extracted from file: {name}")
            return IngestionResult(chunks_added=0, message="File had no readable content.")

        chunks = self._chunker.chunk_text(text, name, owner_id=owner_id, file_id=file_id)
        if not chunks:
            return IngestionResult(chunks_added=0, message="File had no content to chunk.")

        try:
            added = self._index.add_documents(chunks)
        except Exception as exc:
            logger.error(f"Error during index write for {name}: {exc}")
            self._catalog.remove(file_id, owner_id)
            raise IndexingError(f"Index write failed for {name}: {exc}") from exc

        logger.info(f"Indexed {added}/{len(chunks)} chunk(s) for {name}")
        return IngestionResult(chunks_added=added)

    def remove_file(self, file_id: str, owner_id: str) -> int:
        """Forget a document and cascade the deletion to its indexed chunks."""
        self._catalog.remove(file_id, owner_id)
        removed = self._index.delete_file(file_id, owner_id)
        logger.info(f"Removed file {file_id} and {removed} chunk(s)")
        return removed
