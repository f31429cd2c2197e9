"""Word-safe sliding-window chunking with source headers."""

from __future__ import annotations

import re

from hybrid_rag.config import ChunkingConfig
from hybrid_rag.types import DocumentChunk

# Matches the last whitespace character of a string.
_LAST_WHITESPACE = re.compile(r"\s\S*\Z")


class OverlapChunker:
    """Splits extracted document text into overlapping, self-describing chunks.

    Design notes:
    1. Character windows.
       Each window spans at most `size` characters starting at the current
       offset. A window that stops short of the end of the text is cut back to
       its last whitespace so no word is split; a window without any interior
       whitespace keeps the hard cut.

    2. Overlap with guaranteed progress.
       The next window starts `overlap` characters before the end of the
       consumed slice. When that would not move past the current start (for
       example `overlap >= size`), the next window starts exactly at the end of
       the consumed slice instead, so the loop always terminates. Once a
       window reaches the end of the text no further window is produced.

    3. Provenance header.
       Every chunk's content is prefixed with the source document name, so a
       chunk read out of context by the LLM still says where it came from.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk_text(
        self,
        text: str,
        source_name: str,
        *,
        owner_id: str = "",
        file_id: str = "",
    ) -> list[DocumentChunk]:
        """Chunk raw text into ordered `DocumentChunk` objects.

        Empty or whitespace-only text yields an empty list.
        """

        if not isinstance(text, str) or not text.strip():
            return []

        size = self.config.size
        overlap = self.config.overlap
        chunks: list[DocumentChunk] = []
        start = 0
        ordinal = 0

        while start < len(text):
            end = min(start + size, len(text))
            window = text[start:end]

            if end < len(text):
                match = _LAST_WHITESPACE.search(window)
                if match is not None and match.start() > 0:
                    window = window[: match.start()]

            consumed_end = start + len(window)
            chunks.append(
                DocumentChunk(
                    content=format_chunk_content(source_name, window),
                    source_name=source_name,
                    chunk_id=f"{source_name}_chunk_{ordinal}",
                    owner_id=owner_id,
                    file_id=file_id,
                    start_offset=start,
                    end_offset=consumed_end,
                )
            )
            ordinal += 1
            if consumed_end >= len(text):
                break

            next_start = consumed_end - overlap
            if next_start <= start:
                next_start = consumed_end
            start = next_start

        return [chunk for chunk in chunks if chunk.content]


def format_chunk_content(source_name: str, body: str) -> str:
    return f'Source Document: "{source_name}"\n\nContent: {body.strip()}'


def chunk_text(text: str, source_name: str, size: int = 512, overlap: int = 100) -> list[DocumentChunk]:
    """Functional shortcut for one-off chunking with explicit window settings."""
    return OverlapChunker(ChunkingConfig(size=size, overlap=overlap)).chunk_text(text, source_name)
