"""Best-effort text extraction for uploaded files."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from docx import Document
from loguru import logger
from pypdf import PdfReader

from hybrid_rag.errors import ExtractionError

MAX_PDF_PAGES = 20


class Parser(ABC):
    """Base parser interface used by `TextExtractor`."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, path: Path) -> str:
        """Return the plain text of a file, raising `ExtractionError` on failure."""


class PlainTextParser(Parser):
    extensions = (".txt", ".md", ".markdown")

    def parse(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ExtractionError(f"Cannot read text file {path}: {exc}") from exc


class PdfParser(Parser):
    """Extracts text from the first `max_pages` pages of a PDF."""

    extensions = (".pdf",)

    def __init__(self, max_pages: int = MAX_PDF_PAGES) -> None:
        self.max_pages = max_pages

    def parse(self, path: Path) -> str:
        try:
            reader = PdfReader(str(path))
            pages = reader.pages[: self.max_pages]
            text = "\n".join(page.extract_text() or "" for page in pages)
        except Exception as exc:
            raise ExtractionError(f"Cannot parse PDF {path}: {exc}") from exc
        logger.info(f"Parsed {len(pages)} page(s) of PDF {path.name}")
        return text


class DocxParser(Parser):
    extensions = (".docx",)

    def parse(self, path: Path) -> str:
        try:
            document = Document(str(path))
        except Exception as exc:
            raise ExtractionError(f"Cannot parse DOCX {path}: {exc}") from exc
        return "\n".join(paragraph.text for paragraph in document.paragraphs)


class TextExtractor:
    """Maps file extension to parser and never raises on bad input.

    Unsupported formats and parse errors are logged and yield an empty string,
    which downstream chunking treats as "no content".
    """

    def __init__(self, parsers: list[Parser] | None = None) -> None:
        self._parsers: dict[str, Parser] = {}
        for parser in parsers or [PlainTextParser(), PdfParser(), DocxParser()]:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        for extension in parser.extensions:
            self._parsers[extension.lower()] = parser

    def extract(self, path: str | Path) -> str:
        file_path = Path(path)
        parser = self._parsers.get(file_path.suffix.lower())
        if parser is None:
            logger.warning(
                f"Unsupported file type for parsing: {file_path.suffix or '<none>'}. "
                "Skipping content extraction."
            )
            return ""
        try:
            return parser.parse(file_path) or ""
        except ExtractionError as exc:
            logger.error(f"Error parsing file {file_path}: {exc}")
            return ""
