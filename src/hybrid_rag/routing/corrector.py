"""Spelling-only query correction ahead of retrieval."""

from __future__ import annotations

import re

from loguru import logger

from hybrid_rag.errors import GenerationError
from hybrid_rag.llm.service import LanguageModel
from hybrid_rag.prompts import build_correction_prompt

_STRAY_CHARS = re.compile(r'["*]')


class QueryCorrector:
    """Asks the LLM to fix spelling without answering the query.

    Correction is cosmetic: any LLM failure falls back to the original query.
    """

    def __init__(self, llm: LanguageModel) -> None:
        self.llm = llm

    def correct(self, query: str) -> str:
        try:
            raw = self.llm.generate_text(build_correction_prompt(query))
        except GenerationError as exc:
            logger.warning(f"Query correction failed, using original query: {exc}")
            return query

        corrected = _STRAY_CHARS.sub("", raw.strip()).strip()
        if not corrected:
            return query
        logger.info(f'[Query Correction] Original: "{query}" -> Corrected: "{corrected}"')
        return corrected
