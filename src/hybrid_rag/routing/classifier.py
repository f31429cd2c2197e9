"""LLM-backed specific/broad intent classification."""

from __future__ import annotations

from typing import Literal

from loguru import logger
from pydantic import BaseModel, ValidationError

from hybrid_rag.errors import GenerationError, StructuredOutputError
from hybrid_rag.llm.service import LanguageModel
from hybrid_rag.prompts import build_classification_prompt
from hybrid_rag.types import BroadQuery, QueryAnalysis, SpecificQuery


class _ClassificationPayload(BaseModel):
    type: Literal["specific", "broad"]
    reason: str = ""


class QueryClassifier:
    """Labels a query as `SpecificQuery` or `BroadQuery`.

    Any failure defaults to `SpecificQuery`: a specific query that finds
    nothing degrades to "no confident answer", while a wrong broad label would
    force a full-document summary.
    """

    def __init__(self, llm: LanguageModel) -> None:
        self.llm = llm

    def classify(self, query: str) -> QueryAnalysis:
        if not self.llm.available:
            return SpecificQuery(reason="AI disabled")

        try:
            raw = self.llm.generate_json(build_classification_prompt(query))
            payload = _ClassificationPayload.model_validate(raw)
        except (StructuredOutputError, ValidationError) as exc:
            logger.warning(f"Could not parse query classification: {exc}")
            return SpecificQuery(reason="Could not parse AI response for query type.")
        except GenerationError as exc:
            logger.warning(f"Error determining query type: {exc}")
            return SpecificQuery(reason="Error during analysis.")

        if payload.type == "broad":
            return BroadQuery(reason=payload.reason)
        return SpecificQuery(reason=payload.reason)
