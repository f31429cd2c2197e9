"""LLM capability object shared by the router, corrector, and classifier."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from hybrid_rag.config import LLMConfig, Settings
from hybrid_rag.errors import (
    AIUnavailableError,
    ContentBlockedError,
    ProviderError,
    StructuredOutputError,
)
from hybrid_rag.llm.provider import (
    Blocked,
    ChatModelProvider,
    Completed,
    CompletionOutcome,
    CompletionProvider,
    Failed,
    Truncated,
    Unavailable,
)
from hybrid_rag.prompts import build_summary_prompt

_JSON_DECODER = json.JSONDecoder()


class LanguageModel:
    """Explicit "is AI enabled" capability.

    Built once at startup and handed to every component that talks to the LLM.
    When no provider is configured every call resolves to `Unavailable`
    instead of producing degraded placeholder text.
    """

    def __init__(
        self,
        provider: CompletionProvider | None,
        *,
        unavailable_reason: str = "AI service is not available.",
    ) -> None:
        self._provider = provider
        self._unavailable_reason = unavailable_reason

    @classmethod
    def unavailable(cls, reason: str = "AI service is not available.") -> "LanguageModel":
        return cls(None, unavailable_reason=reason)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LanguageModel":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not found. AI features will be disabled.")
            return cls.unavailable("AI disabled: no API key configured.")
        chat_model = _create_chat_model(settings.openai_api_key, settings.llm)
        logger.info(f"LLM capability initialised with model {settings.llm.model}")
        return cls(ChatModelProvider(chat_model))

    @property
    def available(self) -> bool:
        return self._provider is not None

    def complete(self, prompt: str, system_instruction: str | None = None) -> CompletionOutcome:
        if self._provider is None:
            return Unavailable(reason=self._unavailable_reason)
        return self._provider.complete(prompt, system_instruction)

    def generate_text(self, prompt: str, system_instruction: str | None = None) -> str:
        """Return completion text or raise a `GenerationError` subclass."""
        outcome = self.complete(prompt, system_instruction)
        if isinstance(outcome, Completed):
            return outcome.text
        if isinstance(outcome, Truncated):
            logger.warning("LLM output was truncated at the token limit.")
            return outcome.text
        if isinstance(outcome, Blocked):
            raise ContentBlockedError(outcome.categories)
        if isinstance(outcome, Unavailable):
            raise AIUnavailableError(outcome.reason)
        if isinstance(outcome, Failed):
            raise ProviderError(outcome.reason)
        raise ProviderError(f"unexpected outcome {outcome!r}")

    def generate_json(self, prompt: str) -> dict[str, Any]:
        """Return the first JSON object found in the completion text."""
        return extract_first_json_object(self.generate_text(prompt))

    def summarize_document(self, content: str, query: str, *, max_chars: int = 10_000) -> str:
        return self.generate_text(build_summary_prompt(content[:max_chars], query))


def extract_first_json_object(text: str) -> dict[str, Any]:
    """Decode the first well-formed JSON object embedded in `text`.

    Raises:
        StructuredOutputError: when no position in `text` starts a JSON object.
    """

    position = text.find("{")
    while position != -1:
        try:
            value, _ = _JSON_DECODER.raw_decode(text, position)
        except json.JSONDecodeError:
            position = text.find("{", position + 1)
            continue
        if isinstance(value, dict):
            return value
        position = text.find("{", position + 1)
    raise StructuredOutputError("No JSON object found in model output.")


def _create_chat_model(api_key: str, config: LLMConfig) -> Any:
    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_output_tokens,
        api_key=api_key,
    )
