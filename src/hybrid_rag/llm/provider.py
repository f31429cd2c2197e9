"""Provider boundary: one chat-model call resolved into a tagged outcome."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

_COMPLETED_REASONS = {"stop", "end_turn", "stop_sequence", "finish_reason_stop"}
_TRUNCATED_REASONS = {"length", "max_tokens"}
_BLOCKED_REASONS = {
    "content_filter",
    "safety",
    "recitation",
    "blocklist",
    "prohibited_content",
    "spii",
    "image_safety",
}


@dataclass(slots=True, frozen=True)
class Completed:
    text: str


@dataclass(slots=True, frozen=True)
class Truncated:
    """The provider hit its output limit; `text` is usable but incomplete."""

    text: str


@dataclass(slots=True, frozen=True)
class Blocked:
    categories: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class Failed:
    reason: str


@dataclass(slots=True, frozen=True)
class Unavailable:
    reason: str


CompletionOutcome = Completed | Truncated | Blocked | Failed | Unavailable


class CompletionProvider(Protocol):
    def complete(self, prompt: str, system_instruction: str | None = None) -> CompletionOutcome:
        """Run one completion and classify how it ended."""


class ChatModelProvider:
    """Wraps a LangChain chat model (for example `ChatOpenAI`)."""

    def __init__(self, chat_model: Any) -> None:
        self.chat_model = chat_model

    def complete(self, prompt: str, system_instruction: str | None = None) -> CompletionOutcome:
        messages: list[tuple[str, str]] = []
        if system_instruction and system_instruction.strip():
            messages.append(("system", system_instruction.strip()))
        messages.append(("human", prompt))
        try:
            message = self.chat_model.invoke(messages)
        except Exception as exc:
            logger.warning(f"Chat model call failed: {exc}")
            return Failed(reason=f"{type(exc).__name__}: {exc}")
        return resolve_outcome(message)


def resolve_outcome(message: Any) -> CompletionOutcome:
    """Map a chat model response message onto a `CompletionOutcome`.

    Understands OpenAI (`finish_reason`) and Gemini (`finish_reason`,
    `safety_ratings`) response metadata. A response without a finish reason is
    treated as completed when it carries text.
    """

    metadata = getattr(message, "response_metadata", None) or {}
    text = _message_text(message)
    finish_reason = str(metadata.get("finish_reason") or "").strip().lower()

    if finish_reason in _BLOCKED_REASONS:
        return Blocked(categories=_blocked_categories(metadata))
    if finish_reason in _TRUNCATED_REASONS:
        return Truncated(text=text)
    if finish_reason and finish_reason not in _COMPLETED_REASONS:
        return Failed(reason=finish_reason.upper())
    if not text.strip():
        return Failed(reason="empty response")
    return Completed(text=text)


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts)
    return str(content or "")


def _blocked_categories(metadata: dict[str, Any]) -> tuple[str, ...]:
    categories: list[str] = []
    for rating in metadata.get("safety_ratings") or []:
        if isinstance(rating, dict) and rating.get("blocked"):
            categories.append(str(rating.get("category", "unknown")))
    return tuple(categories)
