"""Configuration models for the hybrid RAG router."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChunkingConfig(BaseModel):
    """Configures character-window chunking with overlap.

    `overlap` may be greater than or equal to `size`; the chunker still makes
    forward progress in that case.
    """

    size: int = Field(default=512, ge=1)
    overlap: int = Field(default=100, ge=0)


class RetrievalConfig(BaseModel):
    """Configures similarity search and the confidence gate."""

    top_k: int = Field(default=5, ge=1)
    confidence_threshold: float = Field(default=0.65, ge=0.0, le=1.0)


class SummaryConfig(BaseModel):
    """Configures the full-document summarization path."""

    min_content_chars: int = Field(default=100, ge=0)
    max_content_chars: int = Field(default=10_000, ge=1)


class LLMConfig(BaseModel):
    """Configures the chat model behind the LLM capability."""

    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=4096, ge=1)


class Settings(BaseSettings):
    """Process settings read from the environment and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    openai_api_key: str | None = None
    log_level: str = "INFO"

    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    summary: SummaryConfig = Field(default_factory=SummaryConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
