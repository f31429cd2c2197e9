"""Hybrid RAG router package."""

from .config import ChunkingConfig, RetrievalConfig, Settings, SummaryConfig

__all__ = ["ChunkingConfig", "RetrievalConfig", "Settings", "SummaryConfig"]
