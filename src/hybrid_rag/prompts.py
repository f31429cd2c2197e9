"""Prompt assembly for grounding, correction, classification, and summaries.

Every answer-producing prompt enforces closed-context answering: the model must
say the information is unavailable rather than fall back on outside knowledge.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from hybrid_rag.types import RetrievedChunk

DEFAULT_PERSONA = "You are a helpful AI assistant providing accurate and concise answers."
NO_CONTEXT_SENTINEL = "No relevant document context available."

RAG_INSTRUCTION = (
    "You are an expert assistant. Answer the user's question based ONLY on the "
    "following context. If the answer is not in the context, state that the "
    "information is not available in the provided text. Do not use outside knowledge."
)


def build_rag_prompt(question: str, context: str, personalization_profile: str = "") -> str:
    prompt = RAG_INSTRUCTION
    if personalization_profile:
        prompt += f"\n\nTailor your response to this user's profile: {personalization_profile}"
    prompt += f'\n\nContext: --- {context} --- \n\nQuestion: "{question}" \n\nAnswer:'
    return prompt


def build_document_context(chunks: Sequence[RetrievedChunk]) -> str:
    if not chunks:
        return NO_CONTEXT_SENTINEL
    return "\n\n".join(
        f"Document: {chunk.metadata.file_name or 'Unknown'}\n{chunk.content}" for chunk in chunks
    )


def build_system_prompt(
    base_prompt: str = "",
    context: str = "",
    personalization_profile: str = "",
    conversation_summary: str = "",
    user_memories: Sequence[str] = (),
    memory_changes: dict[str, list[Any]] | None = None,
) -> str:
    """Compose the conversational system instruction.

    Sections are appended only when present, always in this order: persona,
    long-term memories, personalization, conversation summary, document
    context, memory-update notice.
    """

    prompt = base_prompt.strip() or DEFAULT_PERSONA

    if user_memories:
        memory_lines = "\n".join(f"- {memory}" for memory in user_memories)
        prompt += (
            "\n\n## FACTS ABOUT THE USER (Your Long-Term Memory):\n"
            "These are established facts about the user you are talking to. Use them "
            'to personalize your responses. Refer to the user as "you".\n'
            f"{memory_lines}"
        )

    if personalization_profile:
        prompt += f"\n\n## User Personalization Profile (AI-generated insight):\n{personalization_profile}"

    if conversation_summary:
        prompt += f"\n\n## Summary of Current Conversation:\n{conversation_summary}"

    if context and context != NO_CONTEXT_SENTINEL:
        prompt += f"\n\n## Relevant Context from Documents:\n{context}"

    changes = memory_changes or {}
    added = list(changes.get("added") or [])
    updated = list(changes.get("updated") or [])
    if added or updated:
        prompt += (
            "\n\n## MEMORY UPDATE NOTIFICATION:\n"
            "You have just updated your memory based on the latest conversation. "
            "Briefly and naturally mention one of these updates in your response. "
            "For example: \"Got it, I'll remember that.\" or \"Okay, I've updated "
            'my notes on your project."\n'
            f"- Added: {json.dumps(added, ensure_ascii=False)}\n"
            f"- Updated: {json.dumps(updated, ensure_ascii=False)}"
        )

    return prompt


def build_correction_prompt(query: str) -> str:
    return (
        "Correct any spelling mistakes in the following user query. Return ONLY the "
        "corrected query, nothing else. Do not answer the question. "
        f'Original Query: "{query}" Corrected Query:'
    )


def build_classification_prompt(query: str) -> str:
    return f"""
Analyze the user's query and classify its intent. Choose one of two types:
1.  "specific": The user is asking a direct question about a fact, concept, or detail that can likely be found in a specific part of a document. Examples: "What is the database schema?", "How does the authentication work?", "List the main components."
2.  "broad": The user is asking for a general summary, explanation, or overview of the entire document. Examples: "explain this document", "summarize this", "what is this about?", "give me the key points".

User Query: "{query}"

Respond with ONLY a valid JSON object in the format: {{"type": "specific" | "broad", "reason": "A brief explanation for your choice."}}.
""".strip()


def build_summary_prompt(content: str, query: str) -> str:
    return f"""
You are an expert summarizer. Based on the full document content provided below, generate a comprehensive answer to the user's original query.
Use ONLY the document content. If the document does not cover what the user asks, say so instead of drawing on outside knowledge.

Original Query: "{query}"

Document Content:
---
{content}
---

Provide a detailed and well-structured summary that directly addresses the user's request. Use markdown for formatting.
""".strip()
