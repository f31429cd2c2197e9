"""Embedding abstractions and a deterministic baseline implementation."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections import Counter
from hashlib import blake2b
from math import sqrt

_WORD_PATTERN = re.compile(r"\w+", flags=re.UNICODE)


class Embedder(ABC):
    """Embedder interface used by `InMemoryVectorIndex`."""

    @abstractmethod
    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed many documents."""

    @abstractmethod
    def embed_query(self, text: str) -> list[float]:
        """Embed one query."""


class HashingEmbedder(Embedder):
    """Term-frequency vectors over hashed word buckets.

    Word tokens are hashed into `dimension` buckets and counted, then the
    vector is L2-normalized so a dot product is a cosine similarity. Every
    component is non-negative, so similarities fall in [0, 1]. Intended for
    local runs and tests; real embedding models plug in through
    `LangChainVectorIndex`.
    """

    def __init__(self, dimension: int = 256) -> None:
        self.dimension = dimension

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _bucket(self, token: str) -> int:
        digest = blake2b(token.encode("utf-8"), digest_size=4).digest()
        return int.from_bytes(digest, "little") % self.dimension

    def _embed(self, text: str) -> list[float]:
        counts = Counter(self._bucket(token) for token in _WORD_PATTERN.findall(text.lower()))
        vector = [0.0] * self.dimension
        for bucket, count in counts.items():
            vector[bucket] = float(count)

        norm = sqrt(sum(count * count for count in counts.values()))
        if norm == 0:
            return vector
        return [value / norm for value in vector]
