"""Document catalog and user profile collaborators consumed by the router."""

from __future__ import annotations

from typing import Protocol

from hybrid_rag.types import DocumentRecord


class DocumentCatalog(Protocol):
    def get(self, file_id: str, owner_id: str) -> DocumentRecord | None:
        """Return the owner's document with this id, if any."""

    def add(self, record: DocumentRecord) -> None:
        """Register an ingested document."""

    def remove(self, file_id: str, owner_id: str) -> DocumentRecord | None:
        """Forget a document and return it, if it existed."""


class ProfileStore(Protocol):
    def get_profile(self, owner_id: str) -> str:
        """Return the user's personalization profile, or an empty string."""


class InMemoryDocumentCatalog:
    def __init__(self) -> None:
        self._records: dict[tuple[str, str], DocumentRecord] = {}

    def get(self, file_id: str, owner_id: str) -> DocumentRecord | None:
        return self._records.get((owner_id, file_id))

    def add(self, record: DocumentRecord) -> None:
        self._records[(record.owner_id, record.file_id)] = record

    def remove(self, file_id: str, owner_id: str) -> DocumentRecord | None:
        return self._records.pop((owner_id, file_id), None)


class InMemoryProfileStore:
    def __init__(self) -> None:
        self._profiles: dict[str, str] = {}

    def get_profile(self, owner_id: str) -> str:
        return self._profiles.get(owner_id, "")

    def set_profile(self, owner_id: str, profile: str) -> None:
        self._profiles[owner_id] = profile
