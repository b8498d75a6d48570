"""Document store interface the repositories are written against."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StoredDocument:
    """A document as read from the store.

    ``version`` is an opaque token that changes on every write; passing it
    back as ``expected_version`` turns a write into a compare-and-swap.
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    version: str | None = None


class DocumentStore(ABC):
    """Abstract document store keyed by ``(collection, document id)``."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        """Return the document or ``None`` when it does not exist."""

    @abstractmethod
    async def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> list[StoredDocument]:
        """Return documents whose top-level fields equal every ``filters`` item."""

    @abstractmethod
    async def create(self, collection: str, data: Mapping[str, Any]) -> str:
        """Store ``data`` under a generated id and return that id."""

    @abstractmethod
    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        expected_version: str | None = None,
    ) -> None:
        """Create or replace a document.

        When ``expected_version`` is given the write only succeeds if the
        stored document still carries that version, otherwise
        :class:`~forum_directory.core.errors.VersionConflict` is raised.
        """

    @abstractmethod
    async def update(
        self, collection: str, doc_id: str, partial: Mapping[str, Any]
    ) -> None:
        """Merge top-level fields into an existing document.

        Raises :class:`~forum_directory.core.errors.NotFound` if the document
        does not exist.
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document; deleting a missing document is not an error."""

    async def close(self) -> None:
        """Release any resources held by the store."""
