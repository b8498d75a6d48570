"""In-process document store used by the tests and the ``memory`` backend."""

from __future__ import annotations

import copy
import itertools
import uuid
from collections.abc import Mapping
from typing import Any

from ..core.errors import NotFound, VersionConflict
from .base import DocumentStore, StoredDocument


class InMemoryDocumentStore(DocumentStore):
    """Dictionary backed store.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state behind the store's back.  Every write bumps a
    store-wide counter which doubles as the document version.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, tuple[dict[str, Any], str]]] = {}
        self._versions = itertools.count(1)

    # ------------------------------------------------------------------
    # Internal helpers
    def _docs(self, collection: str) -> dict[str, tuple[dict[str, Any], str]]:
        return self._collections.setdefault(collection, {})

    def _write(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        self._docs(collection)[doc_id] = (copy.deepcopy(dict(data)), str(next(self._versions)))
        self._commit()

    def _commit(self) -> None:
        """Hook invoked after every mutation."""

    # ------------------------------------------------------------------
    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        entry = self._docs(collection).get(doc_id)
        if entry is None:
            return None
        data, version = entry
        return StoredDocument(id=doc_id, data=copy.deepcopy(data), version=version)

    async def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> list[StoredDocument]:
        filters = filters or {}
        return [
            StoredDocument(id=doc_id, data=copy.deepcopy(data), version=version)
            for doc_id, (data, version) in self._docs(collection).items()
            if all(data.get(key) == value for key, value in filters.items())
        ]

    async def create(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self._write(collection, doc_id, data)
        return doc_id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        expected_version: str | None = None,
    ) -> None:
        if expected_version is not None:
            current = self._docs(collection).get(doc_id)
            if current is None or current[1] != expected_version:
                raise VersionConflict(
                    f"{collection}/{doc_id} changed since version {expected_version}"
                )
        self._write(collection, doc_id, data)

    async def update(
        self, collection: str, doc_id: str, partial: Mapping[str, Any]
    ) -> None:
        current = self._docs(collection).get(doc_id)
        if current is None:
            raise NotFound(f"No document to update: {collection}/{doc_id}")
        merged = dict(current[0])
        merged.update(copy.deepcopy(dict(partial)))
        self._write(collection, doc_id, merged)

    async def delete(self, collection: str, doc_id: str) -> None:
        if self._docs(collection).pop(doc_id, None) is not None:
            self._commit()
