"""Document store persisted to a single JSON file."""

from __future__ import annotations

import datetime
import itertools
import json
import os
from enum import Enum
from typing import Any

from .memory import InMemoryDocumentStore

_DATETIME_TAG = "__datetime__"


def encode_value(value: Any) -> Any:
    """Convert ``value`` into something :func:`json.dump` accepts."""
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.UTC)
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {_DATETIME_TAG}:
            return datetime.datetime.fromisoformat(value[_DATETIME_TAG])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


class JSONDocumentStore(InMemoryDocumentStore):
    """Keep every collection in memory and rewrite ``path`` after each write.

    The whole database is small (a few hundred contacts and one structure
    document) so rewriting it on every mutation keeps things simple while
    providing durability across process restarts.
    """

    def __init__(self, path: str = "forum_data.json") -> None:
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        """Load store contents from ``self.path`` if it exists."""
        if not os.path.exists(self.path):
            return

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        for name, docs in data.get("collections", {}).items():
            collection = self._docs(name)
            for doc_id, entry in docs.items():
                collection[doc_id] = (decode_value(entry["data"]), str(entry["version"]))

        # continue numbering after the highest version on disk
        highest = max(
            (int(v) for docs in self._collections.values() for _, v in docs.values()),
            default=0,
        )
        self._versions = itertools.count(highest + 1)

    def _to_dict(self) -> dict:
        return {
            "collections": {
                name: {
                    doc_id: {"version": version, "data": encode_value(data)}
                    for doc_id, (data, version) in docs.items()
                }
                for name, docs in self._collections.items()
            }
        }

    def _commit(self) -> None:
        """Persist the current state atomically."""
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)
