"""Tests for the in-memory and JSON file document stores."""

import asyncio
import datetime
from datetime import UTC
from pathlib import Path
from typing import Any

import pytest

from forum_directory.adapters.json_file import JSONDocumentStore
from forum_directory.adapters.memory import InMemoryDocumentStore
from forum_directory.core.errors import NotFound, VersionConflict


def run(coro: Any) -> Any:
    """Run an async coroutine synchronously for tests."""
    return asyncio.run(coro)


def test_create_get_and_query() -> None:
    """Documents can be created, read back and filtered by field."""
    store = InMemoryDocumentStore()
    a = run(store.create("jobHolders", {"name": "Alice", "year": 1}))
    run(store.create("jobHolders", {"name": "Bob", "year": 2}))

    doc = run(store.get("jobHolders", a))
    assert doc is not None
    assert doc.data == {"name": "Alice", "year": 1}

    found = run(store.query("jobHolders", {"year": 2}))
    assert [d.data["name"] for d in found] == ["Bob"]
    assert len(run(store.query("jobHolders"))) == 2
    assert run(store.get("jobHolders", "missing")) is None


def test_returned_documents_are_copies() -> None:
    """Mutating a read document does not change the stored one."""
    store = InMemoryDocumentStore()
    run(store.set("organization", "structure", {"reps": ["u1"]}))
    doc = run(store.get("organization", "structure"))
    doc.data["reps"].append("u2")
    assert run(store.get("organization", "structure")).data == {"reps": ["u1"]}


def test_compare_and_swap() -> None:
    """A write with a stale version is rejected."""
    store = InMemoryDocumentStore()
    run(store.set("organization", "structure", {"headOfForum": "u1"}))
    first = run(store.get("organization", "structure"))

    run(store.set("organization", "structure", {"headOfForum": "u2"}, expected_version=first.version))
    with pytest.raises(VersionConflict):
        run(store.set("organization", "structure", {"headOfForum": "u3"}, expected_version=first.version))
    assert run(store.get("organization", "structure")).data == {"headOfForum": "u2"}

    with pytest.raises(VersionConflict):
        run(store.set("organization", "other", {}, expected_version="1"))


def test_update_merges_and_requires_existing() -> None:
    store = InMemoryDocumentStore()
    run(store.set("users", "u1", {"email": "a@example.com", "isAdmin": False}))
    run(store.update("users", "u1", {"isAdmin": True}))
    assert run(store.get("users", "u1")).data == {"email": "a@example.com", "isAdmin": True}

    with pytest.raises(NotFound):
        run(store.update("users", "ghost", {"isAdmin": True}))

    run(store.delete("users", "u1"))
    run(store.delete("users", "u1"))  # deleting twice is fine
    assert run(store.get("users", "u1")) is None


def test_json_store_persistence_across_instances(tmp_path: Path) -> None:
    """Data, datetimes and versions survive a reload."""
    path = tmp_path / "data.json"
    created = datetime.datetime(2024, 9, 1, 8, 30, tzinfo=UTC)
    store = JSONDocumentStore(path=str(path))
    run(store.set("jobHolders", "u1", {"name": "Alice", "createdAt": created, "roles": []}))
    before = run(store.get("jobHolders", "u1"))

    assert path.exists()

    reloaded = JSONDocumentStore(path=str(path))
    doc = run(reloaded.get("jobHolders", "u1"))
    assert doc.data["createdAt"] == created
    assert doc.version == before.version

    # new writes keep getting fresh versions after a reload
    run(reloaded.set("jobHolders", "u1", {"name": "Alice B"}, expected_version=doc.version))
    assert run(reloaded.get("jobHolders", "u1")).version != doc.version


def test_json_store_deletes_are_persisted(tmp_path: Path) -> None:
    path = tmp_path / "data.json"
    store = JSONDocumentStore(path=str(path))
    doc_id = run(store.create("jobHolders", {"name": "Temp"}))
    run(store.delete("jobHolders", doc_id))

    assert run(JSONDocumentStore(path=str(path)).get("jobHolders", doc_id)) is None
