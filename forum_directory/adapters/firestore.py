"""Firestore adapter implementing :class:`~forum_directory.adapters.base.DocumentStore`.

The adapter talks to the Firestore REST API (v1) with :mod:`httpx` instead
of pulling in the Google client libraries, which keeps the dependency
footprint small while remaining fully asynchronous.  Firestore wraps every
field in a typed value object (``{"stringValue": "..."}``); the
:func:`encode_value` / :func:`decode_value` pair converts between those and
plain Python values, including ``datetime`` <-> ``timestampValue``.
"""

from __future__ import annotations

import datetime
from collections.abc import Mapping
from datetime import UTC
from enum import Enum
from typing import Any

import httpx

from ..core.errors import NotFound, StoreError, VersionConflict
from .base import DocumentStore, StoredDocument


# ----------------------------------------------------------------------
# Value encoding
# ----------------------------------------------------------------------
def _format_timestamp(value: datetime.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def encode_value(value: Any) -> dict[str, Any]:
    """Wrap a Python value in a Firestore ``Value`` object."""
    if value is None:
        return {"nullValue": None}
    # bool before int: ``True`` is an ``int`` too
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, Enum):
        return encode_value(value.value)
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime.datetime):
        return {"timestampValue": _format_timestamp(value)}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def encode_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(value: Mapping[str, Any]) -> Any:
    """Unwrap a Firestore ``Value`` object."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return datetime.datetime.fromisoformat(value["timestampValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    raise StoreError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


# ----------------------------------------------------------------------
class FirestoreDocumentStore(DocumentStore):
    """Document store that sends requests directly to the Firestore REST API."""

    api_base = "https://firestore.googleapis.com/v1"

    def __init__(
        self,
        project_id: str,
        token: str = "",
        database: str = "(default)",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Store the target database, an OAuth ``token`` and optional HTTP ``client``."""
        self.project_id = project_id
        self.database = database
        self.token = token
        self.client = client or httpx.AsyncClient()

    # ------------------------------------------------------------------
    # Internal helpers
    @property
    def _root(self) -> str:
        return f"{self.api_base}/projects/{self.project_id}/databases/{self.database}/documents"

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _url(self, collection: str, doc_id: str | None = None) -> str:
        if doc_id is None:
            return f"{self._root}/{collection}"
        return f"{self._root}/{collection}/{doc_id}"

    @staticmethod
    def _to_document(payload: Mapping[str, Any]) -> StoredDocument:
        name: str = payload["name"]
        return StoredDocument(
            id=name.rsplit("/", 1)[-1],
            data=decode_fields(payload.get("fields", {})),
            version=payload.get("updateTime"),
        )

    @staticmethod
    def _check(response: httpx.Response, what: str) -> None:
        """Translate an error response into the store's exception types."""
        if response.is_success:
            return
        status = ""
        try:
            status = response.json().get("error", {}).get("status", "")
        except ValueError:
            pass
        if response.status_code in (409, 412) or status in ("FAILED_PRECONDITION", "ABORTED"):
            raise VersionConflict(f"{what}: {status or response.status_code}")
        if response.status_code == 404:
            raise NotFound(f"{what}: not found")
        raise StoreError(f"{what}: HTTP {response.status_code} {status}".rstrip())

    # ------------------------------------------------------------------
    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        response = await self.client.get(self._url(collection, doc_id), headers=self._headers)
        if response.status_code == 404:
            return None
        self._check(response, f"get {collection}/{doc_id}")
        return self._to_document(response.json())

    async def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> list[StoredDocument]:
        structured: dict[str, Any] = {"from": [{"collectionId": collection}]}
        field_filters = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": key},
                    "op": "EQUAL",
                    "value": encode_value(value),
                }
            }
            for key, value in (filters or {}).items()
        ]
        if len(field_filters) == 1:
            structured["where"] = field_filters[0]
        elif field_filters:
            structured["where"] = {
                "compositeFilter": {"op": "AND", "filters": field_filters}
            }
        response = await self.client.post(
            f"{self._root}:runQuery",
            json={"structuredQuery": structured},
            headers=self._headers,
        )
        self._check(response, f"query {collection}")
        # runQuery streams one entry per result plus entries without a
        # document carrying only read metadata
        return [
            self._to_document(entry["document"])
            for entry in response.json()
            if "document" in entry
        ]

    async def create(self, collection: str, data: Mapping[str, Any]) -> str:
        response = await self.client.post(
            self._url(collection),
            json={"fields": encode_fields(data)},
            headers=self._headers,
        )
        self._check(response, f"create in {collection}")
        return self._to_document(response.json()).id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        expected_version: str | None = None,
    ) -> None:
        params = {}
        if expected_version is not None:
            params["currentDocument.updateTime"] = expected_version
        response = await self.client.patch(
            self._url(collection, doc_id),
            params=params,
            json={"fields": encode_fields(data)},
            headers=self._headers,
        )
        if response.status_code == 404 and expected_version is not None:
            raise VersionConflict(f"{collection}/{doc_id} no longer exists")
        self._check(response, f"set {collection}/{doc_id}")

    async def update(
        self, collection: str, doc_id: str, partial: Mapping[str, Any]
    ) -> None:
        params: list[tuple[str, str]] = [("currentDocument.exists", "true")]
        params.extend(("updateMask.fieldPaths", key) for key in partial)
        response = await self.client.patch(
            self._url(collection, doc_id),
            params=params,
            json={"fields": encode_fields(partial)},
            headers=self._headers,
        )
        if response.status_code == 404:
            raise NotFound(f"No document to update: {collection}/{doc_id}")
        self._check(response, f"update {collection}/{doc_id}")

    async def delete(self, collection: str, doc_id: str) -> None:
        response = await self.client.delete(
            self._url(collection, doc_id), headers=self._headers
        )
        self._check(response, f"delete {collection}/{doc_id}")

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
