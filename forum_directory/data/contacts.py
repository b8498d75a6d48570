"""Persistence of contact ("job holder") records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from ..adapters.base import DocumentStore, StoredDocument
from ..core.errors import ValidationFailure
from ..core.models import Contact, DirectoryFilters, to_document, utcnow

COLLECTION = "jobHolders"

_IMMUTABLE_FIELDS = {"id", "created_at"}


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return to_document(value)
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    return value


class ContactRepository:
    """CRUD and filtered listing over the ``jobHolders`` collection."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    @staticmethod
    def _from_document(doc: StoredDocument) -> Contact:
        return Contact.model_validate({**doc.data, "id": doc.id})

    # ------------------------------------------------------------------
    async def create_contact(self, contact: Contact, contact_id: str | None = None) -> str:
        """Persist ``contact`` and return its id.

        Account holders (head, coordinators) are stored under their
        authentication uid, passed as ``contact_id``.  Reps added without an
        account get an id generated by the store.
        """
        now = utcnow()
        data = to_document(contact, exclude={"id", "created_at", "updated_at"})
        data["createdAt"] = now
        data["updatedAt"] = now
        if contact_id:
            await self.store.set(COLLECTION, contact_id, {**data, "id": contact_id})
            return contact_id
        return await self.store.create(COLLECTION, data)

    async def get_contact(self, contact_id: str) -> Contact | None:
        if not contact_id:
            return None
        doc = await self.store.get(COLLECTION, contact_id)
        if doc is None:
            return None
        return self._from_document(doc)

    async def update_contact(self, contact_id: str, **changes: Any) -> None:
        """Apply a partial update and stamp ``updated_at``.

        Raises :class:`~forum_directory.core.errors.NotFound` when the
        contact does not exist.
        """
        partial: dict[str, Any] = {}
        for name, value in changes.items():
            if name not in Contact.model_fields or name in _IMMUTABLE_FIELDS:
                raise ValidationFailure(f"Cannot update contact field {name!r}")
            partial[to_camel(name)] = _dump(value)
        partial["updatedAt"] = utcnow()
        await self.store.update(COLLECTION, contact_id, partial)

    async def delete_contact(self, contact_id: str) -> None:
        await self.store.delete(COLLECTION, contact_id)

    async def list_contacts(self, filters: DirectoryFilters | None = None) -> list[Contact]:
        """Return contacts ordered by name, narrowed by ``filters``.

        Role type, school and track match against any of the contact's
        roles; ``year`` matches the contact's own study year and the search
        query is a case-insensitive substring match on name, email and the
        free-text track label.
        """
        docs = await self.store.query(COLLECTION)
        contacts = sorted((self._from_document(d) for d in docs), key=lambda c: c.name.lower())
        if filters is None:
            return contacts
        return [c for c in contacts if _matches(c, filters)]


def _matches(contact: Contact, filters: DirectoryFilters) -> bool:
    if filters.role_type is not None and not contact.has_role(filters.role_type):
        return False
    if filters.school_id and not any(r.school_id == filters.school_id for r in contact.roles):
        return False
    if filters.track_id and not any(r.track_id == filters.track_id for r in contact.roles):
        return False
    if filters.year and contact.year != filters.year:
        return False
    if filters.search_query:
        needle = filters.search_query.lower()
        haystack = [contact.name, contact.email or "", contact.track]
        if not any(needle in text.lower() for text in haystack):
            return False
    return True
