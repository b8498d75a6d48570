"""Persistence of authentication-linked user records."""

from __future__ import annotations

from ..adapters.base import DocumentStore
from ..core.models import User, to_document, utcnow

COLLECTION = "users"


class UserRepository:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get_user(self, uid: str) -> User | None:
        doc = await self.store.get(COLLECTION, uid)
        if doc is None:
            return None
        return User.model_validate({**doc.data, "uid": doc.id})

    async def create_user(self, user: User) -> None:
        await self.store.set(COLLECTION, user.uid, to_document(user))

    async def touch_last_login(self, uid: str) -> None:
        await self.store.update(COLLECTION, uid, {"lastLoginAt": utcnow()})

    async def set_admin(self, uid: str, is_admin: bool) -> None:
        await self.store.update(COLLECTION, uid, {"isAdmin": is_admin})
