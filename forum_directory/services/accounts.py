"""Account bookkeeping: sign-in records and the one-time admin setup."""

from __future__ import annotations

import logging

from ..core.errors import NotFound, ValidationFailure
from ..core.models import Contact, Role, RoleType, User
from ..data.contacts import ContactRepository
from ..data.hierarchy import HierarchyStore
from ..data.users import UserRepository
from .roles import RoleService

log = logging.getLogger(__name__)


class AccountService:
    def __init__(
        self,
        users: UserRepository,
        contacts: ContactRepository,
        hierarchy: HierarchyStore,
        roles: RoleService,
    ) -> None:
        self.users = users
        self.contacts = contacts
        self.hierarchy = hierarchy
        self.roles = roles

    async def record_sign_in(
        self, uid: str, email: str, display_name: str | None = None
    ) -> User:
        """Return the user record, creating it on first sign-in."""
        user = await self.users.get_user(uid)
        if user is None:
            user = User(uid=uid, email=email, display_name=display_name or None)
            await self.users.create_user(user)
            log.info("Created user record for %s", uid)
            return user
        await self.users.touch_last_login(uid)
        return user

    async def setup_admin(self, uid: str, contact: Contact) -> Contact:
        """Make ``uid`` the administrator and head of a fresh organization.

        Writes an admin user record, initialises the structure with ``uid``
        as head and stores ``contact`` under ``uid`` with a head role.  Only
        allowed while no structure exists.
        """
        if await self.hierarchy.get_organization_structure() is not None:
            raise ValidationFailure("Organization structure already initialized")
        if not contact.email:
            raise ValidationFailure("Email is required for admin setup")

        await self.users.create_user(
            User(uid=uid, email=contact.email, display_name=contact.name, is_admin=True)
        )
        await self.hierarchy.initialize_organization_structure(uid)

        roles = list(contact.roles)
        if not any(role.type is RoleType.HEAD_OF_ACADEMIC_FORUM for role in roles):
            roles.insert(0, Role(type=RoleType.HEAD_OF_ACADEMIC_FORUM))
        await self.contacts.create_contact(
            contact.model_copy(update={"roles": roles}), contact_id=uid
        )
        log.info("Admin %s set up as head of forum", uid)

        stored = await self.contacts.get_contact(uid)
        if stored is None:
            raise NotFound(f"Contact {uid} missing right after setup")
        return stored

    async def bootstrap_if_admin(self, uid: str, email: str) -> bool:
        """Let an admin initialise the hierarchy on sign-in.

        Returns whether a structure was created.
        """
        user = await self.users.get_user(uid)
        if user is None or not user.is_admin:
            return False
        return await self.roles.initialize_user_role(uid, email)
