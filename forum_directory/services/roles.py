"""Role resolution and role assignment on top of the hierarchy.

A user's privileged roles live in two places: the organization structure
(the source of truth for who holds which slot) and the ``roles`` list of
their contact record, which the directory displays.  The methods that add or
remove roles write both, one after the other.  There is no transaction
spanning the two documents, so a failure between the writes leaves them
disagreeing; :meth:`RoleService.sync_contact_roles` rebuilds the contact side
from the structure.
"""

from __future__ import annotations

import logging

from ..core.errors import CapacityExceeded, NotFound, NotInitialized
from ..core.models import (
    AuthorizedPositions,
    Contact,
    DashboardInfo,
    Position,
    RepPosition,
    Role,
    RoleType,
)
from ..data.contacts import ContactRepository
from ..data.hierarchy import HierarchyStore

log = logging.getLogger(__name__)


def _role_matches(
    role: Role,
    role_type: RoleType | str,
    school_id: str | None,
    track_id: str | None,
    year: int | None,
) -> bool:
    """Loose match: criteria left out match any value."""
    if role.type != role_type:
        return False
    if school_id and role.school_id != school_id:
        return False
    if track_id and role.track_id != track_id:
        return False
    if year and role.year != year:
        return False
    return True


class RoleService:
    def __init__(self, hierarchy: HierarchyStore, contacts: ContactRepository) -> None:
        self.hierarchy = hierarchy
        self.contacts = contacts

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------
    async def initialize_user_role(self, user_id: str, email: str) -> bool:
        """Initialise the structure with ``user_id`` as head if there is none.

        Returns whether the structure was created.  Two callers racing here
        can both see no structure; the later write wins.
        """
        if await self.hierarchy.get_organization_structure() is not None:
            return False
        await self.hierarchy.initialize_organization_structure(user_id)
        log.info("Initialized organization structure with head %s (%s)", user_id, email)
        return True

    # ------------------------------------------------------------------
    # Role resolution
    # ------------------------------------------------------------------
    async def get_all_user_roles(self, user_id: str) -> list[Position]:
        """Every position ``user_id`` holds, in structure scan order."""
        structure = await self.hierarchy.get_organization_structure()
        if structure is None:
            return []
        return list(structure.positions_of(user_id))

    async def get_user_dashboard_type(self, user_id: str) -> DashboardInfo:
        all_roles = await self.get_all_user_roles(user_id)
        if not all_roles:
            return DashboardInfo(dashboard_type="public")

        held = {position.role for position in all_roles}
        has_head = RoleType.HEAD_OF_ACADEMIC_FORUM in held
        has_coordinator = RoleType.COORDINATOR in held

        primary = all_roles[0]
        if has_head:
            primary = next(p for p in all_roles if p.role is RoleType.HEAD_OF_ACADEMIC_FORUM)

        if has_head:
            dashboard_type = "head"
        elif has_coordinator:
            dashboard_type = "coordinator"
        else:
            dashboard_type = "rep"

        return DashboardInfo(
            dashboard_type=dashboard_type,
            role_info=primary,
            all_roles=all_roles,
            # the UI only offers a switcher between these two dashboards
            show_multiple_dashboards=has_head and has_coordinator,
        )

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------
    async def can_add_coordinator(self, user_id: str) -> bool:
        position = await self.hierarchy.get_user_role(user_id)
        return position is not None and position.role is RoleType.HEAD_OF_ACADEMIC_FORUM

    async def can_add_rep_to_position(
        self, user_id: str, school_id: str, track_id: str, year: int
    ) -> bool:
        """Head may add reps anywhere, a coordinator anywhere in their school.

        ``track_id`` and ``year`` do not affect the decision.
        """
        position = await self.hierarchy.get_user_role(user_id)
        if position is None:
            return False
        if position.role is RoleType.HEAD_OF_ACADEMIC_FORUM:
            return True
        return position.role is RoleType.COORDINATOR and position.school_id == school_id

    async def get_authorized_positions(self, user_id: str) -> AuthorizedPositions:
        """Open positions ``user_id`` may fill, for role assignment forms."""
        position = await self.hierarchy.get_user_role(user_id)
        if position is None:
            return AuthorizedPositions()

        if position.role is RoleType.HEAD_OF_ACADEMIC_FORUM:
            coordinator_positions = await self.hierarchy.get_available_coordinator_positions()
            rep_positions: list[RepPosition] = []
            for school in coordinator_positions:
                rep_positions.extend(
                    await self.hierarchy.get_available_rep_positions(school.school_id)
                )
            return AuthorizedPositions(
                coordinator_positions=coordinator_positions, rep_positions=rep_positions
            )

        if position.role is RoleType.COORDINATOR and position.school_id:
            return AuthorizedPositions(
                rep_positions=await self.hierarchy.get_available_rep_positions(position.school_id)
            )

        return AuthorizedPositions()

    # ------------------------------------------------------------------
    # Role assignment
    # ------------------------------------------------------------------
    async def add_rep_role_to_user(
        self,
        user_id: str,
        school_id: str,
        track_id: str,
        year: int,
        has_been_elected: bool = False,
    ) -> None:
        """Seat ``user_id`` as rep and record the role on their contact.

        The hierarchy write happens first and raises
        :class:`CapacityExceeded` when the slot is full.  A user already in
        the slot is not added twice.  If the contact record is missing the
        role only exists in the hierarchy and an error is logged.
        """
        await self.hierarchy.add_rep_to_track(
            school_id, track_id, year, user_id, skip_existing=True
        )

        contact = await self.contacts.get_contact(user_id)
        if contact is None:
            log.error("Contact not found for user %s; rep role not recorded on contact", user_id)
            return

        new_role = Role(
            type=RoleType.REP,
            school_id=school_id,
            track_id=track_id,
            year=year,
            has_been_elected=has_been_elected,
        )
        if any(role.same_slot(new_role) for role in contact.roles):
            return
        await self.contacts.update_contact(contact.id, roles=[*contact.roles, new_role])

    async def add_coordinator_role_to_user(
        self, user_id: str, school_id: str, has_been_elected: bool = False
    ) -> None:
        """Make ``user_id`` the coordinator of ``school_id`` and record the role."""
        await self.hierarchy.assign_coordinator(school_id, user_id)

        contact = await self.contacts.get_contact(user_id)
        if contact is None:
            log.error("Contact not found for user %s; coordinator role not recorded", user_id)
            return

        new_role = Role(
            type=RoleType.COORDINATOR, school_id=school_id, has_been_elected=has_been_elected
        )
        if any(role.same_slot(new_role) for role in contact.roles):
            return
        await self.contacts.update_contact(contact.id, roles=[*contact.roles, new_role])

    async def register_rep_contact(self, actor_id: str, contact: Contact) -> str:
        """Create a rep who has no account and seat them in the hierarchy.

        The first rep role with school, track and year decides the slot.  If
        the acting user is a coordinator and the role names no coordinator
        in charge, the actor is recorded as such.  When the slot turns out to
        be full the freshly created contact is deleted again.
        """
        contact = contact.model_copy(deep=True)
        rep_role = next(
            (
                role
                for role in contact.roles
                if role.type is RoleType.REP and role.school_id and role.track_id and role.year
            ),
            None,
        )
        if rep_role is not None and not rep_role.coordinator_in_charge:
            actor = await self.hierarchy.get_user_role(actor_id)
            if actor is not None and actor.role is RoleType.COORDINATOR:
                rep_role.coordinator_in_charge = actor_id

        contact_id = await self.contacts.create_contact(contact)
        if rep_role is None:
            return contact_id

        try:
            await self.hierarchy.add_rep_to_track(
                rep_role.school_id, rep_role.track_id, rep_role.year, contact_id
            )
        except CapacityExceeded:
            await self.contacts.delete_contact(contact_id)
            raise
        return contact_id

    async def remove_role_from_user(
        self,
        user_id: str,
        role_type: RoleType | str,
        school_id: str | None = None,
        track_id: str | None = None,
        year: int | None = None,
    ) -> None:
        """Remove matching roles from the contact and free the matching slot.

        Every contact role of ``role_type`` matching the given criteria is
        dropped; criteria left out match anything, so omitting ``year``
        removes the user's rep roles for all years of that track.  The
        hierarchy is only touched for a rep role with school, track and year
        all given, or a coordinator role with a school.  The coordinator slot
        is cleared whoever holds it.
        """
        contact = await self.contacts.get_contact(user_id)
        if contact is None:
            log.warning("Contact not found for user %s; only updating hierarchy", user_id)
        else:
            kept = [
                role
                for role in contact.roles
                if not _role_matches(role, role_type, school_id, track_id, year)
            ]
            await self.contacts.update_contact(contact.id, roles=kept)

        if role_type == RoleType.REP and school_id and track_id and year:
            await self.hierarchy.remove_rep_from_track(school_id, track_id, year, user_id)

        if role_type == RoleType.COORDINATOR and school_id:
            await self.hierarchy.assign_coordinator(school_id, "")

    async def sync_contact_roles(self, user_id: str) -> Contact:
        """Rewrite the contact's privileged roles from the hierarchy.

        Roles the hierarchy still backs keep their flags
        (``has_been_elected``, ``coordinator_in_charge``); custom job titles
        are kept after them.  Returns the contact as it is now stored.
        """
        structure = await self.hierarchy.get_organization_structure()
        if structure is None:
            raise NotInitialized()
        contact = await self.contacts.get_contact(user_id)
        if contact is None:
            raise NotFound(f"No contact for user {user_id}")

        privileged = [role for role in contact.roles if not role.is_custom]
        roles: list[Role] = []
        for position in structure.positions_of(user_id):
            backed = Role(
                type=position.role,
                school_id=position.school_id,
                track_id=position.track_id,
                year=position.year,
            )
            roles.append(next((r for r in privileged if r.same_slot(backed)), backed))
        roles.extend(role for role in contact.roles if role.is_custom)

        if roles != contact.roles:
            log.info("Resynchronised roles of %s from the organization structure", user_id)
            await self.contacts.update_contact(contact.id, roles=roles)
        return contact.model_copy(update={"roles": roles})
