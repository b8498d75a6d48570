"""Searchable directory listing built from contact records."""

from __future__ import annotations

from collections.abc import Iterable

from ..core.catalog import Catalog
from ..core.models import (
    Contact,
    DirectoryEntry,
    Role,
    RoleSummary,
    RoleType,
)
from ..data.contacts import ContactRepository

ROLE_PRIORITY = {
    RoleType.HEAD_OF_ACADEMIC_FORUM: 3,
    RoleType.COORDINATOR: 2,
    RoleType.REP: 1,
}

_ORDINALS = {1: "first", 2: "second", 3: "third"}

# extra search terms for schools people usually abbreviate
_SCHOOL_ACRONYMS = {
    "computer science": ("cs", "comp sci"),
    "entrepreneurship": ("entrep", "entrepreneur"),
}


def _type_text(role_type: RoleType | str) -> str:
    return role_type.value if isinstance(role_type, RoleType) else role_type


class DirectoryService:
    """Projection of contacts for the contacts page.

    Each contact becomes a :class:`DirectoryEntry` carrying its most senior
    role, all roles ordered by seniority and a list of lower-case search
    terms.  Filtering and searching work on those entries.
    """

    def __init__(self, contacts: ContactRepository, catalog: Catalog) -> None:
        self.contacts = contacts
        self.catalog = catalog

    # ------------------------------------------------------------------
    def summarise(self, role: Role) -> RoleSummary:
        return RoleSummary(
            type=role.type,
            title=role.title,
            priority=ROLE_PRIORITY.get(role.type, 0),
            school_id=role.school_id,
            track_id=role.track_id,
            year=role.year,
        )

    def highest_role(self, contact: Contact) -> RoleSummary:
        """Most senior privileged role; Representative when there is none."""
        highest: RoleSummary | None = None
        for role in contact.roles:
            summary = self.summarise(role)
            if summary.priority > (highest.priority if highest else 0):
                highest = summary
        if highest is None:
            return RoleSummary(type=RoleType.REP, title="Representative", priority=1)
        return highest

    def search_terms(self, contact: Contact, highest: RoleSummary) -> list[str]:
        terms = [
            contact.name.lower(),
            highest.title.lower(),
            _type_text(highest.type).lower(),
        ]

        for role in contact.roles:
            terms.append(_type_text(role.type).lower())

            if role.type == RoleType.REP and role.year:
                year = role.year
                terms += [
                    f"year {year}",
                    str(year),
                    f"rep year {year}",
                    f"representative year {year}",
                    f"y{year}",
                    f"year{year}",
                ]
                if year in _ORDINALS:
                    terms += [_ORDINALS[year], f"{_ORDINALS[year]} year"]

            if role.school_id:
                terms.append(role.school_id.lower().replace("-", " "))
                school_name = self.catalog.school_name(role.school_id).lower()
                terms.append(school_name)
                for needle, acronyms in _SCHOOL_ACRONYMS.items():
                    if needle in school_name:
                        terms.extend(acronyms)

            if role.track_id:
                terms.append(self.catalog.find_track_name(role.track_id).lower())

        if contact.email:
            terms.append(contact.email.lower())

        return list(dict.fromkeys(terms))

    def build_entry(self, contact: Contact) -> DirectoryEntry:
        highest = self.highest_role(contact)
        all_roles = sorted(
            (self.summarise(role) for role in contact.roles),
            key=lambda summary: summary.priority,
            reverse=True,
        )
        return DirectoryEntry(
            contact=contact,
            highest_role=highest,
            all_roles=all_roles,
            search_terms=self.search_terms(contact, highest),
        )

    # ------------------------------------------------------------------
    @staticmethod
    def apply_filters(
        entries: Iterable[DirectoryEntry],
        role_type: RoleType | None = None,
        track_id: str | None = None,
        year: int | None = None,
    ) -> list[DirectoryEntry]:
        """Keep entries with a role matching every given criterion.

        ``role_type`` may be satisfied by any role.  ``track_id`` and
        ``year`` must be satisfied by one and the same role, and a year only
        matches rep roles.
        """

        def role_fits(summary: RoleSummary) -> bool:
            if track_id and summary.track_id != track_id:
                return False
            if year and (summary.type != RoleType.REP or summary.year != year):
                return False
            return True

        result = []
        for entry in entries:
            if role_type is not None and not any(r.type == role_type for r in entry.all_roles):
                continue
            if (track_id or year) and not any(role_fits(r) for r in entry.all_roles):
                continue
            result.append(entry)
        return result

    @staticmethod
    def search(entries: Iterable[DirectoryEntry], query: str) -> list[DirectoryEntry]:
        needle = query.strip().lower()
        if not needle:
            return list(entries)
        return [e for e in entries if any(needle in term for term in e.search_terms)]

    async def list_entries(
        self,
        role_type: RoleType | None = None,
        track_id: str | None = None,
        year: int | None = None,
        query: str = "",
    ) -> list[DirectoryEntry]:
        contacts = await self.contacts.list_contacts()
        entries = sorted(
            (self.build_entry(contact) for contact in contacts),
            key=lambda entry: entry.contact.name.lower(),
        )
        entries = self.apply_filters(entries, role_type=role_type, track_id=track_id, year=year)
        return self.search(entries, query)
