"""Persistence and queries for the organization structure document.

The whole hierarchy lives in one document (``organization/structure``):
the head of the forum, one coordinator slot per school and, below each
school, one rep list per track and study year.  Slots are seeded from the
reference catalog when the structure is initialised and are only ever
filled or emptied afterwards.

Mutations are read-modify-write cycles over the whole document.  Each write
is a compare-and-swap against the version that was read, and a cycle that
loses against a concurrent writer is replayed from a fresh read, so two reps
added to the same slot at the same time can neither overwrite each other
nor push the slot past its capacity.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..adapters.base import DocumentStore
from ..core.catalog import Catalog, track_index
from ..core.errors import (
    CapacityExceeded,
    NotInitialized,
    PositionConflict,
    ValidationFailure,
    VersionConflict,
)
from ..core.models import (
    MAX_REPS_PER_SLOT,
    YEARS,
    CoordinatorPosition,
    CoordinatorReps,
    CoordinatorSlot,
    OrganizationStructure,
    Position,
    RepPosition,
    RoleType,
    TrackReps,
    TrackSlot,
    to_document,
)
from .contacts import ContactRepository

log = logging.getLogger(__name__)

COLLECTION = "organization"
DOCUMENT_ID = "structure"


class HierarchyStore:
    """Owner of the :class:`OrganizationStructure` singleton."""

    def __init__(
        self,
        store: DocumentStore,
        catalog: Catalog,
        contacts: ContactRepository,
        *,
        exclusive_positions: bool = False,
        max_write_attempts: int = 3,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.contacts = contacts
        self.exclusive_positions = exclusive_positions
        self.max_write_attempts = max(1, max_write_attempts)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def _normalise(self, structure: OrganizationStructure) -> OrganizationStructure:
        """Order schools, tracks and years the way the catalog lists them.

        The backend does not guarantee the order of map keys, but first-match
        scans must be deterministic.  Slots missing from the catalog keep
        their data and are moved to the end.
        """
        school_order = {school.id: i for i, school in enumerate(self.catalog.schools)}

        def school_key(school_id: str) -> tuple[int, str]:
            return school_order.get(school_id, len(school_order)), school_id

        def track_key(track_id: str) -> tuple[bool, int, str]:
            index = track_index(track_id)
            return index is None, index or 0, track_id

        ordered: dict[str, CoordinatorSlot] = {}
        for school_id in sorted(structure.coordinators, key=school_key):
            slot = structure.coordinators[school_id]
            tracks: dict[str, TrackSlot] = {}
            for track_id in sorted(slot.tracks, key=track_key):
                reps = slot.tracks[track_id].reps
                tracks[track_id] = TrackSlot(reps={year: reps[year] for year in sorted(reps)})
            ordered[school_id] = CoordinatorSlot(user_id=slot.user_id, tracks=tracks)
        return OrganizationStructure(head_of_forum=structure.head_of_forum, coordinators=ordered)

    async def _load(self) -> tuple[OrganizationStructure, str | None] | None:
        doc = await self.store.get(COLLECTION, DOCUMENT_ID)
        if doc is None:
            return None
        structure = OrganizationStructure.model_validate(doc.data)
        return self._normalise(structure), doc.version

    async def _mutate(self, change: Callable[[OrganizationStructure], None]) -> OrganizationStructure:
        """Apply ``change`` to a fresh copy of the structure and write it back.

        ``change`` may raise to abort the write.  Lost compare-and-swap races
        are replayed up to ``max_write_attempts`` times.
        """
        attempt = 1
        while True:
            loaded = await self._load()
            if loaded is None:
                raise NotInitialized()
            structure, version = loaded
            change(structure)
            try:
                await self.store.set(
                    COLLECTION, DOCUMENT_ID, to_document(structure), expected_version=version
                )
                return structure
            except VersionConflict:
                if attempt >= self.max_write_attempts:
                    raise
                log.warning(
                    "Organization structure changed concurrently, retrying (%d/%d)",
                    attempt,
                    self.max_write_attempts,
                )
                attempt += 1

    # ------------------------------------------------------------------
    # Slot lookup and invariants
    # ------------------------------------------------------------------
    @staticmethod
    def _school(structure: OrganizationStructure, school_id: str) -> CoordinatorSlot:
        slot = structure.coordinators.get(school_id)
        if slot is None:
            raise ValidationFailure(f"Unknown school {school_id!r}")
        return slot

    @classmethod
    def _rep_list(
        cls, structure: OrganizationStructure, school_id: str, track_id: str, year: int
    ) -> list[str]:
        track = cls._school(structure, school_id).tracks.get(track_id)
        if track is None:
            raise ValidationFailure(f"Unknown track {track_id!r} in school {school_id!r}")
        if year not in YEARS:
            raise ValidationFailure(f"Year must be one of {YEARS}, got {year!r}")
        return track.reps.setdefault(year, [])

    def _check_exclusive(
        self, structure: OrganizationStructure, user_id: str, target: Position
    ) -> None:
        if not self.exclusive_positions or not user_id:
            return
        for held in structure.positions_of(user_id):
            if held != target:
                raise PositionConflict(
                    f"User {user_id} already holds a {held.role.value} position"
                )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def initialize_organization_structure(self, head_user_id: str) -> None:
        """Create the structure with ``head_user_id`` as head and empty slots.

        Any existing structure is overwritten; callers check for absence.
        """
        coordinators = {
            school.id: CoordinatorSlot(
                user_id="",
                tracks={track_id: TrackSlot() for track_id, _ in self.catalog.tracks_for(school.id)},
            )
            for school in self.catalog.schools
        }
        structure = OrganizationStructure(head_of_forum=head_user_id, coordinators=coordinators)
        await self.store.set(COLLECTION, DOCUMENT_ID, to_document(structure))

    async def assign_coordinator(self, school_id: str, user_id: str) -> None:
        """Put ``user_id`` in the school's coordinator slot; ``""`` clears it.

        An existing coordinator is replaced without notice.
        """

        def change(structure: OrganizationStructure) -> None:
            slot = self._school(structure, school_id)
            self._check_exclusive(
                structure, user_id, Position(role=RoleType.COORDINATOR, school_id=school_id)
            )
            slot.user_id = user_id

        await self._mutate(change)

    async def add_rep_to_track(
        self,
        school_id: str,
        track_id: str,
        year: int,
        rep_user_id: str,
        *,
        skip_existing: bool = False,
    ) -> bool:
        """Append ``rep_user_id`` to a track/year rep list.

        Raises :class:`CapacityExceeded` without writing when the list is
        full.  Duplicates are not checked unless ``skip_existing`` is set, in
        which case a user already in the list is left alone and ``False`` is
        returned.
        """
        added = True

        def change(structure: OrganizationStructure) -> None:
            nonlocal added
            reps = self._rep_list(structure, school_id, track_id, year)
            if skip_existing and rep_user_id in reps:
                added = False
                return
            if len(reps) >= MAX_REPS_PER_SLOT:
                raise CapacityExceeded(track_id, year, MAX_REPS_PER_SLOT)
            self._check_exclusive(
                structure,
                rep_user_id,
                Position(role=RoleType.REP, school_id=school_id, track_id=track_id, year=year),
            )
            added = True
            reps.append(rep_user_id)

        await self._mutate(change)
        return added

    async def remove_rep_from_track(
        self, school_id: str, track_id: str, year: int, rep_user_id: str
    ) -> None:
        """Drop every occurrence of ``rep_user_id``; absent ids are ignored."""

        def change(structure: OrganizationStructure) -> None:
            reps = self._rep_list(structure, school_id, track_id, year)
            reps[:] = [uid for uid in reps if uid != rep_user_id]

        await self._mutate(change)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_organization_structure(self) -> OrganizationStructure | None:
        loaded = await self._load()
        return loaded[0] if loaded else None

    async def get_user_role(self, user_id: str) -> Position | None:
        """Return the first position held by ``user_id``.

        Only one position is reported even if the user holds several; use
        :meth:`RoleService.get_all_user_roles` for the complete set.
        """
        structure = await self.get_organization_structure()
        if structure is None:
            return None
        return next(structure.positions_of(user_id), None)

    async def get_coordinator_reps(self, user_id: str) -> CoordinatorReps | None:
        structure = await self.get_organization_structure()
        if structure is None:
            return None
        school_id = structure.coordinated_school(user_id)
        if school_id is None:
            return None

        result = CoordinatorReps(school_id=school_id)
        for track_id, track in structure.coordinators[school_id].tracks.items():
            track_reps = TrackReps(name=self.catalog.track_name(school_id, track_id))
            for year, rep_ids in track.reps.items():
                contacts = []
                for rep_id in rep_ids:
                    try:
                        contact = await self.contacts.get_contact(rep_id)
                    except Exception:
                        log.exception("Failed to load contact %s", rep_id)
                        continue
                    if contact is None:
                        log.warning("Rep %s in %s year %d has no contact record", rep_id, track_id, year)
                        continue
                    contacts.append(contact)
                track_reps.reps[year] = contacts
            result.tracks[track_id] = track_reps
        return result

    async def get_available_coordinator_positions(self) -> list[CoordinatorPosition]:
        structure = await self.get_organization_structure()
        if structure is None:
            return []
        return [
            CoordinatorPosition(
                school_id=school.id,
                school_name=school.name,
                is_occupied=bool(
                    school.id in structure.coordinators
                    and structure.coordinators[school.id].user_id
                ),
            )
            for school in self.catalog.schools
        ]

    async def get_available_rep_positions(self, school_id: str) -> list[RepPosition]:
        structure = await self.get_organization_structure()
        if structure is None:
            return []
        slot = structure.coordinators.get(school_id)
        if slot is None:
            return []

        positions = []
        for track_id, track in slot.tracks.items():
            track_name = self.catalog.track_name(school_id, track_id)
            for year in YEARS:
                available = MAX_REPS_PER_SLOT - len(track.reps.get(year, []))
                if available > 0:
                    positions.append(
                        RepPosition(
                            school_id=school_id,
                            track_id=track_id,
                            track_name=track_name,
                            year=year,
                            available=available,
                        )
                    )
        return positions
