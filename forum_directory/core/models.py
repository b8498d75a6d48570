"""Data models for the forum directory.

The models are implemented using :mod:`pydantic` so that they provide
runtime validation and convenient serialisation to and from the documents
kept in the store.  Attributes are snake_case in Python while stored
documents keep their camelCase field names (``headOfForum``,
``hasBeenElected``...); every model accepts either spelling on input and
:func:`to_document` dumps by alias.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterator
from datetime import UTC
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

YEARS = (1, 2, 3)
MAX_REPS_PER_SLOT = 2


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(tz=UTC)


class _DocumentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def to_document(model: BaseModel, *, exclude: set[str] | None = None) -> dict[str, Any]:
    """Dump ``model`` the way it is written to the store."""
    return model.model_dump(by_alias=True, exclude_none=True, exclude=exclude)


class RoleType(str, Enum):
    HEAD_OF_ACADEMIC_FORUM = "head_of_academic_forum"
    COORDINATOR = "coordinator"
    REP = "rep"


ROLE_TITLES = {
    RoleType.HEAD_OF_ACADEMIC_FORUM: "Head of Academic Forum",
    RoleType.COORDINATOR: "Coordinator",
    RoleType.REP: "Representative",
}


class Role(_DocumentModel):
    """A role held by a contact.

    ``type`` is either one of the three privileged :class:`RoleType` members
    or a free-form job title.  Custom titles are display-only: nothing in the
    hierarchy refers to them.
    """

    type: RoleType | str = Field(union_mode="left_to_right")
    school_id: str | None = None
    track_id: str | None = None
    year: int | None = None
    coordinator_in_charge: str | None = None
    has_been_elected: bool | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, RoleType):
            try:
                return RoleType(value)
            except ValueError:
                return value
        return value

    @property
    def is_custom(self) -> bool:
        return not isinstance(self.type, RoleType)

    @property
    def title(self) -> str:
        if isinstance(self.type, RoleType):
            return ROLE_TITLES[self.type]
        return self.type

    def same_slot(self, other: Role) -> bool:
        return (
            self.type == other.type
            and self.school_id == other.school_id
            and self.track_id == other.track_id
            and self.year == other.year
        )


class Contact(_DocumentModel):
    """A directory entry ("job holder")."""

    id: str = ""
    name: str
    email: str | None = None
    phone: str = ""
    track: str = ""
    year: int | None = None
    roles: list[Role] = Field(default_factory=list)
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    def has_role(self, role_type: RoleType | str) -> bool:
        return any(role.type == role_type for role in self.roles)


class User(_DocumentModel):
    """Authentication-linked account record, created on first sign-in."""

    uid: str
    email: str
    display_name: str | None = None
    is_admin: bool = False
    created_at: datetime.datetime = Field(default_factory=utcnow)
    last_login_at: datetime.datetime = Field(default_factory=utcnow)


# ----------------------------------------------------------------------
# Organization structure
# ----------------------------------------------------------------------
def _empty_years() -> dict[int, list[str]]:
    return {year: [] for year in YEARS}


class TrackSlot(_DocumentModel):
    reps: dict[int, list[str]] = Field(default_factory=_empty_years)


class CoordinatorSlot(_DocumentModel):
    user_id: str = ""
    tracks: dict[str, TrackSlot] = Field(default_factory=dict)


class Position(_DocumentModel):
    """One slot of the hierarchy as seen from the user holding it."""

    role: RoleType
    school_id: str | None = None
    track_id: str | None = None
    year: int | None = None


class OrganizationStructure(_DocumentModel):
    """The singleton document describing who holds which position."""

    head_of_forum: str = ""
    coordinators: dict[str, CoordinatorSlot] = Field(default_factory=dict)

    def positions_of(self, user_id: str) -> Iterator[Position]:
        """Yield every position held by ``user_id`` in scan order.

        The scan visits the head first, then each school in turn: its
        coordinator slot and afterwards its tracks and years.  A rep slot of
        an earlier school is therefore reported before the coordinator slot
        of a later one.
        """
        if not user_id:
            return
        if self.head_of_forum == user_id:
            yield Position(role=RoleType.HEAD_OF_ACADEMIC_FORUM)
        for school_id, coordinator in self.coordinators.items():
            if coordinator.user_id == user_id:
                yield Position(role=RoleType.COORDINATOR, school_id=school_id)
            for track_id, track in coordinator.tracks.items():
                for year, reps in track.reps.items():
                    if user_id in reps:
                        yield Position(
                            role=RoleType.REP,
                            school_id=school_id,
                            track_id=track_id,
                            year=year,
                        )

    def coordinated_school(self, user_id: str) -> str | None:
        if not user_id:
            return None
        for school_id, coordinator in self.coordinators.items():
            if coordinator.user_id == user_id:
                return school_id
        return None


# ----------------------------------------------------------------------
# Read-side projections
# ----------------------------------------------------------------------
DashboardType = Literal["head", "coordinator", "rep", "public"]


class DashboardInfo(_DocumentModel):
    dashboard_type: DashboardType
    role_info: Position | None = None
    all_roles: list[Position] = Field(default_factory=list)
    show_multiple_dashboards: bool = False


class CoordinatorPosition(_DocumentModel):
    school_id: str
    school_name: str
    is_occupied: bool


class RepPosition(_DocumentModel):
    school_id: str
    track_id: str
    track_name: str
    year: int
    available: int


class AuthorizedPositions(_DocumentModel):
    coordinator_positions: list[CoordinatorPosition] = Field(default_factory=list)
    rep_positions: list[RepPosition] = Field(default_factory=list)


class TrackReps(_DocumentModel):
    name: str
    reps: dict[int, list[Contact]] = Field(default_factory=dict)


class CoordinatorReps(_DocumentModel):
    school_id: str
    tracks: dict[str, TrackReps] = Field(default_factory=dict)


class DirectoryFilters(_DocumentModel):
    school_id: str | None = None
    track_id: str | None = None
    year: int | None = None
    role_type: RoleType | None = None
    search_query: str | None = None


class RoleSummary(_DocumentModel):
    type: RoleType | str = Field(union_mode="left_to_right")
    title: str
    priority: int
    school_id: str | None = None
    track_id: str | None = None
    year: int | None = None


class DirectoryEntry(_DocumentModel):
    contact: Contact
    highest_role: RoleSummary
    all_roles: list[RoleSummary] = Field(default_factory=list)
    search_terms: list[str] = Field(default_factory=list)
