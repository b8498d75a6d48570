"""Static reference data: the schools and the tracks offered by each.

The catalog is read once from two JSON files and never changes afterwards.
``schools.json`` holds a list of ``{"id", "name"}`` objects and
``tracks.json`` maps a school id to the ordered list of its track names.
Track identifiers are not stored anywhere; they are derived from the
position of the track in that list (see :func:`make_track_id`).
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel

DEFAULT_CATALOG_DIR = Path(__file__).resolve().parent.parent / "resources"

_TRACK_SEPARATOR = "-track-"


def make_track_id(school_id: str, index: int) -> str:
    return f"{school_id}{_TRACK_SEPARATOR}{index}"


def track_index(track_id: str) -> int | None:
    """Return the zero-based index encoded in ``track_id`` if it has one."""
    _, sep, tail = track_id.rpartition(_TRACK_SEPARATOR)
    if not sep or not tail.isdigit():
        return None
    return int(tail)


class School(BaseModel):
    id: str
    name: str


class Catalog:
    """Immutable lookup over schools and their tracks."""

    def __init__(self, schools: list[School], tracks: dict[str, list[str]]) -> None:
        self._schools = tuple(schools)
        self._by_id = {school.id: school for school in self._schools}
        self._tracks = {school_id: tuple(names) for school_id, names in tracks.items()}

    @classmethod
    def load(cls, directory: str | Path | None = None) -> Catalog:
        """Read ``schools.json`` and ``tracks.json`` from ``directory``."""
        base = Path(directory) if directory else DEFAULT_CATALOG_DIR
        schools = json.loads((base / "schools.json").read_text(encoding="utf-8"))
        tracks = json.loads((base / "tracks.json").read_text(encoding="utf-8"))
        return cls([School(**item) for item in schools], tracks)

    # ------------------------------------------------------------------
    @property
    def schools(self) -> tuple[School, ...]:
        return self._schools

    def has_school(self, school_id: str) -> bool:
        return school_id in self._by_id

    def school_name(self, school_id: str) -> str:
        school = self._by_id.get(school_id)
        return school.name if school else school_id

    def tracks_for(self, school_id: str) -> list[tuple[str, str]]:
        """Return ``(track_id, track_name)`` pairs in catalog order."""
        names = self._tracks.get(school_id, ())
        return [(make_track_id(school_id, i), name) for i, name in enumerate(names)]

    def has_track(self, school_id: str, track_id: str) -> bool:
        index = track_index(track_id)
        if index is None or track_id != make_track_id(school_id, index):
            return False
        return 0 <= index < len(self._tracks.get(school_id, ()))

    def track_name(self, school_id: str, track_id: str) -> str:
        """Return the display name of ``track_id``, falling back to the id."""
        index = track_index(track_id)
        names = self._tracks.get(school_id, ())
        if index is None or index >= len(names):
            return track_id
        return names[index]

    def find_track_name(self, track_id: str) -> str:
        """Resolve a track name when only the track id is known."""
        school_id, sep, _ = track_id.rpartition(_TRACK_SEPARATOR)
        if not sep:
            return track_id
        return self.track_name(school_id, track_id)
