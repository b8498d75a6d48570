"""Exception taxonomy shared by the stores and services.

Every error raised on purpose by :mod:`forum_directory` derives from
:class:`ForumError` so that a presentation layer can tell an expected
failure (a full rep slot, a missing contact) from a programming error with a
single ``except`` clause.
"""

from __future__ import annotations


class ForumError(Exception):
    """Base class for all directory errors."""


class NotInitialized(ForumError):
    """The organization structure document does not exist yet."""

    def __init__(self, message: str = "Organization structure not initialized") -> None:
        super().__init__(message)


class CapacityExceeded(ForumError):
    """A track/year slot already holds the maximum number of reps."""

    def __init__(self, track_id: str, year: int, limit: int) -> None:
        super().__init__(
            f"Track {track_id} Year {year} already has maximum {limit} representatives"
        )
        self.track_id = track_id
        self.year = year
        self.limit = limit


class NotFound(ForumError):
    """A referenced contact, user or slot does not exist."""


class ValidationFailure(ForumError):
    """The caller supplied an identifier outside the reference catalog."""


class PositionConflict(ForumError):
    """The user already holds another position (exclusive mode only)."""


class StoreError(ForumError):
    """The document store rejected or failed an operation."""


class VersionConflict(StoreError):
    """A compare-and-swap write lost against a concurrent writer."""
