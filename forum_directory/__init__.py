"""Core package for the academic forum directory.

This module exposes the data models, the stores and the services so that
consumers of the package can simply import them from ``forum_directory``.
The presentation layer talks to the services returned by :func:`create_app`;
nothing else is part of the public surface.
"""

from .app import ForumApp, create_app
from .core.catalog import Catalog
from .core.errors import (
    CapacityExceeded,
    ForumError,
    NotFound,
    NotInitialized,
    PositionConflict,
    StoreError,
    ValidationFailure,
    VersionConflict,
)
from .core.models import Contact, OrganizationStructure, Position, Role, RoleType, User
from .data.contacts import ContactRepository
from .data.hierarchy import HierarchyStore
from .services.roles import RoleService

__all__ = [
    "CapacityExceeded",
    "Catalog",
    "Contact",
    "ContactRepository",
    "ForumApp",
    "ForumError",
    "HierarchyStore",
    "NotFound",
    "NotInitialized",
    "OrganizationStructure",
    "Position",
    "PositionConflict",
    "Role",
    "RoleService",
    "RoleType",
    "StoreError",
    "User",
    "ValidationFailure",
    "VersionConflict",
    "create_app",
]
