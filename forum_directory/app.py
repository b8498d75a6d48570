"""Wiring of stores, repositories and services from :class:`Settings`."""

from __future__ import annotations

from dataclasses import dataclass

from .adapters.base import DocumentStore
from .adapters.firestore import FirestoreDocumentStore
from .adapters.json_file import JSONDocumentStore
from .adapters.memory import InMemoryDocumentStore
from .config import Settings, load_settings
from .core.catalog import Catalog
from .data.contacts import ContactRepository
from .data.hierarchy import HierarchyStore
from .data.users import UserRepository
from .logging_config import setup_logging
from .services.accounts import AccountService
from .services.directory import DirectoryService
from .services.roles import RoleService


@dataclass
class ForumApp:
    """Everything the presentation layer is allowed to call."""

    settings: Settings
    store: DocumentStore
    catalog: Catalog
    contacts: ContactRepository
    users: UserRepository
    hierarchy: HierarchyStore
    roles: RoleService
    accounts: AccountService
    directory: DirectoryService

    async def close(self) -> None:
        await self.store.close()


def create_store(settings: Settings) -> DocumentStore:
    if settings.backend == "memory":
        return InMemoryDocumentStore()
    if settings.backend == "json":
        return JSONDocumentStore(path=settings.data_path)
    if settings.backend == "firestore":
        if not settings.firestore_project_id:
            raise ValueError(
                "FIRESTORE_PROJECT_ID is not set. "
                "Export it in your environment before using the firestore backend."
            )
        return FirestoreDocumentStore(
            project_id=settings.firestore_project_id,
            token=settings.firestore_token,
            database=settings.firestore_database,
        )
    raise ValueError(f"Unknown backend {settings.backend!r}")


def create_app(
    settings: Settings | None = None, store: DocumentStore | None = None
) -> ForumApp:
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    store = store or create_store(settings)
    catalog = Catalog.load(settings.catalog_dir)

    contacts = ContactRepository(store)
    users = UserRepository(store)
    hierarchy = HierarchyStore(
        store,
        catalog,
        contacts,
        exclusive_positions=settings.exclusive_positions,
        max_write_attempts=settings.max_write_attempts,
    )
    roles = RoleService(hierarchy, contacts)
    return ForumApp(
        settings=settings,
        store=store,
        catalog=catalog,
        contacts=contacts,
        users=users,
        hierarchy=hierarchy,
        roles=roles,
        accounts=AccountService(users, contacts, hierarchy, roles),
        directory=DirectoryService(contacts, catalog),
    )
