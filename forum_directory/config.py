import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    backend: str = "memory"  # "memory" | "json" | "firestore"
    data_path: str = "forum_data.json"
    # None means the catalog packaged under forum_directory/resources
    catalog_dir: str | None = None
    firestore_project_id: str = ""
    firestore_database: str = "(default)"
    firestore_token: str = ""
    # Reject placing a user in a second position of the hierarchy
    exclusive_positions: bool = False
    max_write_attempts: int = 3
    log_level: str = "INFO"


def load_settings() -> Settings:
    attempts = os.getenv("FORUM_MAX_WRITE_ATTEMPTS", "").strip()
    return Settings(
        backend=os.getenv("FORUM_BACKEND", "memory").strip().lower() or "memory",
        data_path=os.getenv("FORUM_DATA_PATH", "").strip() or "forum_data.json",
        catalog_dir=os.getenv("FORUM_CATALOG_DIR", "").strip() or None,
        firestore_project_id=os.getenv("FIRESTORE_PROJECT_ID", "").strip(),
        firestore_database=os.getenv("FIRESTORE_DATABASE", "").strip() or "(default)",
        firestore_token=os.getenv("FIRESTORE_TOKEN", "").strip(),
        exclusive_positions=os.getenv("FORUM_EXCLUSIVE_POSITIONS", "").strip().lower()
        in _TRUTHY,
        max_write_attempts=max(1, int(attempts)) if attempts else 3,
        log_level=os.getenv("FORUM_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
