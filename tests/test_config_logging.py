import logging

from forum_directory.config import load_settings
from forum_directory.logging_config import setup_logging


def test_load_settings_defaults(monkeypatch):
    for name in (
        "FORUM_BACKEND",
        "FORUM_DATA_PATH",
        "FORUM_CATALOG_DIR",
        "FORUM_EXCLUSIVE_POSITIONS",
        "FORUM_MAX_WRITE_ATTEMPTS",
        "FIRESTORE_PROJECT_ID",
        "FIRESTORE_DATABASE",
    ):
        monkeypatch.delenv(name, raising=False)
    s = load_settings()
    assert s.backend == "memory"
    assert s.data_path == "forum_data.json"
    assert s.catalog_dir is None
    assert s.exclusive_positions is False
    assert s.max_write_attempts == 3
    assert s.firestore_database == "(default)"


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("FORUM_BACKEND", "Firestore")
    monkeypatch.setenv("FIRESTORE_PROJECT_ID", "forum-prod")
    monkeypatch.setenv("FORUM_EXCLUSIVE_POSITIONS", "yes")
    monkeypatch.setenv("FORUM_MAX_WRITE_ATTEMPTS", "0")
    s = load_settings()
    assert s.backend == "firestore"
    assert s.firestore_project_id == "forum-prod"
    assert s.exclusive_positions is True
    # at least one attempt is always made
    assert s.max_write_attempts == 1


def test_setup_logging_idempotent():
    logger1 = setup_logging(logging.DEBUG)
    logger2 = setup_logging(logging.DEBUG)
    assert logger1 is logger2
    assert logger1.name == "forum_directory"
    assert logger1.handlers  # at least one handler installed
