"""Bootstrap logic that prepares runtime directories and the SQLite catalog database."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from . import config as config_module
from .config import AppConfig, load_config

LOGGER = logging.getLogger(__name__)


class BootstrapError(RuntimeError):
    """Raised when initialization cannot be completed."""


class Bootstrapper:
    """High level object orchestrating initialization steps."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    @property
    def config(self) -> AppConfig:
        return self._config

    def initialize(self) -> None:
        """Run all bootstrap tasks."""

        LOGGER.debug("Starting bootstrap sequence")
        self._ensure_directories()
        self._ensure_database()
        LOGGER.info("Bootstrap completed successfully")

    def _ensure_directories(self) -> None:
        targets = (
            ("storage", self._config.storage_root),
            ("progress snapshot", self._config.progress_snapshot_root),
            ("database", self._config.database_file.parent),
        )
        for label, path in targets:
            if not config_module._ensure_writable_directory(path):
                raise BootstrapError(f"Unable to prepare {label} directory at '{path}'")
            LOGGER.debug("Ensured directory exists: %s", path)

    def _ensure_database(self) -> None:
        LOGGER.debug("Ensuring database schema at %s", self._config.database_file)
        try:
            connection = sqlite3.connect(self._config.database_file)
        except sqlite3.Error as error:
            raise BootstrapError(
                f"Unable to open database '{self._config.database_file}': {error}"
            ) from error
        try:
            cursor = connection.cursor()
            cursor.executescript(
                """
                PRAGMA foreign_keys = ON;
                CREATE TABLE IF NOT EXISTS grades (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    grade_number TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    curriculum_focus TEXT DEFAULT '',
                    last_updated TEXT DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    grade_id INTEGER NOT NULL,
                    slug TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    UNIQUE(grade_id, slug),
                    FOREIGN KEY(grade_id) REFERENCES grades(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS topics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    category_id INTEGER NOT NULL,
                    slug TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    UNIQUE(category_id, slug),
                    FOREIGN KEY(category_id) REFERENCES categories(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS subtopics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    topic_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY(topic_id) REFERENCES topics(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS media (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    topic_id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    type TEXT NOT NULL DEFAULT 'movie',
                    year INTEGER,
                    rating TEXT,
                    runtime INTEGER,
                    relevance TEXT,
                    notes TEXT,
                    age_appropriate INTEGER NOT NULL DEFAULT 1,
                    content_type TEXT NOT NULL DEFAULT 'entertainment',
                    links TEXT NOT NULL DEFAULT '{}',
                    lesson_plan TEXT,
                    FOREIGN KEY(topic_id) REFERENCES topics(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'student',
                    avatar_color TEXT DEFAULT '#58a6ff',
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    last_active TEXT DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS student_progress (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    student_id TEXT NOT NULL,
                    media_id INTEGER NOT NULL,
                    watched INTEGER NOT NULL DEFAULT 0,
                    notes TEXT,
                    rating INTEGER,
                    watch_date TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(student_id, media_id),
                    FOREIGN KEY(media_id) REFERENCES media(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS media_reports (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    media_id INTEGER NOT NULL,
                    reporter_id TEXT NOT NULL,
                    reporter_name TEXT,
                    report_type TEXT NOT NULL,
                    notes TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    resolved_by TEXT,
                    resolved_at TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(media_id) REFERENCES media(id) ON DELETE CASCADE
                );
                """
            )
            connection.commit()

            # The moderation flag arrived after the first catalog schema.
            try:
                cursor.execute("ALTER TABLE media ADD COLUMN disabled INTEGER NOT NULL DEFAULT 0")
            except sqlite3.OperationalError as error:
                message = str(error).lower()
                if "duplicate column name" not in message:
                    raise
            connection.commit()
        finally:
            connection.close()


def initialize_app(config_path: Path | None = None) -> AppConfig:
    """Convenience helper that loads configuration and runs initialization."""

    config = load_config(config_path=config_path)
    bootstrapper = Bootstrapper(config)
    bootstrapper.initialize()
    return config


__all__ = ["BootstrapError", "Bootstrapper", "initialize_app"]
