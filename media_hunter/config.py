"""Configuration loading utilities for the Media Hunter application."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


LOGGER = logging.getLogger(__name__)


_PERMISSION_SENTINEL = ".media_hunter_write_check"
_API_BASE_URL_ENV = "MEDIA_HUNTER_API_BASE_URL"
_DEFAULT_REQUEST_TIMEOUT = 10.0
_DEFAULT_EXTENDED_GRADES: Dict[str, Tuple[str, ...]] = {"11": ("grade-11-part2.json",)}


def _ensure_writable_directory(path: Path) -> bool:
    """Return ``True`` if *path* can be created and written to."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False

    test_file = path / _PERMISSION_SENTINEL
    try:
        with test_file.open("w", encoding="utf-8") as handle:
            handle.write("ok")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            test_file.unlink()

    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return a usable directory based on ``preferred`` and ``fallbacks``.

    The first writable candidate wins. A flag reports whether a fallback was
    used. When nothing can be prepared the original ``preferred`` path is
    returned and the caller is left to fail later.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    for fallback in fallbacks:
        candidate = fallback.resolve()
        if candidate == preferred:
            continue
        if _ensure_writable_directory(candidate):
            LOGGER.warning(
                "Preferred %s directory '%s' is not writable; using fallback '%s'.",
                label,
                preferred,
                candidate,
            )
            return candidate, True

    LOGGER.warning(
        "%s directory '%s' is not writable and no fallback is available.",
        label.capitalize(),
        preferred,
    )
    return preferred, False


@dataclass(frozen=True)
class GradeInfo:
    """Static description of a grade level."""

    grade_id: str
    name: str
    focus: str = ""


@dataclass(frozen=True)
class UserSeed:
    user_id: str
    name: str
    role: str = "student"
    avatar_color: str = "#58a6ff"


@dataclass(frozen=True)
class AppConfig:
    """Container describing runtime paths and collaborators for the application."""

    storage_root: Path
    database_file: Path
    grades_root: Path
    api_base_url: Optional[str] = None
    request_timeout: float = _DEFAULT_REQUEST_TIMEOUT
    extended_grades: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(_DEFAULT_EXTENDED_GRADES)
    )
    grades: Tuple[GradeInfo, ...] = ()
    users: Tuple[UserSeed, ...] = ()

    @property
    def progress_snapshot_root(self) -> Path:
        """Directory holding the local watched-state snapshots."""

        return (self.storage_root / "curriculum-watched").resolve()

    def grade_info(self, grade_id: str) -> Optional[GradeInfo]:
        for info in self.grades:
            if info.grade_id == str(grade_id):
                return info
        return None

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], *, base_path: Path) -> "AppConfig":
        preferred_storage = (base_path / mapping["storage_root"]).resolve()
        storage_fallback = Path.home() / ".media_hunter" / "storage"
        storage_root, storage_fallback_used = _select_writable_directory(
            preferred_storage,
            label="storage",
            fallbacks=(storage_fallback,),
        )

        database_file = (base_path / mapping["database_file"]).resolve()
        if storage_fallback_used:
            try:
                relative_database = database_file.relative_to(preferred_storage)
            except ValueError:
                relative_database = None
            if relative_database is not None:
                fallback_database = (storage_root / relative_database).resolve()
                if _ensure_writable_directory(fallback_database.parent):
                    LOGGER.warning(
                        "Preferred database location '%s' is not writable; using fallback '%s'.",
                        database_file,
                        fallback_database,
                    )
                    database_file = fallback_database

        grades_root = (base_path / mapping.get("grades_root", "grades")).resolve()

        api_base_url = os.environ.get(_API_BASE_URL_ENV) or mapping.get("api_base_url")
        if api_base_url is not None:
            api_base_url = str(api_base_url).strip().rstrip("/") or None

        try:
            request_timeout = float(mapping.get("request_timeout", _DEFAULT_REQUEST_TIMEOUT))
        except (TypeError, ValueError):
            LOGGER.warning("Ignoring invalid request_timeout %r", mapping.get("request_timeout"))
            request_timeout = _DEFAULT_REQUEST_TIMEOUT

        raw_extended = mapping.get("extended_grades")
        if raw_extended is None:
            extended_grades = dict(_DEFAULT_EXTENDED_GRADES)
        else:
            extended_grades = {
                str(grade_id): tuple(str(name) for name in names)
                for grade_id, names in dict(raw_extended).items()
            }

        grades = tuple(
            GradeInfo(
                grade_id=str(grade_id),
                name=str(details.get("name", f"Grade {grade_id}")),
                focus=str(details.get("focus", "")),
            )
            for grade_id, details in dict(mapping.get("grades") or {}).items()
        )

        users = tuple(
            UserSeed(
                user_id=str(entry["user_id"]),
                name=str(entry.get("name") or entry["user_id"]),
                role=str(entry.get("role", "student")),
                avatar_color=str(entry.get("avatar_color", "#58a6ff")),
            )
            for entry in mapping.get("users") or ()
        )

        return cls(
            storage_root=storage_root,
            database_file=database_file,
            grades_root=grades_root,
            api_base_url=api_base_url,
            request_timeout=request_timeout,
            extended_grades=extended_grades,
            grades=grades,
            users=users,
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the application configuration from ``config/default.json`` by default."""

    base_path = Path(__file__).resolve().parent.parent
    if config_path is None:
        config_path = base_path / "config" / "default.json"

    with config_path.open("r", encoding="utf-8") as config_file:
        raw_config = json.load(config_file)

    return AppConfig.from_mapping(raw_config, base_path=base_path)


__all__ = ["AppConfig", "GradeInfo", "UserSeed", "load_config"]
