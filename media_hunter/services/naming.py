"""Helpers for file names derived from user-facing identifiers."""

from __future__ import annotations

from datetime import datetime
import re
from typing import Optional

__all__ = [
    "slugify",
    "build_snapshot_name",
    "build_export_name",
]


def slugify(value: str) -> str:
    """Return a filesystem-friendly representation of *value*."""

    value = str(value).strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-+", "-", value).strip("-")
    return value or "item"


def build_snapshot_name(student_id: str) -> str:
    """Return the local watched-state file name for *student_id*."""

    return f"{slugify(student_id)}.json"


def build_export_name(
    stem: str,
    *,
    timestamp: Optional[str] = None,
    extension: str = "txt",
) -> str:
    """Return a timestamped export file name such as ``media-reports-20240101-120000.txt``."""

    stamp = timestamp or datetime.now().strftime("%Y%m%d-%H%M%S")
    suffix = extension if extension.startswith(".") else f".{extension}"
    return f"{slugify(stem)}-{stamp}{suffix.lower()}"
