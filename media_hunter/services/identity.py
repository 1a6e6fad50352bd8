"""Stable identity for media records with or without a database id.

Watched marks and reports are keyed by the value returned from
:func:`resolve_media_key`. A database-assigned integer id is authoritative.
Records that have not been persisted yet fall back to a key derived from the
title and year, so a client-only mark made before the record existed can still
be found after a reload (see :func:`candidate_keys`).

Two distinct items that share a title and year derive the same key. Editing a
title or year changes the derived key.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Tuple, Union

MediaKey = Union[int, str]

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")
_UNKNOWN_YEAR = "unknown"
_DIGITS = re.compile(r"[0-9]+")


def derive_media_key(title: str, year: Any = None) -> str:
    """Return the derived key for a title/year pair.

    Every character outside ``[a-z0-9]`` becomes a single hyphen, so the result
    always contains at least the hyphen separating title and year.
    """

    raw = f"{title}-{year or _UNKNOWN_YEAR}".lower()
    return _NON_ALPHANUMERIC.sub("-", raw)


def _field(media: Any, name: str) -> Any:
    if isinstance(media, Mapping):
        return media.get(name)
    return getattr(media, name, None)


def coerce_database_id(value: Any) -> int | None:
    """Return *value* as a database id, or ``None`` if it cannot be one.

    Integers and purely numeric strings qualify; booleans never do.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        return int(value.strip())
    return None


def _database_id(media: Any) -> int | None:
    return coerce_database_id(_field(media, "id"))


def resolve_media_key(media: Any) -> MediaKey:
    """Return the canonical storage key for *media*.

    *media* may be a :class:`~media_hunter.services.models.Media` or a raw
    mapping as served by the curriculum endpoints.
    """

    database_id = _database_id(media)
    if database_id is not None:
        return database_id
    return derive_media_key(_field(media, "title"), _field(media, "year"))


def candidate_keys(media: Any) -> Tuple[MediaKey, ...]:
    """Return every key under which *media* may have been recorded, id first."""

    derived = derive_media_key(_field(media, "title"), _field(media, "year"))
    database_id = _database_id(media)
    if database_id is None:
        return (derived,)
    return (database_id, derived)


def normalize_media_key(value: Any) -> MediaKey:
    """Restore the canonical type of a key read back from JSON.

    Object keys lose their type when serialised. Derived keys always contain a
    hyphen, so a purely numeric string can only be a database id.
    """

    if isinstance(value, bool):
        raise TypeError("media keys cannot be booleans")
    if isinstance(value, int):
        return value
    text = str(value)
    if _DIGITS.fullmatch(text):
        return int(text)
    return text


__all__ = [
    "MediaKey",
    "candidate_keys",
    "coerce_database_id",
    "derive_media_key",
    "normalize_media_key",
    "resolve_media_key",
]
