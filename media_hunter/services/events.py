"""Structured log events shared by the repository, the web layer and the fallback chains.

Every event is a single log record whose message reads
``[TYPE] name (key=value, ...)`` and whose ``extra`` carries the same data as
``event_*`` attributes, so handlers can filter on them without parsing text.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .results import Failure


DEFAULT_EVENT_LOGGER = logging.getLogger("media_hunter.events")

_MAX_VALUE_LENGTH = 200


class EventType(str, Enum):
    DB_QUERY = "DB_QUERY"
    APP_EVENT = "APP_EVENT"
    SOURCE_FALLBACK = "SOURCE_FALLBACK"


def sanitize_context_value(value: Any) -> Any:
    """Return a log-friendly scalar (or dict of scalars) for *value*, or ``None`` if empty."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return normalize_context(value) or None
    if isinstance(value, (list, tuple, set)):
        text = ", ".join(str(item) for item in value)
    else:
        text = str(value)
    text = text.strip()
    if not text:
        return None
    if len(text) > _MAX_VALUE_LENGTH:
        return text[:_MAX_VALUE_LENGTH] + "…"
    return text


def normalize_context(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not values:
        return {}
    normalised: Dict[str, Any] = {}
    for key, raw_value in values.items():
        if not key:
            continue
        value = sanitize_context_value(raw_value)
        if value is None or value == "":
            continue
        normalised[str(key)] = value
    return normalised


def emit_structured_event(
    event_type: EventType | str,
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
    correlation: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit one structured event record on *logger*."""

    type_name = event_type.value if isinstance(event_type, EventType) else str(event_type or "")
    name = str(message).strip()
    sections = {
        "event_correlation": normalize_context(correlation),
        "event_context": normalize_context(context),
        "event_payload": normalize_context(payload),
    }

    details: Dict[str, Any] = {}
    for section in sections.values():
        details.update(section)
    if duration_ms is not None:
        details["duration_ms"] = round(float(duration_ms), 2)

    text = f"[{type_name}] {name}" if type_name else name
    if details:
        text += " (" + ", ".join(f"{key}={value}" for key, value in details.items()) + ")"

    extra: Dict[str, Any] = {"event_name": name, "event_type": type_name}
    extra.update({key: section for key, section in sections.items() if section})
    logger.log(level, text, extra=extra)


def emit_db_event(
    action: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    correlation: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.DEBUG,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    emit_structured_event(
        EventType.DB_QUERY,
        action,
        payload=payload,
        correlation=correlation,
        duration_ms=duration_ms,
        level=level,
        logger=logger,
    )


def emit_fallback_event(
    subject: str,
    failure: Failure,
    *,
    fallback: Optional[str],
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Record that *failure* pushed *subject* onto the next source (``None`` when none is left)."""

    emit_structured_event(
        EventType.SOURCE_FALLBACK,
        subject,
        payload={
            "failed_source": failure.source,
            "kind": failure.kind,
            "status_code": failure.status_code,
            "reason": failure.reason,
            "fallback": fallback or "none",
        },
        level=logging.WARNING,
        logger=logger,
    )


__all__ = [
    "DEFAULT_EVENT_LOGGER",
    "EventType",
    "emit_db_event",
    "emit_fallback_event",
    "emit_structured_event",
    "normalize_context",
    "sanitize_context_value",
]
