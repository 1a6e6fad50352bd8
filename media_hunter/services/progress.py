"""Per-student watched state with a remote primary store and a local fallback.

Each :meth:`ProgressStore.load` picks one source of truth for the student:
the backend when it answers, otherwise the local JSON snapshot. The two are
never merged. Saves always update the in-memory view first, then try the
backend, then rewrite the whole local snapshot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from ..config import AppConfig
from .api_client import REMOTE_SOURCE, CatalogApiClient
from .events import emit_fallback_event
from .identity import MediaKey, candidate_keys, coerce_database_id, normalize_media_key, resolve_media_key
from .naming import build_snapshot_name
from .results import Failure, FailureKind, Result, Success

LOGGER = logging.getLogger(__name__)

LOCAL_SOURCE = "local"


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a watched-state change for one student and media key."""

    key: MediaKey
    watched: bool
    persisted_to: Optional[str]
    failures: Tuple[Failure, ...] = ()

    @property
    def persisted(self) -> bool:
        return self.persisted_to is not None


class LocalProgressSnapshot:
    """A single ``media key -> bool`` mapping stored as JSON, read and written wholesale."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Result[Dict[MediaKey, bool]]:
        if not self._path.exists():
            return Success({}, source=LOCAL_SOURCE)
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as error:
            return Failure(FailureKind.TRANSPORT, str(error), source=LOCAL_SOURCE)
        except json.JSONDecodeError as error:
            return Failure(FailureKind.PAYLOAD, f"invalid snapshot: {error}", source=LOCAL_SOURCE)
        if not isinstance(payload, dict):
            return Failure(FailureKind.PAYLOAD, "snapshot is not an object", source=LOCAL_SOURCE)
        return Success(
            {normalize_media_key(key): bool(value) for key, value in payload.items()},
            source=LOCAL_SOURCE,
        )

    def write(self, watched: Mapping[MediaKey, bool]) -> Result[None]:
        data = {str(key): bool(value) for key, value in watched.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as error:
            return Failure(FailureKind.TRANSPORT, str(error), source=LOCAL_SOURCE)
        return Success(None, source=LOCAL_SOURCE)


class RemoteProgressBackend:
    """Watched state held by the catalog backend, keyed by database media id."""

    name = REMOTE_SOURCE

    def __init__(self, api: CatalogApiClient) -> None:
        self._api = api

    def load(self, student_id: str) -> Result[Dict[MediaKey, bool]]:
        outcome = self._api.fetch_progress(student_id)
        if isinstance(outcome, Failure):
            return outcome
        watched: Dict[MediaKey, bool] = {}
        for row in outcome.value:
            if not isinstance(row, dict) or "media_id" not in row:
                return Failure(FailureKind.PAYLOAD, "progress row without media_id", source=self.name)
            media_id = coerce_database_id(row["media_id"])
            if media_id is None:
                return Failure(
                    FailureKind.PAYLOAD,
                    f"progress row with invalid media_id {row['media_id']!r}",
                    source=self.name,
                )
            if row.get("watched"):
                watched[media_id] = True
        return Success(watched, source=self.name)

    def save(self, student_id: str, key: MediaKey, watched: bool) -> Result[Dict[str, Any]]:
        if not isinstance(key, int) or isinstance(key, bool):
            # Only catalogued media have a row the backend can reference.
            return Failure(
                FailureKind.LOGICAL,
                f"derived key {key!r} has no backend record",
                source=self.name,
            )
        return self._api.save_progress(student_id, key, watched)

    def bulk(self, key: MediaKey, watched: bool, marked_by: str) -> Result[Dict[str, Any]]:
        if not isinstance(key, int) or isinstance(key, bool):
            return Failure(
                FailureKind.LOGICAL,
                f"derived key {key!r} has no backend record",
                source=self.name,
            )
        return self._api.bulk_progress(key, watched, marked_by)


@dataclass
class _StudentView:
    watched: Dict[MediaKey, bool] = field(default_factory=dict)
    source: Optional[str] = None


class ProgressStore:
    """Session-scoped watched state for any number of students."""

    def __init__(
        self,
        remote: Optional[RemoteProgressBackend],
        snapshot_root: Path,
    ) -> None:
        self._remote = remote
        self._snapshot_root = Path(snapshot_root)
        self._views: Dict[str, _StudentView] = {}

    @classmethod
    def from_config(cls, config: AppConfig, api: CatalogApiClient) -> "ProgressStore":
        remote = RemoteProgressBackend(api) if api.available else None
        return cls(remote, config.progress_snapshot_root)

    @property
    def remote(self) -> Optional[RemoteProgressBackend]:
        return self._remote

    def snapshot_for(self, student_id: str) -> LocalProgressSnapshot:
        return LocalProgressSnapshot(self._snapshot_root / build_snapshot_name(student_id))

    def source_for(self, student_id: str) -> Optional[str]:
        view = self._views.get(student_id)
        return view.source if view is not None else None

    def load(self, student_id: str) -> Dict[MediaKey, bool]:
        """Replace the student's view with the remote state, or the local snapshot."""

        if self._remote is not None:
            outcome = self._remote.load(student_id)
            if isinstance(outcome, Success):
                LOGGER.debug(
                    "Loaded %d watched entries for %s from backend", len(outcome.value), student_id
                )
                self._views[student_id] = _StudentView(dict(outcome.value), REMOTE_SOURCE)
                return dict(outcome.value)
            emit_fallback_event(f"progress load {student_id}", outcome, fallback=LOCAL_SOURCE, logger=LOGGER)

        local = self.snapshot_for(student_id).read()
        if isinstance(local, Failure):
            LOGGER.warning("Local progress snapshot unusable for %s: %s", student_id, local.describe())
            self._views[student_id] = _StudentView({}, None)
            return {}

        self._views[student_id] = _StudentView(dict(local.value), LOCAL_SOURCE)
        return dict(local.value)

    def _view(self, student_id: str) -> _StudentView:
        view = self._views.get(student_id)
        if view is None:
            self.load(student_id)
            view = self._views[student_id]
        return view

    def watched_entries(self, student_id: str) -> Dict[MediaKey, bool]:
        return dict(self._view(student_id).watched)

    def watched_count(self, student_id: str) -> int:
        return sum(1 for value in self._view(student_id).watched.values() if value)

    def is_watched(self, student_id: str, media: Any) -> bool:
        """Check the database id first, then the derived key recorded before the id existed."""

        watched = self._view(student_id).watched
        return any(watched.get(key) is True for key in candidate_keys(media))

    def save(self, student_id: str, key: MediaKey, watched: bool) -> SaveOutcome:
        view = self._view(student_id)
        view.watched[key] = bool(watched)
        return self._persist(student_id, key, bool(watched), view)

    def toggle(self, student_id: str, media: Any) -> SaveOutcome:
        new_state = not self.is_watched(student_id, media)
        key = resolve_media_key(media)
        view = self._view(student_id)
        if not new_state:
            for alias in candidate_keys(media):
                if alias != key and alias in view.watched:
                    view.watched[alias] = False
        view.watched[key] = new_state
        return self._persist(student_id, key, new_state, view)

    def _persist(self, student_id: str, key: MediaKey, watched: bool, view: _StudentView) -> SaveOutcome:
        failures = []
        if self._remote is not None:
            outcome = self._remote.save(student_id, key, watched)
            if isinstance(outcome, Success):
                return SaveOutcome(key=key, watched=watched, persisted_to=REMOTE_SOURCE)
            failures.append(outcome)
            emit_fallback_event(
                f"progress save {student_id}/{key}", outcome, fallback=LOCAL_SOURCE, logger=LOGGER
            )

        written = self.snapshot_for(student_id).write(view.watched)
        if isinstance(written, Success):
            return SaveOutcome(
                key=key, watched=watched, persisted_to=LOCAL_SOURCE, failures=tuple(failures)
            )
        failures.append(written)
        LOGGER.warning(
            "Watched state for %s/%s kept in memory only: %s",
            student_id,
            key,
            written.describe(),
        )
        return SaveOutcome(key=key, watched=watched, persisted_to=None, failures=tuple(failures))

    def forget(self, student_id: Optional[str] = None) -> None:
        """Drop cached views so the next access reloads from a store."""

        if student_id is None:
            self._views.clear()
        else:
            self._views.pop(student_id, None)


__all__ = [
    "LOCAL_SOURCE",
    "LocalProgressSnapshot",
    "ProgressStore",
    "REMOTE_SOURCE",
    "RemoteProgressBackend",
    "SaveOutcome",
]
