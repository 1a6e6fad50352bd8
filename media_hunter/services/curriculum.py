"""Load one Category → Topic → Media tree per grade.

Sources are tried in order (the backend first, then the static per-grade JSON
snapshots). Snapshot grades may be split over several fragment files whose
category lists are concatenated in fragment order. Loaded trees are cached
until :meth:`CurriculumLoader.invalidate` or ``force_reload`` is used.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..config import AppConfig
from .api_client import CatalogApiClient
from .events import emit_fallback_event
from .models import GradeTree
from .results import Failure, FailureKind, Result, Success, first_success

LOGGER = logging.getLogger(__name__)

SNAPSHOT_SOURCE = "snapshot"


class GradeSource(Protocol):
    """Strategy yielding a grade tree or a classified failure."""

    name: str

    def fetch(self, grade_id: str) -> Result[GradeTree]:
        ...


def _parse_tree(payload: Any, *, grade_id: str, source: str) -> Result[GradeTree]:
    try:
        tree = GradeTree.from_mapping(payload, grade=grade_id)
    except (KeyError, TypeError, ValueError) as error:
        return Failure(FailureKind.PAYLOAD, f"malformed grade payload: {error}", source=source)
    return Success(tree, source=source)


def merge_fragments(fragments: Sequence[GradeTree]) -> GradeTree:
    """Concatenate the categories of *fragments* in order.

    Grade header fields come from the first fragment; later fragments only
    contribute categories.
    """

    if not fragments:
        raise ValueError("at least one fragment is required")
    head = fragments[0]
    merged = GradeTree(
        grade=head.grade,
        name=head.name,
        curriculum_focus=head.curriculum_focus,
        categories=list(head.categories),
    )
    seen = {category.id for category in merged.categories}
    for fragment in fragments[1:]:
        for category in fragment.categories:
            if category.id in seen:
                LOGGER.warning(
                    "Grade %s fragment repeats category id %r; lookups resolve to the first copy",
                    merged.grade,
                    category.id,
                )
            seen.add(category.id)
        merged.categories.extend(fragment.categories)
    return merged


class RemoteGradeSource:
    """Fetch grade trees from the catalog backend."""

    name = "remote"

    def __init__(self, api: CatalogApiClient) -> None:
        self._api = api

    def fetch(self, grade_id: str) -> Result[GradeTree]:
        outcome = self._api.fetch_grade(grade_id)
        if isinstance(outcome, Failure):
            return outcome
        return _parse_tree(outcome.value, grade_id=grade_id, source=self.name)


class SnapshotGradeSource:
    """Read grade trees from ``grade-<id>.json`` files plus optional extension fragments."""

    name = SNAPSHOT_SOURCE

    def __init__(
        self,
        grades_root: Path,
        *,
        extended_grades: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        self._root = Path(grades_root)
        self._extended = {str(key): tuple(value) for key, value in (extended_grades or {}).items()}

    def fragment_paths(self, grade_id: str) -> Tuple[Path, ...]:
        primary = self._root / f"grade-{grade_id}.json"
        extras = tuple(self._root / name for name in self._extended.get(str(grade_id), ()))
        return (primary, *extras)

    def _read_fragment(self, path: Path, *, grade_id: str) -> Result[GradeTree]:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return Failure(FailureKind.UNAVAILABLE, f"missing snapshot {path.name}", source=self.name)
        except OSError as error:
            return Failure(FailureKind.TRANSPORT, f"cannot read {path.name}: {error}", source=self.name)
        except json.JSONDecodeError as error:
            return Failure(FailureKind.PAYLOAD, f"invalid JSON in {path.name}: {error}", source=self.name)
        return _parse_tree(payload, grade_id=grade_id, source=self.name)

    def fetch(self, grade_id: str) -> Result[GradeTree]:
        primary, *extras = self.fragment_paths(grade_id)
        first = self._read_fragment(primary, grade_id=grade_id)
        if isinstance(first, Failure):
            return first

        fragments: List[GradeTree] = [first.value]
        for path in extras:
            extra = self._read_fragment(path, grade_id=grade_id)
            if isinstance(extra, Failure):
                LOGGER.info("Skipping fragment for grade %s: %s", grade_id, extra.describe())
                continue
            fragments.append(extra.value)
        return Success(merge_fragments(fragments), source=self.name)


class CurriculumLoader:
    """Resolve and cache grade trees from an ordered list of sources."""

    def __init__(self, sources: Sequence[GradeSource]) -> None:
        self._sources: Tuple[GradeSource, ...] = tuple(sources)
        self._cache: Dict[str, GradeTree] = {}
        self._origins: Dict[str, Optional[str]] = {}

    @classmethod
    def from_config(cls, config: AppConfig, api: CatalogApiClient) -> "CurriculumLoader":
        sources: List[GradeSource] = []
        if api.available:
            sources.append(RemoteGradeSource(api))
        sources.append(
            SnapshotGradeSource(config.grades_root, extended_grades=config.extended_grades)
        )
        return cls(sources)

    @property
    def cached_grades(self) -> Tuple[str, ...]:
        return tuple(self._cache)

    def source_for(self, grade_id: str) -> Optional[str]:
        """Return the name of the source that produced the cached tree, if any."""

        return self._origins.get(str(grade_id))

    def load_grade(self, grade_id: str, *, force_reload: bool = False) -> GradeTree:
        grade_id = str(grade_id)
        if not force_reload and grade_id in self._cache:
            LOGGER.debug("Grade %s served from cache", grade_id)
            return self._cache[grade_id]

        success, failures = first_success(
            [lambda source=source: source.fetch(grade_id) for source in self._sources]
        )
        if success is None:
            LOGGER.warning("No source could provide grade %s; using an empty tree", grade_id)
            tree = GradeTree.empty(grade_id)
            origin = None
        else:
            tree = success.value
            origin = success.source
            LOGGER.info(
                "Loaded grade %s from %s (%d categories, %d topics, %d media)",
                grade_id,
                origin,
                tree.category_count,
                tree.topic_count,
                tree.media_count,
            )

        fallbacks = [failure.source for failure in failures[1:]] + [origin]
        for failure, fallback in zip(failures, fallbacks):
            emit_fallback_event(f"grade {grade_id}", failure, fallback=fallback, logger=LOGGER)

        self._cache[grade_id] = tree
        self._origins[grade_id] = origin
        return tree

    def invalidate(self, grade_id: Optional[str] = None) -> None:
        if grade_id is None:
            self._cache.clear()
            self._origins.clear()
            return
        self._cache.pop(str(grade_id), None)
        self._origins.pop(str(grade_id), None)


__all__ = [
    "CurriculumLoader",
    "GradeSource",
    "RemoteGradeSource",
    "SNAPSHOT_SOURCE",
    "SnapshotGradeSource",
    "merge_fragments",
]
