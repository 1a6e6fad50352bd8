"""Browsing session for one viewer.

A :class:`CatalogSession` owns the selection (grade, category, topic), the
media filters and the viewer identity. It delegates loading to a shared
:class:`~media_hunter.services.curriculum.CurriculumLoader` and watched state to
a :class:`~media_hunter.services.progress.ProgressStore`.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import List, Optional, Tuple

from .catalog import MediaFilters, breadcrumb, filter_media, filter_topics
from .curriculum import CurriculumLoader
from .models import Category, GradeTree, Media, Role, Topic, User
from .moderation import MediaView, present_media
from .progress import ProgressStore, SaveOutcome

LOGGER = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_student_id() -> str:
    """Return a random ``student_<9 base36 chars>`` identifier."""

    return "student_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


class CatalogSession:
    def __init__(
        self,
        loader: CurriculumLoader,
        progress: ProgressStore,
        *,
        viewer: Optional[User] = None,
        student_id: Optional[str] = None,
    ) -> None:
        self._loader = loader
        self._progress = progress
        if viewer is None:
            viewer = User(user_id=student_id or generate_student_id(), name="Student", role=Role.STUDENT)
        self.viewer = viewer
        self.grade_id: Optional[str] = None
        self.category_id: Optional[str] = None
        self.topic_id: Optional[str] = None
        self.filters = MediaFilters()
        self._tree: Optional[GradeTree] = None

    @property
    def student_id(self) -> str:
        return self.viewer.user_id

    @property
    def tree(self) -> GradeTree:
        if self._tree is None:
            raise RuntimeError("no grade selected; call init() first")
        return self._tree

    def init(self, grade_id: str) -> GradeTree:
        """Load watched state and the starting grade."""

        self._progress.load(self.student_id)
        return self.select_grade(grade_id)

    def reset(self) -> None:
        self.grade_id = None
        self.category_id = None
        self.topic_id = None
        self.filters = MediaFilters()
        self._tree = None
        self._progress.forget(self.student_id)

    def select_grade(self, grade_id: str, *, force_reload: bool = False) -> GradeTree:
        self._tree = self._loader.load_grade(grade_id, force_reload=force_reload)
        self.grade_id = str(grade_id)
        self.category_id = None
        self.topic_id = None
        LOGGER.debug("Session %s switched to grade %s", self.student_id, grade_id)
        return self._tree

    def reload(self) -> GradeTree:
        if self.grade_id is None:
            raise RuntimeError("no grade selected; call init() first")
        category_id, topic_id = self.category_id, self.topic_id
        self.select_grade(self.grade_id, force_reload=True)
        if category_id and self.tree.find_category(category_id) is not None:
            self.category_id = category_id
        if topic_id and self.tree.find_topic(topic_id) is not None:
            self.topic_id = topic_id
        return self.tree

    def select_category(self, category_id: str) -> Optional[Category]:
        """Select *category_id*, or clear the selection when it is already selected."""

        if self.category_id == category_id:
            self.category_id = None
            return None
        category = self.tree.find_category(category_id)
        if category is None:
            raise KeyError(f"unknown category {category_id!r} in grade {self.grade_id}")
        self.category_id = category_id
        return category

    def select_topic(self, topic_id: str) -> Topic:
        found = self.tree.find_topic(topic_id)
        if found is None:
            raise KeyError(f"unknown topic {topic_id!r} in grade {self.grade_id}")
        self.topic_id = topic_id
        return found[1]

    def set_filters(self, filters: MediaFilters) -> None:
        self.filters = filters

    def visible_topics(self, query: str = "") -> List[Tuple[Category, Topic]]:
        return filter_topics(self.tree, category_id=self.category_id, query=query)

    def current_topic(self) -> Optional[Topic]:
        if not self.topic_id:
            return None
        found = self.tree.find_topic(self.topic_id)
        return found[1] if found is not None else None

    def visible_media(self) -> List[MediaView]:
        topic = self.current_topic()
        if topic is None:
            return []
        return [present_media(item, self.viewer) for item in filter_media(topic, self.filters)]

    def breadcrumb(self) -> List[str]:
        return breadcrumb(self.tree, category_id=self.category_id, topic_id=self.topic_id)

    def is_watched(self, media: Media) -> bool:
        return self._progress.is_watched(self.student_id, media)

    def toggle_watched(self, media: Media) -> SaveOutcome:
        return self._progress.toggle(self.student_id, media)

    def watched_count(self) -> int:
        return self._progress.watched_count(self.student_id)


__all__ = ["CatalogSession", "generate_student_id"]
