"""Console rendering of a browsing session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ..services.catalog import filter_media, rating_class, type_icon
from ..services.moderation import MediaView, present_media
from ..services.models import Category, Media, Topic
from ..services.session import CatalogSession


@dataclass
class ConsoleSection:
    title: str
    entries: Iterable[str]


class ConsoleUI:
    """Plain-text overview of the selected grade for the session's viewer."""

    def __init__(self, session: CatalogSession, *, write: Callable[[str], None] = print) -> None:
        self._session = session
        self._write = write

    def run(self, query: str = "") -> None:
        tree = self._session.tree
        title = f"Grade {tree.grade}" + (f" – {tree.name}" if tree.name else "")
        self._write(title)
        self._write("=" * len(title))
        if tree.curriculum_focus:
            self._write(tree.curriculum_focus)
        self._write(
            f"{tree.category_count} categories · {tree.topic_count} topics · "
            f"{tree.media_count} media · {self._session.watched_count()} watched"
        )
        self._write(" > ".join(self._session.breadcrumb()))
        self._write("")
        if tree.is_empty:
            self._write("(no curriculum available)")
            return

        for section in self._build_sections(query):
            self._write(section.title)
            self._write("-" * len(section.title))
            has_entries = False
            for entry in section.entries:
                has_entries = True
                self._write(entry)
            if not has_entries:
                self._write("(empty)")
            self._write("")

    def _build_sections(self, query: str) -> Iterable[ConsoleSection]:
        current: Optional[Category] = None
        topics = []
        for category, topic in self._session.visible_topics(query):
            if current is not None and category is not current:
                yield ConsoleSection(self._category_title(current), list(topics))
                topics = []
            current = category
            topics.extend(self._format_topic(topic))
        if current is not None:
            yield ConsoleSection(self._category_title(current), topics)

    @staticmethod
    def _category_title(category: Category) -> str:
        return f"{category.name} ({category.media_count} media)"

    def _format_topic(self, topic: Topic) -> Iterable[str]:
        yield f"  {topic.name}"
        media_items = filter_media(topic, self._session.filters)
        if not media_items:
            yield "    No matching media"
            return
        for media in media_items:
            yield "    " + self._format_media(present_media(media, self._session.viewer), media)

    def _format_media(self, view: MediaView, media: Media) -> str:
        mark = "[x]" if self._session.is_watched(media) else "[ ]"
        if view.redacted:
            return f"{mark} {view.title}"
        parts = [f"{mark} {type_icon(media.type)} {view.title}"]
        if media.year:
            parts.append(f"({media.year})")
        if media.rating:
            rating = rating_class(media.rating).value
            parts.append(f"[{media.rating}{'/' + rating if rating else ''}]")
        if view.reported:
            parts.append("(reported)")
        return " ".join(parts)


__all__ = ["ConsoleUI"]
