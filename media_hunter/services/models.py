"""Catalog records exchanged between the curriculum sources, the backend and the UI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .identity import MediaKey, coerce_database_id, resolve_media_key


class MediaType(str, Enum):
    MOVIE = "movie"
    DOCUMENTARY = "documentary"
    SERIES = "series"
    SHORT = "short"
    EDUCATIONAL = "educational"

    @classmethod
    def parse(cls, value: Any) -> "MediaType":
        """Return the member for *value*, defaulting to :attr:`MOVIE`."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MOVIE


class ContentType(str, Enum):
    EDUCATIONAL = "educational"
    ENTERTAINMENT = "entertainment"

    @classmethod
    def parse(cls, value: Any) -> "ContentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ENTERTAINMENT


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        """Teachers and admins may bulk-credit, resolve reports and see disabled media."""

        return self is not Role.STUDENT

    @classmethod
    def parse(cls, value: Any) -> "Role":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.STUDENT


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _require_mapping(value: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{kind} entry must be an object, got {type(value).__name__}")
    return value


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


@dataclass(frozen=True)
class StreamingLink:
    service: str
    url: str


@dataclass
class MediaLinks:
    imdb: Optional[str] = None
    youtube: Optional[str] = None
    streaming: List[StreamingLink] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "MediaLinks":
        if not isinstance(mapping, Mapping):
            return cls()
        streaming: List[StreamingLink] = []
        for entry in mapping.get("streaming") or ():
            if not isinstance(entry, Mapping):
                continue
            service = _optional_text(entry.get("service"))
            url = _optional_text(entry.get("url"))
            if service and url:
                streaming.append(StreamingLink(service=service, url=url))
        return cls(
            imdb=_optional_text(mapping.get("imdb")),
            youtube=_optional_text(mapping.get("youtube")),
            streaming=streaming,
        )

    def to_mapping(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.imdb:
            payload["imdb"] = self.imdb
        if self.youtube:
            payload["youtube"] = self.youtube
        if self.streaming:
            payload["streaming"] = [
                {"service": link.service, "url": link.url} for link in self.streaming
            ]
        return payload


@dataclass
class Media:
    """A watchable title cataloged under a topic."""

    title: str
    type: MediaType = MediaType.MOVIE
    id: Optional[int] = None
    year: Optional[int] = None
    rating: Optional[str] = None
    runtime: Optional[int] = None
    relevance: Optional[str] = None
    notes: Optional[str] = None
    age_appropriate: bool = True
    content_type: ContentType = ContentType.ENTERTAINMENT
    disabled: bool = False
    links: MediaLinks = field(default_factory=MediaLinks)
    lesson_plan: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> MediaKey:
        return resolve_media_key(self)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Media":
        mapping = _require_mapping(mapping, "media")
        title = mapping.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("media record is missing a title")
        lesson_plan = mapping.get("lessonPlan")
        age_appropriate = mapping.get("ageAppropriate")
        return cls(
            title=title,
            type=MediaType.parse(mapping.get("type") or MediaType.MOVIE.value),
            id=coerce_database_id(mapping.get("id")),
            year=_optional_int(mapping.get("year")),
            rating=_optional_text(mapping.get("rating")),
            runtime=_optional_int(mapping.get("runtime")),
            relevance=_optional_text(mapping.get("relevance")),
            notes=_optional_text(mapping.get("notes")),
            age_appropriate=age_appropriate is not False,
            content_type=ContentType.parse(mapping.get("contentType") or ContentType.ENTERTAINMENT.value),
            disabled=bool(mapping.get("disabled", False)),
            links=MediaLinks.from_mapping(mapping.get("links")),
            lesson_plan=dict(lesson_plan) if isinstance(lesson_plan, Mapping) else None,
        )

    def to_mapping(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "title": self.title,
            "type": self.type.value,
            "year": self.year,
            "rating": self.rating,
            "runtime": self.runtime,
            "relevance": self.relevance,
            "notes": self.notes,
            "ageAppropriate": self.age_appropriate,
            "contentType": self.content_type.value,
            "disabled": self.disabled,
            "links": self.links.to_mapping(),
        }
        if self.id is not None:
            payload["id"] = self.id
        if self.lesson_plan is not None:
            payload["lessonPlan"] = dict(self.lesson_plan)
        return payload


@dataclass
class Topic:
    id: str
    name: str
    description: Optional[str] = None
    order: int = 0
    subtopics: List[str] = field(default_factory=list)
    media: List[Media] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Topic":
        mapping = _require_mapping(mapping, "topic")
        return cls(
            id=str(mapping["id"]),
            name=str(mapping["name"]),
            description=_optional_text(mapping.get("description")),
            order=_optional_int(mapping.get("order")) or 0,
            subtopics=[str(item) for item in mapping.get("subtopics") or () if item is not None],
            media=[Media.from_mapping(item) for item in mapping.get("media") or ()],
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "order": self.order,
            "subtopics": list(self.subtopics),
            "media": [item.to_mapping() for item in self.media],
        }


@dataclass
class Category:
    id: str
    name: str
    description: Optional[str] = None
    order: int = 0
    topics: List[Topic] = field(default_factory=list)

    @property
    def media_count(self) -> int:
        return sum(len(topic.media) for topic in self.topics)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Category":
        mapping = _require_mapping(mapping, "category")
        return cls(
            id=str(mapping["id"]),
            name=str(mapping["name"]),
            description=_optional_text(mapping.get("description")),
            order=_optional_int(mapping.get("order")) or 0,
            topics=[Topic.from_mapping(item) for item in mapping.get("topics") or ()],
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "order": self.order,
            "topics": [topic.to_mapping() for topic in self.topics],
        }


@dataclass
class GradeTree:
    """Category → Topic → Media hierarchy for one grade."""

    grade: str
    name: Optional[str] = None
    curriculum_focus: Optional[str] = None
    categories: List[Category] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.categories

    @property
    def category_count(self) -> int:
        return len(self.categories)

    @property
    def topic_count(self) -> int:
        return sum(len(category.topics) for category in self.categories)

    @property
    def media_count(self) -> int:
        return sum(category.media_count for category in self.categories)

    def iter_topics(self) -> Iterator[Tuple[Category, Topic]]:
        for category in self.categories:
            for topic in category.topics:
                yield category, topic

    def iter_media(self) -> Iterator[Media]:
        for _category, topic in self.iter_topics():
            yield from topic.media

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((item for item in self.categories if item.id == category_id), None)

    def find_topic(self, topic_id: str) -> Optional[Tuple[Category, Topic]]:
        return next(
            ((category, topic) for category, topic in self.iter_topics() if topic.id == topic_id),
            None,
        )

    def find_media(self, key: MediaKey) -> Optional[Media]:
        return next((item for item in self.iter_media() if item.key == key), None)

    @classmethod
    def empty(cls, grade: str) -> "GradeTree":
        return cls(grade=str(grade))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], *, grade: str) -> "GradeTree":
        if not isinstance(mapping, Mapping):
            raise ValueError("grade payload must be an object")
        raw_categories = mapping.get("categories")
        if raw_categories is None:
            raw_categories = []
        if not isinstance(raw_categories, list):
            raise ValueError("grade payload 'categories' must be a list")
        return cls(
            grade=str(mapping.get("grade") or grade),
            name=_optional_text(mapping.get("name")),
            curriculum_focus=_optional_text(mapping.get("curriculumFocus")),
            categories=[Category.from_mapping(item) for item in raw_categories],
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "grade": self.grade,
            "name": self.name,
            "curriculumFocus": self.curriculum_focus,
            "categories": [category.to_mapping() for category in self.categories],
        }


@dataclass(frozen=True)
class User:
    user_id: str
    name: str
    role: Role = Role.STUDENT
    avatar_color: str = "#58a6ff"

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "User":
        return cls(
            user_id=str(mapping["user_id"]),
            name=str(mapping.get("name") or mapping["user_id"]),
            role=Role.parse(mapping.get("role")),
            avatar_color=str(mapping.get("avatar_color") or "#58a6ff"),
        )


@dataclass
class WatchedRecord:
    student_id: str
    media_key: MediaKey
    watched: bool
    notes: Optional[str] = None
    watch_date: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "WatchedRecord":
        return cls(
            student_id=str(mapping["student_id"]),
            media_key=int(mapping["media_id"]),
            watched=bool(mapping.get("watched")),
            notes=_optional_text(mapping.get("notes")),
            watch_date=_optional_text(mapping.get("watch_date")),
            updated_at=_optional_text(mapping.get("updated_at")),
        )


@dataclass
class Report:
    id: int
    media_id: int
    reporter_id: str
    report_type: str
    status: ReportStatus = ReportStatus.PENDING
    reporter_name: Optional[str] = None
    notes: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status is ReportStatus.PENDING

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Report":
        return cls(
            id=int(mapping["id"]),
            media_id=int(mapping["media_id"]),
            reporter_id=str(mapping["reporter_id"]),
            report_type=str(mapping["report_type"]),
            status=ReportStatus(str(mapping.get("status") or ReportStatus.PENDING.value)),
            reporter_name=_optional_text(mapping.get("reporter_name")),
            notes=_optional_text(mapping.get("notes")),
            resolved_by=_optional_text(mapping.get("resolved_by")),
            resolved_at=_optional_text(mapping.get("resolved_at")),
            created_at=_optional_text(mapping.get("created_at")),
        )


__all__ = [
    "Category",
    "ContentType",
    "GradeTree",
    "Media",
    "MediaLinks",
    "MediaType",
    "Report",
    "ReportStatus",
    "Role",
    "StreamingLink",
    "Topic",
    "User",
    "WatchedRecord",
]
