"""Browsing helpers over a loaded grade tree: filtering, search and display lookups."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote_plus

from .models import Category, GradeTree, Media, MediaType, Topic


TYPE_ICONS: Dict[MediaType, str] = {
    MediaType.MOVIE: "🎬",
    MediaType.DOCUMENTARY: "📹",
    MediaType.SERIES: "📺",
    MediaType.SHORT: "⏱",
    MediaType.EDUCATIONAL: "🎓",
}


def type_icon(media_type: MediaType | str) -> str:
    return TYPE_ICONS[MediaType.parse(media_type)]


class RatingClass(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    RESTRICTED = "restricted"
    UNRATED = ""


_RATING_CLASSES: Dict[str, RatingClass] = {
    **dict.fromkeys(("G", "TV-Y", "TV-Y7", "TV-G"), RatingClass.SAFE),
    **dict.fromkeys(("PG", "PG-13", "TV-PG", "TV-14", "NR"), RatingClass.CAUTION),
    **dict.fromkeys(("R", "TV-MA"), RatingClass.RESTRICTED),
}


def rating_class(rating: Optional[str]) -> RatingClass:
    if not rating:
        return RatingClass.UNRATED
    return _RATING_CLASSES.get(rating.strip().upper(), RatingClass.UNRATED)


@dataclass(frozen=True)
class StreamingService:
    icon: str
    color: str


STREAMING_SERVICES: Dict[str, StreamingService] = {
    "Disney+": StreamingService("D+", "#113ccf"),
    "Netflix": StreamingService("N", "#e50914"),
    "PBS": StreamingService("PBS", "#2638c4"),
    "YouTube": StreamingService("▶", "#ff0000"),
    "Amazon": StreamingService("A", "#ff9900"),
    "Amazon Prime Video": StreamingService("P", "#00A8E1"),
    "Hulu": StreamingService("h", "#1ce783"),
    "HBO Max": StreamingService("HBO", "#5822b4"),
    "BrainPOP": StreamingService("BP", "#ff6b35"),
    "JustWatch": StreamingService("JW", "#ffce00"),
    "YouTube (Trailer)": StreamingService("▶", "#ff0000"),
}
_UNKNOWN_SERVICE = StreamingService("📺", "#8b949e")


@dataclass(frozen=True)
class WatchOption:
    label: str
    url: str
    service: StreamingService


def watch_options(media: Media) -> List[WatchOption]:
    """Return every place *media* can be watched, adding a JustWatch search when sparse."""

    options: List[WatchOption] = []
    if media.links.imdb:
        options.append(WatchOption("IMDb", media.links.imdb, StreamingService("🎬", "#f5c518")))
    if media.links.youtube:
        options.append(WatchOption("YouTube", media.links.youtube, STREAMING_SERVICES["YouTube"]))
    for link in media.links.streaming:
        options.append(
            WatchOption(link.service, link.url, STREAMING_SERVICES.get(link.service, _UNKNOWN_SERVICE))
        )
    if len(options) <= 1:
        query = quote_plus(f"{media.title} {media.year or ''}".strip())
        options.append(
            WatchOption(
                "Find Streaming",
                f"https://www.justwatch.com/us/search?q={query}",
                STREAMING_SERVICES["JustWatch"],
            )
        )
    return options


@dataclass(frozen=True)
class MediaFilters:
    """Media list filters; ``None`` means "all"."""

    media_type: Optional[MediaType] = None
    age_appropriate: Optional[bool] = None
    query: str = ""

    @classmethod
    def parse(cls, media_type: str = "all", age_appropriate: str = "all", query: str = "") -> "MediaFilters":
        parsed_type = None if media_type in ("", "all") else MediaType.parse(media_type)
        if age_appropriate in ("", "all"):
            parsed_age = None
        else:
            parsed_age = str(age_appropriate).strip().lower() == "true"
        return cls(media_type=parsed_type, age_appropriate=parsed_age, query=query or "")


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def filter_topics(
    tree: GradeTree,
    *,
    category_id: Optional[str] = None,
    query: str = "",
) -> List[Tuple[Category, Topic]]:
    """Return topics of one category (or all) matching *query* by name, description or subtopic."""

    if category_id:
        category = tree.find_category(category_id)
        entries = [(category, topic) for topic in category.topics] if category else []
    else:
        entries = list(tree.iter_topics())

    needle = query.strip().lower()
    if not needle:
        return entries
    return [
        (category, topic)
        for category, topic in entries
        if _contains(topic.name, needle)
        or _contains(topic.description, needle)
        or any(needle in subtopic.lower() for subtopic in topic.subtopics)
    ]


def filter_media(topic: Topic, filters: MediaFilters) -> List[Media]:
    media = list(topic.media)
    if filters.media_type is not None:
        media = [item for item in media if item.type is filters.media_type]
    if filters.age_appropriate is not None:
        media = [item for item in media if item.age_appropriate is filters.age_appropriate]
    needle = filters.query.strip().lower()
    if needle:
        media = [
            item
            for item in media
            if _contains(item.title, needle)
            or _contains(item.relevance, needle)
            or _contains(item.notes, needle)
        ]
    return media


def breadcrumb(
    tree: GradeTree,
    *,
    category_id: Optional[str] = None,
    topic_id: Optional[str] = None,
) -> List[str]:
    crumbs = [f"Grade {tree.grade}"]
    if category_id:
        category = tree.find_category(category_id)
        if category is not None:
            crumbs.append(category.name)
    if topic_id:
        found = tree.find_topic(topic_id)
        if found is not None:
            crumbs.append(found[1].name)
    if len(crumbs) == 1:
        crumbs.append("All Topics")
    return crumbs


__all__ = [
    "MediaFilters",
    "RatingClass",
    "STREAMING_SERVICES",
    "StreamingService",
    "TYPE_ICONS",
    "WatchOption",
    "breadcrumb",
    "filter_media",
    "filter_topics",
    "rating_class",
    "type_icon",
    "watch_options",
]
