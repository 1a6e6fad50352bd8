from __future__ import annotations

import pytest

from media_hunter.services.catalog import (
    MediaFilters,
    RatingClass,
    TYPE_ICONS,
    breadcrumb,
    filter_media,
    filter_topics,
    rating_class,
    type_icon,
    watch_options,
)
from media_hunter.services.models import (
    Category,
    ContentType,
    GradeTree,
    Media,
    MediaLinks,
    MediaType,
    Role,
    StreamingLink,
    Topic,
)


@pytest.fixture()
def tree() -> GradeTree:
    return GradeTree(
        grade="7",
        name="US & NY History",
        categories=[
            Category(
                "colonial",
                "Colonial America",
                topics=[
                    Topic(
                        "jamestown",
                        "Jamestown",
                        description="The first permanent English settlement",
                        subtopics=["Powhatan Confederacy", "Tobacco"],
                        media=[
                            Media(title="The New World", year=2005, rating="PG-13", age_appropriate=False),
                            Media(
                                title="Jamestown Uncovered",
                                type=MediaType.DOCUMENTARY,
                                year=2007,
                                relevance="Archaeology at the fort site",
                            ),
                        ],
                    ),
                    Topic("pilgrims", "Plymouth Colony", subtopics=["Mayflower Compact"]),
                ],
            ),
            Category(
                "revolution",
                "The Revolution",
                topics=[Topic("yorktown", "Siege of Yorktown", description="Final major battle")],
            ),
        ],
    )


def test_filter_topics_defaults_to_every_topic(tree: GradeTree) -> None:
    assert [topic.id for _category, topic in filter_topics(tree)] == ["jamestown", "pilgrims", "yorktown"]


def test_filter_topics_within_category(tree: GradeTree) -> None:
    assert [topic.id for _c, topic in filter_topics(tree, category_id="revolution")] == ["yorktown"]
    assert filter_topics(tree, category_id="missing") == []


@pytest.mark.parametrize(
    ("query", "expected"),
    [("MAYFLOWER", ["pilgrims"]), ("settlement", ["jamestown"]), ("siege", ["yorktown"]), ("zzz", [])],
)
def test_filter_topics_matches_name_description_and_subtopics(tree, query, expected) -> None:
    assert [topic.id for _c, topic in filter_topics(tree, query=query)] == expected


def test_filter_media_by_type_and_age(tree: GradeTree) -> None:
    topic = tree.categories[0].topics[0]

    documentaries = filter_media(topic, MediaFilters.parse("documentary"))
    suitable = filter_media(topic, MediaFilters.parse(age_appropriate="true"))
    unsuitable = filter_media(topic, MediaFilters.parse(age_appropriate="false"))

    assert [media.title for media in documentaries] == ["Jamestown Uncovered"]
    assert [media.title for media in suitable] == ["Jamestown Uncovered"]
    assert [media.title for media in unsuitable] == ["The New World"]


def test_filter_media_query_searches_relevance(tree: GradeTree) -> None:
    topic = tree.categories[0].topics[0]

    assert [media.title for media in filter_media(topic, MediaFilters(query="archaeology"))] == [
        "Jamestown Uncovered"
    ]
    assert len(filter_media(topic, MediaFilters.parse())) == 2


def test_breadcrumb_reflects_selection(tree: GradeTree) -> None:
    assert breadcrumb(tree) == ["Grade 7", "All Topics"]
    assert breadcrumb(tree, category_id="colonial", topic_id="pilgrims") == [
        "Grade 7",
        "Colonial America",
        "Plymouth Colony",
    ]


@pytest.mark.parametrize(
    ("rating", "expected"),
    [
        ("G", RatingClass.SAFE),
        ("tv-y7", RatingClass.SAFE),
        ("PG-13", RatingClass.CAUTION),
        ("R", RatingClass.RESTRICTED),
        ("TV-MA", RatingClass.RESTRICTED),
        ("Unrated", RatingClass.UNRATED),
        (None, RatingClass.UNRATED),
    ],
)
def test_rating_class(rating, expected) -> None:
    assert rating_class(rating) is expected


def test_type_icon_falls_back_to_movie() -> None:
    assert type_icon("series") == "📺"
    assert type_icon("podcast") == type_icon(MediaType.MOVIE)


@pytest.mark.parametrize("media_type", list(MediaType))
def test_type_icon_resolves_each_member(media_type: MediaType) -> None:
    assert type_icon(media_type) == TYPE_ICONS[media_type]
    assert type_icon(media_type.value) == TYPE_ICONS[media_type]


def test_distinct_types_have_distinct_icons() -> None:
    assert len({type_icon(media_type) for media_type in MediaType}) == len(MediaType)


def test_sparse_links_add_a_streaming_search() -> None:
    media = Media(title="Glory", year=1989, links=MediaLinks(imdb="https://www.imdb.com/title/tt0097441/"))

    options = watch_options(media)

    assert [option.label for option in options] == ["IMDb", "Find Streaming"]
    assert options[-1].url == "https://www.justwatch.com/us/search?q=Glory+1989"


def test_rich_links_are_listed_in_order() -> None:
    media = Media(
        title="The War",
        links=MediaLinks(
            youtube="https://www.youtube.com/watch?v=1",
            streaming=[StreamingLink("PBS", "https://www.pbs.org/"), StreamingLink("Vimeo", "https://vimeo.com/")],
        ),
    )

    options = watch_options(media)

    assert [option.label for option in options] == ["YouTube", "PBS", "Vimeo"]
    assert options[1].service.color == "#2638c4"
    assert options[2].service.icon == "📺"


def test_enum_parse_accepts_members() -> None:
    assert MediaType.parse(MediaType.SERIES) is MediaType.SERIES
    assert ContentType.parse(ContentType.EDUCATIONAL) is ContentType.EDUCATIONAL
    assert Role.parse(Role.TEACHER) is Role.TEACHER
    assert Role.parse("Admin") is Role.ADMIN
