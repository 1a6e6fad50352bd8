from __future__ import annotations

import re

import pytest

from media_hunter.config import AppConfig
from media_hunter.services.catalog import MediaFilters
from media_hunter.services.curriculum import CurriculumLoader, SnapshotGradeSource
from media_hunter.services.models import Role, User
from media_hunter.services.moderation import REDACTED_TITLE
from media_hunter.services.progress import ProgressStore
from media_hunter.services.session import CatalogSession, generate_student_id


def _session(config: AppConfig, **kwargs) -> CatalogSession:
    loader = CurriculumLoader(
        [SnapshotGradeSource(config.grades_root, extended_grades=config.extended_grades)]
    )
    progress = ProgressStore(None, config.progress_snapshot_root)
    return CatalogSession(loader, progress, **kwargs)


def test_generated_student_ids_are_random_base36() -> None:
    first, second = generate_student_id(), generate_student_id()

    assert re.fullmatch(r"student_[0-9a-z]{9}", first)
    assert first != second


def test_anonymous_viewer_is_a_student(temp_config: AppConfig) -> None:
    session = _session(temp_config, student_id="ada")

    assert session.student_id == "ada"
    assert session.viewer.role is Role.STUDENT


def test_tree_requires_a_selected_grade(temp_config: AppConfig) -> None:
    session = _session(temp_config)

    with pytest.raises(RuntimeError):
        session.tree


def test_init_loads_grade_and_shows_all_topics(temp_config: AppConfig) -> None:
    session = _session(temp_config, student_id="ada")

    tree = session.init("11")

    assert tree.category_count == 5
    assert session.breadcrumb() == ["Grade 11", "All Topics"]
    assert len(session.visible_topics()) == 4


def test_selecting_category_twice_clears_it(temp_config: AppConfig) -> None:
    session = _session(temp_config)
    session.init("11")

    session.select_category("civil-war")
    assert [topic.id for _c, topic in session.visible_topics()] == ["civil-war-battles"]

    assert session.select_category("civil-war") is None
    assert session.category_id is None


def test_unknown_selection_is_rejected(temp_config: AppConfig) -> None:
    session = _session(temp_config)
    session.init("5")

    with pytest.raises(KeyError):
        session.select_category("nope")
    with pytest.raises(KeyError):
        session.select_topic("nope")


def test_switching_grade_clears_selection(temp_config: AppConfig) -> None:
    session = _session(temp_config)
    session.init("11")
    session.select_category("founding")
    session.select_topic("revolution")

    session.select_grade("5")

    assert session.category_id is None
    assert session.current_topic() is None
    assert session.visible_media() == []


def test_visible_media_applies_filters(temp_config: AppConfig) -> None:
    session = _session(temp_config)
    session.init("5")
    session.select_topic("maya-aztec-inca")

    session.set_filters(MediaFilters.parse("movie"))

    assert [view.title for view in session.visible_media()] == ["The Road to El Dorado"]


def test_disabled_media_is_redacted_for_students(temp_config: AppConfig) -> None:
    session = _session(temp_config)
    session.init("5")
    topic = session.select_topic("maya-aztec-inca")
    topic.media[0].disabled = True

    titles = [view.title for view in session.visible_media()]

    assert titles[0] == REDACTED_TITLE


def test_staff_viewer_sees_disabled_media(temp_config: AppConfig) -> None:
    teacher = User(user_id="teacher", name="Ms. Rivera", role=Role.TEACHER)
    session = _session(temp_config, viewer=teacher)
    session.init("5")
    topic = session.select_topic("maya-aztec-inca")
    topic.media[0].disabled = True

    view = session.visible_media()[0]

    assert view.title == topic.media[0].title
    assert view.reported


def test_toggle_watched_updates_count(temp_config: AppConfig) -> None:
    session = _session(temp_config, student_id="ada")
    session.init("5")
    media = next(session.tree.iter_media())

    session.toggle_watched(media)

    assert session.is_watched(media)
    assert session.watched_count() == 1

    session.toggle_watched(media)
    assert session.watched_count() == 0


def test_reload_keeps_valid_selection(temp_config: AppConfig) -> None:
    session = _session(temp_config)
    session.init("11")
    session.select_category("civil-rights")
    session.select_topic("montgomery")

    session.reload()

    assert session.category_id == "civil-rights"
    assert session.current_topic().name == "Montgomery Bus Boycott"


def test_reset_clears_everything(temp_config: AppConfig) -> None:
    session = _session(temp_config, student_id="ada")
    session.init("5")
    session.set_filters(MediaFilters.parse("documentary"))

    session.reset()

    assert session.grade_id is None
    assert session.filters == MediaFilters()
    with pytest.raises(RuntimeError):
        session.reload()
