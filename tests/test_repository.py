from __future__ import annotations

import sqlite3

import pytest

from media_hunter.config import AppConfig, GradeInfo, UserSeed
from media_hunter.services.curriculum import SnapshotGradeSource
from media_hunter.services.models import Category, GradeTree, Media, ReportStatus, Topic
from media_hunter.services.storage import CatalogRepository, format_report_digest


def _media_id(repository: CatalogRepository, title: str) -> int:
    return next(row["id"] for row in repository.search_media(title) if row["title"] == title)


def test_replace_grade_reports_counts(temp_config: AppConfig) -> None:
    repository = CatalogRepository(temp_config)
    source = SnapshotGradeSource(temp_config.grades_root, extended_grades=temp_config.extended_grades)

    counts = repository.replace_grade(source.fetch("11").value, GradeInfo("11", "US History"))

    assert counts == {"categories": 5, "topics": 4, "media": 4}


def test_replace_grade_discards_previous_rows(repository: CatalogRepository) -> None:
    glory = _media_id(repository, "Glory")
    repository.upsert_progress("ada", glory, True)

    replacement = GradeTree(
        grade="11",
        name="US History",
        categories=[
            Category(
                "reconstruction",
                "Reconstruction",
                topics=[Topic("freedmen", "Freedmen's Bureau", media=[Media(title="Birth of a Nation", year=1915)])],
            )
        ],
    )
    repository.replace_grade(replacement)

    tree = repository.get_grade_tree("11")
    assert [category["id"] for category in tree["categories"]] == ["reconstruction"]
    assert repository.list_progress("ada") == []
    assert repository.get_media(glory) is None


def test_grade_tree_round_trips_through_model(repository: CatalogRepository) -> None:
    payload = repository.get_grade_tree("11")

    tree = GradeTree.from_mapping(payload, grade="11")

    assert tree.name == "US History"
    adams = next(media for media in tree.iter_media() if media.title == "John Adams")
    assert isinstance(adams.id, int)
    assert adams.lesson_plan["discussionQuestions"]
    assert adams.links.imdb == "https://www.imdb.com/title/tt0472027/"


def test_search_is_capped_and_ordered(repository: CatalogRepository) -> None:
    titles = [row["title"] for row in repository.search_media()]

    assert titles == sorted(titles)
    assert len(titles) == 6


def test_search_rows_carry_context(repository: CatalogRepository) -> None:
    row = repository.search_media("aztecs")[0]

    assert row["category_slug"] == "early-peoples"
    assert row["topic_slug"] == "maya-aztec-inca"
    assert row["grade_number"] == "5"
    assert row["age_appropriate"] is True


def test_progress_upsert_keeps_notes_and_rating(repository: CatalogRepository) -> None:
    selma = _media_id(repository, "Selma")
    repository.upsert_progress("ben", selma, True, notes="Powerful", rating=4)

    row = repository.upsert_progress("ben", selma, True, rating=5)

    assert row["notes"] == "Powerful"
    assert row["rating"] == 5
    assert row["watched"] is True


def test_bulk_credit_appends_to_existing_notes(repository: CatalogRepository) -> None:
    selma = _media_id(repository, "Selma")
    repository.upsert_progress("ada", selma, False, notes="Started in class")

    updated = repository.bulk_upsert_progress(selma, True, "Ms. Rivera")

    assert updated == 3
    rows = {row["student_id"]: row for row in (repository.list_progress(s)[0] for s in ("ada", "ben"))}
    assert rows["ada"]["notes"] == "Started in class [Credit given by Ms. Rivera]"
    assert rows["ben"]["notes"] == "[Credit given by Ms. Rivera]"
    assert rows["ada"]["watched"] is True


def test_upsert_users_updates_existing(repository: CatalogRepository) -> None:
    repository.upsert_users([UserSeed("ada", "Ada Lovelace", "student", "#000000")])

    user = repository.get_user("ada")

    assert user["name"] == "Ada Lovelace"
    assert user["avatar_color"] == "#000000"
    assert len(repository.list_users()) == 5


def test_unknown_user_role_is_stored_as_student(repository: CatalogRepository) -> None:
    repository.upsert_users([UserSeed("dee", "Dee", "parent")])

    assert repository.get_user("dee")["role"] == "student"
    assert [row["student_id"] for row in repository.list_students()][-1] == "dee"


def test_reports_toggle_media_availability(repository: CatalogRepository) -> None:
    glory = _media_id(repository, "Glory")

    report = repository.create_report(glory, "ada", "inappropriate", notes="Too violent")

    assert repository.get_media(glory)["disabled"] is True
    assert [row["id"] for row in repository.list_reports(ReportStatus.PENDING)] == [report["id"]]

    resolved = repository.update_report(report["id"], ReportStatus.RESOLVED, "teacher")

    assert resolved["status"] == "resolved"
    assert resolved["resolved_by"] == "teacher"
    assert repository.get_media(glory)["disabled"] is True
    assert repository.list_reports(ReportStatus.PENDING) == []
    assert repository.update_report(9999, ReportStatus.RESOLVED, "teacher") is None


def test_report_digest_lists_pending_reports(repository: CatalogRepository) -> None:
    glory = _media_id(repository, "Glory")
    repository.create_report(glory, "ben", "wrong-topic", reporter_name="Ben")

    digest = format_report_digest(repository.pending_report_details(), generated_at="2024-01-01T00:00:00")

    assert digest.startswith("=== MEDIA REPORTS FOR REVIEW ===")
    assert "Title: Glory (1989)" in digest
    assert "Category: Civil War and Reconstruction" in digest
    assert "Reporter Notes: No notes provided" in digest


def test_empty_digest_has_header_only() -> None:
    digest = format_report_digest([], generated_at="now")

    assert "Total Pending Reports: 0" in digest
    assert "--- REPORT" not in digest


def test_db_events_are_emitted_when_configured(repository: CatalogRepository) -> None:
    events = []
    repository.configure_event_emitter(lambda event_type, action, **kwargs: events.append((event_type, action, kwargs)))

    repository.list_grades()

    actions = [action for _type, action, _kwargs in events]
    assert "connect" in actions
    assert "grades.list" in actions
    listed = next(kwargs for _type, action, kwargs in events if action == "grades.list")
    assert listed["payload"]["status"] == "ok"
    assert listed["payload"]["table"] == "grades"


def test_foreign_keys_are_enforced(repository: CatalogRepository) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        repository.upsert_progress("ada", 9999, True)
