from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from media_hunter.config import AppConfig
from media_hunter.services.storage import CatalogRepository
from media_hunter.web import create_app


def _media_id(client: TestClient, title: str) -> int:
    results = client.get("/api/search", params={"q": title}).json()
    return next(item["id"] for item in results if item["title"] == title)


def test_health_reports_database(backend: TestClient) -> None:
    payload = backend.get("/api/health").json()

    assert payload["status"] == "healthy"
    assert payload["database"] == "connected"


def test_grades_are_listed_with_counts(backend: TestClient) -> None:
    grades = backend.get("/api/grades").json()

    assert [grade["grade_number"] for grade in grades] == ["5", "11"]
    eleven = grades[1]
    assert eleven["category_count"] == 5
    assert eleven["media_count"] == 4
    assert eleven["name"] == "US History"


def test_grade_tree_shape(backend: TestClient) -> None:
    response = backend.get("/api/grades/5")

    assert response.status_code == 200
    payload = response.json()
    assert payload["grade"] == "5"
    assert payload["curriculumFocus"] == "Geography and cultures"
    topic = payload["categories"][0]["topics"][0]
    assert topic["id"] == "maya-aztec-inca"
    assert topic["subtopics"] == ["City-states", "Agriculture", "Religion and calendars"]
    titles = [media["title"] for media in topic["media"]]
    assert titles == sorted(titles)
    first = topic["media"][0]
    assert first["disabled"] is False
    assert first["ageAppropriate"] is True
    assert first["links"]["streaming"][0]["service"] == "YouTube"


def test_unknown_grade_is_404(backend: TestClient) -> None:
    response = backend.get("/api/grades/12")

    assert response.status_code == 404
    assert response.json()["detail"] == "Grade not found"


def test_search_filters(backend: TestClient) -> None:
    by_text = backend.get("/api/search", params={"q": "massachusetts"}).json()
    assert [item["title"] for item in by_text] == ["Glory"]

    documentaries = backend.get("/api/search", params={"type": "documentary"}).json()
    assert {item["title"] for item in documentaries} == {"Engineering an Empire: The Aztecs", "The War"}

    suitable = backend.get("/api/search", params={"grade": "11", "ageAppropriate": "true"}).json()
    assert [item["title"] for item in suitable] == ["Selma"]


def test_media_detail_includes_context(backend: TestClient) -> None:
    media_id = _media_id(backend, "Selma")

    payload = backend.get(f"/api/media/{media_id}").json()

    assert payload["topic_name"] == "Montgomery Bus Boycott"
    assert payload["grade_number"] == "11"
    assert payload["links"] == {"youtube": "https://www.youtube.com/watch?v=x6t7vVTxaic"}
    assert backend.get("/api/media/9999").status_code == 404


def test_progress_upsert_preserves_notes(backend: TestClient) -> None:
    media_id = _media_id(backend, "Glory")
    first = backend.post(
        "/api/progress",
        json={"studentId": "ada", "mediaId": media_id, "watched": True, "notes": "Great film", "rating": 5},
    )
    assert first.status_code == 200
    assert first.json()["watch_date"]

    second = backend.post("/api/progress", json={"studentId": "ada", "mediaId": media_id, "watched": False})
    row = second.json()

    assert row["watched"] is False
    assert row["notes"] == "Great film"
    assert row["rating"] == 5
    assert row["watch_date"] == first.json()["watch_date"]


def test_progress_validation(backend: TestClient) -> None:
    assert backend.post("/api/progress", json={"studentId": "ada", "watched": True}).status_code == 422
    missing = backend.post("/api/progress", json={"studentId": "ada", "mediaId": 9999, "watched": True})
    assert missing.status_code == 404


def test_bulk_progress_updates_students_only(backend: TestClient) -> None:
    media_id = _media_id(backend, "Selma")

    payload = backend.post(
        "/api/progress/bulk", json={"mediaId": media_id, "watched": True, "markedBy": "Ms. Rivera"}
    ).json()

    assert payload == {"success": True, "studentsUpdated": 3, "mediaId": media_id, "watched": True}
    assert backend.get("/api/progress/teacher").json() == []
    rows = backend.get("/api/progress/cy").json()
    assert rows[0]["title"] == "Selma"
    assert rows[0]["notes"] == "[Credit given by Ms. Rivera]"


def test_users_and_students(backend: TestClient) -> None:
    users = backend.get("/api/users").json()
    assert {user["user_id"] for user in users} == {"admin", "teacher", "ada", "ben", "cy"}

    students = backend.get("/api/students").json()
    assert [student["student_id"] for student in students] == ["ada", "ben", "cy"]
    assert all(student["watched_count"] == 0 for student in students)

    assert backend.get("/api/users/teacher").json()["role"] == "teacher"
    assert backend.get("/api/users/nobody").status_code == 404


def test_stats_count_watched_per_grade(backend: TestClient) -> None:
    media_id = _media_id(backend, "Selma")
    backend.post("/api/progress", json={"studentId": "ben", "mediaId": media_id, "watched": True})

    stats = {row["grade_number"]: row for row in backend.get("/api/stats/ben").json()}

    assert stats["11"]["watched_count"] == 1
    assert stats["11"]["total_media"] == 4
    assert stats["5"]["watched_count"] == 0


def test_report_lifecycle(backend: TestClient) -> None:
    media_id = _media_id(backend, "Glory")

    created = backend.post(
        "/api/reports",
        json={"mediaId": media_id, "reporterId": "ada", "reporterName": "Ada", "reportType": "broken-link"},
    ).json()

    assert created["status"] == "pending"
    disabled = backend.get("/api/media/disabled").json()
    assert [(item["id"], item["report_count"]) for item in disabled] == [(media_id, 1)]
    assert backend.get("/api/reports", params={"status": "pending"}).json()[0]["media_title"] == "Glory"

    export = backend.get("/api/reports/export")
    assert export.headers["content-type"].startswith("text/plain")
    assert "attachment; filename=media-reports-" in export.headers["content-disposition"]
    assert "Total Pending Reports: 1" in export.text
    assert "Reporter: Ada" in export.text

    resolved = backend.patch(
        f"/api/reports/{created['id']}",
        json={"status": "resolved", "resolvedBy": "teacher", "reenableMedia": True},
    ).json()

    assert resolved["status"] == "resolved"
    assert resolved["resolved_by"] == "teacher"
    assert resolved["resolved_at"]
    assert backend.get("/api/media/disabled").json() == []
    assert backend.get("/api/reports", params={"status": "pending"}).json() == []


def test_report_requires_known_media(backend: TestClient) -> None:
    response = backend.post(
        "/api/reports", json={"mediaId": 9999, "reporterId": "ada", "reportType": "broken-link"}
    )

    assert response.status_code == 404
    assert backend.patch("/api/reports/9999", json={"status": "resolved"}).status_code == 404


def test_database_queries_emit_structured_events(
    repository: CatalogRepository, temp_config: AppConfig, caplog: pytest.LogCaptureFixture
) -> None:
    client = TestClient(create_app(repository, config=temp_config))

    with caplog.at_level("DEBUG", logger="media_hunter.web.events"):
        client.get("/api/grades/5")

    events = [record for record in caplog.records if getattr(record, "event_type", "") == "DB_QUERY"]
    assert events
    assert any(record.event_name == "get_grade_tree" for record in events)
    assert all("request_id" in record.event_correlation for record in events)
