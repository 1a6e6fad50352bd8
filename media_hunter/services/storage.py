"""Persistence helpers backed by SQLite."""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import AppConfig, GradeInfo, UserSeed
from .models import GradeTree, ReportStatus, Role

LOGGER = logging.getLogger(__name__)

CREDIT_NOTE_TEMPLATE = "[Credit given by {name}]"
SEARCH_LIMIT = 100

_MEDIA_CONTEXT_JOINS = """
    JOIN topics t ON t.id = m.topic_id
    JOIN categories c ON c.id = t.category_id
    JOIN grades g ON g.id = c.grade_id
"""


def _decode_json(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        LOGGER.warning("Ignoring undecodable JSON column value: %.60s", value)
        return default


def _media_row(row: sqlite3.Row) -> Dict[str, Any]:
    payload = dict(row)
    if "links" in payload:
        payload["links"] = _decode_json(payload["links"], {})
    if "lesson_plan" in payload:
        payload["lesson_plan"] = _decode_json(payload["lesson_plan"], None)
    for flag in ("age_appropriate", "disabled"):
        if flag in payload and payload[flag] is not None:
            payload[flag] = bool(payload[flag])
    return payload


def _progress_row(row: sqlite3.Row) -> Dict[str, Any]:
    payload = dict(row)
    payload["watched"] = bool(payload.get("watched"))
    return payload


class CatalogRepository:
    """Repository exposing the catalog, progress, user and report tables."""

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[Callable[..., None]] = None,
    ) -> None:
        self._db_path = config.database_file
        self._event_emitter: Optional[Callable[..., None]] = event_emitter

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable responsible for emitting debug events."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_db_event(self, action: str, **payload: Any):
        """Emit a structured debug event capturing execution time for a DB action."""

        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        error: BaseException | None = None
        try:
            yield event_payload
        except Exception as exc:  # pragma: no cover - instrumentation only
            error = exc
            event_payload.setdefault("status", "error")
            event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            if error is None:
                event_payload.setdefault("status", "ok")
            filtered = {
                key: value for key, value in event_payload.items() if value is not None
            }
            self._event_emitter(
                "DB_QUERY",
                action,
                payload=filtered,
                duration_ms=duration_ms,
            )

    @staticmethod
    def _summarize_sql(statement: str) -> str:
        collapsed = " ".join(statement.strip().split())
        return collapsed[:180] + ("…" if len(collapsed) > 180 else "")

    def _execute(
        self,
        connection: sqlite3.Connection,
        statement: str,
        parameters: Sequence[Any] | Tuple[Any, ...] | None = None,
        *,
        action: str,
        table: Optional[str] = None,
    ) -> sqlite3.Cursor:
        params: Tuple[Any, ...]
        if parameters is None:
            params = ()
        elif isinstance(parameters, tuple):
            params = parameters
        else:
            params = tuple(parameters)
        with self._track_db_event(
            action,
            table=table,
            sql=self._summarize_sql(statement),
            parameter_count=len(params),
        ) as event:
            cursor = connection.execute(statement, params)
            if cursor.rowcount >= 0:
                event.setdefault("rowcount", int(cursor.rowcount))
            return cursor

    def _connect(self) -> sqlite3.Connection:
        LOGGER.debug("Opening SQLite connection to %s", self._db_path)
        with self._track_db_event("connect", database=str(self._db_path)) as event:
            connection = sqlite3.connect(self._db_path)
            event.setdefault("sqlite_version", sqlite3.sqlite_version)
        connection.row_factory = sqlite3.Row
        self._execute(connection, "PRAGMA foreign_keys = ON", action="pragma_foreign_keys")
        return connection

    def ping(self) -> bool:
        try:
            with self._connect() as connection:
                self._execute(connection, "SELECT 1", action="health")
        except sqlite3.Error as error:
            LOGGER.warning("Database health check failed: %s", error)
            return False
        return True

    # ---------------------------------------------------------------------
    # Catalog import
    # ---------------------------------------------------------------------
    def replace_grade(self, tree: GradeTree, info: Optional[GradeInfo] = None) -> Dict[str, int]:
        """Replace everything stored for ``tree.grade`` with the contents of *tree*.

        Media rows receive fresh ids, so progress and reports recorded against
        the previous rows are removed with them.
        """

        name = (info.name if info else None) or tree.name or f"Grade {tree.grade}"
        focus = (info.focus if info else None) or tree.curriculum_focus or ""
        counts = {"categories": 0, "topics": 0, "media": 0}
        with self._track_db_event("replace_grade", table="grades", grade=tree.grade) as event:
            with self._connect() as connection:
                self._execute(
                    connection,
                    "DELETE FROM grades WHERE grade_number = ?",
                    (tree.grade,),
                    action="grades.delete",
                    table="grades",
                )
                grade_row_id = self._execute(
                    connection,
                    "INSERT INTO grades(grade_number, name, curriculum_focus) VALUES (?, ?, ?)",
                    (tree.grade, name, focus),
                    action="grades.insert",
                    table="grades",
                ).lastrowid
                for category in tree.categories:
                    category_row_id = self._execute(
                        connection,
                        "INSERT INTO categories(grade_id, slug, name, description, sort_order) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (grade_row_id, category.id, category.name, category.description, category.order),
                        action="categories.insert",
                        table="categories",
                    ).lastrowid
                    counts["categories"] += 1
                    for topic in category.topics:
                        topic_row_id = self._execute(
                            connection,
                            "INSERT INTO topics(category_id, slug, name, description, sort_order) "
                            "VALUES (?, ?, ?, ?, ?)",
                            (category_row_id, topic.id, topic.name, topic.description, topic.order),
                            action="topics.insert",
                            table="topics",
                        ).lastrowid
                        counts["topics"] += 1
                        for position, subtopic in enumerate(topic.subtopics):
                            self._execute(
                                connection,
                                "INSERT INTO subtopics(topic_id, name, sort_order) VALUES (?, ?, ?)",
                                (topic_row_id, subtopic, position),
                                action="subtopics.insert",
                                table="subtopics",
                            )
                        for media in topic.media:
                            self._execute(
                                connection,
                                """
                                INSERT INTO media(
                                    topic_id, title, type, year, rating, runtime, relevance, notes,
                                    age_appropriate, content_type, links, lesson_plan, disabled
                                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                                """,
                                (
                                    topic_row_id,
                                    media.title,
                                    media.type.value,
                                    media.year,
                                    media.rating,
                                    media.runtime,
                                    media.relevance,
                                    media.notes,
                                    int(media.age_appropriate),
                                    media.content_type.value,
                                    json.dumps(media.links.to_mapping()),
                                    json.dumps(media.lesson_plan) if media.lesson_plan else None,
                                    int(media.disabled),
                                ),
                                action="media.insert",
                                table="media",
                            )
                            counts["media"] += 1
                event.update(counts)
        LOGGER.info(
            "Imported grade %s: %d categories, %d topics, %d media",
            tree.grade,
            counts["categories"],
            counts["topics"],
            counts["media"],
        )
        return counts

    # ---------------------------------------------------------------------
    # Catalog queries
    # ---------------------------------------------------------------------
    def list_grades(self) -> List[Dict[str, Any]]:
        with self._connect() as connection:
            rows = self._execute(
                connection,
                """
                SELECT g.*,
                       COUNT(DISTINCT c.id) AS category_count,
                       COUNT(DISTINCT m.id) AS media_count
                FROM grades g
                LEFT JOIN categories c ON c.grade_id = g.id
                LEFT JOIN topics t ON t.category_id = c.id
                LEFT JOIN media m ON m.topic_id = t.id
                GROUP BY g.id
                ORDER BY CAST(g.grade_number AS INTEGER)
                """,
                action="grades.list",
                table="grades",
            ).fetchall()
        return [dict(row) for row in rows]

    def get_grade_tree(self, grade_number: str) -> Optional[Dict[str, Any]]:
        """Return the nested grade payload served to clients, or ``None``."""

        with self._track_db_event("get_grade_tree", table="grades", grade=grade_number) as event:
            with self._connect() as connection:
                grade = self._execute(
                    connection,
                    "SELECT * FROM grades WHERE grade_number = ?",
                    (grade_number,),
                    action="grades.lookup",
                    table="grades",
                ).fetchone()
                if grade is None:
                    event["found"] = False
                    return None
                categories = self._execute(
                    connection,
                    "SELECT * FROM categories WHERE grade_id = ? ORDER BY sort_order, id",
                    (grade["id"],),
                    action="categories.list",
                    table="categories",
                ).fetchall()
                topics = self._execute(
                    connection,
                    "SELECT t.* FROM topics t JOIN categories c ON c.id = t.category_id "
                    "WHERE c.grade_id = ? ORDER BY t.sort_order, t.id",
                    (grade["id"],),
                    action="topics.list",
                    table="topics",
                ).fetchall()
                subtopics = self._execute(
                    connection,
                    "SELECT s.topic_id, s.name FROM subtopics s "
                    "JOIN topics t ON t.id = s.topic_id JOIN categories c ON c.id = t.category_id "
                    "WHERE c.grade_id = ? ORDER BY s.sort_order, s.id",
                    (grade["id"],),
                    action="subtopics.list",
                    table="subtopics",
                ).fetchall()
                media = self._execute(
                    connection,
                    "SELECT m.* FROM media m "
                    "JOIN topics t ON t.id = m.topic_id JOIN categories c ON c.id = t.category_id "
                    "WHERE c.grade_id = ? ORDER BY m.title",
                    (grade["id"],),
                    action="media.list",
                    table="media",
                ).fetchall()
                event.update({"found": True, "media_count": len(media)})

        subtopics_by_topic: Dict[int, List[str]] = {}
        for row in subtopics:
            subtopics_by_topic.setdefault(row["topic_id"], []).append(row["name"])

        media_by_topic: Dict[int, List[Dict[str, Any]]] = {}
        for row in media:
            item = _media_row(row)
            media_by_topic.setdefault(row["topic_id"], []).append(
                {
                    "id": item["id"],
                    "title": item["title"],
                    "type": item["type"],
                    "year": item["year"],
                    "rating": item["rating"],
                    "runtime": item["runtime"],
                    "relevance": item["relevance"],
                    "notes": item["notes"],
                    "ageAppropriate": item["age_appropriate"],
                    "contentType": item["content_type"],
                    "disabled": bool(item.get("disabled")),
                    "links": item["links"],
                    "lessonPlan": item["lesson_plan"],
                }
            )

        topics_by_category: Dict[int, List[Dict[str, Any]]] = {}
        for row in topics:
            topics_by_category.setdefault(row["category_id"], []).append(
                {
                    "id": row["slug"],
                    "name": row["name"],
                    "description": row["description"],
                    "order": row["sort_order"],
                    "subtopics": subtopics_by_topic.get(row["id"], []),
                    "media": media_by_topic.get(row["id"], []),
                }
            )

        return {
            "grade": grade["grade_number"],
            "name": grade["name"],
            "curriculumFocus": grade["curriculum_focus"],
            "lastUpdated": grade["last_updated"],
            "categories": [
                {
                    "id": row["slug"],
                    "name": row["name"],
                    "description": row["description"],
                    "order": row["sort_order"],
                    "topics": topics_by_category.get(row["id"], []),
                }
                for row in categories
            ],
        }

    def search_media(
        self,
        query: Optional[str] = None,
        *,
        grade: Optional[str] = None,
        media_type: Optional[str] = None,
        age_appropriate: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        statement = (
            "SELECT m.*, t.name AS topic_name, t.slug AS topic_slug, "
            "c.name AS category_name, c.slug AS category_slug, g.grade_number "
            "FROM media m" + _MEDIA_CONTEXT_JOINS + "WHERE 1=1"
        )
        params: List[Any] = []
        if query:
            pattern = f"%{query}%"
            statement += " AND (m.title LIKE ? OR m.relevance LIKE ? OR m.notes LIKE ?)"
            params.extend([pattern, pattern, pattern])
        if grade:
            statement += " AND g.grade_number = ?"
            params.append(grade)
        if media_type and media_type != "all":
            statement += " AND m.type = ?"
            params.append(media_type)
        if age_appropriate is not None:
            statement += " AND m.age_appropriate = ?"
            params.append(int(age_appropriate))
        statement += " ORDER BY m.title LIMIT ?"
        params.append(SEARCH_LIMIT)
        with self._connect() as connection:
            rows = self._execute(
                connection, statement, params, action="media.search", table="media"
            ).fetchall()
        return [_media_row(row) for row in rows]

    def get_media(self, media_id: int) -> Optional[Dict[str, Any]]:
        with self._connect() as connection:
            row = self._execute(
                connection,
                "SELECT m.*, t.name AS topic_name, t.description AS topic_description, "
                "c.name AS category_name, g.grade_number, g.name AS grade_name "
                "FROM media m" + _MEDIA_CONTEXT_JOINS + "WHERE m.id = ?",
                (media_id,),
                action="media.lookup",
                table="media",
            ).fetchone()
            if row is None:
                return None
            subtopics = self._execute(
                connection,
                "SELECT name FROM subtopics WHERE topic_id = ? ORDER BY sort_order, id",
                (row["topic_id"],),
                action="subtopics.lookup",
                table="subtopics",
            ).fetchall()
        payload = _media_row(row)
        payload["subtopics"] = [item["name"] for item in subtopics]
        return payload

    def list_disabled_media(self) -> List[Dict[str, Any]]:
        with self._connect() as connection:
            rows = self._execute(
                connection,
                "SELECT m.id, m.title, m.type, m.disabled, t.name AS topic_name, "
                "c.name AS category_name, g.grade_number, "
                "(SELECT COUNT(*) FROM media_reports r WHERE r.media_id = m.id) AS report_count "
                "FROM media m" + _MEDIA_CONTEXT_JOINS + "WHERE m.disabled = 1 ORDER BY m.title",
                action="media.list_disabled",
                table="media",
            ).fetchall()
        return [_media_row(row) for row in rows]

    def media_exists(self, media_id: int) -> bool:
        with self._connect() as connection:
            row = self._execute(
                connection,
                "SELECT 1 FROM media WHERE id = ?",
                (media_id,),
                action="media.exists",
                table="media",
            ).fetchone()
        return row is not None

    # ---------------------------------------------------------------------
    # Progress
    # ---------------------------------------------------------------------
    def list_progress(self, student_id: str) -> List[Dict[str, Any]]:
        with self._connect() as connection:
            rows = self._execute(
                connection,
                "SELECT sp.*, m.title, m.type, g.grade_number "
                "FROM student_progress sp JOIN media m ON m.id = sp.media_id"
                + _MEDIA_CONTEXT_JOINS
                + "WHERE sp.student_id = ? ORDER BY sp.updated_at DESC, sp.id DESC",
                (student_id,),
                action="student_progress.list",
                table="student_progress",
            ).fetchall()
        return [_progress_row(row) for row in rows]

    def upsert_progress(
        self,
        student_id: str,
        media_id: int,
        watched: bool,
        *,
        notes: Optional[str] = None,
        rating: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Insert or update one progress row; omitted notes and rating keep their values."""

        with self._track_db_event(
            "upsert_progress",
            table="student_progress",
            student_id=student_id,
            media_id=media_id,
            watched=watched,
        ):
            with self._connect() as connection:
                self._execute(
                    connection,
                    """
                    INSERT INTO student_progress(student_id, media_id, watched, notes, rating, watch_date)
                    VALUES (?, ?, ?, ?, ?, CASE WHEN ? THEN CURRENT_TIMESTAMP END)
                    ON CONFLICT(student_id, media_id) DO UPDATE SET
                        watched = excluded.watched,
                        notes = COALESCE(excluded.notes, student_progress.notes),
                        rating = COALESCE(excluded.rating, student_progress.rating),
                        watch_date = CASE WHEN excluded.watched = 1
                            THEN CURRENT_TIMESTAMP ELSE student_progress.watch_date END,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (student_id, media_id, int(watched), notes, rating, int(watched)),
                    action="student_progress.upsert",
                    table="student_progress",
                )
                row = self._execute(
                    connection,
                    "SELECT * FROM student_progress WHERE student_id = ? AND media_id = ?",
                    (student_id, media_id),
                    action="student_progress.lookup",
                    table="student_progress",
                ).fetchone()
        return _progress_row(row)

    def bulk_upsert_progress(self, media_id: int, watched: bool, marked_by: str) -> int:
        """Apply *watched* for every student, one committed upsert at a time.

        Returns the number of students updated. A failure part way through
        leaves the earlier students updated.
        """

        note = CREDIT_NOTE_TEMPLATE.format(name=marked_by) if watched else None
        updated = 0
        with self._track_db_event(
            "bulk_upsert_progress",
            table="student_progress",
            media_id=media_id,
            watched=watched,
        ) as event:
            with self._connect() as connection:
                students = self._execute(
                    connection,
                    "SELECT user_id FROM users WHERE role = ? ORDER BY user_id",
                    (Role.STUDENT.value,),
                    action="users.list_students",
                    table="users",
                ).fetchall()
                for student in students:
                    self._execute(
                        connection,
                        """
                        INSERT INTO student_progress(student_id, media_id, watched, watch_date, notes)
                        VALUES (?, ?, ?, CASE WHEN ? THEN CURRENT_TIMESTAMP END, ?)
                        ON CONFLICT(student_id, media_id) DO UPDATE SET
                            watched = excluded.watched,
                            watch_date = CASE WHEN excluded.watched = 1
                                THEN CURRENT_TIMESTAMP ELSE student_progress.watch_date END,
                            updated_at = CURRENT_TIMESTAMP,
                            notes = CASE WHEN excluded.watched = 1
                                THEN COALESCE(student_progress.notes || ' ', '') || excluded.notes
                                ELSE student_progress.notes END
                        """,
                        (student["user_id"], media_id, int(watched), int(watched), note),
                        action="student_progress.bulk_upsert",
                        table="student_progress",
                    )
                    connection.commit()
                    updated += 1
                event["students_updated"] = updated
        LOGGER.info("%s set watched=%s on media %s for %d students", marked_by, watched, media_id, updated)
        return updated

    def student_stats(self, student_id: str) -> List[Dict[str, Any]]:
        with self._connect() as connection:
            rows = self._execute(
                connection,
                """
                SELECT g.grade_number,
                       g.name AS grade_name,
                       (SELECT COUNT(*) FROM student_progress sp
                          JOIN media m ON m.id = sp.media_id
                          JOIN topics t ON t.id = m.topic_id
                          JOIN categories c ON c.id = t.category_id
                         WHERE c.grade_id = g.id AND sp.student_id = ? AND sp.watched = 1
                       ) AS watched_count,
                       (SELECT COUNT(*) FROM media m
                          JOIN topics t ON t.id = m.topic_id
                          JOIN categories c ON c.id = t.category_id
                         WHERE c.grade_id = g.id
                       ) AS total_media
                FROM grades g
                ORDER BY CAST(g.grade_number AS INTEGER)
                """,
                (student_id,),
                action="student_progress.stats",
                table="student_progress",
            ).fetchall()
        return [dict(row) for row in rows]

    # ---------------------------------------------------------------------
    # Users
    # ---------------------------------------------------------------------
    def upsert_users(self, users: Iterable[UserSeed]) -> int:
        count = 0
        with self._track_db_event("upsert_users", table="users") as event:
            with self._connect() as connection:
                for user in users:
                    self._execute(
                        connection,
                        """
                        INSERT INTO users(user_id, name, role, avatar_color) VALUES (?, ?, ?, ?)
                        ON CONFLICT(user_id) DO UPDATE SET
                            name = excluded.name,
                            role = excluded.role,
                            avatar_color = excluded.avatar_color
                        """,
                        (user.user_id, user.name, Role.parse(user.role).value, user.avatar_color),
                        action="users.upsert",
                        table="users",
                    )
                    count += 1
            event["user_count"] = count
        return count

    _PROGRESS_SUMMARY = """
        SELECT sp.student_id,
               SUM(CASE WHEN sp.watched = 1 THEN 1 ELSE 0 END) AS watched_count,
               COUNT(DISTINCT c.grade_id) AS grades_touched,
               MAX(sp.updated_at) AS last_activity
        FROM student_progress sp
        JOIN media m ON m.id = sp.media_id
        JOIN topics t ON t.id = m.topic_id
        JOIN categories c ON c.id = t.category_id
        GROUP BY sp.student_id
    """

    def list_users(self) -> List[Dict[str, Any]]:
        with self._connect() as connection:
            rows = self._execute(
                connection,
                "SELECT u.*, COALESCE(p.watched_count, 0) AS watched_count, "
                "COALESCE(p.grades_touched, 0) AS grades_touched, p.last_activity "
                f"FROM users u LEFT JOIN ({self._PROGRESS_SUMMARY}) p ON p.student_id = u.user_id "
                "ORDER BY u.role, u.name",
                action="users.list",
                table="users",
            ).fetchall()
        return [dict(row) for row in rows]

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as connection:
            row = self._execute(
                connection,
                "SELECT * FROM users WHERE user_id = ?",
                (user_id,),
                action="users.lookup",
                table="users",
            ).fetchone()
        return dict(row) if row else None

    def list_students(self) -> List[Dict[str, Any]]:
        with self._connect() as connection:
            rows = self._execute(
                connection,
                "SELECT u.user_id AS student_id, u.name, u.avatar_color, u.last_active, "
                "COALESCE(p.watched_count, 0) AS watched_count, "
                "COALESCE(p.grades_touched, 0) AS grades_touched, p.last_activity "
                f"FROM users u LEFT JOIN ({self._PROGRESS_SUMMARY}) p ON p.student_id = u.user_id "
                "WHERE u.role = ? ORDER BY u.name",
                (Role.STUDENT.value,),
                action="users.list_students",
                table="users",
            ).fetchall()
        return [dict(row) for row in rows]

    # ---------------------------------------------------------------------
    # Reports
    # ---------------------------------------------------------------------
    def create_report(
        self,
        media_id: int,
        reporter_id: str,
        report_type: str,
        *,
        reporter_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Record a pending report and disable the media it targets."""

        with self._track_db_event(
            "create_report", table="media_reports", media_id=media_id, report_type=report_type
        ) as event:
            with self._connect() as connection:
                report_id = self._execute(
                    connection,
                    "INSERT INTO media_reports(media_id, reporter_id, reporter_name, report_type, notes) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (media_id, reporter_id, reporter_name, report_type, notes),
                    action="media_reports.insert",
                    table="media_reports",
                ).lastrowid
                self._execute(
                    connection,
                    "UPDATE media SET disabled = 1 WHERE id = ?",
                    (media_id,),
                    action="media.disable",
                    table="media",
                )
                row = self._execute(
                    connection,
                    "SELECT * FROM media_reports WHERE id = ?",
                    (report_id,),
                    action="media_reports.lookup",
                    table="media_reports",
                ).fetchone()
                event["report_id"] = report_id
        LOGGER.info("Media %s disabled after %s report from %s", media_id, report_type, reporter_id)
        return dict(row)

    def list_reports(self, status: Optional[ReportStatus] = None) -> List[Dict[str, Any]]:
        statement = (
            "SELECT r.*, m.title AS media_title, m.type AS media_type, "
            "t.name AS topic_name, c.name AS category_name, g.grade_number "
            "FROM media_reports r JOIN media m ON m.id = r.media_id" + _MEDIA_CONTEXT_JOINS
        )
        params: List[Any] = []
        if status is not None:
            statement += "WHERE r.status = ? "
            params.append(status.value)
        statement += "ORDER BY r.created_at DESC, r.id DESC"
        with self._connect() as connection:
            rows = self._execute(
                connection, statement, params, action="media_reports.list", table="media_reports"
            ).fetchall()
        return [dict(row) for row in rows]

    def update_report(
        self,
        report_id: int,
        status: ReportStatus,
        resolved_by: Optional[str],
        *,
        reenable_media: bool = False,
    ) -> Optional[Dict[str, Any]]:
        with self._track_db_event(
            "update_report",
            table="media_reports",
            report_id=report_id,
            status=status.value,
            reenable_media=reenable_media,
        ) as event:
            with self._connect() as connection:
                cursor = self._execute(
                    connection,
                    "UPDATE media_reports SET status = ?, resolved_by = ?, resolved_at = CURRENT_TIMESTAMP "
                    "WHERE id = ?",
                    (status.value, resolved_by, report_id),
                    action="media_reports.update",
                    table="media_reports",
                )
                if cursor.rowcount == 0:
                    event["found"] = False
                    return None
                row = self._execute(
                    connection,
                    "SELECT * FROM media_reports WHERE id = ?",
                    (report_id,),
                    action="media_reports.lookup",
                    table="media_reports",
                ).fetchone()
                if reenable_media:
                    self._execute(
                        connection,
                        "UPDATE media SET disabled = 0 WHERE id = ?",
                        (row["media_id"],),
                        action="media.enable",
                        table="media",
                    )
                event["found"] = True
        return dict(row)

    def pending_report_details(self) -> List[Dict[str, Any]]:
        with self._connect() as connection:
            rows = self._execute(
                connection,
                "SELECT r.*, m.title AS media_title, m.type AS media_type, m.year, "
                "m.relevance, m.notes AS media_notes, t.name AS topic_name, "
                "c.name AS category_name, g.grade_number "
                "FROM media_reports r JOIN media m ON m.id = r.media_id" + _MEDIA_CONTEXT_JOINS
                + "WHERE r.status = ? "
                "ORDER BY CAST(g.grade_number AS INTEGER), c.name, r.created_at, r.id",
                (ReportStatus.PENDING.value,),
                action="media_reports.export",
                table="media_reports",
            ).fetchall()
        return [dict(row) for row in rows]


def format_report_digest(rows: Sequence[Dict[str, Any]], *, generated_at: str) -> str:
    """Render pending reports as a plain-text review digest."""

    lines = [
        "=== MEDIA REPORTS FOR REVIEW ===",
        f"Generated: {generated_at}",
        f"Total Pending Reports: {len(rows)}",
        "",
    ]
    for index, row in enumerate(rows, start=1):
        lines.extend(
            [
                f"--- REPORT {index} ---",
                f"Media ID: {row['media_id']}",
                f"Title: {row['media_title']} ({row.get('year') or 'N/A'})",
                f"Type: {row['media_type']}",
                f"Grade: {row['grade_number']}",
                f"Category: {row['category_name']}",
                f"Topic: {row['topic_name']}",
                f"Current Relevance: {row.get('relevance') or 'N/A'}",
                f"Current Notes: {row.get('media_notes') or 'N/A'}",
                "",
                f"Report Type: {row['report_type']}",
                f"Reporter: {row.get('reporter_name') or row['reporter_id']}",
                f"Reporter Notes: {row.get('notes') or 'No notes provided'}",
                f"Reported At: {row.get('created_at')}",
                "",
                "",
            ]
        )
    return "\n".join(lines)


__all__ = ["CREDIT_NOTE_TEMPLATE", "CatalogRepository", "SEARCH_LIMIT", "format_report_digest"]
