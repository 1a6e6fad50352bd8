"""FastAPI application serving the curriculum catalog backend."""

from __future__ import annotations

import contextvars
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.types import ASGIApp, Receive, Scope, Send

from .. import __version__
from ..config import AppConfig
from ..services.events import emit_db_event, emit_structured_event
from ..services.models import ReportStatus
from ..services.naming import build_export_name
from ..services.storage import CatalogRepository, format_report_digest


_REQUEST_ID_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "media_hunter_request_id",
    default=None,
)
_ACTOR_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "media_hunter_actor",
    default=None,
)


def _new_correlation_id() -> str:
    return uuid.uuid4().hex


def _collect_correlation_context() -> Dict[str, str]:
    context: Dict[str, str] = {}
    request_id = _REQUEST_ID_VAR.get()
    if request_id:
        context["request_id"] = str(request_id)
    actor = _ACTOR_VAR.get()
    if actor:
        context["actor"] = str(actor)
    return context


class RequestContextMiddleware:
    """Assign a correlation identifier to each request and expose it via contextvars."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = _new_correlation_id()
        scope_state = scope.get("state")
        if scope_state is None:
            scope_state = {}
            scope["state"] = scope_state
        if isinstance(scope_state, dict):
            scope_state["request_id"] = request_id
        else:
            setattr(scope_state, "request_id", request_id)

        method = scope.get("method")
        actor_hint = f"request:{method.upper()}" if isinstance(method, str) else "request"
        request_token = _REQUEST_ID_VAR.set(request_id)
        actor_token = _ACTOR_VAR.set(actor_hint)
        try:
            await self.app(scope, receive, send)
        finally:
            _ACTOR_VAR.reset(actor_token)
            _REQUEST_ID_VAR.reset(request_token)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects correlation context into records."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:  # type: ignore[override]
        extra: Dict[str, Any] = dict(self.extra)
        provided = kwargs.get("extra")
        if isinstance(provided, dict):
            extra.update(provided)
        for key, value in _collect_correlation_context().items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


LOGGER = ContextualLoggerAdapter(logging.getLogger(__name__), {})
EVENT_LOGGER = ContextualLoggerAdapter(logging.getLogger("media_hunter.web.events"), {})


def _emit_db_event(
    action: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
) -> None:
    emit_db_event(
        action,
        payload=payload,
        correlation=_collect_correlation_context(),
        duration_ms=duration_ms,
        logger=EVENT_LOGGER,
    )


def _log_event(message: str, **context: Any) -> None:
    emit_structured_event(
        "APP_EVENT",
        message,
        context=context,
        correlation=_collect_correlation_context(),
        logger=EVENT_LOGGER,
    )


class _CamelPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ProgressPayload(_CamelPayload):
    student_id: str = Field(..., alias="studentId", min_length=1)
    media_id: int = Field(..., alias="mediaId")
    watched: bool
    notes: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)


class BulkProgressPayload(_CamelPayload):
    media_id: int = Field(..., alias="mediaId")
    watched: bool = True
    marked_by: str = Field("Teacher", alias="markedBy")


class ReportPayload(_CamelPayload):
    media_id: int = Field(..., alias="mediaId")
    reporter_id: str = Field(..., alias="reporterId", min_length=1)
    reporter_name: Optional[str] = Field(None, alias="reporterName")
    report_type: str = Field(..., alias="reportType", min_length=1)
    notes: Optional[str] = None


class ReportUpdatePayload(_CamelPayload):
    status: ReportStatus = ReportStatus.RESOLVED
    resolved_by: Optional[str] = Field(None, alias="resolvedBy")
    reenable_media: bool = Field(False, alias="reenableMedia")


def _parse_age_filter(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "all":
        return None
    return value.strip().lower() == "true"


def create_app(
    repository: CatalogRepository,
    *,
    config: AppConfig,
) -> FastAPI:
    """Return a configured FastAPI application."""

    app = FastAPI(
        title="Media Hunter",
        description="Curriculum media catalog, progress and moderation API",
        version=__version__,
    )
    app.state.config = config

    def _repository_event_emitter(event_type: str, message: str, **kwargs: Any) -> None:
        if event_type == "DB_QUERY":
            _emit_db_event(message, **kwargs)
        else:
            _log_event(message, event_type=event_type)

    repository.configure_event_emitter(_repository_event_emitter)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------------------
    # Catalog
    # ---------------------------------------------------------------------
    @app.get("/api/health")
    async def health() -> Dict[str, Any]:
        database = "connected" if repository.ping() else "error"
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": database,
        }

    @app.get("/api/grades")
    async def list_grades() -> List[Dict[str, Any]]:
        grades = repository.list_grades()
        _log_event("Listed grades", grade_count=len(grades))
        return grades

    @app.get("/api/grades/{grade}")
    async def get_grade(grade: str) -> Dict[str, Any]:
        tree = repository.get_grade_tree(grade)
        if tree is None:
            raise HTTPException(status_code=404, detail="Grade not found")
        _log_event("Served grade", grade=grade, category_count=len(tree["categories"]))
        return tree

    @app.get("/api/search")
    async def search_media(
        q: Optional[str] = None,
        grade: Optional[str] = None,
        type: Optional[str] = None,  # noqa: A002 - query parameter name
        age_appropriate: Optional[str] = Query(None, alias="ageAppropriate"),
    ) -> List[Dict[str, Any]]:
        results = repository.search_media(
            q,
            grade=grade,
            media_type=type,
            age_appropriate=_parse_age_filter(age_appropriate),
        )
        _log_event("Searched media", query=q, grade=grade, result_count=len(results))
        return results

    @app.get("/api/media/disabled")
    async def list_disabled_media() -> List[Dict[str, Any]]:
        return repository.list_disabled_media()

    @app.get("/api/media/{media_id}")
    async def get_media(media_id: int) -> Dict[str, Any]:
        media = repository.get_media(media_id)
        if media is None:
            raise HTTPException(status_code=404, detail="Media not found")
        return media

    # ---------------------------------------------------------------------
    # Progress
    # ---------------------------------------------------------------------
    @app.get("/api/progress/{student_id}")
    async def get_progress(student_id: str) -> List[Dict[str, Any]]:
        return repository.list_progress(student_id)

    @app.post("/api/progress")
    async def save_progress(payload: ProgressPayload) -> Dict[str, Any]:
        if not repository.media_exists(payload.media_id):
            raise HTTPException(status_code=404, detail="Media not found")
        _log_event(
            "Saving progress",
            student_id=payload.student_id,
            media_id=payload.media_id,
            watched=payload.watched,
        )
        return repository.upsert_progress(
            payload.student_id,
            payload.media_id,
            payload.watched,
            notes=payload.notes,
            rating=payload.rating,
        )

    @app.post("/api/progress/bulk")
    async def bulk_progress(payload: BulkProgressPayload) -> Dict[str, Any]:
        if not repository.media_exists(payload.media_id):
            raise HTTPException(status_code=404, detail="Media not found")
        marked_by = payload.marked_by.strip() or "Teacher"
        updated = repository.bulk_upsert_progress(payload.media_id, payload.watched, marked_by)
        _log_event(
            "Bulk progress applied",
            media_id=payload.media_id,
            watched=payload.watched,
            students_updated=updated,
        )
        return {
            "success": True,
            "studentsUpdated": updated,
            "mediaId": payload.media_id,
            "watched": payload.watched,
        }

    @app.get("/api/stats/{student_id}")
    async def student_stats(student_id: str) -> List[Dict[str, Any]]:
        return repository.student_stats(student_id)

    # ---------------------------------------------------------------------
    # Users
    # ---------------------------------------------------------------------
    @app.get("/api/users")
    async def list_users() -> List[Dict[str, Any]]:
        return repository.list_users()

    @app.get("/api/users/{user_id}")
    async def get_user(user_id: str) -> Dict[str, Any]:
        user = repository.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    @app.get("/api/students")
    async def list_students() -> List[Dict[str, Any]]:
        return repository.list_students()

    # ---------------------------------------------------------------------
    # Reports
    # ---------------------------------------------------------------------
    @app.post("/api/reports")
    async def create_report(payload: ReportPayload) -> Dict[str, Any]:
        report_type = payload.report_type.strip()
        if not report_type:
            raise HTTPException(status_code=400, detail="Report type is required")
        if not repository.media_exists(payload.media_id):
            raise HTTPException(status_code=404, detail="Media not found")
        report = repository.create_report(
            payload.media_id,
            payload.reporter_id,
            report_type,
            reporter_name=payload.reporter_name,
            notes=payload.notes,
        )
        _log_event(
            "Report created",
            report_id=report["id"],
            media_id=payload.media_id,
            report_type=report_type,
        )
        return report

    @app.get("/api/reports")
    async def list_reports(status: Optional[ReportStatus] = None) -> List[Dict[str, Any]]:
        return repository.list_reports(status)

    @app.get("/api/reports/export", response_class=PlainTextResponse)
    async def export_reports() -> PlainTextResponse:
        rows = repository.pending_report_details()
        digest = format_report_digest(rows, generated_at=datetime.now(timezone.utc).isoformat())
        filename = build_export_name("media-reports")
        _log_event("Exported pending reports", report_count=len(rows))
        return PlainTextResponse(
            digest,
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.patch("/api/reports/{report_id}")
    async def update_report(report_id: int, payload: ReportUpdatePayload) -> Dict[str, Any]:
        report = repository.update_report(
            report_id,
            payload.status,
            payload.resolved_by,
            reenable_media=payload.reenable_media,
        )
        if report is None:
            raise HTTPException(status_code=404, detail="Report not found")
        LOGGER.info(
            "Report %s set to %s by %s (re-enable=%s)",
            report_id,
            payload.status.value,
            payload.resolved_by,
            payload.reenable_media,
        )
        return report

    return app


__all__ = ["ContextualLoggerAdapter", "RequestContextMiddleware", "create_app"]
