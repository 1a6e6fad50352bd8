"""HTTP client for the catalog backend.

Every call returns a :data:`~media_hunter.services.results.Result`; transport
errors, non-success statuses and undecodable payloads are classified instead of
raised so the callers can decide how to degrade.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, Union
from urllib.parse import quote

import httpx

from ..config import AppConfig
from .results import Failure, FailureKind, Result, Success

LOGGER = logging.getLogger(__name__)

REMOTE_SOURCE = "remote"


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or response.reason_phrase
    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("error")
        if detail:
            return str(detail)
    return response.reason_phrase


class CatalogApiClient:
    """Thin wrapper over :class:`httpx.Client` speaking the catalog REST API."""

    def __init__(self, client: Optional[httpx.Client]) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: AppConfig) -> "CatalogApiClient":
        if not config.api_base_url:
            LOGGER.info("No catalog backend configured; remote sources are disabled")
            return cls(None)
        client = httpx.Client(base_url=config.api_base_url, timeout=config.request_timeout)
        return cls(client)

    @property
    def available(self) -> bool:
        return self._client is not None

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def __enter__(self) -> "CatalogApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        expect: Union[Type[dict], Type[list]] = dict,
    ) -> Result[Any]:
        if self._client is None:
            return Failure(FailureKind.UNAVAILABLE, "no backend configured", source=REMOTE_SOURCE)

        LOGGER.debug("%s %s", method, path)
        try:
            response = self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as error:
            LOGGER.debug("%s %s failed: %s", method, path, error)
            return Failure(
                FailureKind.TRANSPORT,
                f"{error.__class__.__name__}: {error}",
                source=REMOTE_SOURCE,
            )

        if not response.is_success:
            return Failure(
                FailureKind.STATUS,
                _error_detail(response),
                source=REMOTE_SOURCE,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as error:
            return Failure(FailureKind.PAYLOAD, f"invalid JSON: {error}", source=REMOTE_SOURCE)
        if not isinstance(payload, expect):
            return Failure(
                FailureKind.PAYLOAD,
                f"expected a JSON {expect.__name__}, got {type(payload).__name__}",
                source=REMOTE_SOURCE,
            )
        return Success(payload, source=REMOTE_SOURCE)

    # ------------------------------------------------------------------
    # Curriculum
    # ------------------------------------------------------------------
    def fetch_grade(self, grade_id: str) -> Result[Dict[str, Any]]:
        return self._request("GET", f"/api/grades/{_segment(grade_id)}")

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------
    def fetch_progress(self, student_id: str) -> Result[list]:
        return self._request("GET", f"/api/progress/{_segment(student_id)}", expect=list)

    def save_progress(self, student_id: str, media_id: int, watched: bool) -> Result[Dict[str, Any]]:
        return self._request(
            "POST",
            "/api/progress",
            json={"studentId": student_id, "mediaId": media_id, "watched": bool(watched)},
        )

    def bulk_progress(self, media_id: int, watched: bool, marked_by: str) -> Result[Dict[str, Any]]:
        return self._request(
            "POST",
            "/api/progress/bulk",
            json={"mediaId": media_id, "watched": bool(watched), "markedBy": marked_by},
        )

    # ------------------------------------------------------------------
    # Users and reports
    # ------------------------------------------------------------------
    def list_users(self) -> Result[list]:
        return self._request("GET", "/api/users", expect=list)

    def submit_report(
        self,
        media_id: int,
        reporter_id: str,
        report_type: str,
        *,
        reporter_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Result[Dict[str, Any]]:
        return self._request(
            "POST",
            "/api/reports",
            json={
                "mediaId": media_id,
                "reporterId": reporter_id,
                "reporterName": reporter_name,
                "reportType": report_type,
                "notes": notes,
            },
        )

    def list_reports(self, status: Optional[str] = None) -> Result[list]:
        params = {"status": status} if status else None
        return self._request("GET", "/api/reports", params=params, expect=list)

    def update_report(
        self,
        report_id: int,
        *,
        status: str,
        resolved_by: str,
        reenable_media: bool = False,
    ) -> Result[Dict[str, Any]]:
        return self._request(
            "PATCH",
            f"/api/reports/{_segment(report_id)}",
            json={"status": status, "resolvedBy": resolved_by, "reenableMedia": bool(reenable_media)},
        )


__all__ = ["CatalogApiClient", "REMOTE_SOURCE"]
