"""Bulk credit and report moderation.

Visibility of a media item follows a small state machine::

    Active --report submitted--> Disabled
    Disabled --resolved with re-enable--> Active
    Disabled --resolved without re-enable--> Disabled

Students see disabled items as a redacted placeholder; teachers and admins see
the full record flagged as reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .api_client import CatalogApiClient
from .curriculum import CurriculumLoader
from .events import emit_fallback_event
from .identity import MediaKey, resolve_media_key
from .models import Media, Report, ReportStatus, User
from .progress import ProgressStore, SaveOutcome
from .results import Failure, FailureKind, Success

LOGGER = logging.getLogger(__name__)

REDACTED_TITLE = "Content under review"


class ModerationError(RuntimeError):
    """Raised when a moderation action cannot be completed."""

    def __init__(self, message: str, *, failure: Optional[Failure] = None) -> None:
        super().__init__(message)
        self.failure = failure


class PermissionDeniedError(ModerationError):
    """Raised when the acting user's role does not allow the action."""


class ReportSubmissionError(ModerationError):
    """Raised when a report could not be recorded; nothing was changed."""


@dataclass(frozen=True)
class BulkCreditOutcome:
    media_key: MediaKey
    watched: bool
    students_updated: int
    degraded: bool = False
    failure: Optional[Failure] = None
    fallback: Optional[SaveOutcome] = None


@dataclass(frozen=True)
class MediaView:
    """How a media item is presented to a particular viewer."""

    media: Media
    redacted: bool = False
    reported: bool = False

    @property
    def title(self) -> str:
        return REDACTED_TITLE if self.redacted else self.media.title


def present_media(media: Media, viewer: Optional[User]) -> MediaView:
    if not media.disabled:
        return MediaView(media)
    if viewer is not None and viewer.is_staff:
        return MediaView(media, reported=True)
    return MediaView(media, redacted=True, reported=True)


def _require_staff(actor: User, action: str) -> None:
    if not actor.is_staff:
        raise PermissionDeniedError(f"{actor.role.value} '{actor.user_id}' may not {action}")


class ModerationWorkflow:
    """Role-gated state changes that affect every student's view of a media item."""

    def __init__(
        self,
        api: CatalogApiClient,
        progress: ProgressStore,
        loader: CurriculumLoader,
    ) -> None:
        self._api = api
        self._progress = progress
        self._loader = loader

    def bulk_credit(self, actor: User, media: Any, watched: bool = True) -> BulkCreditOutcome:
        """Apply *watched* for every registered student.

        When the backend cannot perform the update only the acting user's own
        entry is saved and the outcome is flagged ``degraded``.
        """

        _require_staff(actor, "give credit to all students")
        key = resolve_media_key(media)
        marked_by = actor.name or actor.user_id

        remote = self._progress.remote
        if remote is None:
            failure: Failure = Failure(FailureKind.UNAVAILABLE, "no backend configured")
        else:
            outcome = remote.bulk(key, watched, marked_by)
            if isinstance(outcome, Success):
                updated = outcome.value.get("studentsUpdated")
                if isinstance(updated, int) and not isinstance(updated, bool):
                    LOGGER.info(
                        "%s set watched=%s on %s for %d students", marked_by, watched, key, updated
                    )
                    self._progress.forget()
                    return BulkCreditOutcome(media_key=key, watched=watched, students_updated=updated)
                failure = Failure(
                    FailureKind.PAYLOAD, "bulk response without studentsUpdated", source=outcome.source
                )
            else:
                failure = outcome

        emit_fallback_event(f"bulk credit {key}", failure, fallback=f"actor {actor.user_id}", logger=LOGGER)
        fallback = self._progress.save(actor.user_id, key, watched)
        return BulkCreditOutcome(
            media_key=key,
            watched=watched,
            students_updated=0,
            degraded=True,
            failure=failure,
            fallback=fallback,
        )

    def submit_report(
        self,
        reporter: User,
        media: Any,
        report_type: str,
        notes: Optional[str] = None,
    ) -> Report:
        key = resolve_media_key(media)
        if not isinstance(key, int):
            raise ReportSubmissionError(f"media {key!r} is not in the catalog and cannot be reported")
        if not report_type or not str(report_type).strip():
            raise ReportSubmissionError("a report type is required")

        outcome = self._api.submit_report(
            key,
            reporter.user_id,
            str(report_type).strip(),
            reporter_name=reporter.name,
            notes=notes,
        )
        if isinstance(outcome, Failure):
            LOGGER.error("Report for media %s failed: %s", key, outcome.describe())
            raise ReportSubmissionError(
                f"Could not submit report: {outcome.reason}", failure=outcome
            )

        # The backend has disabled the media; cached trees are stale.
        self._loader.invalidate()
        try:
            report = Report.from_mapping(outcome.value)
        except (KeyError, TypeError, ValueError) as error:
            raise ReportSubmissionError(f"Unexpected report payload: {error}") from error
        LOGGER.info("Report %s filed by %s against media %s", report.id, reporter.user_id, key)
        return report

    def resolve_report(
        self,
        actor: User,
        report_id: int,
        *,
        reenable_media: bool = False,
    ) -> Report:
        _require_staff(actor, "resolve reports")
        outcome = self._api.update_report(
            report_id,
            status=ReportStatus.RESOLVED.value,
            resolved_by=actor.user_id,
            reenable_media=reenable_media,
        )
        if isinstance(outcome, Failure):
            raise ModerationError(
                f"Could not resolve report {report_id}: {outcome.reason}", failure=outcome
            )
        if reenable_media:
            self._loader.invalidate()
        try:
            report = Report.from_mapping(outcome.value)
        except (KeyError, TypeError, ValueError) as error:
            raise ModerationError(f"Unexpected report payload: {error}") from error
        LOGGER.info(
            "Report %s resolved by %s (media re-enabled=%s)", report_id, actor.user_id, reenable_media
        )
        return report

    def list_reports(self, actor: User, status: Optional[ReportStatus] = None) -> List[Report]:
        _require_staff(actor, "review reports")
        outcome = self._api.list_reports(status.value if status is not None else None)
        if isinstance(outcome, Failure):
            raise ModerationError(f"Could not list reports: {outcome.reason}", failure=outcome)
        try:
            return [Report.from_mapping(row) for row in outcome.value]
        except (KeyError, TypeError, ValueError) as error:
            raise ModerationError(f"Unexpected report payload: {error}") from error


__all__ = [
    "BulkCreditOutcome",
    "MediaView",
    "ModerationError",
    "ModerationWorkflow",
    "PermissionDeniedError",
    "REDACTED_TITLE",
    "ReportSubmissionError",
    "present_media",
]
