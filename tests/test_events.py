from __future__ import annotations

import logging

import pytest

from media_hunter.config import AppConfig
from media_hunter.services.api_client import CatalogApiClient
from media_hunter.services.curriculum import CurriculumLoader
from media_hunter.services.events import (
    EventType,
    emit_fallback_event,
    emit_structured_event,
    sanitize_context_value,
)
from media_hunter.services.results import Failure, FailureKind


def test_structured_event_message_and_extras(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("media_hunter.tests.events")

    with caplog.at_level(logging.INFO, logger=logger.name):
        emit_structured_event(
            EventType.APP_EVENT,
            "Served grade",
            context={"grade": "11", "empty": ""},
            correlation={"request_id": "abc"},
            duration_ms=1.234,
            logger=logger,
        )

    record = caplog.records[-1]
    assert record.getMessage() == "[APP_EVENT] Served grade (request_id=abc, grade=11, duration_ms=1.23)"
    assert record.event_type == "APP_EVENT"
    assert record.event_context == {"grade": "11"}
    assert not hasattr(record, "event_payload")


def test_fallback_event_is_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    failure = Failure(FailureKind.STATUS, "Grade not found", source="remote", status_code=404)

    with caplog.at_level(logging.WARNING, logger="media_hunter.events"):
        emit_fallback_event("grade 12", failure, fallback="snapshot")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.event_payload == {
        "failed_source": "remote",
        "kind": "status",
        "status_code": 404,
        "reason": "Grade not found",
        "fallback": "snapshot",
    }


def test_loader_reports_each_degraded_source(
    temp_config: AppConfig, offline_http, caplog: pytest.LogCaptureFixture
) -> None:
    loader = CurriculumLoader.from_config(temp_config, CatalogApiClient(offline_http))

    with caplog.at_level(logging.WARNING, logger="media_hunter.services.curriculum"):
        loader.load_grade("9")

    fallbacks = [
        record.event_payload
        for record in caplog.records
        if getattr(record, "event_type", "") == EventType.SOURCE_FALLBACK.value
    ]
    assert [(item["failed_source"], item["fallback"]) for item in fallbacks] == [
        ("remote", "snapshot"),
        ("snapshot", "none"),
    ]


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, None), ("  ", None), (["a", "b"], "a, b"), (FailureKind.LOGICAL, "logical"), ("x" * 300, "x" * 200 + "…")],
)
def test_sanitize_context_value(value, expected) -> None:
    assert sanitize_context_value(value) == expected
