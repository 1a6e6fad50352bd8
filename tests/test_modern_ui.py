from __future__ import annotations

import io

import pytest

pytest.importorskip("rich")

from rich.console import Console

from media_hunter.config import AppConfig
from media_hunter.services.curriculum import CurriculumLoader, SnapshotGradeSource
from media_hunter.services.progress import ProgressStore
from media_hunter.services.session import CatalogSession
from media_hunter.ui.modern import ModernUI


def _render(config: AppConfig, grade: str, query: str = "") -> str:
    loader = CurriculumLoader(
        [SnapshotGradeSource(config.grades_root, extended_grades=config.extended_grades)]
    )
    session = CatalogSession(loader, ProgressStore(None, config.progress_snapshot_root), student_id="ada")
    session.init(grade)
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None)
    ModernUI(session, console=console).run(query)
    return buffer.getvalue()


def test_overview_renders_tree_and_totals(temp_config: AppConfig) -> None:
    output = _render(temp_config, "5")

    assert "Grade 5 · Western Hemisphere" in output
    assert "Maya, Aztec, and Inca" in output
    assert "The Road to El Dorado (2000)" in output
    assert "At a glance" in output
    assert "Watched" in output


def test_query_without_matches_is_reported(temp_config: AppConfig) -> None:
    output = _render(temp_config, "5", query="antarctica")

    assert "No matching topics" in output


def test_empty_grade_shows_hint(temp_config: AppConfig) -> None:
    output = _render(temp_config, "9")

    assert "No curriculum is available for this grade." in output
