from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from media_hunter.bootstrap import Bootstrapper
from media_hunter.config import AppConfig
from media_hunter.services.curriculum import SnapshotGradeSource
from media_hunter.services.storage import CatalogRepository


GRADE_FILES = ("grade-5.json", "grade-11.json", "grade-11-part2.json")

CONFIG_MAPPING = {
    "storage_root": "storage",
    "database_file": "storage/media_hunter.db",
    "grades_root": "grades",
    "api_base_url": None,
    "grades": {
        "5": {"name": "Western Hemisphere", "focus": "Geography and cultures"},
        "11": {"name": "US History", "focus": "United States history"},
    },
    "users": [
        {"user_id": "admin", "name": "Admin", "role": "admin"},
        {"user_id": "teacher", "name": "Ms. Rivera", "role": "teacher"},
        {"user_id": "ada", "name": "Ada", "role": "student"},
        {"user_id": "ben", "name": "Ben", "role": "student"},
        {"user_id": "cy", "name": "Cy", "role": "student"},
    ],
}


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    monkeypatch.delenv("MEDIA_HUNTER_API_BASE_URL", raising=False)
    grades_dir = tmp_path / "grades"
    grades_dir.mkdir()
    for name in GRADE_FILES:
        shutil.copy(ROOT / "grades" / name, grades_dir / name)
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(dict(CONFIG_MAPPING), base_path=tmp_path)

    Bootstrapper(config).initialize()
    return config


@pytest.fixture()
def repository(temp_config: AppConfig) -> CatalogRepository:
    """A repository seeded with grades 5 and 11 and the test roster."""

    repository = CatalogRepository(temp_config)
    source = SnapshotGradeSource(temp_config.grades_root, extended_grades=temp_config.extended_grades)
    for info in temp_config.grades:
        repository.replace_grade(source.fetch(info.grade_id).value, info)
    repository.upsert_users(temp_config.users)
    return repository


@pytest.fixture()
def backend(repository: CatalogRepository, temp_config: AppConfig):
    """An in-process HTTP client for the catalog API."""

    pytest.importorskip("fastapi")
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    from media_hunter.web import create_app

    with TestClient(create_app(repository, config=temp_config)) as client:
        yield client


@pytest.fixture()
def offline_http():
    """An httpx client whose every request fails to connect."""

    httpx = pytest.importorskip("httpx")

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with httpx.Client(transport=httpx.MockTransport(refuse), base_url="http://backend.invalid") as client:
        yield client
