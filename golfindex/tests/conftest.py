"""Shared pytest fixtures for golfindex tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from golfindex.app import app
from golfindex.config import Settings, reset_settings_cache
from golfindex.courses import CourseStore, get_course_store
from golfindex.rounds.service import RoundService, get_round_service
from golfindex.timeline.service import HandicapService, get_handicap_service
from golfindex.timeline.store import HandicapHistoryStore, get_history_store


def _clear_caches() -> None:
    reset_settings_cache()
    get_round_service.cache_clear()
    get_history_store.cache_clear()
    get_handicap_service.cache_clear()
    get_course_store.cache_clear()


@pytest.fixture(autouse=True)
def _isolated_data_dirs(tmp_path, monkeypatch):
    monkeypatch.setenv("GOLFINDEX_ROUNDS_DIR", str(tmp_path / "rounds"))
    monkeypatch.setenv("GOLFINDEX_HISTORY_DIR", str(tmp_path / "history"))
    _clear_caches()
    yield
    _clear_caches()


@pytest.fixture
def round_service(tmp_path) -> RoundService:
    return RoundService(base_dir=tmp_path / "rounds")


@pytest.fixture
def history_store(tmp_path) -> HandicapHistoryStore:
    return HandicapHistoryStore(base_dir=tmp_path / "history")


@pytest.fixture
def make_handicap_service(round_service, history_store):
    def _make(**overrides) -> HandicapService:
        settings = Settings(**overrides)
        return HandicapService(
            round_service=round_service, store=history_store, settings=settings
        )

    return _make


@pytest.fixture
def handicap_service(make_handicap_service) -> HandicapService:
    return make_handicap_service()


@pytest.fixture
def handicap_client(round_service, handicap_service):
    courses = CourseStore()
    app.dependency_overrides[get_round_service] = lambda: round_service
    app.dependency_overrides[get_handicap_service] = lambda: handicap_service
    app.dependency_overrides[get_course_store] = lambda: courses
    client = TestClient(app)
    yield client, round_service, handicap_service
    app.dependency_overrides.pop(get_round_service, None)
    app.dependency_overrides.pop(get_handicap_service, None)
    app.dependency_overrides.pop(get_course_store, None)
