# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from task_api.app.main import create_app
from task_api.config import Settings
from task_api.infra.db.task_repo_memory import InMemoryTaskRepo
from task_api.services.task_service import TaskService


class FakeClock:
    """Controllable UTC clock shared by the store and the service."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def repo(clock: FakeClock) -> InMemoryTaskRepo:
    return InMemoryTaskRepo(clock=clock)


@pytest.fixture()
def service(repo: InMemoryTaskRepo, clock: FakeClock) -> TaskService:
    return TaskService(repo, clock=clock)


@pytest.fixture()
def settings() -> Settings:
    # No log file; generous limits so only the rate limit tests hit them.
    return Settings(
        app_env="test",
        log_dir=None,
        log_level="WARNING",
        rate_limit_max_requests=1000,
        mutation_limit_max_requests=1000,
        critical_limit_max_requests=1000,
    )


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
