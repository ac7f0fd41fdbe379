from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from todo_api.main import create_app
from todo_api.settings import Settings
from todo_api.store import TodoStore


class FakeClock:
    """Returns a strictly increasing UTC time on every call."""

    def __init__(self, start=datetime(2025, 1, 20, 10, 30, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def db_path(tmp_path):
    # Nested directory so tests also cover parent directory creation
    return tmp_path / "db" / "todo.json"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db_path, clock):
    s = TodoStore(db_path, clock=clock)
    s.open()
    yield s
    s.close()


@pytest.fixture
def settings(db_path):
    return Settings(db_path=str(db_path))


@pytest.fixture
def app(settings, clock):
    return create_app(settings, store=TodoStore(settings.db_path, clock=clock))


@pytest.fixture
def client(app):
    # Context manager runs the lifespan, which opens the store
    with TestClient(app) as c:
        yield c
