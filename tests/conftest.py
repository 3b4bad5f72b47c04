"""
Shared fixtures: a throwaway SQLite database, a frozen clock and an app client.

The environment is configured before the application is imported so the
engine binds to the test database.
"""
import os
import tempfile
from datetime import datetime, timedelta

import pytest

DB_PATH = os.path.join(tempfile.gettempdir(), f"tortilla_watch_test_{os.getpid()}.db")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["APP_DEBUG"] = "false"
os.environ["LOCAL_TIMEZONE"] = "UTC"
os.environ["STORAGE_URL"] = ""
os.environ["STORAGE_SERVICE_KEY"] = ""

from fastapi.testclient import TestClient  # noqa: E402

from tortilla_watch import time_windows  # noqa: E402
from tortilla_watch.main import app  # noqa: E402


class FrozenClock:
    """Stand-in for ``time_windows.utcnow`` that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock(monkeypatch):
    frozen = FrozenClock(datetime(2025, 3, 12, 10, 0, 0))
    monkeypatch.setattr(time_windows, "utcnow", frozen)
    return frozen


@pytest.fixture
def client(clock):
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)
    with TestClient(app) as test_client:
        yield test_client
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)


def vote(client, fingerprint, vote_type="working"):
    return client.post(
        "/api/outages/vote",
        json={"fingerprint": fingerprint, "voteType": vote_type},
    )


def rating_body(fingerprint, **overrides):
    body = {
        "fingerprint": fingerprint,
        "sabor": 8,
        "jugosidad": 7,
        "cuajada": 6,
        "temperatura": 9,
    }
    body.update(overrides)
    return body


def rate(client, fingerprint, **overrides):
    return client.post("/api/ratings", json=rating_body(fingerprint, **overrides))


@pytest.fixture
def available(client):
    """Two distinct working votes flip the flag on."""
    vote(client, "voter-1")
    response = vote(client, "voter-2")
    assert response.json()["isAvailable"] is True
    return client
