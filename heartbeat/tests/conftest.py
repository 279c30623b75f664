"""Shared fixtures: a throwaway SQLite database, a test client and a fake clock."""

from datetime import datetime, timedelta
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from heartbeat import api, services
from heartbeat.main import app
from heartbeat.storage import DatabaseStorage


class FakeClock:
    """Callable stand-in for ``services.now`` that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def storage(tmp_path, monkeypatch) -> Iterator[DatabaseStorage]:
    """A configured gateway over a fresh SQLite file, installed as the API's storage."""
    db = DatabaseStorage(f"sqlite:///{tmp_path / 'heartbeat.db'}")
    db.start()
    monkeypatch.setattr(api, "storage", db)
    yield db
    db.stop()


@pytest.fixture
def client(storage) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock(datetime(2024, 1, 15, 10, 0, 0))
    monkeypatch.setattr(services, "now", fake)
    return fake


def register(client: TestClient, username: str = "alice", password: str = "secret", **extra) -> dict:
    """Register a user through the API and return the created user."""
    payload = {"username": username, "password": password, "age": 30, "gender": "female"}
    payload.update(extra)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["user"]


def save_reading(client: TestClient, user: dict, bpm: int) -> dict:
    response = client.post(
        "/api/ecg/save",
        json={"userId": user["id"], "username": user["username"], "bpm": bpm},
    )
    assert response.status_code == 201, response.text
    return response.json()["result"]
