import os
import threading
from typing import Dict, List, Optional

# Settings are read at import time; set test defaults before importing airtime.
_TEST_DEFAULTS = {
    "APP_ENV": "test",
    "DATABASE_URL": "sqlite://",
    "EVENTS_BACKEND": "dry_run",
    "STORAGE_BACKEND": "vercel",
    "AUTH_JWT_KEY": "test-secret",
    "AUTH_JWT_ALGORITHMS": "HS256",
    "BLOB_READ_WRITE_TOKEN": "vercel_blob_rw_testtoken",
}
for _k, _v in _TEST_DEFAULTS.items():
    os.environ.setdefault(_k, _v)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from airtime.billing.plans import Tier
from airtime.core import retry as retry_module
from airtime.core.auth import Identity, get_current_identity
from airtime.core.database import get_session
from airtime.infrastructure import events_client, storage
from airtime.infrastructure.events_client import EventDeliveryError
from airtime.infrastructure.storage import BlobDeleteError
from airtime.models.events import DispatchEvent
from airtime.models.project import Project
from airtime.services.projects.store import SqlProjectStore


def identity_for(tier: Optional[Tier], user_id: str = "user_1") -> Identity:
    """Identity holding exactly ``tier``; ``None`` means no plan information."""
    if tier is None:
        return Identity(id=user_id)
    return Identity(id=user_id, capability_check=lambda plan: plan == tier.value)


class FakeBus:
    """Stand-in for ``events_client.send_event``.

    ``fail_next(n, job=...)`` makes the next ``n`` sends for that job (or for
    any event when ``job`` is None) raise ``EventDeliveryError``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._failures: Dict[Optional[str], int] = {}
        self.attempts: List[DispatchEvent] = []
        self.delivered: List[DispatchEvent] = []

    def fail_next(self, n: int, job: Optional[str] = None) -> None:
        self._failures[job] = n

    def __call__(self, event: DispatchEvent) -> dict:
        job = event.data.get("job")
        with self._lock:
            self.attempts.append(event)
            for key in (job, None):
                if self._failures.get(key, 0) > 0:
                    self._failures[key] -= 1
                    raise EventDeliveryError("bus unavailable")
            self.delivered.append(event)
            return {"ids": [f"evt-{len(self.delivered)}"]}

    def attempts_for(self, job: str) -> int:
        return sum(1 for e in self.attempts if e.data.get("job") == job)

    @property
    def delivered_jobs(self) -> List[str]:
        return [e.data.get("job") for e in self.delivered]


class FakeBlobStore:
    def __init__(self):
        self.fail_times = 0
        self.calls: List[str] = []
        self.deleted: List[str] = []

    def __call__(self, url: str) -> None:
        self.calls.append(url)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise BlobDeleteError("storage unavailable")
        self.deleted.append(url)


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(eng)
    yield eng
    SQLModel.metadata.drop_all(eng)


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def store(session):
    return SqlProjectStore(session)


@pytest.fixture
def make_project(session):
    """Insert a project owned by ``user_id`` with the given artifacts populated."""

    def _make(user_id: str = "user_1", **artifacts) -> Project:
        project = Project(
            user_id=user_id,
            name="episode.mp3",
            input_url="https://blob.example.com/episode.mp3",
            file_name="episode.mp3",
            file_size=1024,
            file_format="mp3",
            mime_type="audio/mpeg",
            summary={"text": "summary"},
            transcription={"text": "transcript"},
            **artifacts,
        )
        session.add(project)
        session.commit()
        session.refresh(project)
        return project

    return _make


@pytest.fixture
def fake_bus(monkeypatch):
    bus = FakeBus()
    monkeypatch.setattr(events_client, "send_event", bus)
    return bus


@pytest.fixture
def fake_blob(monkeypatch):
    blob = FakeBlobStore()
    monkeypatch.setattr(storage, "delete_blob_url", blob)
    return blob


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff delays instead of sleeping."""
    recorded: List[float] = []
    lock = threading.Lock()

    def _sleep(seconds: float) -> None:
        with lock:
            recorded.append(seconds)

    monkeypatch.setattr(retry_module.time, "sleep", _sleep)
    return recorded


class ApiHarness:
    def __init__(self, client: TestClient):
        self.client = client
        self.identity: Optional[Identity] = identity_for(Tier.free)

    def login(self, tier: Optional[Tier], user_id: str = "user_1") -> None:
        self.identity = identity_for(tier, user_id)

    def logout(self) -> None:
        self.identity = None


@pytest.fixture
def api(session):
    from airtime.main import create_app

    app = create_app(init_db=False)
    harness = ApiHarness(TestClient(app))

    def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_current_identity] = lambda: harness.identity
    yield harness
    app.dependency_overrides.clear()
