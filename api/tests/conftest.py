"""Shared fixtures.

Routes run against an in-memory stand-in for the Cassandra session, so
``ProgressStore`` and ``VideoCatalog`` execute their real logic.
"""

import asyncio
import os
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LOG_REQUESTS", "false")

from src.auth.security import create_access_token  # noqa: E402
from src.progress.locks import KeyedLock  # noqa: E402
from src.progress.service import ProgressStore  # noqa: E402
from src.video.service import VideoCatalog  # noqa: E402


KEYSPACE = "test_keyspace"

_PROGRESS_COLUMNS = (
    "user_id",
    "video_id",
    "intervals",
    "unique_seconds",
    "duration_seconds",
    "progress_percentage",
    "last_position",
    "position_updated_at",
    "created_at",
    "updated_at",
)


class FakeResult(list):
    """Row list with the ``one()`` accessor of a Cassandra ResultSet."""

    def one(self) -> Any:
        return self[0] if self else None


class FakeCassandraSession:
    """Keeps ``videos`` and ``watched_progress`` rows in dictionaries.

    Every ``aexecute`` yields to the event loop once, like a real round trip,
    so concurrent coroutines interleave between read and write.
    """

    def __init__(self) -> None:
        self.videos: dict[UUID, SimpleNamespace] = {}
        self.progress: dict[tuple[UUID, UUID], SimpleNamespace] = {}
        self.writes = 0

    def prepare(self, query: str) -> str:
        return " ".join(query.split())

    async def aexecute(self, statement: str, params: list[Any] | None = None):
        await asyncio.sleep(0)
        params = params or []

        if statement.startswith(f"SELECT * FROM {KEYSPACE}.videos WHERE"):
            row = self.videos.get(params[0])
            return FakeResult([row] if row else [])
        if statement == f"SELECT * FROM {KEYSPACE}.videos":
            return FakeResult(self.videos.values())
        if statement.startswith(f"SELECT * FROM {KEYSPACE}.watched_progress"):
            row = self.progress.get((params[0], params[1]))
            return FakeResult([row] if row else [])
        if statement.startswith(f"INSERT INTO {KEYSPACE}.watched_progress"):
            row = SimpleNamespace(**dict(zip(_PROGRESS_COLUMNS, params, strict=True)))
            self.progress[(row.user_id, row.video_id)] = row
            self.writes += 1
            return FakeResult()

        msg = f"Unexpected statement: {statement}"
        raise AssertionError(msg)

    def add_video(
        self,
        duration_seconds: int | None = 300,
        title: str = "Lecture",
        video_id: UUID | None = None,
        created_at: datetime | None = None,
    ) -> UUID:
        video_id = video_id or uuid4()
        self.videos[video_id] = SimpleNamespace(
            video_id=video_id,
            title=title,
            description=f"{title} description",
            url=f"https://videos.example.com/{video_id}.mp4",
            duration_seconds=duration_seconds,
            created_at=created_at or datetime.now(UTC),
        )
        return video_id


@pytest.fixture
def fake_session() -> FakeCassandraSession:
    """In-memory Cassandra session."""
    return FakeCassandraSession()


@pytest.fixture
def video_catalog(fake_session: FakeCassandraSession) -> VideoCatalog:
    return VideoCatalog(session=fake_session, keyspace=KEYSPACE)


@pytest.fixture
def progress_store(
    fake_session: FakeCassandraSession, video_catalog: VideoCatalog
) -> ProgressStore:
    return ProgressStore(
        session=fake_session,
        keyspace=KEYSPACE,
        video_catalog=video_catalog,
        lock=KeyedLock(),
    )


@pytest.fixture
def video_id(fake_session: FakeCassandraSession) -> UUID:
    """A 300-second catalog video."""
    return fake_session.add_video(duration_seconds=300)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def auth_headers(user_id: UUID) -> dict[str, str]:
    """Bearer header for ``user_id``."""
    token = create_access_token({"sub": str(user_id), "email": "viewer@test.com"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def app(video_catalog: VideoCatalog, progress_store: ProgressStore):
    """Application with in-memory services on ``app.state``."""
    from src.main import app

    app.state.video_catalog = video_catalog
    app.state.progress_store = progress_store
    yield app
    del app.state.video_catalog
    del app.state.progress_store


@pytest.fixture
def client(app) -> TestClient:
    """Test client (lifespan not run, so no database connection)."""
    return TestClient(app)
