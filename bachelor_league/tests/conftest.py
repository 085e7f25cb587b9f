"""
Shared pytest configuration for the league tests.

Service tests run against an in-memory SQLite database (aiosqlite) built from
Base.metadata. Notifications are captured by a recording channel instead of
the WebSocket manager.
"""

import os

os.environ.setdefault("ENV", "test")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bachelor_league.database import db  # noqa: E402
from bachelor_league.database.db import Base  # noqa: E402
from bachelor_league.services import (  # noqa: E402
    notification_service,
    user_service,
    league_service,
    team_service,
    contestant_service,
)
from bachelor_league.services.websocket_manager import NotificationChannel  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingChannel(NotificationChannel):
    """Notification channel that keeps every published message."""

    def __init__(self):
        self.published = []
        self.subscribers = {}

    async def publish(self, league_id, message, target_user_id=None):
        self.published.append(
            {"league_id": league_id, "message": message, "target_user_id": target_user_id}
        )
        return 1

    async def subscribe(self, league_id, connection, user_id=None):
        self.subscribers.setdefault(league_id, set()).add(connection)

    async def unsubscribe(self, league_id, connection):
        self.subscribers.get(league_id, set()).discard(connection)

    def types(self):
        return [p["message"]["notification"]["type"] for p in self.published]

    def of_type(self, type):
        return [p for p in self.published if p["message"]["notification"]["type"] == type]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database per test."""
    # StaticPool keeps the single in-memory connection alive across sessions
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Code that opens its own sessions (background workers, WebSocket route)
    # must hit the test database too
    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """Session with the same options as the application session factory."""
    async with db.AsyncSessionLocal() as session:
        yield session


@pytest.fixture(autouse=True)
def channel():
    """Capture published notifications for the duration of a test."""
    recording = RecordingChannel()
    notification_service.set_notification_channel(recording)
    yield recording
    notification_service.set_notification_channel(None)


@pytest_asyncio.fixture
async def users(db_session):
    """A commissioner and two team owners."""
    return {
        "commissioner": await user_service.create_user(db_session, "Chris H", "chris@example.com"),
        "alice": await user_service.create_user(db_session, "Alice", "alice@example.com"),
        "bob": await user_service.create_user(db_session, "Bob", "bob@example.com"),
        "outsider": await user_service.create_user(db_session, "Eve", "eve@example.com"),
    }


@pytest_asyncio.fixture
async def league(db_session, users):
    return await league_service.create_league(
        db_session, users["commissioner"]["id"], "Bachelor Nation", "Season 29"
    )


@pytest_asyncio.fixture
async def teams(db_session, league, users):
    """Teams Alpha (alice) and Beta (bob), in creation order."""
    alpha = await team_service.create_team(db_session, league["id"], users["alice"]["id"], "Alpha")
    beta = await team_service.create_team(db_session, league["id"], users["bob"]["id"], "Beta")
    return [alpha, beta]


CONTESTANT_NAMES = ["Jenn", "Kelsey", "Daisy", "Rachel", "Maria", "Charity"]


@pytest_asyncio.fixture
async def contestants(db_session, league, users):
    created = []
    for name in CONTESTANT_NAMES:
        created.append(
            await contestant_service.create_contestant(
                db_session, league["id"], users["commissioner"]["id"], {"name": name, "age": 28}
            )
        )
    return created
