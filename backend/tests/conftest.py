"""
Inkwell Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── registry:      fresh SessionRegistry
    ├── memory_store:  in-memory MessageStore (no database needed)
    ├── relay:         MessageRelay over memory_store + registry
    ├── sql_store:     SqlAlchemyMessageStore on an in-memory SQLite database
    ├── test_app:      create_app() wired to memory_store + registry
    ├── test_client:   HTTPX AsyncClient for HTTP endpoints
    └── ws_client:     Starlette TestClient for the chat socket
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, Dict, List  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from starlette.testclient import TestClient  # noqa: E402

from app.database import Base  # noqa: E402
from app.exceptions import PersistenceError  # noqa: E402
from app.models.message import Message  # noqa: E402
from app.services.message_relay import MessageRelay  # noqa: E402
from app.services.message_store import MessageStore, SqlAlchemyMessageStore  # noqa: E402
from app.services.session_registry import ClientSession, SessionRegistry  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════


class RecordingSession(ClientSession):
    """ClientSession that keeps every payload it is sent."""

    def __init__(self, user_id: str, fail: bool = False):
        super().__init__(user_id)
        self.received: List[Dict[str, Any]] = []
        self.fail = fail

    async def send(self, payload: Dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("peer went away")
        self.received.append(payload)


class InMemoryMessageStore(MessageStore):
    """
    MessageStore holding messages in a list.

    Set ``fail = True`` to make every save raise PersistenceError.
    """

    def __init__(self):
        self.messages: List[Message] = []
        self.fail = False
        self.save_calls = 0

    async def save(self, message: Message) -> int:
        self.save_calls += 1
        if self.fail:
            raise PersistenceError(context={"reason": "store offline"})
        message.id = len(self.messages) + 1
        self.messages.append(message)
        return message.id

    async def find_by_sender_or_receiver(self, user_id: str) -> List[Message]:
        matching = [
            m for m in self.messages
            if m.sender_id == user_id or m.receiver_id == user_id
        ]
        return sorted(matching, key=lambda m: (m.timestamp, m.id))


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def memory_store():
    return InMemoryMessageStore()


@pytest.fixture
def relay(memory_store, registry):
    return MessageRelay(memory_store, registry)


@pytest_asyncio.fixture
async def sql_store():
    """
    SqlAlchemyMessageStore over a throwaway in-memory SQLite database.

    The `messages` table is created from the ORM metadata, so the test runs
    the same SQL the application does (minus PostgreSQL specifics).
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    yield SqlAlchemyMessageStore(factory)
    await engine.dispose()


@pytest.fixture
def test_app(memory_store, registry):
    from app.main import create_app
    return create_app(store=memory_store, registry=registry)


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def ws_client(test_app):
    """
    Starlette TestClient for WebSocket tests.

    Entered as a context manager so every socket opened from it shares one
    event loop, which cross-session delivery needs.
    """
    with TestClient(test_app) as client:
        yield client


@pytest.fixture
def make_session():
    """Factory for RecordingSession: make_session("bob") or make_session("bob", fail=True)."""
    return RecordingSession
