"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest

from chronicler.adapters.storage import DocumentBackend, SQLiteBackend
from chronicler.adapters.storage.base import StorageBackendBase
from chronicler.runtime.scheduler import Scheduler
from tests.support import FakeMongoServer, make_app


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for file-backed SQLite tests."""
    return str(tmp_path / "chronicler.db")


@pytest.fixture
def mongo_server() -> FakeMongoServer:
    """In-memory document store shared by every client the test creates."""
    return FakeMongoServer()


# === Storage Fixtures ===


@pytest.fixture
async def sqlite_backend() -> AsyncGenerator[SQLiteBackend, None]:
    """Connected in-memory relational backend."""
    backend = SQLiteBackend()
    await backend.connect(":memory:")
    yield backend
    await backend.close()


@pytest.fixture
async def document_backend(
    mongo_server: FakeMongoServer,
) -> AsyncGenerator[DocumentBackend, None]:
    """Connected document backend on the in-memory document store."""
    backend = DocumentBackend(client_factory=mongo_server.client)
    await backend.connect("mongodb://localhost:27017/chronicler")
    yield backend
    await backend.close()


@pytest.fixture(params=["relational", "document"])
async def backend(
    request: pytest.FixtureRequest, mongo_server: FakeMongoServer
) -> AsyncGenerator[StorageBackendBase, None]:
    """Each backend kind in turn, connected and empty.

    Used by tests that describe behaviour both stores must share.
    """
    if request.param == "relational":
        instance: StorageBackendBase = SQLiteBackend()
        uri = ":memory:"
    else:
        instance = DocumentBackend(client_factory=mongo_server.client)
        uri = "mongodb://localhost:27017/chronicler"
    await instance.connect(uri)
    yield instance
    await instance.close()


# === Runtime Fixtures ===


@pytest.fixture
async def scheduler() -> AsyncGenerator[Scheduler, None]:
    """Scheduler whose timers are cancelled when the test ends."""
    instance = Scheduler()
    yield instance
    await instance.shutdown()


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK."""
    return make_app()


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""
    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
