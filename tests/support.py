"""Test doubles shared across test modules."""

import asyncio
import itertools
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from pymongo.errors import (
    AutoReconnect,
    CollectionInvalid,
    DuplicateKeyError,
    ServerSelectionTimeoutError,
)

from chronicler.core.errors import FetchError
from chronicler.core.models import (
    BrokerMetric,
    ContainerRecord,
    ContainerStats,
    ContainerSummary,
    HealthRecord,
)

# === Document store ===


class FakeCursor:
    """Minimal async cursor supporting sort() and to_list()."""

    def __init__(self, documents: list[dict[str, Any]], projection: Mapping[str, int]):
        self._documents = documents
        self._projection = projection

    def sort(self, keys: list[tuple[str, int]]) -> "FakeCursor":
        for name, direction in reversed(keys):
            self._documents.sort(key=lambda d: d.get(name), reverse=direction < 0)
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        hidden = {k for k, v in self._projection.items() if v == 0}
        result = [
            {k: v for k, v in doc.items() if k not in hidden} for doc in self._documents
        ]
        return result if length is None else result[:length]


class FakeCollection:
    """In-memory stand-in for an async MongoDB collection."""

    def __init__(self, name: str, ids: itertools.count) -> None:
        self.name = name
        self.documents: list[dict[str, Any]] = []
        self.unique_keys: set[str] = set()
        self.fail_writes = False
        self._ids = ids

    def _check_writable(self) -> None:
        if self.fail_writes:
            raise AutoReconnect("connection reset")

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        self._check_writable()
        for key in self.unique_keys:
            if any(d.get(key) == document.get(key) for d in self.documents):
                raise DuplicateKeyError(f"E11000 duplicate key {key}")
        stored = {**document, "_id": next(self._ids)}
        self.documents.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def insert_many(
        self, documents: Sequence[dict[str, Any]], ordered: bool = True
    ) -> SimpleNamespace:
        self._check_writable()
        ids = [(await self.insert_one(d)).inserted_id for d in documents]
        return SimpleNamespace(inserted_ids=ids)

    async def update_one(
        self, query: dict[str, Any], update: dict[str, Any], upsert: bool = False
    ) -> SimpleNamespace:
        self._check_writable()
        for doc in self.documents:
            if all(doc.get(k) == v for k, v in query.items()):
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, upserted_id=None)
        result = await self.insert_one({**query, **update.get("$setOnInsert", {})})
        return SimpleNamespace(matched_count=0, upserted_id=result.inserted_id)

    async def create_index(self, key: str, unique: bool = False) -> str:
        if unique:
            self.unique_keys.add(key)
        return f"{key}_1"

    def find(
        self, query: dict[str, Any] | None = None, projection: Mapping[str, int] | None = None
    ) -> FakeCursor:
        query = query or {}
        matching = [
            dict(d) for d in self.documents if all(d.get(k) == v for k, v in query.items())
        ]
        return FakeCursor(matching, projection or {})


class FakeDatabase:
    """In-memory stand-in for an async MongoDB database."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.collections: dict[str, FakeCollection] = {}
        self._ids = itertools.count(1)

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name, self._ids)
        return self.collections[name]

    async def list_collection_names(self) -> list[str]:
        return list(self.collections)

    async def create_collection(self, name: str) -> FakeCollection:
        if name in self.collections:
            raise CollectionInvalid(f"collection {name} already exists")
        return self[name]


@dataclass
class FakeMongoServer:
    """Databases shared by every FakeMongoClient pointed at this server."""

    reachable: bool = True
    databases: dict[str, FakeDatabase] = field(default_factory=dict)

    def database(self, name: str) -> FakeDatabase:
        if name not in self.databases:
            self.databases[name] = FakeDatabase(name)
        return self.databases[name]

    def client(self, uri: str) -> "FakeMongoClient":
        return FakeMongoClient(self, uri)


class FakeMongoClient:
    """Stand-in for pymongo.AsyncMongoClient."""

    def __init__(self, server: FakeMongoServer, uri: str) -> None:
        self.server = server
        self.uri = uri
        self.closed = False
        self.admin = SimpleNamespace(command=self._command)

    async def _command(self, name: str) -> dict[str, Any]:
        if not self.server.reachable:
            raise ServerSelectionTimeoutError("No servers found yet")
        return {"ok": 1.0}

    def get_default_database(self, default: str | None = None) -> FakeDatabase:
        path = self.uri.split("://", 1)[-1].split("/", 1)
        name = path[1] if len(path) > 1 and path[1] else default
        return self.server.database(name or "test")

    async def close(self) -> None:
        self.closed = True


# === Collaborators ===


class FakeHostSource:
    """HostMetricsSource returning a fixed batch, or failing on demand."""

    def __init__(self, batch: list[HealthRecord] | None = None) -> None:
        self.batch = batch or [
            HealthRecord(metric="cpu_percent", value=12.5, category="CPU", timestamp=1000.0),
            HealthRecord(metric="memory_percent", value=40.0, category="Memory", timestamp=1000.0),
        ]
        self.fail = False
        self.calls = 0

    async def collect(self) -> list[HealthRecord]:
        self.calls += 1
        if self.fail:
            raise FetchError("sensor unavailable")
        return list(self.batch)


class FakeContainerRuntime:
    """ContainerRuntime listing a fixed set of containers."""

    def __init__(self, containers: list[ContainerSummary] | None = None) -> None:
        self.containers = containers if containers is not None else []
        self.stats = ContainerStats(
            mem_usage=1024.0,
            mem_limit=4096.0,
            mem_percent=25.0,
            cpu_percent=3.5,
            network_received=100.0,
            network_sent=50.0,
            process_count=4,
            restart_count=1,
        )
        self.fail_stats = False
        self.stats_calls: list[str] = []

    async def list_containers(self) -> list[ContainerSummary]:
        return list(self.containers)

    async def container_stats(self, container_id: str) -> ContainerStats:
        self.stats_calls.append(container_id)
        if self.fail_stats:
            raise FetchError("container stats unavailable")
        return self.stats


class FakeBrokerSource:
    """BrokerMetricsSource returning a fixed list of metrics."""

    def __init__(self, metrics: list[BrokerMetric] | None = None) -> None:
        self.metrics = metrics or [
            BrokerMetric("kafka_server_messages_in_total", 42.0, "Event", 2_000_000.0),
            BrokerMetric("kafka_server_bytes_in_total", 1024.0, "Event", 2_000_000.0),
        ]
        self.fail = False
        self.configs: list[Any] = []

    async def fetch(self, config: Any) -> list[BrokerMetric]:
        self.configs.append(config)
        if self.fail:
            raise FetchError("exporter down")
        return list(self.metrics)


class RecordingChannel:
    """AlertChannel recording every send."""

    def __init__(self, kind: str = "slack", fail: bool = False, delay: float = 0) -> None:
        self.kind = kind
        self.fail = fail
        self.delay = delay
        self.sent: list[tuple[int, str, Mapping[str, Any]]] = []

    async def send(
        self, status_code: int, status_message: str, config: Mapping[str, Any]
    ) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self.kind} unreachable")
        self.sent.append((status_code, status_message, config))


# === ASGI ===


def make_app(status: int = 200, body: bytes = b"OK", headers: list | None = None):
    """Return an ASGI app answering every request with ``status``."""

    async def app(scope, receive, send) -> None:
        await send(
            {"type": "http.response.start", "status": status, "headers": headers or []}
        )
        await send({"type": "http.response.body", "body": body})

    return app


def http_scope(
    method: str = "GET",
    path: str = "/test",
    query_string: bytes = b"",
    headers: list[tuple[bytes, bytes]] | None = None,
) -> dict[str, Any]:
    return {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": headers or [],
    }


async def receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b""}


# === Records ===


def container_record(**overrides: object) -> ContainerRecord:
    """Return a ContainerRecord for "customers" with optional overrides."""
    values: dict[str, object] = {
        "microservice": "customers",
        "container_id": "abc123",
        "container_name": "customers",
        "platform": "linux",
        "start_time": "2024-01-01T00:00:00Z",
        "mem_usage": 1024.0,
        "mem_limit": 4096.0,
        "mem_percent": 25.0,
        "cpu_percent": 3.5,
        "network_received": 10.0,
        "network_sent": 20.0,
        "process_count": 4,
        "restart_count": 0,
        "timestamp": 1700000000.0,
    }
    values.update(overrides)
    return ContainerRecord(**values)  # type: ignore[arg-type]
