"""Relational storage backend built on SQLite."""

import asyncio
import sqlite3
from typing import Any

import aiosqlite

from chronicler.adapters.storage.base import StorageBackendBase
from chronicler.core.schema import SERVICES, CollectionSpec

_MEMORY = ":memory:"


def _quote(identifier: str) -> str:
    """Quote an identifier so service names with hyphens are valid tables."""
    return '"' + identifier.replace('"', '""') + '"'


def _database_path(uri: str) -> str:
    """Map a connection string to an aiosqlite database path.

    Accepts plain paths, ``:memory:`` and SQLAlchemy-style URLs:
    ``sqlite://`` (memory), ``sqlite:///relative.db``, ``sqlite:////abs.db``.
    """
    if uri in ("", "sqlite://", "sqlite:///:memory:"):
        return _MEMORY
    if uri.startswith("sqlite:///"):
        return uri[len("sqlite:///") :]
    return uri


def create_table_sql(collection: CollectionSpec) -> str:
    """Build the CREATE TABLE IF NOT EXISTS statement for a collection."""
    columns = ["id INTEGER PRIMARY KEY AUTOINCREMENT"]
    for column in collection.columns:
        definition = f"{_quote(column.name)} {column.sql_type}"
        if column.constraints:
            definition = f"{definition} {column.constraints}"
        columns.append(definition)
    body = ",\n    ".join(columns)
    return f"CREATE TABLE IF NOT EXISTS {_quote(collection.table_name)} (\n    {body}\n)"


def insert_sql(collection: CollectionSpec, num_rows: int) -> str:
    """Build one parameterized INSERT covering ``num_rows`` rows."""
    names = ", ".join(_quote(name) for name in collection.column_names)
    row = "(" + ", ".join("?" for _ in collection.columns) + ")"
    values = ",\n    ".join(row for _ in range(num_rows))
    return f"INSERT INTO {_quote(collection.table_name)} ({names})\nVALUES\n    {values}"


def select_sql(collection: CollectionSpec) -> str:
    """Build the SELECT returning a collection in its natural order."""
    names = ", ".join(_quote(name) for name in collection.column_names)
    query = f"SELECT {names} FROM {_quote(collection.table_name)}"
    if collection.partition is not None:
        query += f" WHERE {_quote(collection.partition[0])} = ?"
    order = [*(_quote(name) for name in collection.order_by), "id"]
    return f"{query} ORDER BY {', '.join(order)}"


_INSERT_SERVICE = (
    f"INSERT INTO {_quote(SERVICES.table_name)} (microservice, interval)\n"
    "VALUES (?, ?)\n"
    "ON CONFLICT (microservice) DO NOTHING"
)


class SQLiteBackend(StorageBackendBase):
    """Relational implementation of StorageBackend.

    Keeps one aiosqlite connection for the agent's lifetime. Tables are
    created explicitly with a fixed column layout before the first write,
    and every batch is a single multi-row INSERT. File databases use WAL
    mode so a dashboard can read while the agent writes.

    Statements and their commit are issued under one lock so that
    back-to-back writes from concurrent timers cannot interleave a commit.
    """

    kind = "relational"
    _driver_errors = (sqlite3.Error, ValueError)

    def __init__(self) -> None:
        super().__init__()
        self._conn: aiosqlite.Connection | None = None
        self._lock: asyncio.Lock | None = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the write lock (lazy to avoid event loop issues)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise sqlite3.ProgrammingError("Connection is closed")
        return self._conn

    async def _open(self, uri: str) -> None:
        path = _database_path(uri)
        conn = await aiosqlite.connect(path)
        try:
            if path != _MEMORY:
                await conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error:
            await conn.close()
            raise
        self._conn = conn

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    async def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> int:
        async with self._get_lock():
            conn = self._connection()
            cursor = await conn.execute(sql, params)
            await conn.commit()
            return cursor.rowcount

    async def _create(self, collection: CollectionSpec) -> None:
        await self._execute(create_table_sql(collection))

    async def _insert_rows(
        self, collection: CollectionSpec, rows: list[tuple[Any, ...]]
    ) -> None:
        params = tuple(value for row in rows for value in row)
        await self._execute(insert_sql(collection, len(rows)), params)

    async def _insert_service(self, row: tuple[Any, ...]) -> bool:
        return await self._execute(_INSERT_SERVICE, row) == 1

    async def _select(self, collection: CollectionSpec) -> list[tuple[Any, ...]]:
        params = () if collection.partition is None else (collection.partition[1],)
        async with self._connection().execute(select_sql(collection), params) as cursor:
            return [tuple(row) async for row in cursor]
