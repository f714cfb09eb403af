"""Base class for storage backends."""

import logging
from collections.abc import Sequence
from typing import Any, ClassVar

from chronicler.core.errors import (
    BackendConnectionError,
    ReadError,
    WriteError,
)
from chronicler.core.models import Service
from chronicler.core.schema import SERVICES, CollectionSpec

logger = logging.getLogger(__name__)


def _redact(uri: str, keep: int = 24) -> str:
    """Shorten a connection URI for logging."""
    return uri if len(uri) <= keep else f"{uri[:keep]}..."


class StorageBackendBase:
    """Shared behaviour of the document and relational backends.

    Handles connection state, implicit schema provisioning before the first
    write to a collection, record/row conversion through ``CollectionSpec``
    and translation of driver exceptions. Subclasses implement the
    driver-specific primitives:

    - ``_open(uri)`` / ``_close()``
    - ``_create(collection)``
    - ``_insert_rows(collection, rows)``
    - ``_insert_service(row) -> bool``
    - ``_select(collection) -> list[tuple]``
    """

    kind: ClassVar[str] = "storage"
    # Driver exceptions translated into WriteError/ReadError
    _driver_errors: ClassVar[tuple[type[BaseException], ...]] = ()

    def __init__(self) -> None:
        self._ensured: set[tuple[str, str]] = set()

    @property
    def connected(self) -> bool:
        raise NotImplementedError

    async def _open(self, uri: str) -> None:
        raise NotImplementedError

    async def _close(self) -> None:
        raise NotImplementedError

    async def _create(self, collection: CollectionSpec) -> None:
        raise NotImplementedError

    async def _insert_rows(
        self, collection: CollectionSpec, rows: list[tuple[Any, ...]]
    ) -> None:
        raise NotImplementedError

    async def _insert_service(self, row: tuple[Any, ...]) -> bool:
        raise NotImplementedError

    async def _select(self, collection: CollectionSpec) -> list[tuple[Any, ...]]:
        raise NotImplementedError

    @staticmethod
    def _key(collection: CollectionSpec) -> tuple[str, str]:
        return (collection.document_name, collection.table_name)

    async def connect(self, uri: str) -> None:
        """Open the storage handle.

        Raises:
            BackendConnectionError: If the driver cannot reach the store.
        """
        try:
            await self._open(uri)
        except (*self._driver_errors, OSError) as exc:
            raise BackendConnectionError(
                f"Could not connect to {self.kind} store at {_redact(uri)}: {exc}"
            ) from exc
        logger.info("Connected to %s store at %s", self.kind, _redact(uri))

    async def close(self) -> None:
        """Release the storage handle. Safe to call more than once."""
        if self.connected:
            await self._close()
        self._ensured.clear()

    def _require_connection(self) -> None:
        if not self.connected:
            raise WriteError(f"{self.kind} store is not connected")

    async def ensure_schema(self, collection: CollectionSpec) -> None:
        """Provision the collection if this backend has not done so yet."""
        key = self._key(collection)
        if key in self._ensured:
            return
        self._require_connection()
        try:
            await self._create(collection)
        except self._driver_errors as exc:
            raise WriteError(
                f"Could not provision {collection.document_name}: {exc}"
            ) from exc
        self._ensured.add(key)

    async def upsert_service(self, service: Service) -> bool:
        """Insert the service unless one with the same name is stored."""
        self._require_connection()
        await self.ensure_schema(SERVICES)
        try:
            return await self._insert_service(SERVICES.to_row(service))
        except self._driver_errors as exc:
            raise WriteError(
                f"Could not record service {service.microservice!r}: {exc}"
            ) from exc

    async def insert(self, collection: CollectionSpec, record: Any) -> None:
        """Append one record."""
        await self._write(collection, [collection.to_row(record)])

    async def insert_batch(
        self, collection: CollectionSpec, records: Sequence[Any]
    ) -> None:
        """Append a batch of records in a single operation."""
        rows = [collection.to_row(record) for record in records]
        if not rows:
            return
        await self._write(collection, rows)

    async def _write(
        self, collection: CollectionSpec, rows: list[tuple[Any, ...]]
    ) -> None:
        self._require_connection()
        await self.ensure_schema(collection)
        try:
            await self._insert_rows(collection, rows)
        except self._driver_errors as exc:
            raise WriteError(
                f"Could not write {len(rows)} record(s) to "
                f"{collection.document_name}: {exc}"
            ) from exc

    async def read(self, collection: CollectionSpec) -> list[Any]:
        """Return stored records ordered by timestamp, then insertion."""
        if not self.connected:
            raise ReadError(f"{self.kind} store is not connected")
        try:
            if self._key(collection) not in self._ensured:
                await self._create(collection)
                self._ensured.add(self._key(collection))
            rows = await self._select(collection)
        except self._driver_errors as exc:
            raise ReadError(
                f"Could not read {collection.document_name}: {exc}"
            ) from exc
        return [collection.from_row(row) for row in rows]
