"""Document storage backend built on MongoDB."""

from collections.abc import Callable
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.errors import CollectionInvalid, DuplicateKeyError, PyMongoError

from chronicler.adapters.storage.base import StorageBackendBase
from chronicler.core.schema import SERVICES, CollectionSpec

DEFAULT_DATABASE = "chronicler"


def _default_client(uri: str) -> AsyncMongoClient:
    return AsyncMongoClient(uri, serverSelectionTimeoutMS=5000)


class DocumentBackend(StorageBackendBase):
    """Schema-less implementation of StorageBackend.

    Stores each record as one document keyed by the collection's column
    names. Collections are created on demand; the only enforced constraint
    is the unique index on ``services.microservice``.

    Args:
        client_factory: Callable building an async client from a URI.
            Defaults to ``pymongo.AsyncMongoClient``.
        database_name: Database used when the URI names none.
    """

    kind = "document"
    _driver_errors = (PyMongoError,)

    def __init__(
        self,
        client_factory: Callable[[str], Any] | None = None,
        database_name: str = DEFAULT_DATABASE,
    ) -> None:
        super().__init__()
        self._client_factory = client_factory or _default_client
        self._database_name = database_name
        self._client: Any = None
        self._db: Any = None

    @property
    def connected(self) -> bool:
        return self._db is not None

    async def _open(self, uri: str) -> None:
        client = self._client_factory(uri)
        try:
            await client.admin.command("ping")
        except PyMongoError:
            await client.close()
            raise
        self._client = client
        self._db = client.get_default_database(default=self._database_name)

    async def _close(self) -> None:
        client, self._client, self._db = self._client, None, None
        if client is not None:
            await client.close()

    async def _create(self, collection: CollectionSpec) -> None:
        name = collection.document_name
        if name not in await self._db.list_collection_names():
            try:
                await self._db.create_collection(name)
            except CollectionInvalid:
                # Created concurrently by another agent
                pass
        if collection.unique is not None:
            await self._db[name].create_index(collection.unique, unique=True)

    async def _insert_rows(
        self, collection: CollectionSpec, rows: list[tuple[Any, ...]]
    ) -> None:
        documents = [dict(zip(collection.column_names, row, strict=True)) for row in rows]
        target = self._db[collection.document_name]
        if len(documents) == 1:
            await target.insert_one(documents[0])
        else:
            await target.insert_many(documents, ordered=True)

    async def _insert_service(self, row: tuple[Any, ...]) -> bool:
        document = dict(zip(SERVICES.column_names, row, strict=True))
        try:
            result = await self._db[SERVICES.document_name].update_one(
                {"microservice": document["microservice"]},
                {"$setOnInsert": document},
                upsert=True,
            )
        except DuplicateKeyError:
            return False
        return result.upserted_id is not None

    async def _select(self, collection: CollectionSpec) -> list[tuple[Any, ...]]:
        query: dict[str, Any] = {}
        if collection.partition is not None:
            query[collection.partition[0]] = collection.partition[1]
        order = [(name, 1) for name in collection.order_by] + [("_id", 1)]
        cursor = self._db[collection.document_name].find(query, {"_id": 0}).sort(order)
        documents = await cursor.to_list()
        return [
            tuple(document.get(name) for name in collection.column_names)
            for document in documents
        ]
