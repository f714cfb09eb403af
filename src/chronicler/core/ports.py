"""Port interfaces for storage backends and external collaborators.

These protocols define the contracts that adapters must implement.
Collectors, the tracer and the agent depend only on these interfaces, not
on concrete drivers.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from chronicler.core.models import (
    BrokerMetric,
    ContainerStats,
    ContainerSummary,
    HealthRecord,
    Service,
)
from chronicler.core.schema import CollectionSpec


@runtime_checkable
class StorageBackend(Protocol):
    """Port for persisting collected records.

    Adapters implementing this protocol must store equivalent data for
    equivalent input. Examples: DocumentBackend, SQLiteBackend.
    """

    @property
    def connected(self) -> bool:
        """True once connect() has succeeded and close() has not been called."""
        ...

    async def connect(self, uri: str) -> None:
        """Open the underlying storage handle.

        Raises:
            BackendConnectionError: If the store cannot be reached.
        """
        ...

    async def ensure_schema(self, collection: CollectionSpec) -> None:
        """Provision the collection if absent. Safe to call repeatedly."""
        ...

    async def upsert_service(self, service: Service) -> bool:
        """Insert the service unless its name exists.

        Returns:
            True if a new service was stored, False if it already existed.
        """
        ...

    async def insert(self, collection: CollectionSpec, record: Any) -> None:
        """Append one record.

        Raises:
            WriteError: If the write fails. The record is not retried.
        """
        ...

    async def insert_batch(
        self, collection: CollectionSpec, records: Sequence[Any]
    ) -> None:
        """Append several records in one operation.

        Raises:
            WriteError: If the write fails. The batch is not retried.
        """
        ...

    async def read(self, collection: CollectionSpec) -> list[Any]:
        """Return stored records ordered by timestamp, then insertion."""
        ...

    async def close(self) -> None:
        """Release the storage handle."""
        ...


@runtime_checkable
class HostMetricsSource(Protocol):
    """Port for sampling host-level health metrics."""

    async def collect(self) -> list[HealthRecord]:
        """Return a fresh batch of health records.

        Raises:
            FetchError: If sampling fails.
        """
        ...


@runtime_checkable
class ContainerRuntime(Protocol):
    """Port for querying the container runtime."""

    async def list_containers(self) -> list[ContainerSummary]:
        """Return currently running containers in runtime order."""
        ...

    async def container_stats(self, container_id: str) -> ContainerStats:
        """Return a live statistics sample for one container.

        Raises:
            FetchError: If the runtime cannot produce stats.
        """
        ...


@runtime_checkable
class BrokerMetricsSource(Protocol):
    """Port for fetching message-broker cluster metrics."""

    async def fetch(self, config: Any) -> Sequence[BrokerMetric]:
        """Return the current cluster metrics.

        Raises:
            FetchError: If the broker exporter cannot be read.
        """
        ...


@runtime_checkable
class AlertChannel(Protocol):
    """Port for a notification channel (Slack, email, ...)."""

    kind: str

    async def send(
        self, status_code: int, status_message: str, config: Mapping[str, Any]
    ) -> None:
        """Deliver one failure notification using the channel's settings."""
        ...
