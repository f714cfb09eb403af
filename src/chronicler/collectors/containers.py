"""Container resource poller."""

import logging
import time
from collections.abc import Callable

from chronicler.collectors.base import Poller
from chronicler.core.errors import FetchError, ResolutionError
from chronicler.core.models import ContainerRecord, ContainerSummary, TickResult
from chronicler.core.ports import ContainerRuntime, StorageBackend
from chronicler.core.schema import CollectionSpec, container_collection
from chronicler.runtime.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class ContainerPoller(Poller):
    """Resolves the microservice's container once, then samples its stats.

    Resolution picks the first running container whose name equals the
    microservice name exactly. If several containers share that name, the
    first one listed by the runtime wins; no deduplication is attempted.
    """

    label = "container"

    def __init__(
        self,
        backend: StorageBackend,
        scheduler: Scheduler,
        runtime: ContainerRuntime,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(backend, scheduler, clock)
        self.runtime = runtime
        self.microservice: str | None = None
        self.container: ContainerSummary | None = None
        self.collection: CollectionSpec | None = None

    async def resolve(self, name: str) -> ContainerSummary:
        """Find the first running container named ``name``.

        Raises:
            ResolutionError: If no running container has that name, or the
                runtime cannot list containers.
        """
        try:
            containers = await self.runtime.list_containers()
        except FetchError as exc:
            raise ResolutionError(f"Cannot list running containers: {exc}") from exc
        for container in containers:
            if container.name == name:
                return container
        raise ResolutionError(
            f"Cannot find container data matching the microservice name {name!r}"
        )

    async def start(self, microservice: str, interval_ms: int) -> TimerHandle:
        """Resolve the container and start polling its stats.

        Raises:
            ResolutionError: If resolution fails. No timer is registered.
        """
        container = await self.resolve(microservice)
        self.microservice = microservice
        self.container = container
        self.collection = container_collection(container.name)
        await self._provision(self.collection)
        self.handle = self.scheduler.every(
            interval_ms, self.tick, name=f"container:{container.name}"
        )
        logger.info(
            "Container polling started for %s (%s) every %sms",
            container.name,
            container.id[:12],
            interval_ms,
        )
        return self.handle

    async def tick(self) -> TickResult:
        """Sample the resolved container and write one record."""
        if self.container is None or self.collection is None:
            raise RuntimeError("ContainerPoller.tick() called before start()")
        container = self.container
        try:
            stats = await self.runtime.container_stats(container.id)
        except FetchError as exc:
            logger.warning("Error sampling container %s: %s", container.name, exc)
            return TickResult(error=exc)
        record = ContainerRecord(
            microservice=self.microservice or container.name,
            container_id=container.id,
            container_name=container.name,
            platform=container.platform,
            start_time=container.started_at,
            mem_usage=float(stats.mem_usage),
            mem_limit=float(stats.mem_limit),
            mem_percent=float(stats.mem_percent),
            cpu_percent=float(stats.cpu_percent),
            network_received=float(stats.network_received),
            network_sent=float(stats.network_sent),
            process_count=int(stats.process_count),
            restart_count=int(stats.restart_count),
            timestamp=self._timestamp(),
        )
        return await self._write(self.collection, [record])
