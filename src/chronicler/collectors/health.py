"""Host health poller."""

import dataclasses
import logging
import time
from collections.abc import Callable

from chronicler.collectors.base import Poller
from chronicler.core.errors import FetchError
from chronicler.core.models import TickResult
from chronicler.core.ports import HostMetricsSource, StorageBackend
from chronicler.core.schema import CollectionSpec, health_collection
from chronicler.runtime.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class HealthPoller(Poller):
    """Samples host metrics every interval into ``<microservice>``.

    A failed sample or write is logged and the next tick runs as usual.
    """

    label = "health"

    def __init__(
        self,
        backend: StorageBackend,
        scheduler: Scheduler,
        source: HostMetricsSource,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(backend, scheduler, clock)
        self.source = source
        self.collection: CollectionSpec | None = None

    async def start(self, microservice: str, interval_ms: int) -> TimerHandle:
        """Provision the health collection and start polling."""
        self.collection = health_collection(microservice)
        await self._provision(self.collection)
        self.handle = self.scheduler.every(
            interval_ms, self.tick, name=f"health:{microservice}"
        )
        logger.info("Health polling started for %s every %sms", microservice, interval_ms)
        return self.handle

    async def tick(self) -> TickResult:
        """Collect one batch of host metrics and write it."""
        if self.collection is None:
            raise RuntimeError("HealthPoller.tick() called before start()")
        try:
            batch = await self.source.collect()
        except FetchError as exc:
            logger.warning("Error collecting health data: %s", exc)
            return TickResult(error=exc)
        records = [
            dataclasses.replace(record, timestamp=self._timestamp(record.timestamp))
            for record in batch
        ]
        return await self._write(self.collection, records)
