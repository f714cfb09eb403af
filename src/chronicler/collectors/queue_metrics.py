"""Message-broker cluster metrics poller."""

import logging
import time
from collections.abc import Callable

from chronicler.collectors.base import Poller
from chronicler.collectors.registrar import ServiceRegistrar
from chronicler.config import KafkaConfig
from chronicler.core.errors import FetchError
from chronicler.core.models import MetricRecord, TickResult
from chronicler.core.ports import BrokerMetricsSource, StorageBackend
from chronicler.core.schema import KAFKA_METRICS, KAFKA_SERVICE_NAME
from chronicler.runtime.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class QueueMetricsPoller(Poller):
    """Fetches broker metrics every interval into ``kafkametrics``."""

    label = "kafka"

    def __init__(
        self,
        backend: StorageBackend,
        scheduler: Scheduler,
        registrar: ServiceRegistrar,
        source: BrokerMetricsSource,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(backend, scheduler, clock)
        self.registrar = registrar
        self.source = source
        self.config: KafkaConfig | None = None

    async def start(self, config: KafkaConfig) -> TimerHandle:
        """Register the broker as a service and start polling it."""
        self.config = config
        await self.registrar.register(KAFKA_SERVICE_NAME, config.interval)
        await self._provision(KAFKA_METRICS)
        self.handle = self.scheduler.every(
            config.interval, self.tick, name=KAFKA_SERVICE_NAME
        )
        logger.info(
            "Kafka polling started for %s every %sms", config.jmx_uri, config.interval
        )
        return self.handle

    async def tick(self) -> TickResult:
        """Fetch the current cluster metrics and write them as one batch."""
        if self.config is None:
            raise RuntimeError("QueueMetricsPoller.tick() called before start()")
        try:
            metrics = await self.source.fetch(self.config)
        except FetchError as exc:
            logger.warning("Error fetching kafka metrics: %s", exc)
            return TickResult(error=exc)
        records = [
            MetricRecord(
                metric=metric.metric,
                value=float(metric.value),
                category=metric.category,
                timestamp=self._timestamp(metric.timestamp_ms / 1000),
            )
            for metric in metrics
        ]
        return await self._write(KAFKA_METRICS, records)
