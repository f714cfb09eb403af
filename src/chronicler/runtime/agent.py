"""Agent wiring the backend, pollers and tracer for one microservice."""

import logging
from collections.abc import Iterable

from chronicler.adapters.alerts import EmailChannel, SlackChannel
from chronicler.adapters.frameworks.asgi import ASGIApp, RequestTracerMiddleware
from chronicler.adapters.sources import DockerRuntime, JmxExporterSource, PsutilHostMetrics
from chronicler.adapters.storage import DocumentBackend, SQLiteBackend
from chronicler.collectors.containers import ContainerPoller
from chronicler.collectors.health import HealthPoller
from chronicler.collectors.queue_metrics import QueueMetricsPoller
from chronicler.collectors.registrar import ServiceRegistrar
from chronicler.config import AgentConfig, DatabaseConfig
from chronicler.core.errors import BackendConnectionError, ChroniclerError, ResolutionError
from chronicler.core.ports import (
    AlertChannel,
    BrokerMetricsSource,
    ContainerRuntime,
    HostMetricsSource,
    StorageBackend,
)
from chronicler.core.schema import COMMUNICATIONS
from chronicler.runtime.alerts import AlertDispatcher
from chronicler.runtime.scheduler import Scheduler

logger = logging.getLogger(__name__)


def create_backend(database: DatabaseConfig) -> StorageBackend:
    """Return an unconnected backend for the configured database type."""
    if database.is_document:
        return DocumentBackend()
    return SQLiteBackend()


class Agent:
    """Instruments one microservice.

    Collaborators default to the production adapters; pass test doubles or
    alternative implementations to override them.

    Example:
        ```python
        agent = Agent(AgentConfig.from_dict(settings))

        @asynccontextmanager
        async def lifespan(_):
            await agent.start()
            yield
            await agent.stop()

        app = agent.middleware(FastAPI(lifespan=lifespan))
        ```
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        backend: StorageBackend | None = None,
        scheduler: Scheduler | None = None,
        host_source: HostMetricsSource | None = None,
        container_runtime: ContainerRuntime | None = None,
        broker_source: BrokerMetricsSource | None = None,
        channels: Iterable[AlertChannel] | None = None,
    ) -> None:
        self.config = config
        self.backend = backend or create_backend(config.database)
        self.scheduler = scheduler or Scheduler()
        self.registrar = ServiceRegistrar(self.backend)
        self.dispatcher = AlertDispatcher(
            channels if channels is not None else (SlackChannel(), EmailChannel())
        )
        self.health = HealthPoller(
            self.backend, self.scheduler, host_source or PsutilHostMetrics()
        )
        self.containers = ContainerPoller(
            self.backend, self.scheduler, container_runtime or DockerRuntime()
        )
        self.queue_metrics = QueueMetricsPoller(
            self.backend,
            self.scheduler,
            self.registrar,
            broker_source or JmxExporterSource(),
        )
        self._tracers: list[RequestTracerMiddleware] = []

    async def start(self) -> None:
        """Connect, register the service and start the configured pollers.

        Never raises for storage or collaborator failures: a failed connect
        leaves the agent degraded, and a container that cannot be resolved
        only keeps the container poller from starting.
        """
        config = self.config
        try:
            await self.backend.connect(config.database.uri)
        except BackendConnectionError as exc:
            logger.error("Error connecting to %s store: %s", config.database.type, exc)

        await self.registrar.register(config.microservice, config.interval)
        try:
            await self.backend.ensure_schema(COMMUNICATIONS)
        except ChroniclerError as exc:
            logger.warning("Error creating communications collection: %s", exc)

        if config.dockerized:
            try:
                await self.containers.start(config.microservice, config.interval)
            except ResolutionError as exc:
                logger.error("Container polling not started: %s", exc)
        else:
            await self.health.start(config.microservice, config.interval)

        if config.kafka is not None:
            await self.queue_metrics.start(config.kafka)

    def middleware(self, app: ASGIApp) -> RequestTracerMiddleware:
        """Wrap an ASGI app with request tracing for this agent."""
        tracer = RequestTracerMiddleware(
            app,
            self.backend,
            self.config.microservice,
            dispatcher=self.dispatcher,
            notifications=self.config.notifications,
        )
        self._tracers.append(tracer)
        return tracer

    async def stop(self) -> None:
        """Stop polling, flush pending request records and close storage."""
        await self.scheduler.shutdown()
        for tracer in self._tracers:
            await tracer.drain()
        await self.backend.close()
        logger.info("Agent for %s stopped", self.config.microservice)
