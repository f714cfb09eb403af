"""Core domain models for collected telemetry."""

from dataclasses import dataclass

from chronicler.core.errors import ChroniclerError


@dataclass(frozen=True)
class Service:
    """A microservice tracked by the agent.

    Attributes:
        microservice: Unique service name.
        interval: Sampling interval in milliseconds.
    """

    microservice: str
    interval: int


@dataclass(frozen=True)
class CommunicationRecord:
    """The outcome of one traced request.

    Attributes:
        microservice: Name of the service that handled the request.
        endpoint: Request path, including the query string when present.
        method: HTTP method (e.g., GET, POST).
        correlation_id: Identifier assigned when the request arrived.
        status_code: Final HTTP status code.
        status_message: Reason phrase for the status code.
        timestamp: Unix timestamp in seconds of response completion.
    """

    microservice: str
    endpoint: str
    method: str
    correlation_id: str
    status_code: int
    status_message: str
    timestamp: float


@dataclass(frozen=True)
class HealthRecord:
    """A single host health measurement.

    Attributes:
        metric: Metric name (e.g., cpu_percent).
        value: The measured value.
        category: Grouping such as CPU, Memory or Processes.
        timestamp: Unix timestamp in seconds.
    """

    metric: str
    value: float
    category: str
    timestamp: float


@dataclass(frozen=True)
class MetricRecord:
    """A single message-broker cluster measurement."""

    metric: str
    value: float
    category: str
    timestamp: float


@dataclass(frozen=True)
class ContainerRecord:
    """Resource usage of one container at one point in time."""

    microservice: str
    container_id: str
    container_name: str
    platform: str
    start_time: str
    mem_usage: float
    mem_limit: float
    mem_percent: float
    cpu_percent: float
    network_received: float
    network_sent: float
    process_count: int
    restart_count: int
    timestamp: float


@dataclass(frozen=True)
class ContainerSummary:
    """One entry of the container runtime's running-container listing."""

    id: str
    name: str
    platform: str = ""
    started_at: str = ""


@dataclass(frozen=True)
class ContainerStats:
    """A live statistics sample for a single container."""

    mem_usage: float = 0.0
    mem_limit: float = 0.0
    mem_percent: float = 0.0
    cpu_percent: float = 0.0
    network_received: float = 0.0
    network_sent: float = 0.0
    process_count: int = 0
    restart_count: int = 0


@dataclass(frozen=True)
class BrokerMetric:
    """A metric as returned by the broker collaborator.

    Attributes:
        metric: Metric name as exposed by the broker exporter.
        value: The metric value.
        category: Grouping of the metric (e.g., Event).
        timestamp_ms: Unix timestamp in milliseconds.
    """

    metric: str
    value: float
    category: str
    timestamp_ms: float


@dataclass(frozen=True)
class TickResult:
    """Outcome of one poller tick.

    Attributes:
        written: Number of records persisted during the tick.
        error: The contained failure, or None if the tick succeeded.
    """

    written: int = 0
    error: ChroniclerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
