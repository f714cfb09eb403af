"""Agent configuration.

The host service builds an ``AgentConfig`` directly or from the mapping it
already keeps for the agent::

    AgentConfig.from_dict({
        "microservice": "customers",
        "interval": 2000,
        "database": {"type": "sqlite", "URI": "sqlite:///chronicler.db"},
        "notifications": [{"type": "slack", "settings": {"webhook": "..."}}],
    })
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from chronicler.core.errors import ConfigError

DOCUMENT_TYPES = frozenset({"mongodb", "mongo", "document"})
RELATIONAL_TYPES = frozenset({"sqlite", "relational", "sql"})


@dataclass(frozen=True)
class DatabaseConfig:
    """Where collected data is stored.

    Attributes:
        type: Backend family, e.g. "mongodb" or "sqlite".
        uri: Connection string handed to the backend's connect().
    """

    type: str
    uri: str

    @property
    def is_document(self) -> bool:
        return self.type.lower() in DOCUMENT_TYPES


@dataclass(frozen=True)
class NotificationConfig:
    """One alert channel and the settings it needs.

    ``settings`` is opaque to the dispatcher and passed to the channel as is.
    """

    type: str
    settings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class KafkaConfig:
    """Broker metrics polling.

    Attributes:
        jmx_uri: Host and port (optionally a full URL) of the JMX exporter.
        interval: Polling interval in milliseconds.
    """

    jmx_uri: str
    interval: int


@dataclass(frozen=True)
class AgentConfig:
    """Everything the agent needs to instrument one microservice."""

    microservice: str
    interval: int
    database: DatabaseConfig
    dockerized: bool = False
    notifications: tuple[NotificationConfig, ...] = ()
    kafka: KafkaConfig | None = None

    def __post_init__(self) -> None:
        if not self.microservice:
            raise ConfigError("microservice name is required")
        _check_interval("interval", self.interval)
        if self.database.type.lower() not in DOCUMENT_TYPES | RELATIONAL_TYPES:
            supported = ", ".join(sorted(DOCUMENT_TYPES | RELATIONAL_TYPES))
            raise ConfigError(
                f"unsupported database type {self.database.type!r}; PostgreSQL is "
                f"not supported, use sqlite for a relational store (supported: "
                f"{supported})"
            )
        if self.kafka is not None:
            _check_interval("kafka interval", self.kafka.interval)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AgentConfig":
        """Build a config from a plain mapping.

        Accepts ``URI`` or ``uri`` for the database connection string and
        ``jmxuri``/``jmx_uri`` at the top level or under ``kafka``.

        Raises:
            ConfigError: If a required key is missing or a value is invalid.
        """
        database = data.get("database")
        if not isinstance(database, Mapping):
            raise ConfigError("database settings are required")
        uri = database.get("URI", database.get("uri"))
        if not database.get("type") or not uri:
            raise ConfigError("database type and URI are required")

        notifications = tuple(
            NotificationConfig(
                type=str(item.get("type", "")).lower(),
                settings=dict(item.get("settings", {})),
            )
            for item in data.get("notifications") or ()
        )
        for notification in notifications:
            if not notification.type:
                raise ConfigError("every notification needs a type")

        interval = _as_int("interval", data.get("interval"))
        kafka_data = data.get("kafka") or {}
        jmx_uri = kafka_data.get("jmx_uri") or data.get("jmxuri") or data.get("jmx_uri")
        kafka = None
        if jmx_uri:
            kafka = KafkaConfig(
                jmx_uri=str(jmx_uri),
                interval=_as_int(
                    "kafka interval", kafka_data.get("interval", interval)
                ),
            )

        return cls(
            microservice=str(data.get("microservice") or ""),
            interval=interval,
            database=DatabaseConfig(type=str(database["type"]), uri=str(uri)),
            dockerized=bool(data.get("dockerized", False)),
            notifications=notifications,
            kafka=kafka,
        )


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer number of milliseconds")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"{name} must be an integer number of milliseconds, got {value!r}"
        ) from None


def _check_interval(name: str, value: int) -> None:
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
