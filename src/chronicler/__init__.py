"""Embeddable request tracing and health collection for microservices."""

import logging

from chronicler.adapters.frameworks.asgi import RequestTracerMiddleware
from chronicler.adapters.storage import DocumentBackend, SQLiteBackend
from chronicler.config import (
    AgentConfig,
    DatabaseConfig,
    KafkaConfig,
    NotificationConfig,
)
from chronicler.core.errors import (
    BackendConnectionError,
    ChroniclerError,
    ConfigError,
    FetchError,
    ReadError,
    ResolutionError,
    WriteError,
)
from chronicler.core.models import (
    CommunicationRecord,
    ContainerRecord,
    HealthRecord,
    MetricRecord,
    Service,
)
from chronicler.runtime.agent import Agent, create_backend
from chronicler.runtime.scheduler import Overlap, Scheduler

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Agent",
    "AgentConfig",
    "BackendConnectionError",
    "ChroniclerError",
    "CommunicationRecord",
    "ConfigError",
    "ContainerRecord",
    "DatabaseConfig",
    "DocumentBackend",
    "FetchError",
    "HealthRecord",
    "KafkaConfig",
    "MetricRecord",
    "NotificationConfig",
    "Overlap",
    "ReadError",
    "RequestTracerMiddleware",
    "ResolutionError",
    "SQLiteBackend",
    "Scheduler",
    "Service",
    "WriteError",
    "create_backend",
]
