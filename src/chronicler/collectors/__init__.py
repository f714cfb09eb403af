"""Service registration and interval-driven pollers."""

from chronicler.collectors.containers import ContainerPoller
from chronicler.collectors.health import HealthPoller
from chronicler.collectors.queue_metrics import QueueMetricsPoller
from chronicler.collectors.registrar import ServiceRegistrar

__all__ = [
    "ContainerPoller",
    "HealthPoller",
    "QueueMetricsPoller",
    "ServiceRegistrar",
]
