"""Adapters for external metrics collaborators."""

from chronicler.adapters.sources.docker_runtime import DockerRuntime
from chronicler.adapters.sources.host import PsutilHostMetrics
from chronicler.adapters.sources.kafka import JmxExporterSource

__all__ = ["DockerRuntime", "JmxExporterSource", "PsutilHostMetrics"]
