"""Container runtime access through the Docker Engine API."""

import asyncio
from collections.abc import Mapping
from typing import Any

import docker
from docker.errors import DockerException

from chronicler.core.errors import FetchError
from chronicler.core.models import ContainerStats, ContainerSummary


def _cpu_percent(stats: Mapping[str, Any]) -> float:
    cpu = stats.get("cpu_stats") or {}
    precpu = stats.get("precpu_stats") or {}
    cpu_delta = (cpu.get("cpu_usage") or {}).get("total_usage", 0) - (
        precpu.get("cpu_usage") or {}
    ).get("total_usage", 0)
    system_delta = cpu.get("system_cpu_usage", 0) - precpu.get("system_cpu_usage", 0)
    if cpu_delta <= 0 or system_delta <= 0:
        return 0.0
    online = cpu.get("online_cpus") or len(
        (cpu.get("cpu_usage") or {}).get("percpu_usage") or [1]
    )
    return cpu_delta / system_delta * online * 100.0


def _memory(stats: Mapping[str, Any]) -> tuple[float, float, float]:
    memory = stats.get("memory_stats") or {}
    details = memory.get("stats") or {}
    # Page cache is reclaimable; cgroup v2 reports it as inactive_file
    cache = details.get("inactive_file", details.get("cache", 0))
    usage = max(float(memory.get("usage", 0)) - float(cache), 0.0)
    limit = float(memory.get("limit", 0))
    percent = usage / limit * 100.0 if limit > 0 else 0.0
    return usage, limit, percent


def _network(stats: Mapping[str, Any]) -> tuple[float, float]:
    networks = (stats.get("networks") or {}).values()
    received = sum(float(n.get("rx_bytes", 0)) for n in networks)
    sent = sum(float(n.get("tx_bytes", 0)) for n in networks)
    return received, sent


def parse_stats(stats: Mapping[str, Any], restart_count: int = 0) -> ContainerStats:
    """Convert a one-shot ``/containers/{id}/stats`` payload."""
    mem_usage, mem_limit, mem_percent = _memory(stats)
    received, sent = _network(stats)
    return ContainerStats(
        mem_usage=mem_usage,
        mem_limit=mem_limit,
        mem_percent=mem_percent,
        cpu_percent=_cpu_percent(stats),
        network_received=received,
        network_sent=sent,
        process_count=int((stats.get("pids_stats") or {}).get("current", 0)),
        restart_count=restart_count,
    )


class DockerRuntime:
    """ContainerRuntime backed by the docker SDK.

    The SDK is synchronous, so every call runs in a worker thread. The
    client is created lazily from the environment (``DOCKER_HOST`` or the
    local socket) unless one is supplied.
    """

    def __init__(self, client: docker.DockerClient | None = None) -> None:
        self._client = client

    def _docker(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    async def list_containers(self) -> list[ContainerSummary]:
        try:
            return await asyncio.to_thread(self._list_sync)
        except DockerException as exc:
            raise FetchError(f"Could not list containers: {exc}") from exc

    def _list_sync(self) -> list[ContainerSummary]:
        return [
            ContainerSummary(
                id=container.id,
                name=container.name,
                platform=container.attrs.get("Platform", ""),
                started_at=(container.attrs.get("State") or {}).get("StartedAt", ""),
            )
            for container in self._docker().containers.list()
        ]

    async def container_stats(self, container_id: str) -> ContainerStats:
        try:
            return await asyncio.to_thread(self._stats_sync, container_id)
        except DockerException as exc:
            raise FetchError(
                f"Could not read stats for container {container_id[:12]}: {exc}"
            ) from exc

    def _stats_sync(self, container_id: str) -> ContainerStats:
        container = self._docker().containers.get(container_id)
        stats = container.stats(stream=False)
        return parse_stats(stats, int(container.attrs.get("RestartCount", 0)))
