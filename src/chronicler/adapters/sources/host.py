"""Host health metrics collected with psutil."""

import asyncio
import os
import time

import psutil

from chronicler.core.errors import FetchError
from chronicler.core.models import HealthRecord


class PsutilHostMetrics:
    """HostMetricsSource sampling CPU, memory, disk, network and processes.

    psutil calls block, so each sample runs in a worker thread. Metrics a
    platform does not support (CPU frequency, load average) are left out
    of the batch rather than reported as zero.

    Args:
        disk_path: Filesystem whose usage is reported.
    """

    def __init__(self, disk_path: str = os.sep) -> None:
        self.disk_path = disk_path
        # The first non-blocking reading is always 0.0; take it here
        psutil.cpu_percent(interval=None)

    async def collect(self) -> list[HealthRecord]:
        try:
            return await asyncio.to_thread(self._sample)
        except (psutil.Error, OSError) as exc:
            raise FetchError(f"Could not sample host metrics: {exc}") from exc

    def _sample(self) -> list[HealthRecord]:
        now = time.time()
        values: list[tuple[str, float, str]] = []

        values.append(("cpu_percent", psutil.cpu_percent(interval=None), "CPU"))
        values.append(("cpu_count", float(psutil.cpu_count() or 0), "CPU"))
        freq = psutil.cpu_freq()
        if freq is not None:
            values.append(("cpu_speed_mhz", freq.current, "CPU"))
        if hasattr(psutil, "getloadavg"):
            values.append(("load_average_1m", psutil.getloadavg()[0], "CPU"))

        mem = psutil.virtual_memory()
        values.extend(
            [
                ("memory_total_bytes", float(mem.total), "Memory"),
                ("memory_available_bytes", float(mem.available), "Memory"),
                ("memory_used_bytes", float(mem.used), "Memory"),
                ("memory_percent", mem.percent, "Memory"),
                ("swap_percent", psutil.swap_memory().percent, "Memory"),
            ]
        )

        values.append(
            ("disk_usage_percent", psutil.disk_usage(self.disk_path).percent, "Disk")
        )
        disk_io = psutil.disk_io_counters()
        if disk_io is not None:
            values.append(("disk_read_bytes", float(disk_io.read_bytes), "Disk"))
            values.append(("disk_write_bytes", float(disk_io.write_bytes), "Disk"))

        net_io = psutil.net_io_counters()
        values.append(("network_sent_bytes", float(net_io.bytes_sent), "Network"))
        values.append(("network_received_bytes", float(net_io.bytes_recv), "Network"))

        statuses = [
            proc.info["status"] for proc in psutil.process_iter(["status"])
        ]
        values.extend(
            [
                ("processes_total", float(len(statuses)), "Processes"),
                (
                    "processes_running",
                    float(statuses.count(psutil.STATUS_RUNNING)),
                    "Processes",
                ),
                (
                    "processes_sleeping",
                    float(statuses.count(psutil.STATUS_SLEEPING)),
                    "Processes",
                ),
            ]
        )

        return [
            HealthRecord(metric=metric, value=float(value), category=category, timestamp=now)
            for metric, value, category in values
        ]
