"""Kafka cluster metrics read from a Prometheus JMX exporter."""

import math
import time
from collections.abc import Iterator

import httpx

from chronicler.config import KafkaConfig
from chronicler.core.errors import FetchError
from chronicler.core.models import BrokerMetric

DEFAULT_CATEGORY = "Event"


def _split_sample(line: str) -> tuple[str, str] | None:
    """Split an exposition line into its series and the rest of the line."""
    if "{" in line:
        end = line.rfind("}")
        if end == -1:
            return None
        return line[: end + 1], line[end + 1 :].strip()
    series, _, rest = line.partition(" ")
    return series, rest.strip()


def parse_exposition(
    text: str,
    now_ms: float | None = None,
    category: str = DEFAULT_CATEGORY,
) -> Iterator[BrokerMetric]:
    """Parse Prometheus text exposition into broker metrics.

    Comment and blank lines are skipped, as are samples whose value is not
    a finite number. Samples without an explicit timestamp are stamped
    with ``now_ms``.

    Args:
        text: Response body of the exporter.
        now_ms: Fallback timestamp in milliseconds (defaults to now).
        category: Category given to every metric.
    """
    if now_ms is None:
        now_ms = time.time() * 1000
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = _split_sample(line)
        if parts is None:
            continue
        series, rest = parts
        fields = rest.split()
        if not fields:
            continue
        try:
            value = float(fields[0])
            timestamp_ms = float(fields[1]) if len(fields) > 1 else now_ms
        except ValueError:
            continue
        if not math.isfinite(value):
            continue
        yield BrokerMetric(
            metric=series, value=value, category=category, timestamp_ms=timestamp_ms
        )


class JmxExporterSource:
    """BrokerMetricsSource reading a JMX exporter endpoint over HTTP.

    ``KafkaConfig.jmx_uri`` may be ``host:port`` (fetched as
    ``http://host:port``) or a full URL.
    """

    def __init__(
        self, client: httpx.AsyncClient | None = None, timeout: float = 5.0
    ) -> None:
        self._client = client
        self._timeout = timeout

    @staticmethod
    def url_for(config: KafkaConfig) -> str:
        uri = config.jmx_uri
        return uri if "://" in uri else f"http://{uri}"

    async def fetch(self, config: KafkaConfig) -> list[BrokerMetric]:
        url = self.url_for(config)
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(f"Could not fetch kafka metrics from {url}: {exc}") from exc
        return list(parse_exposition(response.text))
