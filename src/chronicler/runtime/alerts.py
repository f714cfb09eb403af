"""Failure notifications for traced requests."""

import asyncio
import logging
from collections.abc import Iterable, Sequence

from chronicler.config import NotificationConfig
from chronicler.core.ports import AlertChannel

logger = logging.getLogger(__name__)

ALERT_STATUS_THRESHOLD = 400


def should_alert(status_code: int, configs: Sequence[NotificationConfig]) -> bool:
    """Return True if a response with this status must raise an alert."""
    return status_code >= ALERT_STATUS_THRESHOLD and len(configs) > 0


class AlertDispatcher:
    """Sends a notification through every configured channel.

    Channels are looked up by ``NotificationConfig.type``. Each send is
    attempted independently; a failing channel is logged and never blocks
    the others or the request path.
    """

    def __init__(self, channels: Iterable[AlertChannel]) -> None:
        self.channels: dict[str, AlertChannel] = {c.kind: c for c in channels}

    async def notify(
        self,
        status_code: int,
        status_message: str,
        configs: Sequence[NotificationConfig],
    ) -> int:
        """Dispatch a failure notification.

        Returns:
            Number of channels that delivered the notification. Zero when
            the status does not indicate failure or no config is supplied.
        """
        if not should_alert(status_code, configs):
            return 0
        sends = []
        kinds = []
        for config in configs:
            channel = self.channels.get(config.type)
            if channel is None:
                logger.warning("No alert channel registered for %r", config.type)
                continue
            sends.append(channel.send(status_code, status_message, config.settings))
            kinds.append(config.type)
        results = await asyncio.gather(*sends, return_exceptions=True)
        delivered = 0
        for kind, result in zip(kinds, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("Error sending %s alert: %s", kind, result)
            elif isinstance(result, BaseException):
                raise result
            else:
                delivered += 1
        return delivered
