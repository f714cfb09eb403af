"""Slack incoming-webhook alert channel."""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import httpx

from chronicler.core.errors import ConfigError


def alert_text(status_code: int, status_message: str, when: datetime | None = None) -> str:
    """Format the body shared by every alert channel."""
    when = when or datetime.now(timezone.utc)
    return f"{status_code}, {status_message}, {when.isoformat(timespec='seconds')}"


class SlackChannel:
    """Posts failure alerts to a Slack incoming webhook.

    Settings:
        webhook: Incoming webhook URL (``webhook_url`` is also accepted).
        user: Display name of the poster. Defaults to "chronicler".
        icon: Emoji shown next to the message. Defaults to ":rotating_light:".
    """

    kind = "slack"

    def __init__(
        self, client: httpx.AsyncClient | None = None, timeout: float = 10.0
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def send(
        self, status_code: int, status_message: str, config: Mapping[str, Any]
    ) -> None:
        webhook = config.get("webhook") or config.get("webhook_url")
        if not webhook:
            raise ConfigError("slack alerts need a webhook URL")
        payload = {
            "text": alert_text(status_code, status_message),
            "username": config.get("user", "chronicler"),
            "icon_emoji": config.get("icon", ":rotating_light:"),
        }
        if self._client is not None:
            response = await self._client.post(webhook, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(webhook, json=payload)
        response.raise_for_status()
