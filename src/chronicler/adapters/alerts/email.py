"""SMTP email alert channel."""

import asyncio
import smtplib
import ssl
from collections.abc import Callable, Mapping
from email.mime.text import MIMEText
from typing import Any

from chronicler.adapters.alerts.slack import alert_text
from chronicler.core.errors import ConfigError


def _recipients(value: Any) -> list[str]:
    if isinstance(value, str):
        return [e.strip() for e in value.split(",") if e.strip()]
    return [str(e) for e in value or ()]


class EmailChannel:
    """Sends failure alerts by email.

    Settings:
        host: SMTP server host.
        port: SMTP server port (default 587).
        username / password: Credentials; login is skipped when absent.
        sender: From address (defaults to username).
        recipients: List or comma-separated string of addresses.
        use_tls: Upgrade the connection with STARTTLS (default True).

    smtplib is blocking, so delivery runs in a worker thread.
    """

    kind = "email"

    def __init__(
        self,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        timeout: float = 10.0,
    ) -> None:
        self._smtp_factory = smtp_factory
        self._timeout = timeout

    def build_message(
        self, status_code: int, status_message: str, config: Mapping[str, Any]
    ) -> MIMEText:
        recipients = _recipients(config.get("recipients"))
        sender = config.get("sender") or config.get("username")
        if not config.get("host") or not recipients or not sender:
            raise ConfigError("email alerts need host, sender and recipients")
        message = MIMEText(alert_text(status_code, status_message), "plain")
        message["Subject"] = f"Request failed with status {status_code}"
        message["From"] = sender
        message["To"] = ", ".join(recipients)
        return message

    async def send(
        self, status_code: int, status_message: str, config: Mapping[str, Any]
    ) -> None:
        message = self.build_message(status_code, status_message, config)
        await asyncio.to_thread(self._send_sync, message, config)

    def _send_sync(self, message: MIMEText, config: Mapping[str, Any]) -> None:
        with self._smtp_factory(
            config["host"], int(config.get("port", 587)), timeout=self._timeout
        ) as server:
            if config.get("use_tls", True):
                server.starttls(context=ssl.create_default_context())
            if config.get("username"):
                server.login(config["username"], config.get("password", ""))
            server.send_message(message)
