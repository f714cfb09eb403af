"""Alert channels implementing the AlertChannel port."""

from chronicler.adapters.alerts.email import EmailChannel
from chronicler.adapters.alerts.slack import SlackChannel, alert_text

__all__ = ["EmailChannel", "SlackChannel", "alert_text"]
