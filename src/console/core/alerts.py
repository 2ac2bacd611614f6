"""Operational alert channel.

Used when the system itself fails in a way staff must hear about, for
example an audit entry that could not be persisted. Every alert is logged;
delivery beyond the log is delegated to an injected send function
(email to ``alert_recipients`` by default).

Never raises - delivery failures are logged but never reach the caller.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.console.core.config import get_settings
from src.console.core.logging import get_logger
from src.console.core.notifications import send_alert_email

logger = get_logger(__name__)


class AlertLevel(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class OperationalAlert:
    name: str
    message: str
    level: AlertLevel = AlertLevel.CRITICAL
    context: dict[str, Any] = field(default_factory=dict)


SendFn = Callable[[OperationalAlert], Awaitable[bool]]


async def email_send_fn(alert: OperationalAlert) -> bool:
    """Deliver an alert by email to the configured recipients."""
    settings = get_settings()
    return await asyncio.to_thread(
        send_alert_email,
        settings.alert_recipients,
        alert.name,
        alert.message,
        alert.context,
    )


class AlertChannel:
    """Escalation path for operational failures."""

    def __init__(self, send_fn: SendFn | None = None):
        self._send_fn = send_fn

    async def escalate(self, alert: OperationalAlert) -> bool:
        """Log the alert and hand it to the send function.

        Returns:
            True if the alert was delivered beyond the log.
        """
        log = logger.critical if alert.level == AlertLevel.CRITICAL else logger.warning
        log("Operational alert", alert=alert.name, message=alert.message, **alert.context)

        if self._send_fn is None:
            return False
        try:
            return await self._send_fn(alert)
        except Exception as e:
            logger.error("Alert delivery failed", alert=alert.name, error=str(e))
            return False


def get_alert_channel() -> AlertChannel:
    """Alert channel wired to email when recipients are configured."""
    settings = get_settings()
    return AlertChannel(email_send_fn if settings.alert_recipients else None)
