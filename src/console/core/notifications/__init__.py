"""Notification utilities - email."""

from src.console.core.notifications.email import (
    send_action_failed_email,
    send_alert_email,
    send_session_ended_email,
    send_session_started_email,
)

__all__ = [
    "send_action_failed_email",
    "send_alert_email",
    "send_session_ended_email",
    "send_session_started_email",
]
