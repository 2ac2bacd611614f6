"""Email client using Resend API."""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime
from typing import Any

import resend

from src.console.core.config import get_settings
from src.console.core.logging import get_logger

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #2563eb; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 500;"
)
_TABLE_STYLE = "border-collapse: collapse; margin: 16px 0;"
_CELL_STYLE = "padding: 4px 12px 4px 0; vertical-align: top;"
_MUTED_STYLE = "color: #666; font-size: 14px;"


def _deliver(to: list[str], subject: str, body: str, email_type: str) -> bool:
    """Send one email through Resend.

    Returns:
        True if email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()

    if not to:
        logger.debug("No recipients configured - email skipped", email_type=email_type)
        return False

    if not settings.resend_api_key:
        # Dev mode: log instead of sending
        logger.warning(
            "RESEND_API_KEY not set - email not sent",
            to=to,
            email_type=email_type,
        )
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": to,
                "subject": subject,
                "html": body,
            }
        )

    try:
        # Use thread pool with timeout to prevent hanging on slow API responses
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Email sent", to=to, email_type=email_type)
        return True
    except FuturesTimeoutError:
        logger.error(
            "Email send timed out",
            to=to,
            email_type=email_type,
            timeout=settings.email_send_timeout_seconds,
        )
        return False
    except Exception as e:
        logger.error("Failed to send email", to=to, email_type=email_type, error=str(e))
        return False


def _render(title: str, intro: str, rows: dict[str, Any], footer: str | None = None) -> str:
    """Render a notification as a key/value table."""
    table_rows = "\n".join(
        f'        <tr><td style="{_CELL_STYLE}"><strong>{html.escape(label)}</strong></td>'
        f'<td style="{_CELL_STYLE}">{html.escape(str(value))}</td></tr>'
        for label, value in rows.items()
        if value is not None
    )
    footer_html = f'<p style="{_MUTED_STYLE} margin-top: 32px;">{footer}</p>' if footer else ""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">{html.escape(title)}</h1>
    <p>{intro}</p>
    <table style="{_TABLE_STYLE}">
{table_rows}
    </table>
    {footer_html}
</body>
</html>"""


def _session_link(session_id: str) -> str:
    settings = get_settings()
    url = f"{settings.app_url}/impersonation/sessions/{session_id}"
    return f'<a href="{url}" style="{_BUTTON_STYLE}">View session</a>'


def send_session_started_email(
    to: list[str],
    session_id: str,
    impersonator_name: str,
    tenant_name: str,
    reason: str,
    expires_at: datetime,
    ticket_number: str | None = None,
) -> bool:
    """Notify recipients that an impersonation session has started.

    Returns:
        True if email was sent, False on error
    """
    body = _render(
        "Impersonation session started",
        f"{html.escape(impersonator_name)} started impersonating "
        f"<strong>{html.escape(tenant_name)}</strong>.",
        {
            "Session": session_id,
            "Reason": reason,
            "Ticket": ticket_number,
            "Expires at (UTC)": expires_at.isoformat(timespec="minutes"),
        },
        footer=_session_link(session_id),
    )
    return _deliver(to, f"Impersonation started: {tenant_name}", body, "session_started")


def send_session_ended_email(
    to: list[str],
    session_id: str,
    impersonator_name: str,
    tenant_name: str,
    final_status: str,
    duration_minutes: int,
    action_count: int,
) -> bool:
    """Notify recipients that an impersonation session has ended.

    Returns:
        True if email was sent, False on error
    """
    body = _render(
        "Impersonation session ended",
        f"The session of {html.escape(impersonator_name)} on "
        f"<strong>{html.escape(tenant_name)}</strong> has ended.",
        {
            "Session": session_id,
            "Status": final_status,
            "Duration (minutes)": duration_minutes,
            "Actions performed": action_count,
        },
        footer=_session_link(session_id),
    )
    return _deliver(to, f"Impersonation ended: {tenant_name}", body, "session_ended")


def send_action_failed_email(
    to: list[str],
    session_id: str,
    impersonator_name: str,
    action: str,
    resource: str,
    reason: str,
) -> bool:
    """Notify recipients that an action inside a session was denied or failed.

    Returns:
        True if email was sent, False on error
    """
    body = _render(
        "Impersonation action failed",
        f"An action by {html.escape(impersonator_name)} did not complete.",
        {
            "Session": session_id,
            "Action": action,
            "Resource": resource,
            "Reason": reason,
        },
        footer=_session_link(session_id),
    )
    return _deliver(to, f"Impersonation action failed: {action} {resource}", body, "action_failed")


def send_alert_email(to: list[str], name: str, message: str, context: dict[str, Any]) -> bool:
    """Send an operational alert.

    Returns:
        True if email was sent, False on error
    """
    body = _render(f"Operational alert: {name}", html.escape(message), context)
    return _deliver(to, f"[ALERT] {name}", body, "operational_alert")
