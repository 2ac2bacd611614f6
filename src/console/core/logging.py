"""Logging configuration using structlog."""

import logging
import sys
from uuid import UUID

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def setup_logging(debug: bool = False) -> None:
    """Configure structlog for structured logging.

    Args:
        debug: If True, use colored console output. If False, use JSON for production.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("temporalio").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str | None) -> None:
    """Bind the correlation ID to all subsequent log calls."""
    if request_id:
        bind_contextvars(request_id=request_id)


def bind_employee_context(employee_id: UUID, role: str, email: str | None = None) -> None:
    """Bind the authenticated staff member to all subsequent log calls.

    Args:
        employee_id: The authenticated employee's ID.
        role: The employee's staff role.
        email: Only logged if settings.log_employee_emails is True (GDPR compliance).
    """
    from src.console.core.config import get_settings

    bind_contextvars(employee_id=str(employee_id), employee_role=role)
    if email and get_settings().log_employee_emails:
        bind_contextvars(employee_email=email)


def bind_impersonation_context(session_id: UUID, tenant_id: UUID) -> None:
    """Bind the impersonation session being acted on to all subsequent log calls."""
    bind_contextvars(
        impersonation_session_id=str(session_id),
        target_tenant_id=str(tenant_id),
    )


def clear_request_context() -> None:
    """Clear all request-scoped context."""
    clear_contextvars()
