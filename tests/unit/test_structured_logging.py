"""Tests for structured logging context."""

from unittest.mock import patch
from uuid import uuid7

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.console.core.config import get_settings
from src.console.core.logging import (
    bind_employee_context,
    bind_impersonation_context,
    bind_request_context,
    clear_request_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog output into a CapturingLogger for the test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def _log_once(capturing_logger) -> dict:
    structlog.get_logger().info("test message")
    entries = capturing_logger.calls
    assert len(entries) == 1
    return entries[0].kwargs


def test_bind_request_context(capturing_logger):
    bind_request_context("test-request-123")
    assert _log_once(capturing_logger)["request_id"] == "test-request-123"


def test_bind_request_context_with_none(capturing_logger):
    """None request_id is not bound."""
    bind_request_context(None)
    assert "request_id" not in _log_once(capturing_logger)


def test_bind_employee_context(capturing_logger):
    employee_id = uuid7()

    bind_employee_context(employee_id, "SUPPORT")

    kwargs = _log_once(capturing_logger)
    assert kwargs["employee_id"] == str(employee_id)
    assert kwargs["employee_role"] == "SUPPORT"


def test_employee_email_hidden_by_default(capturing_logger):
    bind_employee_context(uuid7(), "SUPPORT", email="sam@example.com")
    assert "employee_email" not in _log_once(capturing_logger)


def test_employee_email_logged_when_enabled(capturing_logger):
    settings = get_settings().model_copy(update={"log_employee_emails": True})

    with patch("src.console.core.config.get_settings", return_value=settings):
        bind_employee_context(uuid7(), "SUPPORT", email="sam@example.com")

    assert _log_once(capturing_logger)["employee_email"] == "sam@example.com"


def test_bind_impersonation_context(capturing_logger):
    session_id, tenant_id = uuid7(), uuid7()

    bind_impersonation_context(session_id, tenant_id)

    kwargs = _log_once(capturing_logger)
    assert kwargs["impersonation_session_id"] == str(session_id)
    assert kwargs["target_tenant_id"] == str(tenant_id)


def test_context_accumulates_across_binds(capturing_logger):
    employee_id, session_id, tenant_id = uuid7(), uuid7(), uuid7()

    bind_request_context("req-9")
    bind_employee_context(employee_id, "ADMIN")
    bind_impersonation_context(session_id, tenant_id)

    kwargs = _log_once(capturing_logger)
    assert kwargs["request_id"] == "req-9"
    assert kwargs["employee_id"] == str(employee_id)
    assert kwargs["impersonation_session_id"] == str(session_id)


def test_clear_request_context(capturing_logger):
    bind_employee_context(uuid7(), "SUPPORT")
    bind_impersonation_context(uuid7(), uuid7())

    clear_request_context()

    kwargs = _log_once(capturing_logger)
    assert "employee_id" not in kwargs
    assert "impersonation_session_id" not in kwargs
