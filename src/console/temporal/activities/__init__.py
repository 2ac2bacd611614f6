"""Temporal Activities - Re-exports for worker registration."""

from src.console.temporal.activities.maintenance import (
    expire_lapsed_sessions,
    purge_expired_audit_logs,
)

__all__ = [
    "expire_lapsed_sessions",
    "purge_expired_audit_logs",
]
