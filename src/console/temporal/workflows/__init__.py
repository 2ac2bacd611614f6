"""Temporal Workflows - Re-exports for worker registration."""

from src.console.temporal.workflows.impersonation_maintenance import (
    ImpersonationMaintenanceWorkflow,
)

__all__ = ["ImpersonationMaintenanceWorkflow"]
