"""
Impersonation Maintenance Workflow.

1. Expire active sessions whose expiry has passed
2. Purge audit entries past the retention window

Designed to run on a schedule (``maintenance_schedule`` cron). Both steps
are idempotent and safe to repeat.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.console.temporal.activities import (
        expire_lapsed_sessions,
        purge_expired_audit_logs,
    )

_RETRY = RetryPolicy(
    maximum_attempts=3,
    initial_interval=timedelta(seconds=2),
)


@workflow.defn
class ImpersonationMaintenanceWorkflow:
    @workflow.run
    async def run(self, retention_days: int = 90) -> dict[str, int]:
        """
        Run the expiry sweep, then the retention purge.

        Args:
            retention_days: Days of audit history to keep

        Returns:
            {"expired_sessions": int, "purged_audit_entries": int}
        """
        expired = await workflow.execute_activity(
            expire_lapsed_sessions,
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=_RETRY,
        )
        purged = await workflow.execute_activity(
            purge_expired_audit_logs,
            retention_days,
            start_to_close_timeout=timedelta(minutes=10),
            retry_policy=_RETRY,
        )

        workflow.logger.info(
            f"Impersonation maintenance complete: {expired} expired, {purged} purged"
        )
        return {"expired_sessions": expired, "purged_audit_entries": purged}
