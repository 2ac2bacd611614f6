"""Tests for the impersonation maintenance workflow and its activities."""

import contextlib
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from temporalio import activity
from temporalio.testing import ActivityEnvironment, WorkflowEnvironment
from temporalio.worker import Worker

from src.console.temporal.activities import maintenance
from src.console.temporal.workflows import ImpersonationMaintenanceWorkflow

pytestmark = pytest.mark.unit


@pytest.fixture
def db_sessions(monkeypatch):
    """Patch get_session() in the activities module; returns the sessions handed out."""
    handed_out: list[AsyncMock] = []

    @contextlib.asynccontextmanager
    async def _get_session():
        session = AsyncMock()
        handed_out.append(session)
        yield session

    monkeypatch.setattr(maintenance, "get_session", _get_session)
    return handed_out


class TestActivities:
    async def test_expire_lapsed_sessions(self, db_sessions):
        service = MagicMock()
        service.expire_lapsed_sessions = AsyncMock(return_value=3)

        with patch.object(maintenance, "ImpersonationService", return_value=service) as cls:
            count = await ActivityEnvironment().run(maintenance.expire_lapsed_sessions)

        assert count == 3
        # Business and audit writes use separate sessions
        assert len(db_sessions) == 2
        assert cls.call_args.args[4] is db_sessions[0]
        audit_service = cls.call_args.args[2]
        assert audit_service.session is db_sessions[1]

    async def test_purge_expired_audit_logs(self, db_sessions):
        with patch.object(
            maintenance.AuditService, "purge_expired", AsyncMock(return_value=17)
        ) as purge:
            count = await ActivityEnvironment().run(maintenance.purge_expired_audit_logs, 30)

        assert count == 17
        purge.assert_called_once_with(30)


@activity.defn(name="expire_lapsed_sessions")
async def expire_lapsed_sessions_stub() -> int:
    return 2


@activity.defn(name="purge_expired_audit_logs")
async def purge_expired_audit_logs_stub(retention_days: int) -> int:
    return retention_days * 10


class TestImpersonationMaintenanceWorkflow:
    async def test_runs_expiry_then_purge(self) -> None:
        async with await WorkflowEnvironment.start_time_skipping() as env:  # noqa: SIM117
            async with Worker(
                env.client,
                task_queue="test-maintenance",
                workflows=[ImpersonationMaintenanceWorkflow],
                activities=[expire_lapsed_sessions_stub, purge_expired_audit_logs_stub],
            ):
                result = await env.client.execute_workflow(
                    ImpersonationMaintenanceWorkflow.run,
                    30,
                    id=f"maintenance-{uuid.uuid4()}",
                    task_queue="test-maintenance",
                )

        assert result == {"expired_sessions": 2, "purged_audit_entries": 300}
