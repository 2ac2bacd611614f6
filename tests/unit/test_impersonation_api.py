"""API tests for the impersonation and audit routers with services overridden."""

import csv
import io
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid7

import pytest
from httpx import ASGITransport, AsyncClient

from src.console.api.dependencies import (
    get_analytics_service,
    get_audit_service,
    get_current_employee,
    get_employee_repository,
    get_guard_service,
    get_impersonation_service,
)
from src.console.core.exceptions import (
    DurationOutOfRange,
    PermissionDenied,
    SessionAccessDenied,
    SessionNotFound,
)
from src.console.main import app
from src.console.models.enums import ActionType, EndCause, StaffRole
from src.console.services.access_policy import PermissionDecision
from src.console.services.audit_service import AuditRecorded
from src.console.services.guard_service import GuardOutcome
from tests.factories import (
    EmployeeFactory,
    ImpersonationAuditLogFactory,
    ImpersonationSessionFactory,
    TenantFactory,
)

pytestmark = pytest.mark.unit

REASON = "Customer reported booking issues, investigating duplicates"


@pytest.fixture
def employee():
    return EmployeeFactory.with_role(StaffRole.SUPPORT)


@pytest.fixture
def impersonation_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def guard_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def audit_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def analytics_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def overrides(employee, impersonation_service, guard_service, audit_service, analytics_service):
    """Current employee and services replaced; tests may swap the employee."""
    state = {"employee": employee}
    app.dependency_overrides[get_current_employee] = lambda: state["employee"]
    app.dependency_overrides[get_impersonation_service] = lambda: impersonation_service
    app.dependency_overrides[get_guard_service] = lambda: guard_service
    app.dependency_overrides[get_audit_service] = lambda: audit_service
    app.dependency_overrides[get_analytics_service] = lambda: analytics_service
    yield state
    app.dependency_overrides.clear()


@pytest.fixture
async def client(overrides) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestAuthentication:
    async def test_missing_bearer_token(self):
        repo = MagicMock()
        repo.get_by_id = AsyncMock(return_value=None)
        app.dependency_overrides[get_employee_repository] = lambda: repo
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.get(f"/api/v1/impersonation/sessions/{uuid7()}")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401
        assert "request_id" in response.json()


class TestStartSession:
    async def test_created(self, client, impersonation_service, employee):
        session = ImpersonationSessionFactory.build(impersonator_id=employee.id)
        impersonation_service.start_session.return_value = session
        tenant = TenantFactory.build()

        response = await client.post(
            "/api/v1/impersonation/sessions",
            json={
                "target_tenant_id": str(tenant.id),
                "reason": REASON,
                "duration_minutes": 120,
                "ticket_number": "SUP-77",
            },
            headers={"User-Agent": "console-tests", "X-Forwarded-For": "203.0.113.9"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["session_id"] == str(session.id)
        assert body["status"] == "active"
        assert len(body["permissions"]) == 9
        assert {r["type"] for r in body["restrictions"]} >= {"time_limit", "action_limit"}

        args = impersonation_service.start_session.call_args
        assert args.args[0] is employee
        assert args.args[2] == REASON
        assert args.args[3] == 120
        assert args.kwargs["ticket_number"] == "SUP-77"
        assert args.kwargs["request"].user_agent == "console-tests"

    async def test_service_error_rendered_with_code(self, client, impersonation_service):
        impersonation_service.start_session.side_effect = DurationOutOfRange(
            "Duration must be between 5 and 480 minutes",
            details={"requested": 600, "min": 5, "max": 480},
        )

        response = await client.post(
            "/api/v1/impersonation/sessions",
            json={"target_tenant_id": str(uuid7()), "reason": REASON, "duration_minutes": 600},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "duration_out_of_range"
        assert body["error"] == "Duration must be between 5 and 480 minutes"
        assert body["details"]["requested"] == 600
        assert body["request_id"]


class TestSessionEndpoints:
    async def test_get_own_session(self, client, impersonation_service, employee):
        session = ImpersonationSessionFactory.build(impersonator_id=employee.id)
        impersonation_service.get_session.return_value = session

        response = await client.get(f"/api/v1/impersonation/sessions/{session.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(session.id)

    async def test_get_other_session_denied(self, client, impersonation_service):
        session = ImpersonationSessionFactory.build()
        impersonation_service.get_session.return_value = session

        response = await client.get(f"/api/v1/impersonation/sessions/{session.id}")

        assert response.status_code == 403
        assert response.json()["code"] == "session_access_denied"

    async def test_audit_viewer_reads_any_session(self, client, overrides, impersonation_service):
        overrides["employee"] = EmployeeFactory.with_role(StaffRole.ADMIN)
        impersonation_service.get_session.return_value = ImpersonationSessionFactory.build()

        response = await client.get(f"/api/v1/impersonation/sessions/{uuid7()}")

        assert response.status_code == 200

    async def test_session_not_found(self, client, impersonation_service):
        impersonation_service.get_session.side_effect = SessionNotFound("Session not found")

        response = await client.get(f"/api/v1/impersonation/sessions/{uuid7()}")

        assert response.status_code == 404
        assert response.json()["code"] == "session_not_found"

    async def test_end_defaults_to_manual(self, client, impersonation_service, employee):
        ended = ImpersonationSessionFactory.ended(EndCause.MANUAL, impersonator_id=employee.id)
        impersonation_service.end_session.return_value = ended

        response = await client.post(f"/api/v1/impersonation/sessions/{ended.id}/end")

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        call = impersonation_service.end_session.call_args
        assert call.args[1] == EndCause.MANUAL
        assert call.kwargs["ended_by"] is employee

    async def test_end_with_error_cause(self, client, impersonation_service):
        impersonation_service.end_session.return_value = ImpersonationSessionFactory.ended(
            EndCause.ERROR
        )

        await client.post(
            f"/api/v1/impersonation/sessions/{uuid7()}/end", json={"cause": "error"}
        )

        assert impersonation_service.end_session.call_args.args[1] == EndCause.ERROR

    async def test_end_with_expired_cause_rejected(self, client, impersonation_service):
        response = await client.post(
            f"/api/v1/impersonation/sessions/{uuid7()}/end", json={"cause": "expired"}
        )

        assert response.status_code == 422
        impersonation_service.end_session.assert_not_called()

    async def test_end_by_other_employee(self, client, impersonation_service):
        impersonation_service.end_session.side_effect = SessionAccessDenied("nope")

        response = await client.post(f"/api/v1/impersonation/sessions/{uuid7()}/end")

        assert response.status_code == 403

    async def test_list_requires_audit_viewer(self, client):
        response = await client.get("/api/v1/impersonation/sessions")

        assert response.status_code == 403
        assert response.json()["detail"] == "Audit viewer role required"

    async def test_list_sessions(self, client, overrides, impersonation_service):
        overrides["employee"] = EmployeeFactory.with_role(StaffRole.SUPER_ADMIN)
        sessions = ImpersonationSessionFactory.batch(2)
        impersonation_service.list_sessions.return_value = (sessions, "next", True)

        response = await client.get("/api/v1/impersonation/sessions?status=active&limit=2")

        assert response.status_code == 200
        body = response.json()
        assert len(body["items"]) == 2
        assert body["next_cursor"] == "next"
        assert body["has_more"] is True
        assert impersonation_service.list_sessions.call_args.kwargs["status"] == "active"


class TestActions:
    async def test_allowed_action(self, client, guard_service, employee):
        session = ImpersonationSessionFactory.build(impersonator_id=employee.id)
        entry = ImpersonationAuditLogFactory.build()
        guard_service.run.return_value = GuardOutcome(
            session=session, value=None, audit=AuditRecorded(entry=entry)
        )

        response = await client.post(
            f"/api/v1/impersonation/sessions/{session.id}/actions",
            json={"action_type": "view", "resource": "bookings", "resource_id": "bk_1"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "allowed": True,
            "audit_recorded": True,
            "audit_entry_id": str(entry.id),
        }
        guarded = guard_service.run.call_args.args[1]
        assert guarded.action_type == ActionType.VIEW
        assert guarded.resource_id == "bk_1"
        assert guard_service.run.call_args.kwargs["actor"] is employee

    async def test_denied_action_error_body(self, client, guard_service):
        session_id = uuid7()
        guard_service.run.side_effect = PermissionDenied(
            "Requires manager approval",
            details={
                "session_id": str(session_id),
                "action": "delete",
                "resource": "bookings",
                "audit_recorded": True,
            },
        )

        response = await client.post(
            f"/api/v1/impersonation/sessions/{session_id}/actions",
            json={"action_type": "delete", "resource": "bookings"},
        )

        assert response.status_code == 403
        body = response.json()
        assert set(body) == {"error", "code", "request_id", "details"}
        assert body["code"] == "permission_denied"
        assert body["error"] == "Requires manager approval"
        assert body["details"]["audit_recorded"] is True

    async def test_system_actions_rejected(self, client, guard_service):
        response = await client.post(
            f"/api/v1/impersonation/sessions/{uuid7()}/actions",
            json={"action_type": "system", "resource": "bookings"},
        )

        assert response.status_code == 422
        guard_service.run.assert_not_called()

    async def test_permission_check(self, client, guard_service):
        guard_service.preview.return_value = PermissionDecision(
            allowed=False, reason="Requires manager approval"
        )

        response = await client.get(
            f"/api/v1/impersonation/sessions/{uuid7()}/permissions/check",
            params={"action": "delete", "resource": "bookings"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "action": "delete",
            "resource": "bookings",
            "allowed": False,
            "reason": "Requires manager approval",
        }


class TestAuditEndpoints:
    @pytest.fixture(autouse=True)
    def _audit_viewer(self, overrides):
        overrides["employee"] = EmployeeFactory.with_role(StaffRole.ADMIN)

    async def test_list_logs_with_filters(self, client, audit_service):
        audit_service.list_logs.return_value = (ImpersonationAuditLogFactory.batch(3), None, False)
        tenant_id = uuid7()

        response = await client.get(
            "/api/v1/impersonation/audit/logs",
            params={"tenant_id": str(tenant_id), "success": "false", "action_type": "delete"},
        )

        assert response.status_code == 200
        assert len(response.json()["items"]) == 3
        kwargs = audit_service.list_logs.call_args.kwargs
        assert kwargs["tenant_id"] == tenant_id
        assert kwargs["success"] is False
        assert kwargs["action_type"] == ActionType.DELETE

    async def test_session_logs_unknown_session(self, client, impersonation_service):
        impersonation_service.get_session.side_effect = SessionNotFound("Session not found")

        response = await client.get(f"/api/v1/impersonation/audit/sessions/{uuid7()}/logs")

        assert response.status_code == 404

    async def test_csv_export(self, client, audit_service, impersonation_service):
        session = ImpersonationSessionFactory.build()
        impersonation_service.get_session.return_value = session
        entries = [
            ImpersonationAuditLogFactory.build(session_id=session.id, action="session_started"),
            ImpersonationAuditLogFactory.build(
                session_id=session.id,
                action="delete_bookings",
                success=False,
                error_message="Requires manager approval, see policy",
            ),
        ]
        audit_service.export_session_logs.return_value = entries

        response = await client.get(
            f"/api/v1/impersonation/audit/sessions/{session.id}/logs/export"
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f"impersonation-{session.id}-audit.csv" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][:3] == ["created_at", "id", "action"]
        assert [r[2] for r in rows[1:]] == ["session_started", "delete_bookings"]
        assert rows[2][7] == "false"
        assert rows[2][8] == "Requires manager approval, see policy"

    async def test_export_requires_audit_viewer(self, client, overrides):
        overrides["employee"] = EmployeeFactory.with_role(StaffRole.SUPPORT)

        response = await client.get(
            f"/api/v1/impersonation/audit/sessions/{uuid7()}/logs/export"
        )

        assert response.status_code == 403

    async def test_analytics(self, client, analytics_service):
        from src.console.schemas.analytics import ImpersonationAnalytics

        analytics_service.get_analytics.return_value = ImpersonationAnalytics(
            total_sessions=4,
            active_sessions=1,
            sessions_today=1,
            sessions_this_week=3,
            average_session_duration_minutes=22.5,
            top_impersonators=[],
            top_target_tenants=[],
            most_common_reasons=[],
        )

        response = await client.get("/api/v1/impersonation/analytics")

        assert response.status_code == 200
        assert response.json()["total_sessions"] == 4
