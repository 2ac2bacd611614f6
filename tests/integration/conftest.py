"""Integration test fixtures for database and HTTP client operations.

These fixtures require external resources (PostgreSQL database).
Uses polyfactory for type-safe test data generation.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from src.console.core import redis as redis_core
from src.console.core.alerts import AlertChannel
from src.console.core.config import Settings, get_settings
from src.console.core.db import dispose_engine, get_session
from src.console.core.migrations import run_migrations_sync
from src.console.models.public import Employee, Tenant
from src.console.repositories import (
    EmployeeRepository,
    ImpersonationAuditLogRepository,
    ImpersonationSessionRepository,
    TenantRepository,
)
from src.console.services import (
    AuditService,
    GuardService,
    ImpersonationNotifier,
    ImpersonationService,
)
from tests.factories import EmployeeFactory, TenantFactory


@pytest.fixture(autouse=True)
async def _reset_redis_between_tests() -> AsyncGenerator[None]:
    """Redis clients hold their event loop; close them between tests."""
    redis_core.reset_redis_state()
    yield
    await redis_core.close_redis()


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Create test database engine and ensure migrations are applied."""
    await dispose_engine()

    settings = get_settings()
    test_engine = create_async_engine(settings.database_url, poolclass=NullPool)

    await asyncio.to_thread(run_migrations_sync)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session for arranging and inspecting rows. Tests must commit explicitly."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


async def cleanup_rows(engine: AsyncEngine, table: str, column: str, value) -> None:
    """Remove a row and every session and audit entry referencing it (FK order)."""
    async with engine.connect() as conn:
        await conn.execute(
            text(f"DELETE FROM public.impersonation_audit_logs WHERE {column} = :value"),
            {"value": value},
        )
        await conn.execute(
            text(f"DELETE FROM public.impersonation_sessions WHERE {column} = :value"),
            {"value": value},
        )
        await conn.execute(text(f"DELETE FROM public.{table} WHERE id = :value"), {"value": value})
        await conn.commit()


@pytest.fixture
async def tenant(engine: AsyncEngine, db_session: AsyncSession) -> AsyncGenerator[Tenant]:
    """Active restaurant tenant, removed with its sessions and audit trail afterwards."""
    tenant = TenantFactory.build()
    db_session.add(tenant)
    await db_session.commit()

    yield tenant

    await cleanup_rows(engine, "tenants", "target_tenant_id", tenant.id)


@pytest.fixture
async def employee(engine: AsyncEngine, db_session: AsyncSession) -> AsyncGenerator[Employee]:
    """SUPPORT employee, removed with the sessions it opened afterwards."""
    employee = EmployeeFactory.build()
    db_session.add(employee)
    await db_session.commit()

    yield employee

    await cleanup_rows(engine, "employees", "impersonator_id", employee.id)


@dataclass
class Services:
    impersonation: ImpersonationService
    guard: GuardService
    audit: AuditService
    session: AsyncSession


@asynccontextmanager
async def build_services(
    engine: AsyncEngine, settings: Settings | None = None
) -> AsyncGenerator[Services]:
    """Wire services the way request dependencies do, on their own connections."""
    settings = settings or get_settings()
    async with AsyncExitStack() as stack:
        session = await stack.enter_async_context(get_session(engine))
        audit_session = await stack.enter_async_context(get_session(engine))

        audit = AuditService(
            ImpersonationAuditLogRepository(audit_session),
            audit_session,
            AlertChannel(),
            retry_backoff_seconds=0,
        )
        session_repo = ImpersonationSessionRepository(session)
        tenant_repo = TenantRepository(session)
        notifier = ImpersonationNotifier(
            EmployeeRepository(session),
            tenant_repo,
            settings=settings.model_copy(update={"impersonation_notification_recipients": []}),
        )
        impersonation = ImpersonationService(
            session_repo, tenant_repo, audit, notifier, session, settings=settings
        )
        guard = GuardService(session_repo, audit, impersonation, notifier, session)
        yield Services(impersonation=impersonation, guard=guard, audit=audit, session=session)


@pytest.fixture
def services_factory(engine: AsyncEngine):
    """Return a context manager factory building an independent service set."""

    def _factory(settings: Settings | None = None):
        return build_services(engine, settings)

    return _factory
