"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.console.api.dependencies.db import DBSession
from src.console.repositories import (
    EmployeeRepository,
    ImpersonationSessionRepository,
    TenantRepository,
)


def get_employee_repository(session: DBSession) -> EmployeeRepository:
    return EmployeeRepository(session)


def get_tenant_repository(session: DBSession) -> TenantRepository:
    return TenantRepository(session)


def get_impersonation_session_repository(session: DBSession) -> ImpersonationSessionRepository:
    return ImpersonationSessionRepository(session)


EmployeeRepo = Annotated[EmployeeRepository, Depends(get_employee_repository)]
TenantRepo = Annotated[TenantRepository, Depends(get_tenant_repository)]
SessionRepo = Annotated[
    ImpersonationSessionRepository, Depends(get_impersonation_session_repository)
]
