"""Authentication and authorization dependencies for console staff."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from src.console.api.dependencies.repositories import EmployeeRepo
from src.console.core.config import get_settings
from src.console.core.logging import bind_employee_context
from src.console.core.security import decode_token
from src.console.models.public import Employee


async def get_current_employee(
    employee_repo: EmployeeRepo,
    authorization: Annotated[str | None, Header()] = None,
) -> Employee:
    """Validate the bearer access token and return the active employee."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
        )

    payload = decode_token(authorization[7:])
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    try:
        employee_id = UUID(str(payload.get("sub")))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        ) from e

    employee = await employee_repo.get_by_id(employee_id)
    if employee is None or not employee.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Employee not found or inactive",
        )

    bind_employee_context(employee.id, employee.role, employee.email)
    return employee


CurrentEmployee = Annotated[Employee, Depends(get_current_employee)]


async def require_audit_viewer(employee: CurrentEmployee) -> Employee:
    """Require a role allowed to read audit trails and analytics."""
    if employee.role not in get_settings().impersonation_audit_viewer_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Audit viewer role required",
        )
    return employee


AuditViewer = Annotated[Employee, Depends(require_audit_viewer)]
