"""Repository for Employee entity."""

from collections.abc import Iterable
from uuid import UUID

from sqlmodel import select

from src.console.models.public import Employee
from src.console.repositories.base import BaseRepository


class EmployeeRepository(BaseRepository[Employee]):
    """Read access to admin console staff in public schema."""

    model = Employee

    async def get_names(self, ids: Iterable[UUID]) -> dict[UUID, str]:
        """Map employee IDs to full names."""
        ids = list(ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(Employee.id, Employee.full_name).where(
                Employee.id.in_(ids)  # type: ignore[attr-defined]
            )
        )
        return {row.id: row.full_name for row in result.all()}
