"""Internal staff model - owned by the identity service, read here."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlmodel import Field, SQLModel

from src.console.models.base import utc_now
from src.console.models.enums import StaffRole


class Employee(SQLModel, table=True):
    """Admin console staff member."""

    __tablename__ = "employees"
    __table_args__ = {"schema": "public"}

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    full_name: str = Field(max_length=100)
    role: str = Field(default=StaffRole.VIEWER.value, max_length=20)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def role_enum(self) -> StaffRole:
        return StaffRole(self.role)
