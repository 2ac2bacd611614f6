"""Tenant and employee factories."""

from polyfactory import Use

from src.console.models.enums import StaffRole, TenantStatus
from src.console.models.public import Employee, Tenant
from tests.factories.base import BaseFactory, generate_uuid7, utc_now


class TenantFactory(BaseFactory):
    """Restaurant tenant, active by default."""

    __model__ = Tenant

    id = Use(generate_uuid7)
    name = Use(lambda: f"Bistro {generate_uuid7().hex[-6:]}")
    slug = Use(lambda: f"bistro-{generate_uuid7().hex[-8:]}")
    status = TenantStatus.ACTIVE.value
    is_active = True
    created_at = Use(utc_now)
    deleted_at = None

    @classmethod
    def suspended(cls, **kwargs):
        return cls.build(status=TenantStatus.SUSPENDED.value, **kwargs)

    @classmethod
    def deleted(cls, **kwargs):
        return cls.build(deleted_at=utc_now(), **kwargs)


class EmployeeFactory(BaseFactory):
    """Console staff member with the SUPPORT role by default."""

    __model__ = Employee

    id = Use(generate_uuid7)
    email = Use(lambda: f"staff-{generate_uuid7().hex[-8:]}@example.com")
    full_name = "Sam Support"
    role = StaffRole.SUPPORT.value
    is_active = True
    created_at = Use(utc_now)

    @classmethod
    def with_role(cls, role: StaffRole, **kwargs):
        return cls.build(role=role.value, **kwargs)
