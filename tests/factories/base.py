"""Base factory configuration for polyfactory."""

from uuid import uuid7

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from src.console.models.base import utc_now

__all__ = ["BaseFactory", "generate_uuid7", "utc_now"]


def generate_uuid7():
    """Time-ordered IDs, matching the models' primary keys."""
    return uuid7()


class BaseFactory(SQLAlchemyFactory):
    """Base factory for console models.

    Relationships and foreign keys are never generated; tests set the IDs
    they care about explicitly.
    """

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False
