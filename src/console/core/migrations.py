"""Migration runner shared by deployment scripts and tests."""

import asyncio

from alembic.config import Config

from alembic import command


def run_migrations_sync(revision: str = "head") -> None:
    """Upgrade the public schema to ``revision`` with Alembic."""
    command.upgrade(Config("alembic.ini"), revision)


async def run_migrations_async(revision: str = "head") -> None:
    """Run migrations from async context without blocking the event loop."""
    await asyncio.to_thread(run_migrations_sync, revision)
