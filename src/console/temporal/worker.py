"""
Temporal Worker - Separate process from API.

Run with:
    uv run python -m src.console.temporal.worker
    uv run python -m src.console.temporal.worker --no-schedule   # Don't start the cron workflow
"""

import argparse
import asyncio

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.worker import Worker

from src.console.core.config import get_settings
from src.console.core.db import dispose_engine
from src.console.core.logging import get_logger, setup_logging
from src.console.temporal.activities import expire_lapsed_sessions, purge_expired_audit_logs
from src.console.temporal.workflows import ImpersonationMaintenanceWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001
MAINTENANCE_WORKFLOW_ID = "impersonation-maintenance"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Temporal worker")
    parser.add_argument(
        "--no-schedule",
        action="store_true",
        help="Do not start the scheduled maintenance workflow",
    )
    return parser.parse_args()


def create_worker(client: Client, task_queue: str) -> Worker:
    """Worker for the console jobs queue.

    Maintenance runs are short database operations; concurrency stays low.
    """
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[ImpersonationMaintenanceWorkflow],
        activities=[expire_lapsed_sessions, purge_expired_audit_logs],
        max_concurrent_activities=10,
        max_concurrent_workflow_tasks=10,
    )


async def schedule_maintenance(client: Client) -> bool:
    """Start the cron maintenance workflow if a schedule is configured.

    Returns:
        True if a new run was started, False if unscheduled or already running.
    """
    settings = get_settings()
    if not settings.maintenance_schedule:
        logger.info("No maintenance schedule configured")
        return False

    try:
        await client.start_workflow(
            ImpersonationMaintenanceWorkflow.run,
            settings.audit_retention_days,
            id=MAINTENANCE_WORKFLOW_ID,
            task_queue=settings.temporal_task_queue,
            cron_schedule=settings.maintenance_schedule,
        )
    except WorkflowAlreadyStartedError:
        logger.info("Maintenance workflow already scheduled", workflow_id=MAINTENANCE_WORKFLOW_ID)
        return False

    logger.info(
        "Maintenance workflow scheduled",
        workflow_id=MAINTENANCE_WORKFLOW_ID,
        schedule=settings.maintenance_schedule,
    )
    return True


async def run_health_server(task_queue: str, port: int = WORKER_HEALTH_PORT) -> None:
    """Run a lightweight health server for K8s probes."""
    health_app = FastAPI(title="Temporal Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": "temporal-worker",
            "task_queue": task_queue,
        }

    @health_app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    config = uvicorn.Config(
        health_app,
        host="0.0.0.0",
        port=port,
        log_level="warning",
    )
    server = uvicorn.Server(config)
    logger.info(f"Starting health server on port {port}")
    await server.serve()


async def main() -> None:
    args = parse_args()
    settings = get_settings()
    setup_logging(settings.debug)

    client = await Client.connect(
        settings.temporal_host,
        namespace=settings.temporal_namespace,
    )

    if not args.no_schedule:
        await schedule_maintenance(client)

    worker = create_worker(client, settings.temporal_task_queue)
    logger.info(f"Starting worker on queue: {settings.temporal_task_queue}")

    try:
        await asyncio.gather(
            worker.run(),
            run_health_server(settings.temporal_task_queue),
        )
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
