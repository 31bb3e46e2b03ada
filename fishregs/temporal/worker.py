"""Temporal worker for regulation document processing.

This worker:
- Connects to the configured Temporal server
- Registers the regulation workflow and activity
- Polls the configured task queue
"""

import asyncio

from temporalio.client import Client
from temporalio.worker import Worker

from fishregs.core.config import settings
from fishregs.core.database import close_database, init_database
from fishregs.temporal.activities.regulation_activities import process_regulation_document
from fishregs.temporal.workflows.process_regulation_document import ProcessRegulationDocumentWorkflow
from fishregs.utils.logging import get_logger

logger = get_logger(__name__)

MAX_CONCURRENT_ACTIVITIES = 2


def build_worker(client: Client) -> Worker:
    return Worker(
        client,
        task_queue=settings.temporal_task_queue,
        workflows=[ProcessRegulationDocumentWorkflow],
        activities=[process_regulation_document],
        max_concurrent_activities=MAX_CONCURRENT_ACTIVITIES,
        max_concurrent_workflow_tasks=10,
    )


async def main():
    """Start the Temporal worker."""
    logger.info(f"Connecting to Temporal server at {settings.temporal_address}")
    client = await Client.connect(settings.temporal_address, namespace=settings.temporal_namespace)
    logger.info("Successfully connected to Temporal server")

    await init_database()
    worker = build_worker(client)

    logger.info("=" * 60)
    logger.info("Temporal Worker Started Successfully")
    logger.info(f"Task Queue: {settings.temporal_task_queue}")
    logger.info(f"Max Concurrent Activities: {MAX_CONCURRENT_ACTIVITIES}")
    logger.info("=" * 60)

    try:
        await worker.run()
    finally:
        await close_database()


def main_sync():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main_sync()
