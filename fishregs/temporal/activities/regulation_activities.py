"""Activities wrapping the regulation pipeline."""

import asyncio
import time
from typing import Dict
from uuid import UUID

from temporalio import activity

from fishregs.utils.logging import get_logger

logger = get_logger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 10


@activity.defn(name="process_regulation_document")
async def process_regulation_document(document_id: str) -> Dict:
    """
    Process one regulation document and persist its regulations.

    The pipeline runs in a task while this coroutine heartbeats. On activity
    cancellation the pipeline's cancel event is set and the activity waits for
    it to stop at the next lake boundary, so committed lakes stay committed.

    Args:
        document_id: UUID of the regulation document

    Returns:
        Batch result in its camelCase wire form
    """
    start = time.time()
    activity.logger.info(f"Starting regulation processing for document: {document_id}")

    # Import inside function to avoid sandbox issues
    from fishregs.core.database import async_session_maker
    from fishregs.pipeline.regulation_pipeline import build_regulation_pipeline

    cancel_event = asyncio.Event()
    try:
        async with async_session_maker() as session:
            pipeline = build_regulation_pipeline(session)
            task = asyncio.create_task(
                pipeline.process_document(UUID(document_id), cancel_event=cancel_event)
            )
            try:
                while not task.done():
                    activity.heartbeat(document_id)
                    await asyncio.wait({task}, timeout=HEARTBEAT_INTERVAL_SECONDS)
            except asyncio.CancelledError:
                activity.logger.warning(f"Cancellation requested for document {document_id}")
                cancel_event.set()
                await task
                raise

            result = task.result()
            activity.logger.info(
                f"Regulation processing complete for {document_id}: success={result.is_success}"
            )
            return result.to_wire()

    except Exception as e:
        activity.logger.error(f"Regulation processing failed for {document_id}: {e}")
        raise
    finally:
        duration = time.time() - start
        activity.logger.info(f"Regulation processing duration: {duration:.2f}s")
