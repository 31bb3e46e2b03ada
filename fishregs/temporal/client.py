"""Temporal client connection management."""

from typing import Optional
from uuid import UUID

from temporalio.client import Client as TemporalClient

from fishregs.core.config import settings
from fishregs.temporal.workflows.process_regulation_document import ProcessRegulationDocumentWorkflow
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TemporalClientManager:
    """Manages the Temporal client connection."""

    _client: Optional[TemporalClient] = None

    async def get_client(self) -> TemporalClient:
        """Get or create the Temporal client instance."""
        if self._client is None:
            LOGGER.info(f"Connecting to Temporal server at {settings.temporal_address}")
            self._client = await TemporalClient.connect(
                settings.temporal_address,
                namespace=settings.temporal_namespace,
            )
        return self._client

    async def close(self) -> None:
        """Drop the cached client; connections close with the runtime."""
        self._client = None


_temporal_manager = TemporalClientManager()


async def get_temporal_client() -> TemporalClient:
    return await _temporal_manager.get_client()


async def close_temporal_client() -> None:
    await _temporal_manager.close()


def workflow_id_for(document_id: UUID) -> str:
    return f"regulation-document-{document_id}"


async def start_document_processing(document_id: UUID, client: Optional[TemporalClient] = None) -> str:
    """Start the processing workflow for a document.

    Raises:
        temporalio.exceptions.WorkflowAlreadyStartedError: If a run for the
            document is still in progress

    Returns:
        The workflow id
    """
    client = client or await get_temporal_client()
    handle = await client.start_workflow(
        ProcessRegulationDocumentWorkflow.run,
        str(document_id),
        id=workflow_id_for(document_id),
        task_queue=settings.temporal_task_queue,
    )
    LOGGER.info("Started regulation workflow", extra={"workflow_id": handle.id})
    return handle.id
