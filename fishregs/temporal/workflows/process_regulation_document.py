"""Workflow that processes one uploaded regulation document.

Activities are referenced by name so the workflow sandbox never imports the
database or HTTP stack.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

PROCESS_ACTIVITY = "process_regulation_document"


@workflow.defn
class ProcessRegulationDocumentWorkflow:
    """Runs the regulation pipeline for a document as one heartbeating activity."""

    def __init__(self) -> None:
        self._status = "pending"

    @workflow.run
    async def run(self, document_id: str) -> dict:
        """
        Process a regulation document end to end.

        Args:
            document_id: UUID of the regulation document

        Returns:
            Batch result in its camelCase wire form
        """
        workflow.logger.info(f"Starting regulation processing for document: {document_id}")
        self._status = "processing"

        result = await workflow.execute_activity(
            PROCESS_ACTIVITY,
            args=[document_id],
            start_to_close_timeout=timedelta(hours=2),
            heartbeat_timeout=timedelta(minutes=1),
            cancellation_type=workflow.ActivityCancellationType.WAIT_CANCELLATION_COMPLETED,
            retry_policy=RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=10),
                maximum_interval=timedelta(minutes=2),
                backoff_coefficient=2.0,
                non_retryable_error_types=["DocumentNotFoundError", "ConfigurationError"],
            ),
        )

        self._status = "completed" if result.get("isSuccess") else "failed"
        workflow.logger.info(
            f"Regulation processing finished for {document_id}: "
            f"{result.get('regulationsCreated', 0)} created, {result.get('regulationsUpdated', 0)} updated"
        )
        return result

    @workflow.query
    def status(self) -> str:
        return self._status
