"""Regulation document upload and processing endpoints."""

from typing import Annotated, Awaitable, Callable, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.service import RPCError

from fishregs.core.database import get_async_session as get_session
from fishregs.core.exceptions import AppError, DocumentNotFoundError, ValidationError
from fishregs.database.models import RegulationDocument
from fishregs.schemas.results import DocumentStatusResponse, DocumentUploadResponse, RegulationBatchResult
from fishregs.services.regulation_document_service import RegulationDocumentService
from fishregs.services.storage_service import StorageService
from fishregs.temporal.client import start_document_processing
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()

WorkflowStarter = Callable[[UUID], Awaitable[str]]


def get_storage_service() -> StorageService:
    return StorageService()


async def get_document_service(
    db_session: Annotated[AsyncSession, Depends(get_session)],
    storage_service: Annotated[StorageService, Depends(get_storage_service)],
) -> RegulationDocumentService:
    return RegulationDocumentService(db_session, storage_service=storage_service)


def get_workflow_starter() -> WorkflowStarter:
    return start_document_processing


def _error(status_code: int, error: str, message: str, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "message": message, "detail": detail},
    )


async def _start_workflow(start: WorkflowStarter, document_id: UUID) -> Optional[str]:
    """Start processing; a Temporal outage leaves the document pending."""
    try:
        return await start(document_id)
    except WorkflowAlreadyStartedError:
        raise _error(
            status.HTTP_409_CONFLICT,
            "WorkflowAlreadyStarted",
            "Document is already being processed",
            str(document_id),
        )
    except (RPCError, RuntimeError) as e:
        LOGGER.error(
            "Failed to start regulation workflow",
            exc_info=True,
            extra={"document_id": str(document_id), "error": str(e)},
        )
        return None


def _status_response(document: RegulationDocument) -> DocumentStatusResponse:
    result = None
    if document.extracted_data:
        result = RegulationBatchResult.model_validate(document.extracted_data)
    return DocumentStatusResponse(
        document_id=str(document.id),
        file_name=document.file_name,
        document_type=document.document_type,
        regulation_year=document.regulation_year,
        processing_status=document.processing_status,
        processing_started_at=document.processing_started_at.isoformat() if document.processing_started_at else None,
        processing_completed_at=(
            document.processing_completed_at.isoformat() if document.processing_completed_at else None
        ),
        processing_error=document.processing_error,
        result=result,
    )


@router.post(
    "",
    response_model=DocumentUploadResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Upload a regulation document",
    operation_id="upload_regulation_document",
)
async def upload_regulation_document(
    document_service: Annotated[RegulationDocumentService, Depends(get_document_service)],
    start_workflow: Annotated[WorkflowStarter, Depends(get_workflow_starter)],
    file: UploadFile = File(..., description="Regulation PDF or plain text file"),
    state_code: str = Form(..., description="Two-letter state code, e.g. MN"),
    regulation_year: int = Form(..., description="Regulation year the document covers"),
    document_type: str = Form("fishing_regulations", description="Document type"),
) -> DocumentUploadResponse:
    """
    Upload a regulation document and start processing it.

    The document is validated, archived to storage when configured, recorded as
    ``pending`` and handed to the processing workflow.
    """
    content = await file.read()
    try:
        document = await document_service.upload_document(
            content=content,
            file_name=file.filename or "upload.pdf",
            content_type=file.content_type,
            state_code=state_code,
            regulation_year=regulation_year,
            document_type=document_type,
        )
    except ValidationError as e:
        LOGGER.warning("Upload validation failed", extra={"file_name": file.filename, "error": e.message})
        raise _error(status.HTTP_400_BAD_REQUEST, "ValidationError", "Invalid upload", e.message)
    except AppError as e:
        LOGGER.error("Failed to store upload", exc_info=True, extra={"file_name": file.filename})
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "UploadError", "Failed to store upload", e.message)

    workflow_id = await _start_workflow(start_workflow, document.id)
    return DocumentUploadResponse(
        document_id=str(document.id),
        workflow_id=workflow_id,
        status=document.processing_status,
        message="Processing started" if workflow_id else "Document stored; processing could not be started",
    )


@router.get(
    "/{document_id}",
    response_model=DocumentStatusResponse,
    response_model_by_alias=True,
    summary="Get regulation document status",
    operation_id="get_regulation_document",
)
async def get_regulation_document(
    document_id: UUID,
    document_service: Annotated[RegulationDocumentService, Depends(get_document_service)],
) -> DocumentStatusResponse:
    """Return processing status and the last batch result."""
    try:
        document = await document_service.get_document(document_id)
    except DocumentNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, "DocumentNotFound", "Document not found", e.message)
    return _status_response(document)


@router.post(
    "/{document_id}/process",
    response_model=DocumentUploadResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Process a regulation document again",
    operation_id="reprocess_regulation_document",
)
async def reprocess_regulation_document(
    document_id: UUID,
    document_service: Annotated[RegulationDocumentService, Depends(get_document_service)],
    start_workflow: Annotated[WorkflowStarter, Depends(get_workflow_starter)],
) -> DocumentUploadResponse:
    """Reset a document to pending and start a new processing run."""
    try:
        document = await document_service.reset_for_processing(document_id)
    except DocumentNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, "DocumentNotFound", "Document not found", e.message)
    except ValidationError as e:
        raise _error(status.HTTP_409_CONFLICT, "DocumentBusy", "Document cannot be reprocessed now", e.message)

    workflow_id = await _start_workflow(start_workflow, document.id)
    return DocumentUploadResponse(
        document_id=str(document.id),
        workflow_id=workflow_id,
        status=document.processing_status,
        message="Processing started" if workflow_id else "Processing could not be started",
    )
