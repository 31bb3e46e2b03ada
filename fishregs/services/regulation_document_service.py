"""Upload and lookup of regulation documents."""

import re
from pathlib import Path
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.core.config import settings
from fishregs.core.exceptions import DocumentNotFoundError, StorageError, ValidationError
from fishregs.database.models import DOCUMENT_TYPES, RegulationDocument
from fishregs.repositories.lookup_repository import StateRepository
from fishregs.repositories.regulation_document_repository import RegulationDocumentRepository
from fishregs.services.storage_service import StorageService
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"
TEXT_MIME_TYPE = "text/plain"
MIN_TEXT_LENGTH = 100


def validate_pdf_upload(file_name: str, content_type: Optional[str], content: bytes, max_size_mb: int) -> None:
    """Reject uploads that are not plausible PDFs.

    Raises:
        ValidationError: On a wrong extension, MIME type, size or header
    """
    if not content:
        raise ValidationError("Uploaded file is empty")
    if Path(file_name).suffix.lower() != ".pdf":
        raise ValidationError(f"Only PDF files are accepted, got '{file_name}'")
    if content_type and content_type != PDF_MIME_TYPE:
        raise ValidationError(f"Invalid content type '{content_type}', expected {PDF_MIME_TYPE}")
    if len(content) > max_size_mb * 1024 * 1024:
        raise ValidationError(f"File exceeds the {max_size_mb} MB limit")
    if not content.startswith(b"%PDF"):
        raise ValidationError("File does not have a PDF header")


def validate_text_upload(content: bytes) -> str:
    """Decode and sanity-check a plain text upload.

    Raises:
        ValidationError: If the text is empty, too short or has no letters
    """
    text = content.decode("utf-8-sig", errors="replace") if content else ""
    if not text.strip():
        raise ValidationError("Text content is empty")
    if len(text.strip()) < MIN_TEXT_LENGTH:
        raise ValidationError(f"Text content must be at least {MIN_TEXT_LENGTH} characters")
    if not re.search(r"[A-Za-z]", text):
        raise ValidationError("Text content contains no letters")
    return text


class RegulationDocumentService:
    """Stores uploads as pending documents ready for the processing workflow."""

    def __init__(self, session: AsyncSession, storage_service: Optional[StorageService] = None):
        self.session = session
        self.storage_service = storage_service
        self.documents = RegulationDocumentRepository(session)
        self.states = StateRepository(session)

    async def upload_document(
        self,
        content: bytes,
        file_name: str,
        content_type: Optional[str],
        state_code: str,
        regulation_year: int,
        document_type: str = "fishing_regulations",
        upload_source: str = "api",
    ) -> RegulationDocument:
        """Validate, archive and record an upload.

        Archiving failures are logged and do not block the upload.

        Raises:
            ValidationError: If the upload or its metadata is invalid
        """
        if document_type not in DOCUMENT_TYPES:
            raise ValidationError(f"Unknown document type '{document_type}'")
        if not 1900 <= regulation_year <= 2100:
            raise ValidationError(f"Invalid regulation year: {regulation_year}")

        is_text = Path(file_name).suffix.lower() in (".txt", ".text") or (content_type or "").startswith("text/")
        if is_text:
            validate_text_upload(content)
            mime_type = TEXT_MIME_TYPE
        else:
            validate_pdf_upload(file_name, content_type, content, settings.pipeline.max_upload_size_mb)
            mime_type = PDF_MIME_TYPE

        state = await self.states.get_by_code(state_code.upper())
        if state is None:
            raise ValidationError(f"Unknown state code '{state_code}'")

        document = RegulationDocument(
            file_name=Path(file_name).name,
            original_file_name=file_name,
            file_size_bytes=len(content),
            mime_type=mime_type,
            document_type=document_type,
            upload_source=upload_source,
            state_id=state.id,
            regulation_year=regulation_year,
            processing_status="pending",
            source_content=content,
        )
        await self.documents.add(document)

        document.blob_storage_url = await self._archive(document, content)
        await self.session.commit()

        LOGGER.info(
            "Stored regulation document",
            extra={"document_id": str(document.id), "file_name": file_name, "size_bytes": len(content)},
        )
        return document

    async def _archive(self, document: RegulationDocument, content: bytes) -> Optional[str]:
        if self.storage_service is None or not self.storage_service.is_configured:
            return None
        path = f"{document.regulation_year}/{document.id}/{document.file_name}"
        try:
            return await self.storage_service.upload_file(
                content, settings.storage.bucket, path, document.mime_type
            )
        except StorageError as e:
            LOGGER.warning(f"Archiving to storage failed, continuing: {e.message}", extra={"path": path})
            return None

    async def get_document(self, document_id: UUID) -> RegulationDocument:
        """Raises DocumentNotFoundError if the document does not exist."""
        document = await self.documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Regulation document {document_id} not found")
        return document

    async def reset_for_processing(self, document_id: UUID) -> RegulationDocument:
        """Return a document to ``pending`` before it is processed again."""
        document = await self.get_document(document_id)
        if document.processing_status == "processing":
            raise ValidationError("Document is already being processed")
        await self.documents.update(document, processing_status="pending", processing_error=None)
        await self.session.commit()
        return document
