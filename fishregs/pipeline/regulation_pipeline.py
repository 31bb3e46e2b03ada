"""End-to-end processing of one regulation document.

Status lifecycle on ``RegulationDocument``:
``pending -> processing -> completed | failed``. The batch result summary is
written to ``extracted_data`` in both terminal states.
"""

import asyncio
import time
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.core.config import settings
from fishregs.core.exceptions import (
    AppError,
    DocumentAnalysisError,
    DocumentNotFoundError,
    PipelineError,
    ProcessingCancelledError,
)
from fishregs.core.llm_client import create_llm_client
from fishregs.database.models import RegulationDocument
from fishregs.pipeline.document_analysis import DocumentAnalysisPipeline
from fishregs.repositories.regulation_document_repository import RegulationDocumentRepository
from fishregs.schemas.results import RegulationBatchResult
from fishregs.services.chunking.text_chunking_service import TextChunkingService
from fishregs.services.document.document_analysis_service import DocumentAnalysisService
from fishregs.services.document.pdf_splitting_service import PdfSplittingService
from fishregs.services.document.pdf_text_extraction_service import PdfTextExtractionService
from fishregs.services.extraction.entry_segmenter import EntrySegmenter
from fishregs.services.extraction.lake_regulation_extractor import LakeRegulationExtractionService
from fishregs.services.population.regulation_population_service import RegulationPopulationService
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

CANCELLED_MESSAGE = "Processing cancelled"
TEXT_SUFFIXES = (".txt", ".text")


class RegulationPipeline:
    """Runs text loading, extraction and population for regulation documents.

    Attributes:
        session: Async session shared by the document and population writes
        extraction_service: Segments text and calls the completion service
        analysis_pipeline: Turns PDFs into text; required only for PDF documents
        population_service: Writes lakes, species and regulations
    """

    def __init__(
        self,
        session: AsyncSession,
        extraction_service: LakeRegulationExtractionService,
        analysis_pipeline: Optional[DocumentAnalysisPipeline] = None,
        population_service: Optional[RegulationPopulationService] = None,
    ):
        self.session = session
        self.extraction_service = extraction_service
        self.analysis_pipeline = analysis_pipeline
        self.population_service = population_service or RegulationPopulationService(session)
        self.documents = RegulationDocumentRepository(session)

    async def process_document(
        self,
        document_id: UUID,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RegulationBatchResult:
        """Process a stored document and record the outcome on it.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = await self.documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Regulation document {document_id} not found")

        await self.documents.mark_processing(document)
        await self.session.commit()
        LOGGER.info(
            "Processing regulation document",
            extra={"document_id": str(document_id), "file_name": document.file_name},
        )

        started = time.monotonic()
        try:
            text = await self.load_text(document, cancel_event=cancel_event)
            result = await self.process_text(
                text,
                state_id=document.state_id,
                regulation_year=document.regulation_year,
                source_document_id=document.id,
                cancel_event=cancel_event,
            )
        except ProcessingCancelledError:
            LOGGER.warning("Regulation document processing cancelled", extra={"document_id": str(document_id)})
            await self.session.rollback()
            result = RegulationBatchResult.failed(CANCELLED_MESSAGE, time.monotonic() - started)
        except AppError as e:
            LOGGER.error(
                f"Regulation document processing failed: {e.message}",
                exc_info=True,
                extra={"document_id": str(document_id)},
            )
            await self.session.rollback()
            result = RegulationBatchResult.failed(e.message, time.monotonic() - started)

        await self.session.refresh(document)
        if result.is_success:
            await self.documents.mark_completed(document, result.to_wire())
        else:
            await self.documents.mark_failed(document, self._failure_message(result), result.to_wire())
        await self.session.commit()

        LOGGER.info(
            "Finished regulation document",
            extra={
                "document_id": str(document_id),
                "is_success": result.is_success,
                "regulations_created": result.regulations_created,
                "regulations_updated": result.regulations_updated,
            },
        )
        return result

    async def process_text(
        self,
        text: str,
        state_id: int,
        regulation_year: int,
        source_document_id: Optional[UUID] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RegulationBatchResult:
        """Extract and populate from text the caller already holds.

        A missing special regulations section returns a failed result without
        writing anything.
        """
        started = time.monotonic()
        extraction = await self.extraction_service.extract_regulations(text, cancel_event=cancel_event)
        if not extraction.is_success:
            return RegulationBatchResult.failed(
                extraction.error_message or "Extraction failed",
                time.monotonic() - started,
                extraction.processing_warnings,
            )

        population = await self.population_service.populate(
            extraction,
            state_id,
            regulation_year,
            source_document_id=source_document_id,
            cancel_event=cancel_event,
        )
        return RegulationBatchResult.combine(extraction, population, time.monotonic() - started)

    async def load_text(
        self,
        document: RegulationDocument,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """Return the document's text, analyzing PDFs as needed.

        Raises:
            PipelineError: If the document has no stored content
            DocumentAnalysisError: If the PDF cannot be turned into text
        """
        content = await self.documents.get_source_content(document.id)
        if not content:
            raise PipelineError(f"Regulation document {document.id} has no stored content")

        if self._is_text(document):
            return content.decode("utf-8-sig", errors="replace")

        if self.analysis_pipeline is None:
            raise DocumentAnalysisError("PDF documents require a document analysis pipeline")

        analysis = await self.analysis_pipeline.analyze_pdf(
            content, document.original_file_name or document.file_name, cancel_event=cancel_event
        )
        if not analysis.is_success:
            raise DocumentAnalysisError(analysis.error_message or "Document analysis failed")
        return analysis.content

    @staticmethod
    def _is_text(document: RegulationDocument) -> bool:
        if document.mime_type and document.mime_type.startswith("text/"):
            return True
        return Path(document.file_name or "").suffix.lower() in TEXT_SUFFIXES

    @staticmethod
    def _failure_message(result: RegulationBatchResult) -> str:
        if result.error_message:
            return result.error_message
        return "; ".join(result.processing_errors[:5]) or "Processing failed"


def build_regulation_pipeline(session: AsyncSession, llm_client: Optional[Any] = None) -> RegulationPipeline:
    """Wire a pipeline from application settings.

    Layout analysis is enabled only when its endpoint and key are configured.
    """
    pipeline_settings = settings.pipeline
    analysis_service = None
    if settings.analysis.endpoint and settings.analysis.api_key:
        analysis_service = DocumentAnalysisService(
            endpoint=settings.analysis.endpoint,
            api_key=settings.analysis.api_key,
            model_id=settings.analysis.model_id,
            api_version=settings.analysis.api_version,
            poll_interval=settings.analysis.poll_interval_seconds,
            max_polls=settings.analysis.max_polls,
        )

    chunking_service = TextChunkingService(
        max_chunk_size=pipeline_settings.chunk_max_size,
        overlap_size=pipeline_settings.chunk_overlap_size,
    )
    analysis_pipeline = DocumentAnalysisPipeline(
        text_extractor=PdfTextExtractionService(),
        chunking_service=chunking_service,
        splitting_service=PdfSplittingService(
            analysis_service=analysis_service,
            max_size_kb=pipeline_settings.pdf_max_chunk_size_kb,
            pages_per_chunk=pipeline_settings.pdf_pages_per_chunk,
            delay_seconds=pipeline_settings.analysis_delay_seconds,
        ),
    )
    extraction_service = LakeRegulationExtractionService(
        llm_client=llm_client or create_llm_client(settings.llm),
        segmenter=EntrySegmenter(
            start_patterns=pipeline_settings.section_start_patterns,
            end_markers=pipeline_settings.section_end_markers,
            excluded_names=pipeline_settings.excluded_entry_names,
            min_primary_entries=pipeline_settings.min_primary_entries,
        ),
        delay_seconds=pipeline_settings.extraction_delay_seconds,
        generation_config={
            "temperature": settings.llm.temperature,
            "max_output_tokens": settings.llm.max_output_tokens,
        },
    )
    return RegulationPipeline(
        session=session,
        extraction_service=extraction_service,
        analysis_pipeline=analysis_pipeline,
    )
