"""Splitting of oversized PDFs into analysis-sized page ranges."""

import asyncio
from dataclasses import replace
from io import BytesIO
from pathlib import Path
from typing import List, Optional

from pypdf import PasswordType, PdfReader, PdfWriter

from fishregs.core.exceptions import AppError, DocumentSplitError, ProcessingCancelledError
from fishregs.services.document.document_analysis_service import DocumentAnalysisService
from fishregs.services.document.models import DocumentAnalysisResult, PdfChunk, PdfSplitResult
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_MAX_SIZE_KB = 4000
DEFAULT_PAGES_PER_CHUNK = 10


class PdfSplittingService:
    """Splits PDFs that exceed the analysis service's request limit.

    Page groups start at ``pages_per_chunk`` pages and are halved while the
    written group is still over the size limit, down to a single page.
    Unreadable or password-protected PDFs pass through as one opaque unit.
    """

    def __init__(
        self,
        analysis_service: Optional[DocumentAnalysisService] = None,
        max_size_kb: int = DEFAULT_MAX_SIZE_KB,
        pages_per_chunk: int = DEFAULT_PAGES_PER_CHUNK,
        delay_seconds: float = 1.0,
    ):
        self.analysis_service = analysis_service
        self.max_size_kb = max_size_kb
        self.pages_per_chunk = pages_per_chunk
        self.delay_seconds = delay_seconds

    @staticmethod
    def _chunk_file_name(file_name: str, chunk_number: int) -> str:
        return f"{Path(file_name).stem}_chunk_{chunk_number:02d}.pdf"

    @staticmethod
    def _open(content: bytes) -> Optional[PdfReader]:
        """Open a PDF for page access, or None when it cannot be split."""
        try:
            reader = PdfReader(BytesIO(content))
            if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
                LOGGER.warning("PDF is password protected; splitting is not possible")
                return None
            # Touch the page tree so structural errors surface here
            len(reader.pages)
            return reader
        except Exception as e:
            LOGGER.warning(f"PDF cannot be parsed for splitting: {e}")
            return None

    @staticmethod
    def _write_pages(reader: PdfReader, first_index: int, count: int) -> bytes:
        writer = PdfWriter()
        for index in range(first_index, first_index + count):
            writer.add_page(reader.pages[index])
        buffer = BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    def split_pdf(self, content: bytes, file_name: str, max_size_kb: Optional[int] = None) -> PdfSplitResult:
        """Split a PDF into page-range units that fit the size limit.

        Args:
            content: PDF bytes
            file_name: Original file name, used to name the units
            max_size_kb: Size ceiling per unit, defaults to the service setting

        Returns:
            Split result; a single unit when no split was needed or possible

        Raises:
            DocumentSplitError: If the content is empty
        """
        if not content:
            raise DocumentSplitError(f"Document {file_name} is empty")

        max_bytes = (max_size_kb or self.max_size_kb) * 1024
        reader = self._open(content)

        if reader is None:
            return PdfSplitResult(
                chunks=[PdfChunk(1, 1, -1, content, self._chunk_file_name(file_name, 1))],
                total_pages=0,
                original_size_bytes=len(content),
                split_required=len(content) > max_bytes,
            )

        total_pages = len(reader.pages)

        if len(content) <= max_bytes:
            LOGGER.info(
                "PDF under size limit, no split needed",
                extra={"size_bytes": len(content), "pages": total_pages},
            )
            return PdfSplitResult(
                chunks=[PdfChunk(1, 1, total_pages, content, file_name)],
                total_pages=total_pages,
                original_size_bytes=len(content),
                split_required=False,
            )

        chunks: List[PdfChunk] = []
        page_index = 0
        while page_index < total_pages:
            group_size = min(self.pages_per_chunk, total_pages - page_index)
            data = self._write_pages(reader, page_index, group_size)

            while len(data) > max_bytes and group_size > 1:
                group_size = max(1, group_size // 2)
                LOGGER.debug(
                    "Page group over size limit, halving",
                    extra={"first_page": page_index + 1, "group_size": group_size},
                )
                data = self._write_pages(reader, page_index, group_size)

            if len(data) > max_bytes:
                LOGGER.warning(
                    f"Page {page_index + 1} alone exceeds {max_bytes // 1024} KB; submitting anyway"
                )

            chunk_number = len(chunks) + 1
            chunks.append(
                PdfChunk(
                    chunk_number=chunk_number,
                    page_start=page_index + 1,
                    page_end=page_index + group_size,
                    content=data,
                    file_name=self._chunk_file_name(file_name, chunk_number),
                )
            )
            page_index += group_size

        LOGGER.info(
            f"Split PDF into {len(chunks)} chunks",
            extra={"file_name": file_name, "pages": total_pages, "size_bytes": len(content)},
        )
        return PdfSplitResult(
            chunks=chunks,
            total_pages=total_pages,
            original_size_bytes=len(content),
            split_required=True,
        )

    async def process_split_pdf(
        self,
        content: bytes,
        file_name: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DocumentAnalysisResult:
        """Split, analyze each unit sequentially, and merge the results.

        Failed units are logged and skipped. When no unit succeeds the whole
        document is submitted once as a fallback.

        Raises:
            ProcessingCancelledError: If ``cancel_event`` is set between units
        """
        if self.analysis_service is None:
            raise DocumentSplitError("No document analysis service configured")

        split = self.split_pdf(content, file_name)
        results: List[DocumentAnalysisResult] = []

        for index, chunk in enumerate(split.chunks):
            if cancel_event is not None and cancel_event.is_set():
                raise ProcessingCancelledError("Processing cancelled")
            if index > 0 and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

            try:
                results.append(
                    await self.analysis_service.analyze_document(
                        content=chunk.content,
                        chunk_number=chunk.chunk_number,
                        page_start=chunk.page_start,
                        page_end=chunk.page_end,
                    )
                )
            except AppError as e:
                LOGGER.warning(
                    f"Analysis of chunk {chunk.chunk_number} failed, skipping",
                    extra={"file_name": chunk.file_name, "error": str(e)},
                )

        if not results:
            LOGGER.warning("No chunk analyzed successfully, submitting whole document", extra={"file_name": file_name})
            try:
                return await self.analysis_service.analyze_document(
                    content=content,
                    chunk_number=0,
                    page_start=1,
                    page_end=split.total_pages or -1,
                )
            except AppError as e:
                LOGGER.error("Whole-document analysis failed", extra={"file_name": file_name, "error": str(e)})
                return DocumentAnalysisResult(
                    is_success=False,
                    error_message=f"Document analysis failed for {file_name}: {e}",
                )

        if len(results) == 1:
            return results[0]
        return self.merge_analysis_results(results)

    @staticmethod
    def merge_analysis_results(results: List[DocumentAnalysisResult]) -> DocumentAnalysisResult:
        """Merge per-unit results into one envelope with unit-namespaced keys."""
        if not results:
            return DocumentAnalysisResult(is_success=False, error_message="No results to merge")

        ordered = sorted(results, key=lambda r: r.chunk_number)
        merged = DocumentAnalysisResult(
            is_success=True,
            document_type=ordered[0].document_type,
            model_id=ordered[0].model_id,
            chunk_number=0,
            page_start=min(r.page_start for r in ordered),
            page_end=max(r.page_end for r in ordered),
        )

        contents = []
        for result in ordered:
            prefix = f"Chunk{result.chunk_number}_"
            for key, extracted in result.extracted_fields.items():
                merged.extracted_fields[prefix + key] = replace(extracted, name=prefix + key)
            for key, score in result.confidence_scores.items():
                if key != "Overall":
                    merged.confidence_scores[prefix + key] = score
            merged.tables.extend(result.tables)
            if result.content:
                contents.append(result.content)

        merged.content = "\n\n".join(contents)
        if merged.confidence_scores:
            merged.confidence_scores["Overall"] = (
                sum(merged.confidence_scores.values()) / len(merged.confidence_scores)
            )
        return merged
