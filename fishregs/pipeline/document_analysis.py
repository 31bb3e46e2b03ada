"""Turns an uploaded PDF into analyzable text.

The text layer is tried first. Documents without one are split and sent to the
layout analysis collaborator.
"""

import asyncio
import re
from typing import Dict, Iterable, List, Optional

from fishregs.core.exceptions import DocumentAnalysisError
from fishregs.services.chunking.text_chunking_service import TextChunkingService
from fishregs.services.document.models import DocumentAnalysisResult, ExtractedField
from fishregs.services.document.pdf_splitting_service import PdfSplittingService
from fishregs.services.document.pdf_text_extraction_service import PdfTextExtractionService
from fishregs.services.normalization.regulation_validator import SEASON_RANGE_PATTERN
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

MIN_TEXT_LAYER_LENGTH = 100
TEXT_FIELD_CONFIDENCE = 0.7

LAKE_NAME_PATTERN = re.compile(r"\bLake\s+([A-Z][A-Za-z']+(?:[ \t]+[A-Z][A-Za-z']+)*)")
DAILY_LIMIT_PATTERN = re.compile(r"\b(\d+)\s*(?:fish\s+)?(?:bag|limit|daily)\b", re.IGNORECASE)
SIZE_LIMIT_PATTERN = re.compile(
    r"\b(\d+(?:\.\d+)?)\s*(?:\"|inch(?:es)?\b|in\b|cm\b|minimum\b|maximum\b|min\b|max\b)", re.IGNORECASE
)


class DocumentAnalysisPipeline:
    """Text-first analysis with a split-and-analyze fallback."""

    def __init__(
        self,
        text_extractor: PdfTextExtractionService,
        chunking_service: TextChunkingService,
        splitting_service: PdfSplittingService,
        min_text_length: int = MIN_TEXT_LAYER_LENGTH,
    ):
        self.text_extractor = text_extractor
        self.chunking_service = chunking_service
        self.splitting_service = splitting_service
        self.min_text_length = min_text_length

    async def analyze_pdf(
        self,
        content: bytes,
        file_name: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DocumentAnalysisResult:
        """Analyze a PDF, preferring its embedded text layer."""
        try:
            text = await self.text_extractor.extract_text(content)
        except DocumentAnalysisError:
            text = ""

        if len(text.strip()) >= self.min_text_length:
            return self.analyze_text(text)

        LOGGER.info("No usable text layer, falling back to layout analysis", extra={"file_name": file_name})
        if self.splitting_service.analysis_service is None:
            return DocumentAnalysisResult(
                is_success=False,
                error_message=f"{file_name} has no text layer and no analysis service is configured",
            )
        return await self.splitting_service.process_split_pdf(content, file_name, cancel_event=cancel_event)

    def analyze_text(self, text: str) -> DocumentAnalysisResult:
        """Chunk text and report the fishing-content chunks as fields."""
        chunks = self.chunking_service.chunk_text(text)
        validation = self.chunking_service.validate_chunking(text, chunks)
        fishing_chunks = self.chunking_service.filter_fishing_regulation_chunks(chunks)

        for issue in validation.issues:
            LOGGER.warning(f"Chunking quality: {issue}")

        fields = {}
        for chunk in fishing_chunks:
            key = f"Chunk{chunk.chunk_number}_Content"
            fields[key] = ExtractedField(
                name=key,
                value=chunk.content,
                confidence=validation.quality_score,
            )
        fields.update(detect_regulation_fields(" ".join(chunk.content for chunk in fishing_chunks)))

        return DocumentAnalysisResult(
            is_success=True,
            document_type="text",
            model_id="text-layer",
            content=text,
            extracted_fields=fields,
            confidence_scores={
                "Coverage": min(1.0, validation.coverage_percentage / 100),
                "FishingContent": validation.fishing_content_percentage / 100,
                "Overall": validation.quality_score,
            },
            page_start=1,
            page_end=max((chunk.page_end for chunk in chunks), default=1),
        )


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for value in values:
        key = value.lower()
        if key not in seen:
            seen.add(key)
            unique.append(value)
    return unique


def detect_regulation_fields(text: str) -> Dict[str, ExtractedField]:
    """Pattern-match lake names, limits, sizes and seasons in raw text.

    These are hints for reviewers; the entry segmenter and the language model
    remain the source of the stored regulations.
    """
    found = {
        "LakeNames": _unique(m.group(1).strip() for m in LAKE_NAME_PATTERN.finditer(text)),
        "DailyLimits": _unique(m.group(0).strip() for m in DAILY_LIMIT_PATTERN.finditer(text)),
        "SizeLimits": _unique(m.group(0).strip() for m in SIZE_LIMIT_PATTERN.finditer(text)),
        "Seasons": _unique(m.group(0).strip() for m in SEASON_RANGE_PATTERN.finditer(text)),
    }

    fields = {}
    for key, values in found.items():
        values = [value for value in values if len(value) > 2 or key != "LakeNames"]
        if values:
            fields[key] = ExtractedField(
                name=key,
                value="; ".join(values),
                confidence=TEXT_FIELD_CONFIDENCE,
                field_type="list",
            )
    return fields
