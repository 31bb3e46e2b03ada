"""Chunking of long regulation text into bounded, boundary-aligned pieces."""

import re
from typing import List

from fishregs.core.exceptions import ValidationError
from fishregs.services.chunking.models import ChunkingValidationResult, TextChunk
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 4000
DEFAULT_OVERLAP_SIZE = 200
MIN_CHUNK_SIZE = 1000
CHARS_PER_PAGE = 2000
WORD_BREAK_WINDOW = 200

MIN_COVERAGE_PERCENTAGE = 95.0
MIN_FISHING_CONTENT_PERCENTAGE = 10.0

FISHING_KEYWORDS = (
    "fishing", "fish", "angling", "angler",
    "lake", "river", "stream", "water",
    "regulation", "rule", "limit", "restriction",
    "season", "license", "permit",
    "bass", "trout", "walleye", "pike", "salmon",
    "daily limit", "possession", "size limit",
    "closed season", "open season",
)

_SENTENCE_END = re.compile(r"[.!?]\s")


def contains_fishing_content(text: str) -> bool:
    """Keyword heuristic for fishing regulation content."""
    if not text or not text.strip():
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in FISHING_KEYWORDS)


class TextChunkingService:
    """Splits text at paragraph, sentence, line or word boundaries.

    Each chunk after the first repeats the tail of the previous chunk's source
    span so downstream extraction keeps cross-boundary context.
    """

    def __init__(
        self,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        overlap_size: int = DEFAULT_OVERLAP_SIZE,
    ):
        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size

    def chunk_text(
        self,
        text: str,
        max_chunk_size: int = None,
        overlap_size: int = None,
    ) -> List[TextChunk]:
        """Chunk text into ordered segments.

        Args:
            text: Text to chunk
            max_chunk_size: Maximum characters per chunk, excluding overlap
            overlap_size: Characters of the previous span prepended to each later chunk

        Returns:
            Ordered chunks numbered from 1

        Raises:
            ValidationError: If the text is empty or blank
        """
        max_size = max_chunk_size or self.max_chunk_size
        overlap = self.overlap_size if overlap_size is None else overlap_size

        if not text or not text.strip():
            raise ValidationError("Text is empty or null")

        LOGGER.info(
            "Chunking text",
            extra={"length": len(text), "max_chunk_size": max_size, "overlap": overlap}
        )

        if len(text) <= max_size:
            return [
                TextChunk(
                    chunk_number=1,
                    page_start=1,
                    page_end=max(1, len(text) // CHARS_PER_PAGE),
                    content=text,
                    contains_fishing_regulations=contains_fishing_content(text),
                )
            ]

        min_size = min(MIN_CHUNK_SIZE, max_size // 4)
        chunks: List[TextChunk] = []
        position = 0

        while position < len(text):
            chunk_end = min(position + max_size, len(text))
            if chunk_end < len(text):
                chunk_end = self._find_break_point(text, position, chunk_end, min_size)

            content = text[position:chunk_end]
            overlap_length = 0
            if position > 0 and overlap > 0:
                prefix = text[max(0, position - overlap):position]
                overlap_length = len(prefix)
                content = prefix + content

            chunk = TextChunk(
                chunk_number=len(chunks) + 1,
                page_start=position // CHARS_PER_PAGE + 1,
                page_end=chunk_end // CHARS_PER_PAGE + 1,
                content=content,
                contains_fishing_regulations=contains_fishing_content(content),
                overlap_length=overlap_length,
            )
            chunks.append(chunk)
            LOGGER.debug(
                f"Created chunk {chunk.chunk_number}",
                extra={
                    "characters": chunk.character_count,
                    "page_start": chunk.page_start,
                    "page_end": chunk.page_end,
                    "fishing": chunk.contains_fishing_regulations,
                }
            )
            position = chunk_end

        LOGGER.info(f"Chunked text into {len(chunks)} chunks")
        return chunks

    @staticmethod
    def _find_break_point(text: str, start: int, max_end: int, min_size: int) -> int:
        """Furthest-back natural boundary in ``text[start:max_end]``."""
        threshold = start + min_size

        paragraph_break = text.rfind("\n\n", start, max_end)
        if paragraph_break > threshold:
            return paragraph_break + 2

        sentence_break = None
        for match in _SENTENCE_END.finditer(text, start, max_end):
            sentence_break = match.end()
        if sentence_break is not None and sentence_break > threshold:
            return sentence_break

        line_break = text.rfind("\n", start, max_end)
        if line_break > threshold:
            return line_break + 1

        word_break = text.rfind(" ", max(start, max_end - WORD_BREAK_WINDOW), max_end)
        if word_break > threshold:
            return word_break + 1

        return max_end

    def filter_fishing_regulation_chunks(self, chunks: List[TextChunk]) -> List[TextChunk]:
        """Keep only chunks flagged as fishing content, renumbered from 1."""
        kept = [chunk for chunk in chunks if chunk.contains_fishing_regulations]
        for index, chunk in enumerate(kept, start=1):
            chunk.chunk_number = index

        LOGGER.info(f"Filtered {len(chunks)} chunks to {len(kept)} chunks with fishing content")
        return kept

    def validate_chunking(self, original_text: str, chunks: List[TextChunk]) -> ChunkingValidationResult:
        """Compute coverage, fishing-content share and a composite quality score.

        Coverage counts every chunk character, overlap included, against the
        original length. Quality is ``0.7 * coverage + 0.3 * fishing share``
        where fishing share saturates at 50% of chunks.
        """
        original_length = len(original_text or "")

        if not chunks:
            return ChunkingValidationResult(
                is_valid=False,
                total_chunks=0,
                fishing_regulation_chunks=0,
                total_characters=0,
                original_characters=original_length,
                coverage_percentage=0.0,
                fishing_content_percentage=0.0,
                quality_score=0.0,
                issues=["No chunks generated"],
            )

        issues: List[str] = []
        total_characters = sum(chunk.character_count for chunk in chunks)
        coverage = total_characters / original_length * 100 if original_length else 0.0
        if coverage < MIN_COVERAGE_PERCENTAGE:
            issues.append(f"Low coverage: {coverage:.1f}% of original text")

        fishing_chunks = sum(1 for chunk in chunks if chunk.contains_fishing_regulations)
        fishing_percentage = fishing_chunks / len(chunks) * 100
        if fishing_percentage < MIN_FISHING_CONTENT_PERCENTAGE:
            issues.append(f"Low fishing content: {fishing_percentage:.1f}% of chunks")

        quality_score = (
            min(1.0, coverage / 100) * 0.7
            + min(1.0, fishing_percentage / 50) * 0.3
        )

        result = ChunkingValidationResult(
            is_valid=not issues and quality_score > 0.5,
            total_chunks=len(chunks),
            fishing_regulation_chunks=fishing_chunks,
            total_characters=total_characters,
            original_characters=original_length,
            coverage_percentage=coverage,
            fishing_content_percentage=fishing_percentage,
            quality_score=quality_score,
            issues=issues,
        )
        LOGGER.info(
            "Chunking validation completed",
            extra={
                "coverage": round(coverage, 1),
                "fishing_percentage": round(fishing_percentage, 1),
                "quality_score": round(quality_score, 3),
                "issues": len(issues),
            }
        )
        return result
