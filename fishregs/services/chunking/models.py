"""Data models for text chunking."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class TextChunk:
    """A bounded slice of a document's text.

    Attributes:
        chunk_number: 1-based position in the chunk sequence
        page_start: Estimated first page covered
        page_end: Estimated last page covered
        content: Chunk text, including any overlap prefix
        contains_fishing_regulations: Keyword heuristic for regulation content
        overlap_length: Characters at the start of content repeated from the previous chunk
    """
    chunk_number: int
    page_start: int
    page_end: int
    content: str
    contains_fishing_regulations: bool = False
    overlap_length: int = 0

    @property
    def character_count(self) -> int:
        return len(self.content)

    @property
    def source_text(self) -> str:
        """Chunk text without the overlap prefix."""
        return self.content[self.overlap_length:]


@dataclass
class ChunkingValidationResult:
    """Coverage and content-quality metrics for a chunking run."""
    is_valid: bool
    total_chunks: int
    fishing_regulation_chunks: int
    total_characters: int
    original_characters: int
    coverage_percentage: float
    fishing_content_percentage: float
    quality_score: float
    issues: List[str] = field(default_factory=list)
