"""Data models for PDF splitting and layout analysis results."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class ExtractedField:
    """A key/value pair returned by layout analysis."""
    name: str
    value: str
    confidence: float = 0.0
    field_type: str = "text"
    bounding_box: Optional[List[float]] = None


@dataclass
class TableCell:
    row_index: int
    column_index: int
    content: str
    confidence: Optional[float] = None
    bounding_box: Optional[List[float]] = None


@dataclass
class ExtractedTable:
    row_count: int
    column_count: int
    cells: List[TableCell] = field(default_factory=list)
    page_number: Optional[int] = None

    def rows(self) -> List[List[str]]:
        """Cell contents as a dense row-major grid."""
        grid = [["" for _ in range(self.column_count)] for _ in range(self.row_count)]
        for cell in self.cells:
            if cell.row_index < self.row_count and cell.column_index < self.column_count:
                grid[cell.row_index][cell.column_index] = cell.content
        return grid


@dataclass
class DocumentAnalysisResult:
    """Outcome of analyzing one document unit, or a merge of several.

    ``chunk_number`` 0 marks a merged or whole-document result.
    """
    is_success: bool = True
    document_type: str = ""
    model_id: str = ""
    content: str = ""
    extracted_fields: Dict[str, ExtractedField] = field(default_factory=dict)
    tables: List[ExtractedTable] = field(default_factory=list)
    confidence_scores: Dict[str, float] = field(default_factory=dict)
    error_message: Optional[str] = None
    chunk_number: int = 0
    page_start: int = 1
    page_end: int = 1
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def summary(self) -> Dict[str, Any]:
        """Compact, JSON-friendly description for logs and persistence."""
        return {
            "is_success": self.is_success,
            "model_id": self.model_id,
            "content_length": len(self.content),
            "field_count": len(self.extracted_fields),
            "table_count": len(self.tables),
            "page_start": self.page_start,
            "page_end": self.page_end,
            "confidence": self.confidence_scores.get("Overall"),
            "error_message": self.error_message,
        }


@dataclass
class PdfChunk:
    """A page-range sub-document produced by the splitter.

    ``page_end`` is -1 when the splitter could not read page boundaries and
    passed the whole document through as one opaque unit.
    """
    chunk_number: int
    page_start: int
    page_end: int
    content: bytes
    file_name: str

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def page_count(self) -> int:
        return self.page_end - self.page_start + 1 if self.page_end >= self.page_start else 0


@dataclass
class PdfSplitResult:
    chunks: List[PdfChunk] = field(default_factory=list)
    total_pages: int = 0
    original_size_bytes: int = 0
    split_required: bool = False
    is_success: bool = True
    error_message: Optional[str] = None
