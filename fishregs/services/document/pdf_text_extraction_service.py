"""Direct text-layer extraction from PDFs using pdfplumber."""

import asyncio
from io import BytesIO
from typing import List

import pdfplumber

from fishregs.core.exceptions import DocumentAnalysisError
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PdfTextExtractionService:
    """Reads the embedded text layer page by page.

    Scanned documents have no text layer and yield an empty string; callers
    fall back to layout analysis in that case.
    """

    def _extract_pages(self, content: bytes) -> List[str]:
        pages = []
        with pdfplumber.open(BytesIO(content)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
        return pages

    async def extract_text(self, content: bytes) -> str:
        """Extract text from all pages, pages separated by blank lines.

        Raises:
            DocumentAnalysisError: If the PDF cannot be opened
        """
        try:
            pages = await asyncio.to_thread(self._extract_pages, content)
        except Exception as e:
            LOGGER.warning(f"PDF text extraction failed: {e}")
            raise DocumentAnalysisError(f"PDF text extraction failed: {e}", original_error=e)

        text = "\n\n".join(page.strip() for page in pages if page.strip())
        LOGGER.info(
            "Extracted PDF text layer",
            extra={"pages": len(pages), "characters": len(text)},
        )
        return text
