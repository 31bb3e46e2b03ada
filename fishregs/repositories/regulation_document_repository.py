"""Repository for RegulationDocument records and their processing lifecycle."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.database.models import RegulationDocument, utcnow
from fishregs.repositories.base_repository import BaseRepository


class RegulationDocumentRepository(BaseRepository[RegulationDocument]):
    """Repository for uploaded regulation documents.

    Status moves ``pending -> processing -> completed | failed``. Documents are
    never deleted here.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, RegulationDocument)

    async def get_source_content(self, document_id: UUID) -> Optional[bytes]:
        """Load the deferred raw upload bytes for one document."""
        result = await self.session.execute(
            select(RegulationDocument.source_content).where(RegulationDocument.id == document_id)
        )
        return result.scalar_one_or_none()

    async def get_by_status(self, status: str, limit: int = 100) -> List[RegulationDocument]:
        result = await self.session.execute(
            select(RegulationDocument)
            .where(RegulationDocument.processing_status == status)
            .order_by(RegulationDocument.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_state_and_year(self, state_id: int, regulation_year: int) -> List[RegulationDocument]:
        result = await self.session.execute(
            select(RegulationDocument).where(
                RegulationDocument.state_id == state_id,
                RegulationDocument.regulation_year == regulation_year,
            )
        )
        return list(result.scalars().all())

    async def mark_processing(self, document: RegulationDocument) -> RegulationDocument:
        return await self.update(
            document,
            processing_status="processing",
            processing_started_at=utcnow(),
            processing_completed_at=None,
            processing_error=None,
        )

    async def mark_completed(
        self, document: RegulationDocument, extracted_data: Optional[Dict[str, Any]] = None
    ) -> RegulationDocument:
        return await self.update(
            document,
            processing_status="completed",
            processing_completed_at=utcnow(),
            processing_error=None,
            extracted_data=extracted_data,
        )

    async def mark_failed(
        self,
        document: RegulationDocument,
        error: str,
        extracted_data: Optional[Dict[str, Any]] = None,
    ) -> RegulationDocument:
        return await self.update(
            document,
            processing_status="failed",
            processing_completed_at=utcnow(),
            processing_error=error,
            extracted_data=extracted_data,
        )
