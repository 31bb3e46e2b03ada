"""Repository for FishingRegulation records."""

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.database.models import FishingRegulation
from fishregs.repositories.base_repository import BaseRepository


class FishingRegulationRepository(BaseRepository[FishingRegulation]):
    """Repository for per-species regulations.

    At most one active row exists per (water body, species, regulation year);
    the partial unique index enforces it and ``upsert_active`` honors it.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, FishingRegulation)

    async def get_active(
        self, water_body_id: int, species_id: int, regulation_year: int
    ) -> Optional[FishingRegulation]:
        query = select(FishingRegulation).where(
            FishingRegulation.water_body_id == water_body_id,
            FishingRegulation.species_id == species_id,
            FishingRegulation.regulation_year == regulation_year,
            FishingRegulation.is_active.is_(True),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_water_body(
        self, water_body_id: int, regulation_year: Optional[int] = None
    ) -> List[FishingRegulation]:
        query = select(FishingRegulation).where(FishingRegulation.water_body_id == water_body_id)
        if regulation_year is not None:
            query = query.where(FishingRegulation.regulation_year == regulation_year)
        result = await self.session.execute(
            query.order_by(FishingRegulation.regulation_year.desc(), FishingRegulation.species_id)
        )
        return list(result.scalars().all())

    async def get_by_source_document(self, document_id: UUID) -> List[FishingRegulation]:
        result = await self.session.execute(
            select(FishingRegulation).where(FishingRegulation.source_document_id == document_id)
        )
        return list(result.scalars().all())

    async def count_by_year(self, regulation_year: int, active_only: bool = True) -> int:
        query = select(func.count()).select_from(FishingRegulation).where(
            FishingRegulation.regulation_year == regulation_year
        )
        if active_only:
            query = query.where(FishingRegulation.is_active.is_(True))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def upsert_active(
        self,
        water_body_id: int,
        species_id: int,
        regulation_year: int,
        values: Dict[str, Any],
        create_values: Optional[Dict[str, Any]] = None,
    ) -> Tuple[FishingRegulation, bool]:
        """Update the active regulation in place or insert a new one.

        Args:
            water_body_id: Water body the regulation applies to
            species_id: Species the regulation applies to
            regulation_year: Regulation year
            values: Mutable fields written on both insert and update
            create_values: Fields written only when inserting

        Returns:
            Tuple of (regulation, created)
        """
        existing = await self.get_active(water_body_id, species_id, regulation_year)
        if existing:
            return await self.update(existing, **values), False

        regulation, created = await self.create_or_get(
            lambda: FishingRegulation(
                water_body_id=water_body_id,
                species_id=species_id,
                regulation_year=regulation_year,
                is_active=True,
                **(create_values or {}),
                **values,
            ),
            lambda: self.get_active(water_body_id, species_id, regulation_year),
        )
        if not created:
            regulation = await self.update(regulation, **values)
        return regulation, created
