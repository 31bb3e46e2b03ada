"""Repository for FishSpecies records."""

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.database.models import FishSpecies
from fishregs.repositories.base_repository import BaseRepository


class FishSpeciesRepository(BaseRepository[FishSpecies]):
    """Repository for species, unique by canonical common name."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, FishSpecies)

    async def get_by_common_name(self, common_name: str) -> Optional[FishSpecies]:
        query = select(FishSpecies).where(func.lower(FishSpecies.common_name) == common_name.lower())
        result = await self.session.execute(query)
        return result.scalars().first()

    async def search_by_name(self, term: str, limit: int = 50) -> List[FishSpecies]:
        pattern = f"%{term.strip().lower()}%"
        query = (
            select(FishSpecies)
            .where(func.lower(FishSpecies.common_name).like(pattern))
            .order_by(FishSpecies.common_name)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_or_create(self, common_name: str) -> Tuple[FishSpecies, bool]:
        """Resolve a species by canonical name, creating it on first encounter."""
        existing = await self.get_by_common_name(common_name)
        if existing:
            return existing, False
        return await self.create_or_get(
            lambda: FishSpecies(common_name=common_name, is_active=True),
            lambda: self.get_by_common_name(common_name),
        )
