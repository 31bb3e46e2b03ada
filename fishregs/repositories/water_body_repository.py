"""Repository for WaterBody records."""

from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.database.models import WaterBody
from fishregs.repositories.base_repository import BaseRepository


def normalize_water_body_name(name: str) -> str:
    """Lower-case, whitespace-collapsed key used for the uniqueness constraint."""
    return " ".join(name.split()).lower()


class WaterBodyRepository(BaseRepository[WaterBody]):
    """Repository for water bodies, unique per (state, normalized name)."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, WaterBody)

    async def get_by_name(self, state_id: int, name: str) -> Optional[WaterBody]:
        query = select(WaterBody).where(
            WaterBody.state_id == state_id,
            WaterBody.normalized_name == normalize_water_body_name(name),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def search_by_name(
        self, term: str, state_id: Optional[int] = None, limit: int = 50
    ) -> List[WaterBody]:
        """Substring search over normalized names.

        Args:
            term: Search text
            state_id: Optional state to restrict to
            limit: Maximum rows returned

        Returns:
            Matching water bodies ordered by name
        """
        query = select(WaterBody).where(
            WaterBody.normalized_name.contains(normalize_water_body_name(term))
        )
        if state_id is not None:
            query = query.where(WaterBody.state_id == state_id)
        result = await self.session.execute(query.order_by(WaterBody.name).limit(limit))
        return list(result.scalars().all())

    async def get_by_state(self, state_id: int, active_only: bool = True) -> List[WaterBody]:
        query = select(WaterBody).where(WaterBody.state_id == state_id)
        if active_only:
            query = query.where(WaterBody.is_active.is_(True))
        result = await self.session.execute(query.order_by(WaterBody.name))
        return list(result.scalars().all())

    async def get_or_create(
        self,
        state_id: int,
        name: str,
        water_type: str = "lake",
        county_id: Optional[int] = None,
    ) -> Tuple[WaterBody, bool]:
        """Resolve a water body by normalized name within a state, creating it if absent."""
        existing = await self.get_by_name(state_id, name)
        if existing:
            return existing, False

        clean_name = " ".join(name.split())
        return await self.create_or_get(
            lambda: WaterBody(
                name=clean_name,
                normalized_name=normalize_water_body_name(clean_name),
                water_type=water_type,
                state_id=state_id,
                county_id=county_id,
                is_active=True,
            ),
            lambda: self.get_by_name(state_id, clean_name),
        )
