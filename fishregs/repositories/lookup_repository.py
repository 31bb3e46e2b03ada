"""Repositories for administrative areas (states) and sub-areas (counties)."""

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.database.models import County, State
from fishregs.repositories.base_repository import BaseRepository


class StateRepository(BaseRepository[State]):
    """Repository for State records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, State)

    async def get_by_code(self, code: str) -> Optional[State]:
        result = await self.session.execute(select(State).where(State.code == code.strip().upper()))
        return result.scalar_one_or_none()


class CountyRepository(BaseRepository[County]):
    """Repository for County records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, County)

    async def get_by_name(self, state_id: int, name: str) -> Optional[County]:
        """Case-insensitive county lookup inside one state."""
        query = select(County).where(
            County.state_id == state_id,
            func.lower(County.name) == name.strip().lower(),
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_by_state(self, state_id: int) -> List[County]:
        result = await self.session.execute(
            select(County).where(County.state_id == state_id).order_by(County.name)
        )
        return list(result.scalars().all())

    async def get_or_create(self, state_id: int, name: str) -> Tuple[County, bool]:
        clean_name = " ".join(name.split())
        existing = await self.get_by_name(state_id, clean_name)
        if existing:
            return existing, False
        return await self.create_or_get(
            lambda: County(state_id=state_id, name=clean_name),
            lambda: self.get_by_name(state_id, clean_name),
        )
