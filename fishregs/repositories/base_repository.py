from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.database.models import utcnow
from fishregs.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Base repository implementing common persistence operations.

    Repositories only flush. The caller owns the unit of work and decides
    when ``session.commit()`` is the save-changes boundary.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field):
                    query = query.where(getattr(self.model, field) == value)
        return query

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get a record by its primary key.

        Args:
            id: Primary key of the record

        Returns:
            The record if found, None otherwise
        """
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 200,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[ModelType]:
        """Get records with optional pagination and equality filters.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            filters: Dictionary of field_name: value to filter by

        Returns:
            List of records
        """
        try:
            query = self._apply_filters(select(self.model), filters)
            result = await self.session.execute(query.offset(skip).limit(limit))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving all {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    async def add(self, instance: ModelType) -> ModelType:
        """Add an instance to the session and flush it."""
        try:
            self.session.add(instance)
            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error adding {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    async def create(self, **kwargs) -> ModelType:
        """Create and flush a new record from field values."""
        return await self.add(self.model(**kwargs))

    async def update(self, instance: ModelType, **kwargs) -> ModelType:
        """Overwrite fields on a loaded record and stamp ``updated_at``.

        Args:
            instance: Persistent instance to change
            **kwargs: Fields and values to update

        Returns:
            The updated record
        """
        try:
            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)

            if hasattr(instance, "updated_at"):
                setattr(instance, "updated_at", utcnow())

            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error updating {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count records matching equality filters.

        Args:
            filters: Dictionary of field_name: value to filter by

        Returns:
            Count of matching records
        """
        try:
            query = self._apply_filters(select(func.count()).select_from(self.model), filters)
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error counting {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    async def create_or_get(
        self,
        factory: Callable[[], ModelType],
        lookup: Callable[[], Awaitable[Optional[ModelType]]],
    ) -> Tuple[ModelType, bool]:
        """Insert inside a savepoint and fall back to ``lookup`` on a unique violation.

        Another worker may insert the same natural key between our read and
        write. The savepoint keeps that collision from poisoning the outer
        transaction.

        Args:
            factory: Builds the transient instance to insert
            lookup: Re-reads the row that won the race

        Returns:
            Tuple of (instance, created)
        """
        instance = factory()
        try:
            async with self.session.begin_nested():
                self.session.add(instance)
                await self.session.flush()
            return instance, True
        except IntegrityError:
            existing = await lookup()
            if existing is None:
                raise
            self.logger.info(
                f"Concurrent insert detected for {self.model.__name__}, using existing row",
                extra={"id": getattr(existing, "id", None)}
            )
            return existing, False
