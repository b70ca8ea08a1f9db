"""
Base repository class with common CRUD operations.
Repositories handle database access using async SQLAlchemy sessions.
"""

from typing import Any, Dict, Generic, TypeVar, Type, Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import inspect, insert, select, update, delete

from consultrack.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def create(self, **kwargs) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Model attributes

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def insert_row(self, **kwargs) -> ModelType:
        """
        Create a new record with a single INSERT statement.

        Unlike create(), nothing goes through the unit of work, so a failed
        statement raises without leaving the session needing a rollback.

        Returns:
            Created model instance
        """
        result = await self.session.execute(
            insert(self.model).values(**kwargs).returning(self.model.id)
        )
        return await self.get(result.scalar_one())

    async def get(self, id: int) -> Optional[ModelType]:
        """
        Get a record by ID.

        Args:
            id: Record ID

        Returns:
            Model instance or None
        """
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        **filters,
    ) -> List[ModelType]:
        """
        List records with pagination and filters.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            **filters: Filter criteria

        Returns:
            List of model instances
        """
        query = select(self.model)

        # Apply filters
        for key, value in filters.items():
            if hasattr(self.model, key):
                query = query.where(getattr(self.model, key) == value)

        query = query.order_by(self.model.id).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, id: int, **kwargs) -> Optional[ModelType]:
        """
        Update a record.

        Args:
            id: Record ID
            **kwargs: Attributes to update

        Returns:
            Updated model instance or None
        """
        await self.session.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(**kwargs)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return await self.get(id)

    async def delete(self, id: int) -> bool:
        """
        Delete a record.

        Args:
            id: Record ID

        Returns:
            True if deleted, False if not found
        """
        result = await self.session.execute(
            delete(self.model)
            .where(self.model.id == id)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount > 0

    @staticmethod
    def snapshot(instance: ModelType) -> Dict[str, Any]:
        """Column values of a loaded instance, keyed by attribute name."""
        mapper = inspect(instance).mapper
        return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}
