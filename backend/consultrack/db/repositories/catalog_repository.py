"""
Shared natural-key behaviour for the eligible catalog repositories.

Each catalog declares its key columns and display columns; lookups, search
and ordering are all done on lower(...) of the key columns.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.repositories.base_repository import BaseRepository, ModelType

logger = logging.getLogger(__name__)


class CatalogRepository(BaseRepository[ModelType]):
    """Repository for a catalog identified by a case-insensitive natural key."""

    # Attribute names making up the natural key, in key order
    key_fields: Tuple[str, ...] = ()
    # Non-key attributes refreshed by upsert (last writer wins)
    display_fields: Tuple[str, ...] = ()
    # Attributes matched by search in addition to the key fields
    search_fields: Tuple[str, ...] = ()
    # Key fields compared verbatim (enums) rather than via lower()
    exact_fields: Tuple[str, ...] = ()

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        super().__init__(model, session)

    def _key_expression(self, field: str):
        column = getattr(self.model, field)
        if field in self.exact_fields:
            return column
        return func.lower(column)

    def _key_clause(self, key: Sequence[Any]):
        return and_(
            *(self._key_expression(field) == value for field, value in zip(self.key_fields, key))
        )

    def _ordering(self) -> list:
        return [self._key_expression(field) for field in self.key_fields] + [self.model.id]

    async def get_by_natural_key(
        self,
        key: Sequence[Any],
        exclude_id: Optional[int] = None,
    ) -> Optional[ModelType]:
        """
        Find the entry matching an already-normalized natural key.

        Args:
            key: Folded key values in key_fields order
            exclude_id: Ignore this id (used when checking an update for collisions)
        """
        query = select(self.model).where(self._key_clause(key))
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        result = await self.session.execute(
            query.order_by(self.model.id).limit(1).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[ModelType]:
        """All entries sorted by natural key."""
        result = await self.session.execute(select(self.model).order_by(*self._ordering()))
        return list(result.scalars().all())

    async def search(self, query: str, limit: int) -> List[ModelType]:
        """
        Case-insensitive substring search over key and search fields.
        An empty query returns the first `limit` entries by natural key.
        """
        statement = select(self.model)
        needle = (query or "").strip().lower()
        if needle:
            fields = [f for f in self.key_fields if f not in self.exact_fields] + list(self.search_fields)
            statement = statement.where(
                or_(
                    *(
                        func.lower(getattr(self.model, field)).contains(needle, autoescape=True)
                        for field in fields
                    )
                )
            )
        statement = statement.order_by(*self._ordering()).limit(limit)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def upsert_by_natural_key(
        self,
        key: Sequence[Any],
        values: Dict[str, Any],
    ) -> ModelType:
        """
        Insert if absent, then refresh the display fields to the latest values.
        Key fields of an existing entry are never rewritten.

        Args:
            key: Folded natural key used for the lookup
            values: Trimmed field values for a new entry (key and display fields)
        """
        existing = await self.get_by_natural_key(key)
        if existing is None:
            created = await self.create(**values)
            logger.info(
                f"Created {self.model.__tablename__} entry from upsert",
                extra={"id": created.id},
            )
            return created

        display = {field: values[field] for field in self.display_fields if field in values}
        if display:
            await self.session.execute(
                update(self.model)
                .where(self.model.id == existing.id)
                .values(**display)
                .execution_options(synchronize_session=False)
            )
            await self.session.flush()
            return await self.get(existing.id)
        return existing
