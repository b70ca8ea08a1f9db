"""
Manager engagement repository for database operations.
Every query is scoped by manager_id so one manager never sees another's rows.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func

from consultrack.db.repositories.base_repository import BaseRepository
from consultrack.models.manager_engagement import (
    ManagerEngagement,
    ManagerEngagementTask,
    ManagerEngagementDeliverable,
)
from consultrack.models.user import User

logger = logging.getLogger(__name__)


class ManagerEngagementRepository(BaseRepository[ManagerEngagement]):
    """Repository for manager engagement aggregate roots."""

    def __init__(self, session: AsyncSession):
        super().__init__(ManagerEngagement, session)

    async def get_for_manager(self, manager_id: int, engagement_id: int) -> Optional[ManagerEngagement]:
        """Get a root row by id, only if owned by manager_id."""
        result = await self.session.execute(
            select(ManagerEngagement)
            .where(
                ManagerEngagement.id == engagement_id,
                ManagerEngagement.manager_id == manager_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_manager(self, manager_id: int) -> List[ManagerEngagement]:
        """List a manager's root rows ordered by engagement name."""
        result = await self.session.execute(
            select(ManagerEngagement)
            .where(ManagerEngagement.manager_id == manager_id)
            .order_by(func.lower(ManagerEngagement.engagement_name), ManagerEngagement.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_with_managers(self) -> List[Tuple[ManagerEngagement, User]]:
        """
        All root rows joined with their manager, ordered by manager name then
        engagement name (both case-insensitive).
        """
        result = await self.session.execute(
            select(ManagerEngagement, User)
            .join(User, User.id == ManagerEngagement.manager_id)
            .order_by(
                func.lower(User.name),
                User.id,
                func.lower(ManagerEngagement.engagement_name),
                ManagerEngagement.id,
            )
            .execution_options(populate_existing=True)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def update_for_manager(self, manager_id: int, engagement_id: int, **values) -> int:
        """
        Overwrite root fields of a manager's engagement.

        Returns:
            Number of rows affected
        """
        result = await self.session.execute(
            update(ManagerEngagement)
            .where(
                ManagerEngagement.id == engagement_id,
                ManagerEngagement.manager_id == manager_id,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount

    async def restore(self, snapshot: Dict[str, Any]) -> None:
        """Write a previously captured root snapshot back verbatim."""
        values = {key: value for key, value in snapshot.items() if key != "id"}
        await self.session.execute(
            update(ManagerEngagement)
            .where(ManagerEngagement.id == snapshot["id"])
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()

    async def delete_for_manager(self, manager_id: int, engagement_id: int) -> bool:
        """
        Delete a manager's engagement and its own child rows.

        Returns:
            True if deleted, False if no such engagement is owned by manager_id
        """
        result = await self.session.execute(
            delete(ManagerEngagement)
            .where(
                ManagerEngagement.id == engagement_id,
                ManagerEngagement.manager_id == manager_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False

        # Children go explicitly; SQLite does not enforce ON DELETE CASCADE by default
        for child_model in (ManagerEngagementTask, ManagerEngagementDeliverable):
            await self.session.execute(
                delete(child_model)
                .where(child_model.manager_engagement_id == engagement_id)
                .execution_options(synchronize_session=False)
            )
        await self.session.flush()
        return True
