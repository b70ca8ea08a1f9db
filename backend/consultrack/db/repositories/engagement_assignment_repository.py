"""
Task and deliverable assignment repositories.

Assignments are only ever replaced as a set: delete everything under an
aggregate, then insert the new list in order. Reads are batched over many
aggregate ids with a single IN (...) query per table.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Type
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, insert

from consultrack.db.repositories.base_repository import BaseRepository, ModelType
from consultrack.models.eligible_catalog import DeliverablePeriodicity, EligibleDeliverable
from consultrack.models.manager_engagement import (
    ManagerEngagementTask,
    ManagerEngagementDeliverable,
)


class EngagementAssignmentRepository(BaseRepository[ModelType]):
    """Common operations for rows owned by a manager engagement."""

    # Name of the weak-reference column into the catalog
    link_field: str = ""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        super().__init__(model, session)

    async def list_by_engagements(self, engagement_ids: Sequence[int]) -> List[ModelType]:
        """All rows for the given aggregates, in insertion (id) order. One query."""
        if not engagement_ids:
            return []
        result = await self.session.execute(
            select(self.model)
            .where(self.model.manager_engagement_id.in_(list(engagement_ids)))
            .order_by(self.model.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def delete_by_engagement(self, engagement_id: int) -> int:
        """Delete every row under one aggregate. Returns rows affected."""
        result = await self.session.execute(
            delete(self.model)
            .where(self.model.manager_engagement_id == engagement_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount

    async def insert_many(
        self,
        engagement_id: int,
        items: Sequence[Tuple[str, Optional[int]]],
    ) -> int:
        """
        Insert (label, eligible id) pairs under an aggregate, preserving order.

        Rows go out as one INSERT rather than through the unit of work, so a
        constraint failure leaves the session usable for compensation.

        Returns:
            Number of rows inserted
        """
        rows = [
            {"manager_engagement_id": engagement_id, "label": label, self.link_field: link_id}
            for label, link_id in items
        ]
        if not rows:
            return 0
        await self.session.execute(insert(self.model), rows)
        return len(rows)

    async def restore_rows(self, rows: Sequence[Dict[str, Any]]) -> None:
        """Re-insert snapshot rows with their original ids and timestamps."""
        if not rows:
            return
        await self.session.execute(insert(self.model), [dict(row) for row in rows])
        await self.session.flush()


class ManagerEngagementTaskRepository(EngagementAssignmentRepository[ManagerEngagementTask]):
    """Repository for task assignments."""

    link_field = "eligible_task_id"

    def __init__(self, session: AsyncSession):
        super().__init__(ManagerEngagementTask, session)


class ManagerEngagementDeliverableRepository(EngagementAssignmentRepository[ManagerEngagementDeliverable]):
    """Repository for deliverable assignments."""

    link_field = "eligible_deliverable_id"

    def __init__(self, session: AsyncSession):
        super().__init__(ManagerEngagementDeliverable, session)

    async def list_with_periodicity(
        self,
        engagement_ids: Sequence[int],
    ) -> List[Tuple[ManagerEngagementDeliverable, Optional[DeliverablePeriodicity]]]:
        """
        Deliverable rows for many aggregates with the periodicity of their linked
        catalog entry, resolved by a single LEFT JOIN. Unlinked or dangling
        links yield None.
        """
        if not engagement_ids:
            return []
        result = await self.session.execute(
            select(ManagerEngagementDeliverable, EligibleDeliverable.periodicity)
            .outerjoin(
                EligibleDeliverable,
                EligibleDeliverable.id == ManagerEngagementDeliverable.eligible_deliverable_id,
            )
            .where(ManagerEngagementDeliverable.manager_engagement_id.in_(list(engagement_ids)))
            .order_by(ManagerEngagementDeliverable.id)
            .execution_options(populate_existing=True)
        )
        return [(row[0], row[1]) for row in result.all()]
