"""
Aggregate reader for manager engagements.

Roots are fetched first, then each child table is read once with an IN (...)
over all collected root ids; deliverables resolve their periodicity through a
single LEFT JOIN to the catalog. The number of queries does not grow with the
number of aggregates.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.repositories.manager_engagement_repository import ManagerEngagementRepository
from consultrack.db.repositories.engagement_assignment_repository import (
    ManagerEngagementTaskRepository,
    ManagerEngagementDeliverableRepository,
)
from consultrack.models.manager_engagement import ManagerEngagement
from consultrack.schemas.manager_engagement import (
    ManagerEngagementResponse,
    ManagerEngagementTaskResponse,
    ManagerEngagementDeliverableResponse,
    ManagerEngagementGroup,
    ManagerSummary,
)
from consultrack.services.base_service import BaseService

logger = logging.getLogger(__name__)


class EngagementAggregateReader(BaseService):
    """Reconstructs full manager engagement aggregates with batched queries."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.engagement_repo = ManagerEngagementRepository(session)
        self.task_repo = ManagerEngagementTaskRepository(session)
        self.deliverable_repo = ManagerEngagementDeliverableRepository(session)

    async def get(self, manager_id: int, engagement_id: int) -> Optional[ManagerEngagementResponse]:
        """One aggregate owned by manager_id, or None."""
        root = await self.engagement_repo.get_for_manager(manager_id, engagement_id)
        if root is None:
            return None
        aggregates = await self._assemble([root])
        return aggregates[0]

    async def list(self, manager_id: int) -> List[ManagerEngagementResponse]:
        """All aggregates owned by manager_id, ordered by engagement name."""
        roots = await self.engagement_repo.list_by_manager(manager_id)
        return await self._assemble(roots)

    async def list_all_managers_grouped(self) -> List[ManagerEngagementGroup]:
        """
        Every manager that owns at least one engagement, with their aggregates.
        Sorted by manager name, then engagement name (case-insensitive).
        """
        rows = await self.engagement_repo.list_with_managers()
        aggregates = await self._assemble([root for root, _ in rows])

        groups: List[ManagerEngagementGroup] = []
        by_manager: Dict[int, ManagerEngagementGroup] = {}
        for (root, user), aggregate in zip(rows, aggregates):
            group = by_manager.get(user.id)
            if group is None:
                group = ManagerEngagementGroup(
                    manager=ManagerSummary(id=user.id, name=user.name, email=user.email),
                )
                by_manager[user.id] = group
                groups.append(group)
            group.engagements.append(aggregate)
        return groups

    async def _assemble(self, roots: Sequence[ManagerEngagement]) -> List[ManagerEngagementResponse]:
        if not roots:
            return []
        ids = [root.id for root in roots]

        tasks_by_root: Dict[int, List[ManagerEngagementTaskResponse]] = defaultdict(list)
        for task in await self.task_repo.list_by_engagements(ids):
            tasks_by_root[task.manager_engagement_id].append(
                ManagerEngagementTaskResponse.model_validate(task)
            )

        deliverables_by_root: Dict[int, List[ManagerEngagementDeliverableResponse]] = defaultdict(list)
        for deliverable, periodicity in await self.deliverable_repo.list_with_periodicity(ids):
            deliverables_by_root[deliverable.manager_engagement_id].append(
                ManagerEngagementDeliverableResponse(
                    id=deliverable.id,
                    manager_engagement_id=deliverable.manager_engagement_id,
                    label=deliverable.label,
                    eligible_deliverable_id=deliverable.eligible_deliverable_id,
                    periodicity=periodicity,
                    created_at=deliverable.created_at,
                    updated_at=deliverable.updated_at,
                )
            )

        return [
            ManagerEngagementResponse(
                id=root.id,
                manager_id=root.manager_id,
                engagement_code=root.engagement_code,
                engagement_name=root.engagement_name,
                eligible_engagement_id=root.eligible_engagement_id,
                created_at=root.created_at,
                updated_at=root.updated_at,
                tasks=tasks_by_root.get(root.id, []),
                deliverables=deliverables_by_root.get(root.id, []),
            )
            for root in roots
        ]
