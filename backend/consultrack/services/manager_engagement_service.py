"""
Manager engagement service (assignment engine).

A write runs in the request's session as: validate, resolve catalog links,
write the root, replace the children as a set, then read the aggregate back
and commit. If the root or children write fails the aggregate is returned to
its prior state before the error propagates, either by rolling back to a
SAVEPOINT or, for stores without savepoints, by compensating writes.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.core.config import settings
from consultrack.core.exceptions import NotFoundError, ValidationError
from consultrack.db.repositories.manager_engagement_repository import ManagerEngagementRepository
from consultrack.db.repositories.user_repository import UserRepository
from consultrack.db.repositories.engagement_assignment_repository import (
    ManagerEngagementTaskRepository,
    ManagerEngagementDeliverableRepository,
)
from consultrack.schemas.manager_engagement import (
    ManagerEngagementCreate,
    ManagerEngagementUpdate,
    ManagerEngagementResponse,
    ManagerEngagementListResponse,
    EngagementOptionsResponse,
)
from consultrack.services.base_service import BaseService
from consultrack.services.eligible_catalog_service import EligibleCatalogService
from consultrack.services.engagement_aggregate_reader import EngagementAggregateReader
from consultrack.utils.normalization import normalize_text

logger = logging.getLogger(__name__)

ChildRows = List[Tuple[str, Optional[int]]]


class ManagerEngagementService(BaseService):
    """Service for per-manager engagement aggregates."""

    def __init__(self, session: AsyncSession, use_savepoints: Optional[bool] = None):
        self.session = session
        self.engagement_repo = ManagerEngagementRepository(session)
        self.task_repo = ManagerEngagementTaskRepository(session)
        self.deliverable_repo = ManagerEngagementDeliverableRepository(session)
        self.user_repo = UserRepository(session)
        self.catalog = EligibleCatalogService(session)
        self.reader = EngagementAggregateReader(session)
        self.use_savepoints = settings.DB_SUPPORTS_SAVEPOINTS if use_savepoints is None else use_savepoints

    async def ensure_manager(self, manager_id: int) -> None:
        """Raise NotFoundError unless manager_id belongs to an existing user."""
        if await self.user_repo.get(manager_id) is None:
            raise NotFoundError("Manager not found")

    async def list_engagements(self, manager_id: int) -> ManagerEngagementListResponse:
        items = await self.reader.list(manager_id)
        return ManagerEngagementListResponse(items=items, total=len(items))

    async def get_engagement(self, manager_id: int, engagement_id: int) -> ManagerEngagementResponse:
        aggregate = await self.reader.get(manager_id, engagement_id)
        if aggregate is None:
            raise NotFoundError("Engagement not found")
        return aggregate

    async def list_engagement_options(self) -> EngagementOptionsResponse:
        return EngagementOptionsResponse(managers=await self.reader.list_all_managers_grouped())

    async def create_engagement(self, manager_id: int, data: ManagerEngagementCreate) -> ManagerEngagementResponse:
        """Create an aggregate for manager_id and return it as stored."""
        code, name = self._validate(data)
        try:
            root_values = {
                "engagement_code": code,
                "engagement_name": name,
                "eligible_engagement_id": await self._resolve_engagement_link(data, code, name),
            }
            tasks = await self._resolve_tasks(data)
            deliverables = await self._resolve_deliverables(data)

            if self.use_savepoints:
                async with self.session.begin_nested():
                    root = await self.engagement_repo.create(manager_id=manager_id, **root_values)
                    await self._replace_children(root.id, tasks, deliverables)
                engagement_id = root.id
            else:
                engagement_id = await self._create_with_compensation(manager_id, root_values, tasks, deliverables)

            aggregate = await self.reader.get(manager_id, engagement_id)
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to create engagement",
                extra={"manager_id": manager_id, "exception_type": type(exc).__name__},
            )
            raise self.store_error(exc, "Failed to create engagement") from exc

        logger.info(
            "Created manager engagement",
            extra={"manager_id": manager_id, "engagement_id": engagement_id},
        )
        return aggregate

    async def update_engagement(
        self,
        manager_id: int,
        engagement_id: int,
        data: ManagerEngagementUpdate,
    ) -> ManagerEngagementResponse:
        """Overwrite an aggregate's root fields and replace its children."""
        code, name = self._validate(data)
        existing = await self.engagement_repo.get_for_manager(manager_id, engagement_id)
        if existing is None:
            raise NotFoundError("Engagement not found")

        try:
            root_values = {
                "engagement_code": code,
                "engagement_name": name,
                "eligible_engagement_id": await self._resolve_engagement_link(data, code, name),
            }
            tasks = await self._resolve_tasks(data)
            deliverables = await self._resolve_deliverables(data)

            if self.use_savepoints:
                async with self.session.begin_nested():
                    await self.engagement_repo.update_for_manager(manager_id, engagement_id, **root_values)
                    await self._replace_children(engagement_id, tasks, deliverables)
            else:
                await self._update_with_compensation(existing, root_values, tasks, deliverables)

            aggregate = await self.reader.get(manager_id, engagement_id)
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to update engagement",
                extra={
                    "manager_id": manager_id,
                    "engagement_id": engagement_id,
                    "exception_type": type(exc).__name__,
                },
            )
            raise self.store_error(exc, "Failed to update engagement") from exc

        logger.info(
            "Updated manager engagement",
            extra={"manager_id": manager_id, "engagement_id": engagement_id},
        )
        return aggregate

    async def delete_engagement(self, manager_id: int, engagement_id: int) -> None:
        """Delete an aggregate; someone else's engagement is reported as not found."""
        try:
            deleted = await self.engagement_repo.delete_for_manager(manager_id, engagement_id)
            if deleted:
                await self.session.commit()
        except SQLAlchemyError as exc:
            raise self.store_error(exc, "Failed to delete engagement") from exc
        if not deleted:
            raise NotFoundError("Engagement not found")
        logger.info(
            "Deleted manager engagement",
            extra={"manager_id": manager_id, "engagement_id": engagement_id},
        )

    @staticmethod
    def _validate(data: ManagerEngagementCreate) -> Tuple[str, str]:
        code = normalize_text(data.engagement_code)
        name = normalize_text(data.engagement_name)
        if not code or not name:
            raise ValidationError("Engagement code and name are required")
        return code, name

    async def _resolve_engagement_link(self, data: ManagerEngagementCreate, code: str, name: str) -> int:
        # An explicit id is trusted as-is, even if it points nowhere
        if data.eligible_engagement_id is not None:
            return data.eligible_engagement_id
        entry = await self.catalog.upsert_engagement(code, name)
        return entry.id

    async def _resolve_tasks(self, data: ManagerEngagementCreate) -> ChildRows:
        rows: ChildRows = []
        for task in data.tasks:
            label = normalize_text(task.label)
            if not label:
                continue
            link_id = task.eligible_task_id
            if link_id is None and data.link_catalog:
                link_id = await self.catalog.resolve_or_create_task(label, task.macroprocess, task.process)
            rows.append((label, link_id))
        return rows

    async def _resolve_deliverables(self, data: ManagerEngagementCreate) -> ChildRows:
        rows: ChildRows = []
        for deliverable in data.deliverables:
            label = normalize_text(deliverable.label)
            if not label:
                continue
            link_id = deliverable.eligible_deliverable_id
            if link_id is None and data.link_catalog:
                link_id = await self.catalog.resolve_or_create_deliverable(label, deliverable.periodicity)
            rows.append((label, link_id))
        return rows

    async def _replace_children(self, engagement_id: int, tasks: ChildRows, deliverables: ChildRows) -> None:
        await self.task_repo.delete_by_engagement(engagement_id)
        await self.task_repo.insert_many(engagement_id, tasks)
        await self.deliverable_repo.delete_by_engagement(engagement_id)
        await self.deliverable_repo.insert_many(engagement_id, deliverables)

    async def _create_with_compensation(
        self,
        manager_id: int,
        root_values: Dict[str, Any],
        tasks: ChildRows,
        deliverables: ChildRows,
    ) -> int:
        # Writes here must not go through flush: a failed flush would leave no
        # usable session to compensate with
        root = await self.engagement_repo.insert_row(manager_id=manager_id, **root_values)
        engagement_id = root.id
        try:
            await self._replace_children(engagement_id, tasks, deliverables)
        except Exception:
            logger.warning(
                "Compensating failed engagement create",
                extra={"manager_id": manager_id, "engagement_id": engagement_id},
            )
            await self._compensate(self._undo_create(engagement_id), engagement_id)
            raise
        return engagement_id

    async def _update_with_compensation(
        self,
        existing,
        root_values: Dict[str, Any],
        tasks: ChildRows,
        deliverables: ChildRows,
    ) -> None:
        engagement_id = existing.id
        previous_root = self.engagement_repo.snapshot(existing)
        previous_tasks = [
            self.task_repo.snapshot(row) for row in await self.task_repo.list_by_engagements([engagement_id])
        ]
        previous_deliverables = [
            self.deliverable_repo.snapshot(row)
            for row in await self.deliverable_repo.list_by_engagements([engagement_id])
        ]

        try:
            await self.engagement_repo.update_for_manager(existing.manager_id, engagement_id, **root_values)
            await self._replace_children(engagement_id, tasks, deliverables)
        except Exception:
            logger.warning(
                "Compensating failed engagement update",
                extra={"manager_id": existing.manager_id, "engagement_id": engagement_id},
            )
            await self._compensate(
                self._undo_update(previous_root, previous_tasks, previous_deliverables),
                engagement_id,
            )
            raise

    async def _undo_create(self, engagement_id: int) -> None:
        await self.task_repo.delete_by_engagement(engagement_id)
        await self.deliverable_repo.delete_by_engagement(engagement_id)
        await self.engagement_repo.delete(engagement_id)

    async def _undo_update(
        self,
        previous_root: Dict[str, Any],
        previous_tasks: Sequence[Dict[str, Any]],
        previous_deliverables: Sequence[Dict[str, Any]],
    ) -> None:
        engagement_id = previous_root["id"]
        await self.engagement_repo.restore(previous_root)
        await self.task_repo.delete_by_engagement(engagement_id)
        await self.task_repo.restore_rows(previous_tasks)
        await self.deliverable_repo.delete_by_engagement(engagement_id)
        await self.deliverable_repo.restore_rows(previous_deliverables)

    @staticmethod
    async def _compensate(undo, engagement_id: int) -> None:
        """Run an undo coroutine; its own failure is logged, never raised."""
        try:
            await undo
        except Exception:
            logger.exception(
                "Compensation failed, aggregate may be left partially written",
                extra={"engagement_id": engagement_id},
            )
