"""
Eligible catalog service with business logic.

Admin CRUD over the three catalogs commits its own work. The upsert and
resolve_or_create helpers only flush: they run inside the caller's
transaction (the assignment engine) and never commit on their own.
"""

import logging
from typing import List, Optional, Sequence, Any, Dict
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.core.config import settings
from consultrack.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from consultrack.db.repositories.catalog_repository import CatalogRepository
from consultrack.db.repositories.eligible_engagement_repository import EligibleEngagementRepository
from consultrack.db.repositories.eligible_task_repository import EligibleTaskRepository
from consultrack.db.repositories.eligible_deliverable_repository import EligibleDeliverableRepository
from consultrack.models.eligible_catalog import DeliverablePeriodicity, EligibleEngagement
from consultrack.schemas.eligible_catalog import (
    EligibleEngagementCreate,
    EligibleEngagementUpdate,
    EligibleEngagementResponse,
    EligibleTaskCreate,
    EligibleTaskUpdate,
    EligibleTaskResponse,
    EligibleDeliverableCreate,
    EligibleDeliverableUpdate,
    EligibleDeliverableResponse,
)
from consultrack.services.base_service import BaseService
from consultrack.utils.normalization import (
    deliverable_key,
    engagement_key,
    normalize_text,
    task_key,
)

logger = logging.getLogger(__name__)


class EligibleCatalogService(BaseService):
    """Service for eligible engagement/task/deliverable catalogs."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.engagement_repo = EligibleEngagementRepository(session)
        self.task_repo = EligibleTaskRepository(session)
        self.deliverable_repo = EligibleDeliverableRepository(session)

    @staticmethod
    def clamp_limit(limit: Optional[int]) -> int:
        """Search page size bounded by configuration."""
        if limit is None:
            return settings.CATALOG_SEARCH_LIMIT
        return max(1, min(limit, settings.CATALOG_SEARCH_MAX_LIMIT))

    # Engagements

    async def list_engagements(self) -> List[EligibleEngagementResponse]:
        entries = await self.engagement_repo.list_all()
        return [EligibleEngagementResponse.model_validate(e) for e in entries]

    async def search_engagements(self, query: str = "", limit: Optional[int] = None) -> List[EligibleEngagementResponse]:
        entries = await self.engagement_repo.search(query, self.clamp_limit(limit))
        return [EligibleEngagementResponse.model_validate(e) for e in entries]

    async def create_engagement(self, data: EligibleEngagementCreate) -> EligibleEngagementResponse:
        """Create a catalog engagement. Fails with DuplicateKeyError if the code exists."""
        values = self._engagement_values(data.code, data.name)
        entry = await self._create(self.engagement_repo, (engagement_key(values["code"]),), values, "engagement")
        return EligibleEngagementResponse.model_validate(entry)

    async def update_engagement(self, engagement_id: int, data: EligibleEngagementUpdate) -> EligibleEngagementResponse:
        values = self._engagement_values(data.code, data.name)
        entry = await self._update(
            self.engagement_repo, engagement_id, (engagement_key(values["code"]),), values, "engagement"
        )
        return EligibleEngagementResponse.model_validate(entry)

    async def delete_engagement(self, engagement_id: int) -> None:
        await self._delete(self.engagement_repo, engagement_id, "engagement")

    async def upsert_engagement(self, code: str, name: str) -> EligibleEngagement:
        """
        Insert-if-absent by code, then set the name to the latest value seen.
        Does not commit.
        """
        values = self._engagement_values(code, name)
        return await self.engagement_repo.upsert_by_natural_key((engagement_key(values["code"]),), values)

    # Tasks

    async def list_tasks(self) -> List[EligibleTaskResponse]:
        entries = await self.task_repo.list_all()
        return [EligibleTaskResponse.model_validate(e) for e in entries]

    async def search_tasks(self, query: str = "", limit: Optional[int] = None) -> List[EligibleTaskResponse]:
        entries = await self.task_repo.search(query, self.clamp_limit(limit))
        return [EligibleTaskResponse.model_validate(e) for e in entries]

    async def create_task(self, data: EligibleTaskCreate) -> EligibleTaskResponse:
        values = self._task_values(data.macroprocess, data.process, data.label, require_path=True)
        entry = await self._create(self.task_repo, task_key(**values), values, "task")
        return EligibleTaskResponse.model_validate(entry)

    async def update_task(self, task_id: int, data: EligibleTaskUpdate) -> EligibleTaskResponse:
        values = self._task_values(data.macroprocess, data.process, data.label, require_path=True)
        entry = await self._update(self.task_repo, task_id, task_key(**values), values, "task")
        return EligibleTaskResponse.model_validate(entry)

    async def delete_task(self, task_id: int) -> None:
        await self._delete(self.task_repo, task_id, "task")

    async def resolve_or_create_task(
        self,
        label: str,
        macroprocess: Optional[str] = None,
        process: Optional[str] = None,
    ) -> int:
        """
        Id of the catalog task with this natural key, creating it if absent.
        Blank macroprocess/process are allowed here. Does not commit.
        """
        values = self._task_values(macroprocess, process, label, require_path=False)
        entry = await self.task_repo.upsert_by_natural_key(task_key(**values), values)
        return entry.id

    # Deliverables

    async def list_deliverables(self) -> List[EligibleDeliverableResponse]:
        entries = await self.deliverable_repo.list_all()
        return [EligibleDeliverableResponse.model_validate(e) for e in entries]

    async def search_deliverables(self, query: str = "", limit: Optional[int] = None) -> List[EligibleDeliverableResponse]:
        entries = await self.deliverable_repo.search(query, self.clamp_limit(limit))
        return [EligibleDeliverableResponse.model_validate(e) for e in entries]

    async def create_deliverable(self, data: EligibleDeliverableCreate) -> EligibleDeliverableResponse:
        values = self._deliverable_values(data.label, data.periodicity)
        key = deliverable_key(values["label"], values["periodicity"])
        entry = await self._create(self.deliverable_repo, key, values, "deliverable")
        return EligibleDeliverableResponse.model_validate(entry)

    async def update_deliverable(self, deliverable_id: int, data: EligibleDeliverableUpdate) -> EligibleDeliverableResponse:
        values = self._deliverable_values(data.label, data.periodicity)
        key = deliverable_key(values["label"], values["periodicity"])
        entry = await self._update(self.deliverable_repo, deliverable_id, key, values, "deliverable")
        return EligibleDeliverableResponse.model_validate(entry)

    async def delete_deliverable(self, deliverable_id: int) -> None:
        await self._delete(self.deliverable_repo, deliverable_id, "deliverable")

    async def resolve_or_create_deliverable(
        self,
        label: str,
        periodicity: Optional[DeliverablePeriodicity] = None,
    ) -> int:
        """
        Id of the catalog deliverable for (label, periodicity), creating it if
        absent. A missing periodicity means not_applicable. Does not commit.
        """
        values = self._deliverable_values(label, periodicity or DeliverablePeriodicity.NOT_APPLICABLE)
        key = deliverable_key(values["label"], values["periodicity"])
        entry = await self.deliverable_repo.upsert_by_natural_key(key, values)
        return entry.id

    # Shared write paths

    async def _create(self, repo: CatalogRepository, key: Sequence[Any], values: Dict[str, Any], kind: str):
        if await repo.get_by_natural_key(key) is not None:
            raise DuplicateKeyError(f"Eligible {kind} already exists", details={"key": list(key)})
        try:
            entry = await repo.create(**values)
            await self.session.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent insert of the same key
            raise DuplicateKeyError(f"Eligible {kind} already exists", details={"key": list(key)}) from exc
        except SQLAlchemyError as exc:
            raise self.store_error(exc, f"Failed to create eligible {kind}") from exc
        logger.info(f"Created eligible {kind}", extra={"id": entry.id})
        return entry

    async def _update(self, repo: CatalogRepository, entry_id: int, key: Sequence[Any], values: Dict[str, Any], kind: str):
        if await repo.get(entry_id) is None:
            raise NotFoundError(f"Eligible {kind} not found")
        if await repo.get_by_natural_key(key, exclude_id=entry_id) is not None:
            raise DuplicateKeyError(f"Eligible {kind} already exists", details={"key": list(key)})
        try:
            entry = await repo.update(entry_id, **values)
            await self.session.commit()
        except IntegrityError as exc:
            raise DuplicateKeyError(f"Eligible {kind} already exists", details={"key": list(key)}) from exc
        except SQLAlchemyError as exc:
            raise self.store_error(exc, f"Failed to update eligible {kind}") from exc
        logger.info(f"Updated eligible {kind}", extra={"id": entry_id})
        return entry

    async def _delete(self, repo: CatalogRepository, entry_id: int, kind: str) -> None:
        # Assignments linked to the entry keep its id as a dangling weak reference
        try:
            deleted = await repo.delete(entry_id)
        except SQLAlchemyError as exc:
            raise self.store_error(exc, f"Failed to delete eligible {kind}") from exc
        if not deleted:
            raise NotFoundError(f"Eligible {kind} not found")
        await self.session.commit()
        logger.info(f"Deleted eligible {kind}", extra={"id": entry_id})

    # Field validation

    @staticmethod
    def _engagement_values(code: Optional[str], name: Optional[str]) -> Dict[str, Any]:
        code = normalize_text(code)
        name = normalize_text(name)
        if not code or not name:
            raise ValidationError("Engagement code and name are required")
        return {"code": code, "name": name}

    @staticmethod
    def _task_values(
        macroprocess: Optional[str],
        process: Optional[str],
        label: Optional[str],
        require_path: bool,
    ) -> Dict[str, Any]:
        values = {
            "macroprocess": normalize_text(macroprocess),
            "process": normalize_text(process),
            "label": normalize_text(label),
        }
        if not values["label"]:
            raise ValidationError("Task label is required")
        if require_path and (not values["macroprocess"] or not values["process"]):
            raise ValidationError("Task macroprocess, process and label are required")
        return values

    @staticmethod
    def _deliverable_values(label: Optional[str], periodicity: DeliverablePeriodicity) -> Dict[str, Any]:
        label = normalize_text(label)
        if not label:
            raise ValidationError("Deliverable label is required")
        return {"label": label, "periodicity": DeliverablePeriodicity(periodicity)}
