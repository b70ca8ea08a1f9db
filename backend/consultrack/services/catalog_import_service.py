"""
Bulk import of eligible catalog records.

Each raw record is classified independently as created, updated or skipped.
The whole batch shares one session and is committed once at the end; every
item's write runs in its own SAVEPOINT (when the store supports it) so one
failing item doesn't poison the rest of the batch. Item writes are single
INSERT/UPDATE statements, never a flush, so without savepoints a failed item
still leaves the session usable.
"""

import logging
from contextlib import nullcontext
from typing import Any, Callable, Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.core.config import settings
from consultrack.core.exceptions import ValidationError
from consultrack.db.repositories.catalog_repository import CatalogRepository
from consultrack.db.repositories.eligible_engagement_repository import EligibleEngagementRepository
from consultrack.db.repositories.eligible_task_repository import EligibleTaskRepository
from consultrack.db.repositories.eligible_deliverable_repository import EligibleDeliverableRepository
from consultrack.models.eligible_catalog import DeliverablePeriodicity
from consultrack.schemas.eligible_catalog import (
    EligibleEngagementResponse,
    EligibleEngagementImportResult,
    EligibleTaskResponse,
    EligibleTaskImportResult,
    EligibleDeliverableResponse,
    EligibleDeliverableImportResult,
    SkippedImportItem,
)
from consultrack.services.base_service import BaseService
from consultrack.utils.normalization import (
    deliverable_key,
    engagement_key,
    normalize_text,
    parse_periodicity,
    task_key,
)

logger = logging.getLogger(__name__)

SAVE_FAILED_REASON = "could not be saved"

# parse(raw) -> (natural key, field values) or (None, reason)
Parser = Callable[[Dict[str, Any]], Tuple[Optional[tuple], Any]]


def _text(raw: Dict[str, Any], *names: str) -> str:
    """First present field among `names`, coerced to trimmed text."""
    for name in names:
        value = raw.get(name)
        if value is None:
            continue
        return normalize_text(value if isinstance(value, str) else str(value))
    return ""


def parse_engagement(raw: Dict[str, Any]):
    # Rows copied from manager engagements carry engagement_code / engagement_name
    code = _text(raw, "code", "engagement_code")
    name = _text(raw, "name", "engagement_name")
    if not code:
        return None, "code is required"
    if not name:
        return None, "name is required"
    return (engagement_key(code),), {"code": code, "name": name}


def parse_task(raw: Dict[str, Any]):
    values = {
        "macroprocess": _text(raw, "macroprocess"),
        "process": _text(raw, "process"),
        "label": _text(raw, "label"),
    }
    for field in ("macroprocess", "process", "label"):
        if not values[field]:
            return None, f"{field} is required"
    return task_key(**values), values


def parse_deliverable(raw: Dict[str, Any]):
    label = _text(raw, "label")
    if not label:
        return None, "label is required"
    raw_periodicity = raw.get("periodicity")
    if raw_periodicity is None or (isinstance(raw_periodicity, str) and not raw_periodicity.strip()):
        return None, "periodicity is required"
    periodicity = parse_periodicity(raw_periodicity)
    if periodicity is None:
        allowed = ", ".join(p.value for p in DeliverablePeriodicity)
        return None, f"invalid periodicity '{raw_periodicity}' (expected one of: {allowed})"
    return deliverable_key(label, periodicity), {"label": label, "periodicity": periodicity}


class CatalogImportService(BaseService):
    """Service for importing catalog records in bulk."""

    def __init__(self, session: AsyncSession, use_savepoints: Optional[bool] = None):
        self.session = session
        self.engagement_repo = EligibleEngagementRepository(session)
        self.task_repo = EligibleTaskRepository(session)
        self.deliverable_repo = EligibleDeliverableRepository(session)
        self.use_savepoints = settings.DB_SUPPORTS_SAVEPOINTS if use_savepoints is None else use_savepoints

    async def import_engagements(self, items: List[Any]) -> EligibleEngagementImportResult:
        """Import catalog engagements; matching codes get their name refreshed."""
        created, updated, skipped = await self._import(
            "engagements", items, parse_engagement, self.engagement_repo
        )
        return EligibleEngagementImportResult(
            created=[EligibleEngagementResponse.model_validate(e) for e in created],
            updated=[EligibleEngagementResponse.model_validate(e) for e in updated],
            skipped=skipped,
        )

    async def import_tasks(self, items: List[Any]) -> EligibleTaskImportResult:
        """Import catalog tasks keyed by (macroprocess, process, label)."""
        created, updated, skipped = await self._import("tasks", items, parse_task, self.task_repo)
        return EligibleTaskImportResult(
            created=[EligibleTaskResponse.model_validate(e) for e in created],
            updated=[EligibleTaskResponse.model_validate(e) for e in updated],
            skipped=skipped,
        )

    async def import_deliverables(self, items: List[Any]) -> EligibleDeliverableImportResult:
        """Import catalog deliverables keyed by (label, periodicity)."""
        created, updated, skipped = await self._import(
            "deliverables", items, parse_deliverable, self.deliverable_repo
        )
        return EligibleDeliverableImportResult(
            created=[EligibleDeliverableResponse.model_validate(e) for e in created],
            updated=[EligibleDeliverableResponse.model_validate(e) for e in updated],
            skipped=skipped,
        )

    def _item_scope(self):
        if self.use_savepoints:
            return self.session.begin_nested()
        return nullcontext()

    async def _import(
        self,
        catalog: str,
        items: List[Any],
        parse: Parser,
        repo: CatalogRepository,
    ):
        if not items:
            raise ValidationError(f"At least one {catalog[:-1]} is required to import")

        created: list = []
        updated: list = []
        skipped: List[SkippedImportItem] = []

        for index, raw in enumerate(items):
            if not isinstance(raw, dict):
                skipped.append(SkippedImportItem(input={"value": raw}, reason="record must be an object"))
                continue

            key, parsed = parse(raw)
            if key is None:
                logger.warning(
                    f"Skipping {catalog} import item: {parsed}",
                    extra={"index": index},
                )
                skipped.append(SkippedImportItem(input=raw, reason=parsed))
                continue

            try:
                async with self._item_scope():
                    existing = await repo.get_by_natural_key(key)
                    if existing is None:
                        created.append(await repo.insert_row(**parsed))
                        continue
                    display = {f: parsed[f] for f in repo.display_fields if f in parsed}
                    updated.append(await repo.update(existing.id, updated_at=func.now(), **display))
            except SQLAlchemyError as exc:
                logger.warning(
                    f"Failed to save {catalog} import item",
                    extra={"index": index, "exception_type": type(exc).__name__},
                )
                skipped.append(SkippedImportItem(input=raw, reason=SAVE_FAILED_REASON))

        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise self.store_error(exc, f"Failed to import {catalog}") from exc

        logger.info(
            f"Imported eligible {catalog}",
            extra={"created": len(created), "updated": len(updated), "skipped": len(skipped)},
        )
        return created, updated, skipped
