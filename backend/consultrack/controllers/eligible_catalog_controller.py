"""
Eligible catalog controller.
"""

import io
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.controllers.base_controller import BaseController
from consultrack.core.exceptions import ValidationError
from consultrack.services.eligible_catalog_service import EligibleCatalogService
from consultrack.services.catalog_import_service import CatalogImportService
from consultrack.services.catalog_excel_service import CatalogExcelService
from consultrack.schemas.eligible_catalog import (
    CatalogType,
    EligibleEngagementCreate,
    EligibleEngagementUpdate,
    EligibleEngagementResponse,
    EligibleEngagementListResponse,
    EligibleTaskCreate,
    EligibleTaskUpdate,
    EligibleTaskResponse,
    EligibleTaskListResponse,
    EligibleDeliverableCreate,
    EligibleDeliverableUpdate,
    EligibleDeliverableResponse,
    EligibleDeliverableListResponse,
)


def parse_catalog_type(value: str) -> CatalogType:
    """Catalog name from a path segment; unknown names are a validation error."""
    try:
        return CatalogType((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(c.value for c in CatalogType)
        raise ValidationError(f"Unknown catalog type '{value}' (expected one of: {allowed})")


class EligibleCatalogController(BaseController):
    """Controller for eligible catalog operations."""
    
    def __init__(self, session: AsyncSession):
        self.catalog_service = EligibleCatalogService(session)
        self.import_service = CatalogImportService(session)
        self.excel_service = CatalogExcelService(session)
    
    # Engagements
    
    async def list_engagements(self) -> EligibleEngagementListResponse:
        items = await self.catalog_service.list_engagements()
        return EligibleEngagementListResponse(items=items, total=len(items))
    
    async def create_engagement(self, data: EligibleEngagementCreate) -> EligibleEngagementResponse:
        return await self.catalog_service.create_engagement(data)
    
    async def update_engagement(self, engagement_id: int, data: EligibleEngagementUpdate) -> EligibleEngagementResponse:
        return await self.catalog_service.update_engagement(engagement_id, data)
    
    async def delete_engagement(self, engagement_id: int) -> None:
        await self.catalog_service.delete_engagement(engagement_id)
    
    # Tasks
    
    async def list_tasks(self) -> EligibleTaskListResponse:
        items = await self.catalog_service.list_tasks()
        return EligibleTaskListResponse(items=items, total=len(items))
    
    async def create_task(self, data: EligibleTaskCreate) -> EligibleTaskResponse:
        return await self.catalog_service.create_task(data)
    
    async def update_task(self, task_id: int, data: EligibleTaskUpdate) -> EligibleTaskResponse:
        return await self.catalog_service.update_task(task_id, data)
    
    async def delete_task(self, task_id: int) -> None:
        await self.catalog_service.delete_task(task_id)
    
    # Deliverables
    
    async def list_deliverables(self) -> EligibleDeliverableListResponse:
        items = await self.catalog_service.list_deliverables()
        return EligibleDeliverableListResponse(items=items, total=len(items))
    
    async def create_deliverable(self, data: EligibleDeliverableCreate) -> EligibleDeliverableResponse:
        return await self.catalog_service.create_deliverable(data)
    
    async def update_deliverable(self, deliverable_id: int, data: EligibleDeliverableUpdate) -> EligibleDeliverableResponse:
        return await self.catalog_service.update_deliverable(deliverable_id, data)
    
    async def delete_deliverable(self, deliverable_id: int) -> None:
        await self.catalog_service.delete_deliverable(deliverable_id)
    
    # Search, import and export across catalogs
    
    async def search(self, catalog: str, query: str = "", limit: Optional[int] = None):
        """Search one catalog by its type name."""
        catalog_type = parse_catalog_type(catalog)
        if catalog_type == CatalogType.ENGAGEMENTS:
            items = await self.catalog_service.search_engagements(query, limit)
            return EligibleEngagementListResponse(items=items, total=len(items))
        if catalog_type == CatalogType.TASKS:
            items = await self.catalog_service.search_tasks(query, limit)
            return EligibleTaskListResponse(items=items, total=len(items))
        items = await self.catalog_service.search_deliverables(query, limit)
        return EligibleDeliverableListResponse(items=items, total=len(items))
    
    async def import_items(self, catalog: CatalogType, items: List[Any]):
        if catalog == CatalogType.ENGAGEMENTS:
            return await self.import_service.import_engagements(items)
        if catalog == CatalogType.TASKS:
            return await self.import_service.import_tasks(items)
        return await self.import_service.import_deliverables(items)
    
    async def import_workbook(self, catalog: CatalogType, content: bytes):
        items = self.excel_service.read_workbook(content)
        return await self.import_items(catalog, items)
    
    async def export_records(self, catalog: CatalogType) -> List[Dict[str, Any]]:
        return await self.excel_service.export_records(catalog)
    
    async def export_workbook(self, catalog: CatalogType) -> io.BytesIO:
        return await self.excel_service.export_catalog_to_excel(catalog)
