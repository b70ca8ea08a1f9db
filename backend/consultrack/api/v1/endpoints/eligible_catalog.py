"""
Eligible catalog admin API endpoints.
"""

from datetime import date
from typing import Any, List, Union
from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.session import get_db
from consultrack.controllers.eligible_catalog_controller import EligibleCatalogController
from consultrack.services.catalog_excel_service import XLSX_MEDIA_TYPE
from consultrack.schemas.eligible_catalog import (
    CatalogType,
    CatalogImportRequest,
    EligibleEngagementCreate,
    EligibleEngagementUpdate,
    EligibleEngagementResponse,
    EligibleEngagementListResponse,
    EligibleEngagementImportResult,
    EligibleTaskCreate,
    EligibleTaskUpdate,
    EligibleTaskResponse,
    EligibleTaskListResponse,
    EligibleTaskImportResult,
    EligibleDeliverableCreate,
    EligibleDeliverableUpdate,
    EligibleDeliverableResponse,
    EligibleDeliverableListResponse,
    EligibleDeliverableImportResult,
)

router = APIRouter()

ImportResult = Union[EligibleEngagementImportResult, EligibleTaskImportResult, EligibleDeliverableImportResult]


# Engagements

@router.get("/engagements", response_model=EligibleEngagementListResponse)
async def list_eligible_engagements(
    db: AsyncSession = Depends(get_db),
) -> EligibleEngagementListResponse:
    """List every catalog engagement, ordered by code."""
    controller = EligibleCatalogController(db)
    return await controller.list_engagements()


@router.post("/engagements", response_model=EligibleEngagementResponse, status_code=status.HTTP_201_CREATED)
async def create_eligible_engagement(
    engagement_data: EligibleEngagementCreate,
    db: AsyncSession = Depends(get_db),
) -> EligibleEngagementResponse:
    """Create a catalog engagement."""
    controller = EligibleCatalogController(db)
    return await controller.create_engagement(engagement_data)


@router.patch("/engagements/{engagement_id}", response_model=EligibleEngagementResponse)
async def update_eligible_engagement(
    engagement_id: int,
    engagement_data: EligibleEngagementUpdate,
    db: AsyncSession = Depends(get_db),
) -> EligibleEngagementResponse:
    """Update a catalog engagement."""
    controller = EligibleCatalogController(db)
    return await controller.update_engagement(engagement_id, engagement_data)


@router.delete("/engagements/{engagement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_eligible_engagement(
    engagement_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a catalog engagement. Assignments linked to it keep their id."""
    controller = EligibleCatalogController(db)
    await controller.delete_engagement(engagement_id)


# Tasks

@router.get("/tasks", response_model=EligibleTaskListResponse)
async def list_eligible_tasks(
    db: AsyncSession = Depends(get_db),
) -> EligibleTaskListResponse:
    """List every catalog task."""
    controller = EligibleCatalogController(db)
    return await controller.list_tasks()


@router.post("/tasks", response_model=EligibleTaskResponse, status_code=status.HTTP_201_CREATED)
async def create_eligible_task(
    task_data: EligibleTaskCreate,
    db: AsyncSession = Depends(get_db),
) -> EligibleTaskResponse:
    """Create a catalog task."""
    controller = EligibleCatalogController(db)
    return await controller.create_task(task_data)


@router.patch("/tasks/{task_id}", response_model=EligibleTaskResponse)
async def update_eligible_task(
    task_id: int,
    task_data: EligibleTaskUpdate,
    db: AsyncSession = Depends(get_db),
) -> EligibleTaskResponse:
    """Update a catalog task."""
    controller = EligibleCatalogController(db)
    return await controller.update_task(task_id, task_data)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_eligible_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a catalog task."""
    controller = EligibleCatalogController(db)
    await controller.delete_task(task_id)


# Deliverables

@router.get("/deliverables", response_model=EligibleDeliverableListResponse)
async def list_eligible_deliverables(
    db: AsyncSession = Depends(get_db),
) -> EligibleDeliverableListResponse:
    """List every catalog deliverable."""
    controller = EligibleCatalogController(db)
    return await controller.list_deliverables()


@router.post("/deliverables", response_model=EligibleDeliverableResponse, status_code=status.HTTP_201_CREATED)
async def create_eligible_deliverable(
    deliverable_data: EligibleDeliverableCreate,
    db: AsyncSession = Depends(get_db),
) -> EligibleDeliverableResponse:
    """Create a catalog deliverable."""
    controller = EligibleCatalogController(db)
    return await controller.create_deliverable(deliverable_data)


@router.patch("/deliverables/{deliverable_id}", response_model=EligibleDeliverableResponse)
async def update_eligible_deliverable(
    deliverable_id: int,
    deliverable_data: EligibleDeliverableUpdate,
    db: AsyncSession = Depends(get_db),
) -> EligibleDeliverableResponse:
    """Update a catalog deliverable."""
    controller = EligibleCatalogController(db)
    return await controller.update_deliverable(deliverable_id, deliverable_data)


@router.delete("/deliverables/{deliverable_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_eligible_deliverable(
    deliverable_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a catalog deliverable."""
    controller = EligibleCatalogController(db)
    await controller.delete_deliverable(deliverable_id)


# Import / export

@router.post("/{catalog}/import", response_model=ImportResult)
async def import_catalog(
    catalog: CatalogType,
    payload: Union[CatalogImportRequest, List[Any]] = Body(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Bulk import catalog records.
    Accepts {"items": [...]} or a bare list; bad records come back as skipped.
    """
    items = payload.items if isinstance(payload, CatalogImportRequest) else payload
    controller = EligibleCatalogController(db)
    return await controller.import_items(catalog, items)


@router.post("/{catalog}/import/xlsx", response_model=ImportResult)
async def import_catalog_from_excel(
    catalog: CatalogType,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    """Bulk import catalog records from an uploaded .xlsx workbook."""
    if not (file.filename or "").lower().endswith(".xlsx"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Only .xlsx files are supported.",
        )
    content = await file.read()
    controller = EligibleCatalogController(db)
    return await controller.import_workbook(catalog, content)


@router.get("/{catalog}/export")
async def export_catalog(
    catalog: CatalogType,
    format: str = Query("json", pattern="^(json|xlsx)$"),
    db: AsyncSession = Depends(get_db),
):
    """Export a catalog as a JSON attachment or an Excel workbook."""
    controller = EligibleCatalogController(db)
    filename = f"eligible-{catalog.value}-{date.today().isoformat()}.{format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if format == "xlsx":
        output = await controller.export_workbook(catalog)
        return StreamingResponse(output, media_type=XLSX_MEDIA_TYPE, headers=headers)

    records = await controller.export_records(catalog)
    return JSONResponse(content=records, headers=headers)
