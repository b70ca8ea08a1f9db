"""
Manager engagement API endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.session import get_db
from consultrack.api.v1.middleware import require_manager
from consultrack.controllers.manager_engagement_controller import ManagerEngagementController
from consultrack.schemas.actor import Actor
from consultrack.schemas.manager_engagement import (
    ManagerEngagementCreate,
    ManagerEngagementUpdate,
    ManagerEngagementResponse,
    ManagerEngagementListResponse,
)

router = APIRouter()


@router.get("", response_model=ManagerEngagementListResponse)
async def list_manager_engagements(
    manager_id: Optional[int] = Query(None, description="Admin only: act for this manager"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_manager),
) -> ManagerEngagementListResponse:
    """List the manager's engagements with their tasks and deliverables."""
    controller = ManagerEngagementController(db)
    return await controller.list_engagements(actor, manager_id)


@router.post("", response_model=ManagerEngagementResponse, status_code=status.HTTP_201_CREATED)
async def create_manager_engagement(
    engagement_data: ManagerEngagementCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_manager),
) -> ManagerEngagementResponse:
    """Create an engagement with its task and deliverable sets."""
    controller = ManagerEngagementController(db)
    return await controller.create_engagement(actor, engagement_data)


@router.get("/{engagement_id}", response_model=ManagerEngagementResponse)
async def get_manager_engagement(
    engagement_id: int,
    manager_id: Optional[int] = Query(None, description="Admin only: act for this manager"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_manager),
) -> ManagerEngagementResponse:
    """Get one engagement aggregate."""
    controller = ManagerEngagementController(db)
    return await controller.get_engagement(actor, engagement_id, manager_id)


@router.patch("/{engagement_id}", response_model=ManagerEngagementResponse)
async def update_manager_engagement(
    engagement_id: int,
    engagement_data: ManagerEngagementUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_manager),
) -> ManagerEngagementResponse:
    """Replace an engagement; tasks and deliverables are replaced as whole sets."""
    controller = ManagerEngagementController(db)
    return await controller.update_engagement(actor, engagement_id, engagement_data)


@router.delete("/{engagement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_manager_engagement(
    engagement_id: int,
    manager_id: Optional[int] = Query(None, description="Admin only: act for this manager"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_manager),
):
    """Delete an engagement and its tasks and deliverables."""
    controller = ManagerEngagementController(db)
    await controller.delete_engagement(actor, engagement_id, manager_id)
