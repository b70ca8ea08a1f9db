"""
Engagement options endpoint: every manager's engagements, grouped by manager.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.session import get_db
from consultrack.controllers.manager_engagement_controller import ManagerEngagementController
from consultrack.schemas.manager_engagement import EngagementOptionsResponse

router = APIRouter()


@router.get("/options", response_model=EngagementOptionsResponse)
async def list_engagement_options(
    db: AsyncSession = Depends(get_db),
) -> EngagementOptionsResponse:
    """Engagements of all managers, sorted by manager name then engagement name."""
    controller = ManagerEngagementController(db)
    return await controller.list_engagement_options()
