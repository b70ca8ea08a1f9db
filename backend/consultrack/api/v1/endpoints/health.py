"""
Health check endpoint.
Returns system status and uptime information.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.controllers.health_controller import HealthController
from consultrack.db.session import get_db
from consultrack.schemas.health import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def get_health(
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """
    Health check endpoint.
    Returns system status, uptime, and health checks.
    """
    controller = HealthController(db)
    return await controller.get_health()
