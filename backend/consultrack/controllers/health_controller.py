"""
Health controller.
Coordinates health service to return health status.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.controllers.base_controller import BaseController
from consultrack.schemas.health import HealthResponse
from consultrack.services.health_service import HealthService


class HealthController(BaseController):
    """Controller for health check operations."""
    
    def __init__(self, session: AsyncSession):
        self.health_service = HealthService(session)
    
    async def get_health(self) -> HealthResponse:
        """Get system health status."""
        return await self.health_service.get_health()
