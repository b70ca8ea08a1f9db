"""
Manager engagement controller.
Decides which manager an operation is scoped to, then delegates to the engine.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.controllers.base_controller import BaseController
from consultrack.core.exceptions import ValidationError
from consultrack.schemas.actor import Actor
from consultrack.schemas.manager_engagement import (
    ManagerEngagementCreate,
    ManagerEngagementUpdate,
    ManagerEngagementResponse,
    ManagerEngagementListResponse,
    EngagementOptionsResponse,
)
from consultrack.services.manager_engagement_service import ManagerEngagementService


def resolve_manager_id(actor: Actor, requested: Optional[int] = None) -> int:
    """
    Manager id an operation runs for.

    An admin may act for an explicitly supplied manager; every other role is
    always scoped to its own id and a requested id is ignored.
    """
    if actor.is_admin and requested is not None:
        manager_id = requested
    else:
        manager_id = actor.id
    if manager_id is None or manager_id <= 0:
        raise ValidationError("Manager id must be a positive integer")
    return manager_id


class ManagerEngagementController(BaseController):
    """Controller for manager engagement operations."""
    
    def __init__(self, session: AsyncSession):
        self.engagement_service = ManagerEngagementService(session)
    
    async def _scope(self, actor: Actor, requested: Optional[int]) -> int:
        manager_id = resolve_manager_id(actor, requested)
        # The actor's own id was already looked up by authentication
        if manager_id != actor.id:
            await self.engagement_service.ensure_manager(manager_id)
        return manager_id
    
    async def list_engagements(self, actor: Actor, manager_id: Optional[int] = None) -> ManagerEngagementListResponse:
        return await self.engagement_service.list_engagements(await self._scope(actor, manager_id))
    
    async def get_engagement(
        self,
        actor: Actor,
        engagement_id: int,
        manager_id: Optional[int] = None,
    ) -> ManagerEngagementResponse:
        return await self.engagement_service.get_engagement(await self._scope(actor, manager_id), engagement_id)
    
    async def create_engagement(self, actor: Actor, data: ManagerEngagementCreate) -> ManagerEngagementResponse:
        return await self.engagement_service.create_engagement(await self._scope(actor, data.manager_id), data)
    
    async def update_engagement(
        self,
        actor: Actor,
        engagement_id: int,
        data: ManagerEngagementUpdate,
    ) -> ManagerEngagementResponse:
        return await self.engagement_service.update_engagement(
            await self._scope(actor, data.manager_id), engagement_id, data
        )
    
    async def delete_engagement(self, actor: Actor, engagement_id: int, manager_id: Optional[int] = None) -> None:
        await self.engagement_service.delete_engagement(await self._scope(actor, manager_id), engagement_id)
    
    async def list_engagement_options(self) -> EngagementOptionsResponse:
        return await self.engagement_service.list_engagement_options()
