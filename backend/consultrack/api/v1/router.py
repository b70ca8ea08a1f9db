"""
API v1 router that aggregates all endpoint routers.
All routes require authentication except health.
"""

from fastapi import APIRouter, Depends

from consultrack.api.v1.middleware import require_admin, require_authentication, require_manager
from consultrack.api.v1.endpoints import (
    health,
    eligible_catalog,
    manager_eligible,
    manager_engagements,
    engagement_options,
)

api_router = APIRouter()

# Public routes (no authentication required)
api_router.include_router(health.router, tags=["health"])

# Protected routes, role enforced at the router level
api_router.include_router(
    eligible_catalog.router,
    prefix="/admin/eligible",
    tags=["eligible-catalog"],
    dependencies=[Depends(require_admin)],
)
api_router.include_router(
    manager_eligible.router,
    prefix="/manager/eligible",
    tags=["eligible-catalog"],
    dependencies=[Depends(require_manager)],
)
api_router.include_router(
    manager_engagements.router,
    prefix="/manager/engagements",
    tags=["manager-engagements"],
)
api_router.include_router(
    engagement_options.router,
    prefix="/engagements",
    tags=["manager-engagements"],
    dependencies=[Depends(require_authentication)],
)
