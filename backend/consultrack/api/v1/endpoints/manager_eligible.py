"""
Eligible catalog search for managers.
"""

from typing import Optional, Union
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.session import get_db
from consultrack.controllers.eligible_catalog_controller import EligibleCatalogController
from consultrack.schemas.eligible_catalog import (
    EligibleEngagementListResponse,
    EligibleTaskListResponse,
    EligibleDeliverableListResponse,
)

router = APIRouter()


@router.get(
    "/{catalog}",
    response_model=Union[EligibleEngagementListResponse, EligibleTaskListResponse, EligibleDeliverableListResponse],
)
async def search_eligible(
    catalog: str,
    q: str = Query("", max_length=255),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """
    Case-insensitive substring search over one catalog.
    An empty query returns the first entries in natural-key order.
    """
    controller = EligibleCatalogController(db)
    return await controller.search(catalog, q, limit)
