"""
Eligible deliverable repository for database operations.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.repositories.catalog_repository import CatalogRepository
from consultrack.models.eligible_catalog import EligibleDeliverable


class EligibleDeliverableRepository(CatalogRepository[EligibleDeliverable]):
    """
    Repository for catalog deliverables, keyed by (label, periodicity).
    The same label may exist once per periodicity.
    """
    
    key_fields = ("label", "periodicity")
    exact_fields = ("periodicity",)
    
    def __init__(self, session: AsyncSession):
        super().__init__(EligibleDeliverable, session)
