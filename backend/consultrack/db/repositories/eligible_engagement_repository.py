"""
Eligible engagement repository for database operations.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.repositories.catalog_repository import CatalogRepository
from consultrack.models.eligible_catalog import EligibleEngagement


class EligibleEngagementRepository(CatalogRepository[EligibleEngagement]):
    """Repository for catalog engagements, keyed by code."""
    
    key_fields = ("code",)
    display_fields = ("name",)
    search_fields = ("name",)
    
    def __init__(self, session: AsyncSession):
        super().__init__(EligibleEngagement, session)
