"""
Eligible task repository for database operations.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.repositories.catalog_repository import CatalogRepository
from consultrack.models.eligible_catalog import EligibleTask


class EligibleTaskRepository(CatalogRepository[EligibleTask]):
    """Repository for catalog tasks, keyed by (macroprocess, process, label)."""
    
    key_fields = ("macroprocess", "process", "label")
    
    def __init__(self, session: AsyncSession):
        super().__init__(EligibleTask, session)
