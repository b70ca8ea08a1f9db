"""
User repository for database operations.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.db.repositories.base_repository import BaseRepository
from consultrack.models.user import User


class UserRepository(BaseRepository[User]):
    """Repository for user lookups."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(User, session)
