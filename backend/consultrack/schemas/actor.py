"""
Authenticated actor schema.
"""

from pydantic import BaseModel

from consultrack.models.user import UserRole


class Actor(BaseModel):
    """The authenticated caller: identity plus role, nothing else."""
    id: int
    role: UserRole
    name: str
    email: str

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
