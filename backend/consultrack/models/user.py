"""
User model: the identity rows that own manager engagements.
"""

from sqlalchemy import Column, Integer, String, Enum as SQLEnum
import enum

from consultrack.db.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """Rank of an authenticated actor."""
    STAFF = "staff"
    SENIOR = "senior"
    MANAGER = "manager"
    ADMIN = "admin"


class User(TimestampMixin, Base):
    """Application user. Authentication and credentials live elsewhere."""
    
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(
        SQLEnum(UserRole, values_callable=lambda x: [e.value for e in x], name="user_role"),
        nullable=False,
        default=UserRole.STAFF,
    )
