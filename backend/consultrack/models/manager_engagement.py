"""
Manager engagement aggregate: a manager's customized engagement with its
ordered task and deliverable assignments.

The eligible_*_id columns are weak references into the catalogs: nullable,
no foreign key, no cascade. Catalog deletes leave them dangling.
"""

from sqlalchemy import Column, Integer, String, ForeignKey

from consultrack.db.base import Base, TimestampMixin


class ManagerEngagement(TimestampMixin, Base):
    """Aggregate root, exclusively owned by manager_id."""
    
    __tablename__ = "manager_engagements"
    __table_args__ = {"sqlite_autoincrement": True}
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    engagement_code = Column(String(100), nullable=False)
    engagement_name = Column(String(255), nullable=False)
    eligible_engagement_id = Column(Integer, nullable=True)


class ManagerEngagementTask(TimestampMixin, Base):
    """Task assignment owned by a manager engagement."""
    
    __tablename__ = "manager_engagement_tasks"
    __table_args__ = {"sqlite_autoincrement": True}
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    manager_engagement_id = Column(
        Integer,
        ForeignKey("manager_engagements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label = Column(String(255), nullable=False)
    eligible_task_id = Column(Integer, nullable=True)


class ManagerEngagementDeliverable(TimestampMixin, Base):
    """
    Deliverable assignment owned by a manager engagement.
    Periodicity is not stored here; it is read from the linked catalog entry.
    """
    
    __tablename__ = "manager_engagement_deliverables"
    __table_args__ = {"sqlite_autoincrement": True}
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    manager_engagement_id = Column(
        Integer,
        ForeignKey("manager_engagements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label = Column(String(255), nullable=False)
    eligible_deliverable_id = Column(Integer, nullable=True)
