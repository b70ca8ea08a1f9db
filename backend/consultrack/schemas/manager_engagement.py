"""
Manager engagement Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from consultrack.models.eligible_catalog import DeliverablePeriodicity


def _positive_or_none(value):
    """Catalog ids that are missing, zero or negative mean 'no explicit link'."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("catalog id must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("catalog id must be an integer") from None
        value = int(value)
    elif not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except ValueError:
            raise ValueError("catalog id must be an integer") from None
    return value if value > 0 else None


class EngagementTaskInput(BaseModel):
    """A task assignment in a write request."""
    label: str = Field(..., max_length=255)
    eligible_task_id: Optional[int] = None
    # Only used to resolve a catalog entry when no id is given
    macroprocess: Optional[str] = Field(None, max_length=255)
    process: Optional[str] = Field(None, max_length=255)

    @field_validator("eligible_task_id", mode="before")
    @classmethod
    def normalize_link(cls, value):
        return _positive_or_none(value)


class EngagementDeliverableInput(BaseModel):
    """A deliverable assignment in a write request."""
    label: str = Field(..., max_length=255)
    eligible_deliverable_id: Optional[int] = None
    # Only used to resolve a catalog entry when no id is given
    periodicity: Optional[DeliverablePeriodicity] = None

    @field_validator("eligible_deliverable_id", mode="before")
    @classmethod
    def normalize_link(cls, value):
        return _positive_or_none(value)

    @field_validator("periodicity", mode="before")
    @classmethod
    def normalize_periodicity(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


class ManagerEngagementCreate(BaseModel):
    """
    Schema for writing a manager engagement aggregate.
    Tasks and deliverables are the complete new sets, not a patch.
    """
    engagement_code: str = Field(..., max_length=100)
    engagement_name: str = Field(..., max_length=255)
    eligible_engagement_id: Optional[int] = None
    tasks: List[EngagementTaskInput] = Field(default_factory=list)
    deliverables: List[EngagementDeliverableInput] = Field(default_factory=list)
    # Resolve-or-create catalog entries for children without an explicit id
    link_catalog: bool = True
    # Honoured only when the actor is an admin acting for another manager
    manager_id: Optional[int] = None

    @field_validator("eligible_engagement_id", mode="before")
    @classmethod
    def normalize_link(cls, value):
        return _positive_or_none(value)


class ManagerEngagementUpdate(ManagerEngagementCreate):
    """Schema for replacing a manager engagement aggregate."""
    pass


class ManagerEngagementTaskResponse(BaseModel):
    """Response schema for a task assignment."""
    id: int
    manager_engagement_id: int
    label: str
    eligible_task_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ManagerEngagementDeliverableResponse(BaseModel):
    """Response schema for a deliverable assignment with resolved periodicity."""
    id: int
    manager_engagement_id: int
    label: str
    eligible_deliverable_id: Optional[int] = None
    periodicity: Optional[DeliverablePeriodicity] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ManagerEngagementResponse(BaseModel):
    """Response schema for a full manager engagement aggregate."""
    id: int
    manager_id: int
    engagement_code: str
    engagement_name: str
    eligible_engagement_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    tasks: List[ManagerEngagementTaskResponse] = Field(default_factory=list)
    deliverables: List[ManagerEngagementDeliverableResponse] = Field(default_factory=list)


class ManagerEngagementListResponse(BaseModel):
    """Response schema for a manager's engagements."""
    items: List[ManagerEngagementResponse]
    total: int


class ManagerSummary(BaseModel):
    """Manager identity shown in the grouped view."""
    id: int
    name: str
    email: str


class ManagerEngagementGroup(BaseModel):
    """One manager with all of their engagement aggregates."""
    manager: ManagerSummary
    engagements: List[ManagerEngagementResponse] = Field(default_factory=list)


class EngagementOptionsResponse(BaseModel):
    """All managers' engagements, grouped by manager."""
    managers: List[ManagerEngagementGroup]
