"""
Eligible catalog Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel, Field, computed_field, field_validator
from typing import Any, Dict, List
from datetime import datetime
from enum import Enum

from consultrack.models.eligible_catalog import DeliverablePeriodicity
from consultrack.utils.catalog_display import (
    format_deliverable_display,
    format_task_display,
    periodicity_label,
)


class EligibleEngagementBase(BaseModel):
    """Base eligible engagement schema."""
    code: str = Field(..., max_length=100)
    name: str = Field(..., max_length=255)


class EligibleEngagementCreate(EligibleEngagementBase):
    """Schema for creating a catalog engagement."""
    pass


class EligibleEngagementUpdate(EligibleEngagementBase):
    """Schema for updating a catalog engagement (full replacement of its fields)."""
    pass


class EligibleEngagementResponse(EligibleEngagementBase):
    """Response schema for a catalog engagement."""
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EligibleTaskBase(BaseModel):
    """Base eligible task schema."""
    macroprocess: str = Field(..., max_length=255)
    process: str = Field(..., max_length=255)
    label: str = Field(..., max_length=255)


class EligibleTaskCreate(EligibleTaskBase):
    """Schema for creating a catalog task."""
    pass


class EligibleTaskUpdate(EligibleTaskBase):
    """Schema for updating a catalog task."""
    pass


class EligibleTaskResponse(EligibleTaskBase):
    """Response schema for a catalog task."""
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def display_label(self) -> str:
        return format_task_display(self.macroprocess, self.process, self.label)


class EligibleDeliverableBase(BaseModel):
    """Base eligible deliverable schema."""
    label: str = Field(..., max_length=255)
    periodicity: DeliverablePeriodicity = DeliverablePeriodicity.NOT_APPLICABLE

    @field_validator("periodicity", mode="before")
    @classmethod
    def normalize_periodicity(cls, value):
        """Accept periodicity in any case / with stray whitespace."""
        if isinstance(value, str):
            return value.strip().lower()
        return value


class EligibleDeliverableCreate(EligibleDeliverableBase):
    """Schema for creating a catalog deliverable."""
    pass


class EligibleDeliverableUpdate(EligibleDeliverableBase):
    """Schema for updating a catalog deliverable."""
    pass


class EligibleDeliverableResponse(EligibleDeliverableBase):
    """Response schema for a catalog deliverable."""
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def periodicity_label(self) -> str:
        return periodicity_label(self.periodicity)

    @computed_field
    @property
    def display_label(self) -> str:
        return format_deliverable_display(self.label, self.periodicity)


class EligibleEngagementListResponse(BaseModel):
    """Response schema for a list of catalog engagements."""
    items: List[EligibleEngagementResponse]
    total: int


class EligibleTaskListResponse(BaseModel):
    """Response schema for a list of catalog tasks."""
    items: List[EligibleTaskResponse]
    total: int


class EligibleDeliverableListResponse(BaseModel):
    """Response schema for a list of catalog deliverables."""
    items: List[EligibleDeliverableResponse]
    total: int


class CatalogImportRequest(BaseModel):
    """
    Raw records to import. Items are untyped here; each one is
    validated individually and bad ones are reported as skipped.
    """
    items: List[Any] = Field(default_factory=list)


class SkippedImportItem(BaseModel):
    """An input record the importer did not write, with the reason."""
    input: Dict[str, Any]
    reason: str


class EligibleEngagementImportResult(BaseModel):
    """Outcome of a catalog engagement import."""
    created: List[EligibleEngagementResponse] = Field(default_factory=list)
    updated: List[EligibleEngagementResponse] = Field(default_factory=list)
    skipped: List[SkippedImportItem] = Field(default_factory=list)


class EligibleTaskImportResult(BaseModel):
    """Outcome of a catalog task import."""
    created: List[EligibleTaskResponse] = Field(default_factory=list)
    updated: List[EligibleTaskResponse] = Field(default_factory=list)
    skipped: List[SkippedImportItem] = Field(default_factory=list)


class EligibleDeliverableImportResult(BaseModel):
    """Outcome of a catalog deliverable import."""
    created: List[EligibleDeliverableResponse] = Field(default_factory=list)
    updated: List[EligibleDeliverableResponse] = Field(default_factory=list)
    skipped: List[SkippedImportItem] = Field(default_factory=list)


class CatalogType(str, Enum):
    """The three eligible catalogs."""
    ENGAGEMENTS = "engagements"
    TASKS = "tasks"
    DELIVERABLES = "deliverables"


# Public fields per catalog, in export column order
CATALOG_EXPORT_FIELDS: Dict[CatalogType, List[str]] = {
    CatalogType.ENGAGEMENTS: ["id", "code", "name", "created_at", "updated_at"],
    CatalogType.TASKS: ["id", "macroprocess", "process", "label", "created_at", "updated_at"],
    CatalogType.DELIVERABLES: ["id", "label", "periodicity", "created_at", "updated_at"],
}
