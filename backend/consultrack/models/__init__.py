"""
Database models.
Import all models here to ensure they're registered with Base.
"""

from consultrack.models.user import User, UserRole
from consultrack.models.eligible_catalog import (
    EligibleEngagement,
    EligibleTask,
    EligibleDeliverable,
    DeliverablePeriodicity,
    PERIODICITY_LABELS,
)
from consultrack.models.manager_engagement import (
    ManagerEngagement,
    ManagerEngagementTask,
    ManagerEngagementDeliverable,
)

__all__ = [
    "User",
    "UserRole",
    "EligibleEngagement",
    "EligibleTask",
    "EligibleDeliverable",
    "DeliverablePeriodicity",
    "PERIODICITY_LABELS",
    "ManagerEngagement",
    "ManagerEngagementTask",
    "ManagerEngagementDeliverable",
]
