"""
Eligible catalog models: the global, de-duplicated reference lists of
engagements, tasks and deliverables that manager engagements point at.

Natural keys are compared case-insensitively; the functional unique indexes
below back the write-time checks done by the repositories.
"""

from sqlalchemy import Column, Integer, String, Index, func, Enum as SQLEnum
import enum

from consultrack.db.base import Base, TimestampMixin


class DeliverablePeriodicity(str, enum.Enum):
    """Closed set of deliverable periodicities."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    NOT_APPLICABLE = "not_applicable"


PERIODICITY_LABELS = {
    DeliverablePeriodicity.DAILY: "Daily",
    DeliverablePeriodicity.WEEKLY: "Weekly",
    DeliverablePeriodicity.MONTHLY: "Monthly",
    DeliverablePeriodicity.BIMONTHLY: "Bimonthly",
    DeliverablePeriodicity.QUARTERLY: "Quarterly",
    DeliverablePeriodicity.SEMIANNUAL: "Semiannual",
    DeliverablePeriodicity.ANNUAL: "Annual",
    DeliverablePeriodicity.NOT_APPLICABLE: "Not applicable",
}


class EligibleEngagement(TimestampMixin, Base):
    """Catalog engagement, keyed by code."""
    
    __tablename__ = "eligible_engagements"
    # Never reuse ids: weak references must not start pointing at a new row
    __table_args__ = {"sqlite_autoincrement": True}
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)


class EligibleTask(TimestampMixin, Base):
    """Catalog task, keyed by (macroprocess, process, label)."""
    
    __tablename__ = "eligible_tasks"
    __table_args__ = {"sqlite_autoincrement": True}
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    macroprocess = Column(String(255), nullable=False, default="")
    process = Column(String(255), nullable=False, default="")
    label = Column(String(255), nullable=False)


class EligibleDeliverable(TimestampMixin, Base):
    """Catalog deliverable, keyed by (label, periodicity)."""
    
    __tablename__ = "eligible_deliverables"
    __table_args__ = {"sqlite_autoincrement": True}
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(255), nullable=False)
    periodicity = Column(
        SQLEnum(
            DeliverablePeriodicity,
            values_callable=lambda x: [e.value for e in x],
            name="deliverable_periodicity",
        ),
        nullable=False,
        default=DeliverablePeriodicity.NOT_APPLICABLE,
    )


Index("uq_eligible_engagements_code_ci", func.lower(EligibleEngagement.code), unique=True)
Index(
    "uq_eligible_tasks_natural_key_ci",
    func.lower(EligibleTask.macroprocess),
    func.lower(EligibleTask.process),
    func.lower(EligibleTask.label),
    unique=True,
)
Index(
    "uq_eligible_deliverables_natural_key_ci",
    func.lower(EligibleDeliverable.label),
    EligibleDeliverable.periodicity,
    unique=True,
)
