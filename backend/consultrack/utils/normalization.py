"""
Natural-key normalization for the eligible catalogs.

Display values are stored trimmed; keys are trimmed and lower-cased so that
two values differing only by surrounding whitespace or case collide.
"""

from typing import Optional, Tuple, Union

from consultrack.models.eligible_catalog import DeliverablePeriodicity

EngagementKey = str
TaskKey = Tuple[str, str, str]
DeliverableKey = Tuple[str, DeliverablePeriodicity]


def normalize_text(value: Optional[str]) -> str:
    """Trim a free-text value; None becomes the empty string."""
    if not value:
        return ""
    return value.strip()


def fold(value: Optional[str]) -> str:
    """Trimmed, case-folded form used for key comparison."""
    return normalize_text(value).lower()


def engagement_key(code: Optional[str]) -> EngagementKey:
    return fold(code)


def task_key(macroprocess: Optional[str], process: Optional[str], label: Optional[str]) -> TaskKey:
    return fold(macroprocess), fold(process), fold(label)


def deliverable_key(
    label: Optional[str],
    periodicity: Union[DeliverablePeriodicity, str],
) -> DeliverableKey:
    return fold(label), DeliverablePeriodicity(periodicity)


def parse_periodicity(value: object) -> Optional[DeliverablePeriodicity]:
    """
    Coerce a raw periodicity into the closed set.
    
    Returns:
        The matching DeliverablePeriodicity, or None when the value is not a member
    """
    if isinstance(value, DeliverablePeriodicity):
        return value
    if not isinstance(value, str):
        return None
    try:
        return DeliverablePeriodicity(value.strip().lower())
    except ValueError:
        return None
