"""
Human-readable labels for catalog entries.
"""

from typing import Union

from consultrack.models.eligible_catalog import DeliverablePeriodicity, PERIODICITY_LABELS


def periodicity_label(periodicity: Union[DeliverablePeriodicity, str]) -> str:
    return PERIODICITY_LABELS[DeliverablePeriodicity(periodicity)]


def format_task_display(macroprocess: str, process: str, label: str) -> str:
    """'Macroprocess > Process > Label', skipping blank parts."""
    parts = [(part or "").strip() for part in (macroprocess, process, label)]
    return " > ".join(part for part in parts if part)


def format_deliverable_display(label: str, periodicity: Union[DeliverablePeriodicity, str]) -> str:
    """Label with its periodicity in parentheses, unless not applicable."""
    label = (label or "").strip()
    periodicity = DeliverablePeriodicity(periodicity)
    if periodicity == DeliverablePeriodicity.NOT_APPLICABLE:
        return label
    return f"{label} ({PERIODICITY_LABELS[periodicity]})"
