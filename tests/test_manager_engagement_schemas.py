"""
Write request schema tests: catalog link id coercion.
"""

import pytest
from pydantic import ValidationError

from consultrack.schemas.manager_engagement import (
    EngagementDeliverableInput,
    EngagementTaskInput,
    ManagerEngagementCreate,
)


@pytest.mark.parametrize("link_id", [1.7, True, False, "abc", "1.5"])
def test_non_integral_link_ids_are_rejected(link_id):
    with pytest.raises(ValidationError):
        EngagementTaskInput(label="Kickoff", eligible_task_id=link_id)
    with pytest.raises(ValidationError):
        EngagementDeliverableInput(label="Report", eligible_deliverable_id=link_id)
    with pytest.raises(ValidationError):
        ManagerEngagementCreate(engagement_code="ENG-1", engagement_name="Audit", eligible_engagement_id=link_id)


@pytest.mark.parametrize(
    "link_id, expected",
    [(5, 5), (2.0, 2), (" 3 ", 3), ("", None), (None, None), (0, None), (-4, None)],
)
def test_link_ids_are_normalized(link_id, expected):
    assert EngagementTaskInput(label="Kickoff", eligible_task_id=link_id).eligible_task_id == expected
