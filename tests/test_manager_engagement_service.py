"""
Assignment engine tests: aggregate writes, replace-as-set, ownership and
rollback of failed writes under both the savepoint and compensation strategies.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from consultrack.core.exceptions import NotFoundError, StoreError, ValidationError
from consultrack.models.eligible_catalog import DeliverablePeriodicity, EligibleEngagement, EligibleTask
from consultrack.models.manager_engagement import (
    ManagerEngagement,
    ManagerEngagementTask,
    ManagerEngagementDeliverable,
)
from consultrack.schemas.manager_engagement import ManagerEngagementCreate, ManagerEngagementUpdate
from consultrack.services.eligible_catalog_service import EligibleCatalogService
from consultrack.services.manager_engagement_service import ManagerEngagementService

MANAGER = 7
OTHER_MANAGER = 8


def engagement_payload(code="ENG-9", name="Audit FY24", tasks=(), deliverables=(), **extra):
    return {
        "engagement_code": code,
        "engagement_name": name,
        "tasks": [t if isinstance(t, dict) else {"label": t} for t in tasks],
        "deliverables": [d if isinstance(d, dict) else {"label": d} for d in deliverables],
        **extra,
    }


@pytest.fixture(params=[True, False], ids=["savepoint", "compensation"])
def service(request, test_db_session, users):
    return ManagerEngagementService(test_db_session, use_savepoints=request.param)


async def count_rows(session, model, **filters):
    query = select(func.count()).select_from(model)
    for field, value in filters.items():
        query = query.where(getattr(model, field) == value)
    return (await session.execute(query)).scalar_one()


@pytest.mark.asyncio
async def test_create_then_fetch_returns_identical_aggregate(service):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(tasks=["Kickoff"], deliverables=["Report"])),
    )

    assert created.manager_id == MANAGER
    assert created.engagement_code == "ENG-9"
    assert created.eligible_engagement_id is not None
    assert [t.label for t in created.tasks] == ["Kickoff"]
    assert created.tasks[0].eligible_task_id is not None
    assert [d.label for d in created.deliverables] == ["Report"]
    assert created.deliverables[0].periodicity == DeliverablePeriodicity.NOT_APPLICABLE

    fetched = await service.get_engagement(MANAGER, created.id)
    assert fetched == created


@pytest.mark.asyncio
async def test_create_populates_catalogs(service, test_db_session):
    await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(
            tasks=[{"label": "Kickoff", "macroprocess": "Audit", "process": "Planning"}],
            deliverables=[{"label": "Report", "periodicity": "Quarterly"}],
        )),
    )

    catalog = EligibleCatalogService(test_db_session)
    assert [(e.code, e.name) for e in await catalog.list_engagements()] == [("ENG-9", "Audit FY24")]
    tasks = await catalog.list_tasks()
    assert [t.display_label for t in tasks] == ["Audit > Planning > Kickoff"]
    deliverables = await catalog.list_deliverables()
    assert [d.display_label for d in deliverables] == ["Report (Quarterly)"]


@pytest.mark.asyncio
async def test_engagement_name_refresh_is_last_writer_wins(service, test_db_session):
    await service.create_engagement(MANAGER, ManagerEngagementCreate(**engagement_payload(name="Audit")))
    await service.create_engagement(OTHER_MANAGER, ManagerEngagementCreate(**engagement_payload(code="eng-9", name="Audit FY25")))

    entries = (await test_db_session.execute(select(EligibleEngagement))).scalars().all()
    assert [(e.code, e.name) for e in entries] == [("ENG-9", "Audit FY25")]


@pytest.mark.asyncio
async def test_explicit_link_is_trusted_without_lookup(service, test_db_session):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(
            eligible_engagement_id=4242,
            tasks=[{"label": "Kickoff", "eligible_task_id": 999}],
        )),
    )

    assert created.eligible_engagement_id == 4242
    assert created.tasks[0].eligible_task_id == 999
    # Nothing was added to the catalogs for explicitly linked entries
    assert await count_rows(test_db_session, EligibleEngagement) == 0
    assert await count_rows(test_db_session, EligibleTask) == 0


@pytest.mark.asyncio
async def test_children_stay_unlinked_without_catalog_resolution(service, test_db_session):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(
            tasks=["Kickoff"],
            deliverables=["Report"],
            link_catalog=False,
        )),
    )

    assert created.tasks[0].eligible_task_id is None
    assert created.deliverables[0].eligible_deliverable_id is None
    assert created.deliverables[0].periodicity is None
    assert await count_rows(test_db_session, EligibleTask) == 0


@pytest.mark.asyncio
async def test_blank_child_labels_are_skipped(service):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(tasks=["  ", " Kickoff ", ""], deliverables=[" "])),
    )
    assert [t.label for t in created.tasks] == ["Kickoff"]
    assert created.deliverables == []


@pytest.mark.asyncio
async def test_blank_code_or_name_is_rejected_before_any_write(service, test_db_session):
    with pytest.raises(ValidationError):
        await service.create_engagement(MANAGER, ManagerEngagementCreate(**engagement_payload(code="  ")))
    with pytest.raises(ValidationError):
        await service.create_engagement(MANAGER, ManagerEngagementCreate(**engagement_payload(name="")))

    assert await count_rows(test_db_session, ManagerEngagement) == 0
    assert await count_rows(test_db_session, EligibleEngagement) == 0


@pytest.mark.asyncio
async def test_update_replaces_children_as_a_set(service, test_db_session):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(tasks=["A", "B"], deliverables=["Report"])),
    )
    old_task_ids = [t.id for t in created.tasks]

    updated = await service.update_engagement(
        MANAGER,
        created.id,
        ManagerEngagementUpdate(**engagement_payload(name="Audit FY25", tasks=["C"])),
    )

    assert updated.engagement_name == "Audit FY25"
    assert [t.label for t in updated.tasks] == ["C"]
    assert updated.deliverables == []
    assert await count_rows(test_db_session, ManagerEngagementTask, manager_engagement_id=created.id) == 1
    for task_id in old_task_ids:
        assert await count_rows(test_db_session, ManagerEngagementTask, id=task_id) == 0


@pytest.mark.asyncio
async def test_children_keep_input_order(service):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(tasks=["Zeta", "Alpha", "Mid"])),
    )
    assert [t.label for t in created.tasks] == ["Zeta", "Alpha", "Mid"]


@pytest.mark.asyncio
async def test_other_managers_engagement_is_not_found(service, test_db_session):
    theirs = await service.create_engagement(OTHER_MANAGER, ManagerEngagementCreate(**engagement_payload()))

    with pytest.raises(NotFoundError):
        await service.delete_engagement(MANAGER, theirs.id)
    with pytest.raises(NotFoundError):
        await service.get_engagement(MANAGER, theirs.id)
    with pytest.raises(NotFoundError):
        await service.update_engagement(MANAGER, theirs.id, ManagerEngagementUpdate(**engagement_payload()))

    assert await count_rows(test_db_session, ManagerEngagement, id=theirs.id) == 1


@pytest.mark.asyncio
async def test_delete_removes_root_and_children(service, test_db_session):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(tasks=["Kickoff"], deliverables=["Report"])),
    )

    await service.delete_engagement(MANAGER, created.id)

    assert await count_rows(test_db_session, ManagerEngagement, id=created.id) == 0
    assert await count_rows(test_db_session, ManagerEngagementTask, manager_engagement_id=created.id) == 0
    assert await count_rows(test_db_session, ManagerEngagementDeliverable, manager_engagement_id=created.id) == 0
    # Catalog entries outlive the assignments that created them
    assert await count_rows(test_db_session, EligibleTask) == 1

    with pytest.raises(NotFoundError):
        await service.delete_engagement(MANAGER, created.id)


@pytest.mark.asyncio
async def test_failed_update_restores_previous_aggregate(service, monkeypatch):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(tasks=["A", "B"], deliverables=["Report"])),
    )
    before = await service.get_engagement(MANAGER, created.id)

    async def failing_insert_many(engagement_id, items):
        raise RuntimeError("deliverable insert failed")

    # Fails after the root was rewritten and the tasks were replaced
    monkeypatch.setattr(service.deliverable_repo, "insert_many", failing_insert_many)

    with pytest.raises(RuntimeError, match="deliverable insert failed"):
        await service.update_engagement(
            MANAGER,
            created.id,
            ManagerEngagementUpdate(**engagement_payload(code="ENG-10", name="Changed", tasks=["C"], deliverables=["D"])),
        )

    after = await service.get_engagement(MANAGER, created.id)
    assert after == before


@pytest.mark.asyncio
async def test_failed_create_leaves_no_partial_aggregate(service, test_db_session, monkeypatch):
    async def failing_insert_many(engagement_id, items):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(service.task_repo, "insert_many", failing_insert_many)

    with pytest.raises(StoreError) as exc_info:
        await service.create_engagement(
            MANAGER,
            ManagerEngagementCreate(**engagement_payload(tasks=["Kickoff"], deliverables=["Report"])),
        )

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert await count_rows(test_db_session, ManagerEngagement) == 0
    assert await count_rows(test_db_session, ManagerEngagementTask) == 0
    assert await count_rows(test_db_session, ManagerEngagementDeliverable) == 0
    assert (await service.list_engagements(MANAGER)).total == 0


@pytest.mark.asyncio
async def test_list_is_scoped_and_sorted_by_name(service):
    await service.create_engagement(MANAGER, ManagerEngagementCreate(**engagement_payload(code="B", name="beta")))
    await service.create_engagement(MANAGER, ManagerEngagementCreate(**engagement_payload(code="A", name="Alpha")))
    await service.create_engagement(OTHER_MANAGER, ManagerEngagementCreate(**engagement_payload(code="C", name="Gamma")))

    listing = await service.list_engagements(MANAGER)
    assert listing.total == 2
    assert [e.engagement_name for e in listing.items] == ["Alpha", "beta"]


def insert_unlabelled(original_insert_many):
    """insert_many replacement that writes a row violating label NOT NULL."""
    async def insert_many(engagement_id, items):
        return await original_insert_many(engagement_id, [(None, None)])
    return insert_many


@pytest.mark.asyncio
async def test_constraint_failure_mid_update_restores_aggregate_in_same_session(service, monkeypatch):
    created = await service.create_engagement(
        MANAGER,
        ManagerEngagementCreate(**engagement_payload(tasks=["A", "B"], deliverables=["Report"])),
    )
    before = await service.get_engagement(MANAGER, created.id)

    monkeypatch.setattr(
        service.deliverable_repo, "insert_many", insert_unlabelled(service.deliverable_repo.insert_many)
    )

    with pytest.raises(StoreError) as exc_info:
        await service.update_engagement(
            MANAGER,
            created.id,
            ManagerEngagementUpdate(**engagement_payload(code="ENG-10", name="Changed", tasks=["C"], deliverables=["D"])),
        )
    assert isinstance(exc_info.value.__cause__, IntegrityError)

    # Same session, no rollback in between
    after = await service.get_engagement(MANAGER, created.id)
    assert after == before


@pytest.mark.asyncio
async def test_constraint_failure_mid_create_leaves_no_rows_in_same_session(service, test_db_session, monkeypatch):
    monkeypatch.setattr(service.task_repo, "insert_many", insert_unlabelled(service.task_repo.insert_many))

    with pytest.raises(StoreError) as exc_info:
        await service.create_engagement(
            MANAGER,
            ManagerEngagementCreate(**engagement_payload(tasks=["Kickoff"], deliverables=["Report"])),
        )
    assert isinstance(exc_info.value.__cause__, IntegrityError)

    assert await count_rows(test_db_session, ManagerEngagement) == 0
    assert await count_rows(test_db_session, ManagerEngagementTask) == 0
    assert await count_rows(test_db_session, ManagerEngagementDeliverable) == 0
