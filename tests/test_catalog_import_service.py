"""
Bulk importer tests: create/update/skip classification and per-item failures.
"""

import pytest

from consultrack.core.exceptions import ValidationError
from consultrack.services.catalog_import_service import CatalogImportService, SAVE_FAILED_REASON
from consultrack.services.eligible_catalog_service import EligibleCatalogService
from consultrack.schemas.eligible_catalog import EligibleEngagementCreate


@pytest.fixture
def importer(test_db_session):
    return CatalogImportService(test_db_session)


@pytest.mark.asyncio
async def test_importing_the_same_record_twice_creates_then_updates(importer):
    first = await importer.import_engagements([{"code": "ENG-1", "name": "Audit"}])
    second = await importer.import_engagements([{"code": "eng-1 ", "name": "Audit FY24"}])

    assert len(first.created) == 1 and first.updated == []
    assert second.created == [] and len(second.updated) == 1

    updated = second.updated[0]
    assert updated.id == first.created[0].id
    # Stored natural key is untouched by the update
    assert updated.code == "ENG-1"
    assert updated.name == "Audit FY24"


@pytest.mark.asyncio
async def test_invalid_periodicity_is_skipped_with_reason(importer):
    result = await importer.import_deliverables([{"label": "X", "periodicity": "fortnightly"}])

    assert result.created == []
    assert result.updated == []
    assert len(result.skipped) == 1
    assert "periodicity" in result.skipped[0].reason
    assert result.skipped[0].input == {"label": "X", "periodicity": "fortnightly"}


@pytest.mark.asyncio
async def test_required_fields_are_reported(importer):
    result = await importer.import_tasks([
        {"macroprocess": "Finance", "process": "Close", "label": " "},
        {"macroprocess": "", "process": "Close", "label": "Kickoff"},
        {"macroprocess": "Finance", "process": "Close", "label": "Kickoff"},
    ])

    assert [s.reason for s in result.skipped] == ["label is required", "macroprocess is required"]
    assert [t.label for t in result.created] == ["Kickoff"]


@pytest.mark.asyncio
async def test_deliverable_periodicity_is_required(importer):
    result = await importer.import_deliverables([{"label": "Report"}])
    assert result.skipped[0].reason == "periodicity is required"


@pytest.mark.asyncio
async def test_non_object_records_are_skipped(importer):
    result = await importer.import_engagements(["ENG-1", {"code": "ENG-2", "name": "Tax"}])

    assert result.skipped[0].input == {"value": "ENG-1"}
    assert result.skipped[0].reason == "record must be an object"
    assert [e.code for e in result.created] == ["ENG-2"]


@pytest.mark.asyncio
async def test_buckets_preserve_input_order(importer):
    await importer.import_engagements([{"code": "B", "name": "Bravo"}])

    result = await importer.import_engagements([
        {"code": "C", "name": "Charlie"},
        {"code": "b", "name": "Bravo 2"},
        {"code": "A", "name": "Alpha"},
        {"name": "Missing code"},
    ])

    assert [e.code for e in result.created] == ["C", "A"]
    assert [e.code for e in result.updated] == ["B"]
    assert [s.reason for s in result.skipped] == ["code is required"]


@pytest.mark.asyncio
async def test_manager_engagement_field_names_are_accepted(importer):
    result = await importer.import_engagements([{"engagement_code": "ENG-5", "engagement_name": "Legacy"}])
    assert result.created[0].code == "ENG-5"


@pytest.mark.asyncio
async def test_periodicity_is_matched_case_insensitively(importer):
    result = await importer.import_deliverables([
        {"label": "Report", "periodicity": "Monthly"},
        {"label": "REPORT", "periodicity": " monthly "},
    ])
    assert len(result.created) == 1
    assert len(result.updated) == 1


@pytest.mark.asyncio
async def test_empty_batch_is_rejected(importer):
    with pytest.raises(ValidationError):
        await importer.import_tasks([])


@pytest.mark.parametrize("use_savepoints", [True, False])
@pytest.mark.asyncio
async def test_store_failure_skips_the_item_and_keeps_the_batch(test_db_session, monkeypatch, use_savepoints):
    await EligibleCatalogService(test_db_session).create_engagement(EligibleEngagementCreate(code="DUP", name="Existing"))
    importer = CatalogImportService(test_db_session, use_savepoints=use_savepoints)

    async def lookup_misses(key, exclude_id=None):
        return None

    # Every record looks new, so "dup" hits the unique index on lower(code)
    monkeypatch.setattr(importer.engagement_repo, "get_by_natural_key", lookup_misses)

    result = await importer.import_engagements([
        {"code": "OK-1", "name": "One"},
        {"code": "dup", "name": "Broken"},
        {"code": "OK-2", "name": "Two"},
    ])

    assert [e.code for e in result.created] == ["OK-1", "OK-2"]
    assert [s.reason for s in result.skipped] == [SAVE_FAILED_REASON]
    assert result.skipped[0].input["code"] == "dup"

    stored = await EligibleCatalogService(test_db_session).list_engagements()
    assert [(e.code, e.name) for e in stored] == [("DUP", "Existing"), ("OK-1", "One"), ("OK-2", "Two")]
