"""
Manager engagement API tests: ownership scoping, admin delegation and options.
"""

import pytest

BASE = "/api/v1/manager/engagements"


def payload(**overrides):
    body = {
        "engagement_code": "ENG-9",
        "engagement_name": "Audit FY24",
        "tasks": [{"label": "Kickoff"}],
        "deliverables": [{"label": "Report"}],
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_manager_creates_and_fetches_engagement(test_client, manager_headers):
    created = await test_client.post(BASE, json=payload(), headers=manager_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["manager_id"] == 7
    assert body["tasks"][0]["label"] == "Kickoff"
    assert body["deliverables"][0]["periodicity"] == "not_applicable"

    fetched = await test_client.get(f"{BASE}/{body['id']}", headers=manager_headers)
    assert fetched.status_code == 200
    assert fetched.json() == body


@pytest.mark.asyncio
async def test_update_replaces_tasks(test_client, manager_headers):
    created = (await test_client.post(BASE, json=payload(tasks=[{"label": "A"}, {"label": "B"}]), headers=manager_headers)).json()

    updated = await test_client.patch(
        f"{BASE}/{created['id']}",
        json=payload(tasks=[{"label": "C"}], deliverables=[]),
        headers=manager_headers,
    )
    assert updated.status_code == 200
    assert [t["label"] for t in updated.json()["tasks"]] == ["C"]
    assert updated.json()["deliverables"] == []


@pytest.mark.asyncio
async def test_blank_code_is_a_bad_request(test_client, manager_headers):
    response = await test_client.post(BASE, json=payload(engagement_code="   "), headers=manager_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Engagement code and name are required"


@pytest.mark.asyncio
async def test_cross_manager_access_is_not_found(test_client, manager_headers, other_manager_headers):
    theirs = (await test_client.post(BASE, json=payload(), headers=other_manager_headers)).json()

    assert (await test_client.get(f"{BASE}/{theirs['id']}", headers=manager_headers)).status_code == 404
    assert (await test_client.delete(f"{BASE}/{theirs['id']}", headers=manager_headers)).status_code == 404
    assert (await test_client.get(f"{BASE}/{theirs['id']}", headers=other_manager_headers)).status_code == 200


@pytest.mark.asyncio
async def test_non_admin_manager_id_is_ignored(test_client, manager_headers):
    created = await test_client.post(BASE, json=payload(manager_id=8), headers=manager_headers)
    assert created.json()["manager_id"] == 7

    listing = await test_client.get(BASE, params={"manager_id": 8}, headers=manager_headers)
    assert listing.json()["total"] == 1
    assert listing.json()["items"][0]["manager_id"] == 7


@pytest.mark.asyncio
async def test_admin_acts_for_a_manager(test_client, admin_headers, manager_headers):
    created = await test_client.post(BASE, json=payload(manager_id=7), headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["manager_id"] == 7

    mine = await test_client.get(BASE, headers=manager_headers)
    assert mine.json()["total"] == 1

    deleted = await test_client.delete(f"{BASE}/{created.json()['id']}", params={"manager_id": 7}, headers=admin_headers)
    assert deleted.status_code == 204


@pytest.mark.asyncio
async def test_admin_with_non_positive_manager_id_is_rejected(test_client, admin_headers):
    response = await test_client.get(BASE, params={"manager_id": 0}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_staff_cannot_manage_engagements(test_client, staff_headers):
    response = await test_client.post(BASE, json=payload(), headers=staff_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_options_groups_engagements_by_manager(test_client, manager_headers, other_manager_headers, staff_headers):
    await test_client.post(BASE, json=payload(engagement_code="M-1", engagement_name="Mia's"), headers=manager_headers)
    await test_client.post(BASE, json=payload(engagement_code="B-1", engagement_name="Ben's"), headers=other_manager_headers)

    response = await test_client.get("/api/v1/engagements/options", headers=staff_headers)

    assert response.status_code == 200
    managers = response.json()["managers"]
    assert [m["manager"]["name"] for m in managers] == ["Ben Ortiz", "Mia Rossi"]
    assert [e["engagement_code"] for e in managers[1]["engagements"]] == ["M-1"]


@pytest.mark.asyncio
async def test_options_require_authentication(test_client):
    response = await test_client.get("/api/v1/engagements/options")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_acting_for_unknown_manager_is_not_found(test_client, admin_headers):
    created = await test_client.post(BASE, json=payload(manager_id=999), headers=admin_headers)
    assert created.status_code == 404
    assert created.json()["error"]["message"] == "Manager not found"

    listing = await test_client.get(BASE, params={"manager_id": 999}, headers=admin_headers)
    assert listing.status_code == 404

    options = await test_client.get("/api/v1/engagements/options", headers=admin_headers)
    assert options.json()["managers"] == []
