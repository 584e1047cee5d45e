"""
Test daily report endpoints
"""

from httpx import AsyncClient

from taskboard.models.profile import Profile
from tests.helpers import as_user

REPORTS = "/api/v1/reports/"

WORK_ITEM = {
    "description": "Fix login redirect",
    "completion_percentage": 80,
    "status": "In Progress",
    "issued_by": "Max Manager",
    "project": "Portal",
}


async def test_submit_and_read_report(client: AsyncClient, employee: Profile):
    submitted = await client.put(
        REPORTS, json={"report_date": "2025-05-02", "tasks": [WORK_ITEM]}, headers=as_user(employee)
    )

    assert submitted.status_code == 200
    assert submitted.json()["status"] == "completed"
    assert submitted.json()["tasks"][0]["description"] == "Fix login redirect"

    fetched = await client.get(f"{REPORTS}2025-05-02", headers=as_user(employee))
    assert fetched.json()["id"] == submitted.json()["id"]


async def test_resubmitting_replaces_report(client: AsyncClient, employee: Profile):
    first = await client.put(
        REPORTS, json={"report_date": "2025-05-02", "tasks": [WORK_ITEM]}, headers=as_user(employee)
    )
    second = await client.put(
        REPORTS,
        json={"report_date": "2025-05-02", "is_half_day": True, "tasks": [{**WORK_ITEM, "status": "Completed"}]},
        headers=as_user(employee),
    )

    assert second.json()["id"] == first.json()["id"]
    assert second.json()["status"] == "half-day"
    assert len((await client.get(REPORTS, headers=as_user(employee))).json()) == 1


async def test_leave_clears_tasks(client: AsyncClient, employee: Profile):
    response = await client.put(
        REPORTS,
        json={"report_date": "2025-05-05", "is_on_leave": True, "is_half_day": True, "tasks": [WORK_ITEM]},
        headers=as_user(employee),
    )

    assert response.json()["tasks"] == []
    assert response.json()["is_half_day"] is False
    assert response.json()["status"] == "on-leave"


async def test_working_day_validation(client: AsyncClient, employee: Profile):
    no_tasks = await client.put(REPORTS, json={"report_date": "2025-05-06"}, headers=as_user(employee))
    no_issuer = await client.put(
        REPORTS,
        json={"report_date": "2025-05-06", "tasks": [{**WORK_ITEM, "issued_by": ""}]},
        headers=as_user(employee),
    )
    bad_percentage = await client.put(
        REPORTS,
        json={"report_date": "2025-05-06", "tasks": [{**WORK_ITEM, "completion_percentage": 120}]},
        headers=as_user(employee),
    )

    assert no_tasks.status_code == 422
    assert no_issuer.status_code == 422
    assert bad_percentage.status_code == 422


async def test_list_range_and_ownership(client: AsyncClient, employee: Profile, outsider: Profile):
    for day in ("2025-05-01", "2025-05-02", "2025-05-03"):
        await client.put(REPORTS, json={"report_date": day, "tasks": [WORK_ITEM]}, headers=as_user(employee))

    ranged = await client.get(REPORTS, params={"start": "2025-05-02", "end": "2025-05-03"}, headers=as_user(employee))
    theirs = await client.get(REPORTS, headers=as_user(outsider))

    assert [report["report_date"] for report in ranged.json()] == ["2025-05-03", "2025-05-02"]
    assert theirs.json() == []
    assert (await client.get(f"{REPORTS}2025-05-01", headers=as_user(outsider))).status_code == 404


async def test_delete_report(client: AsyncClient, employee: Profile, outsider: Profile):
    report = await client.put(
        REPORTS, json={"report_date": "2025-05-02", "tasks": [WORK_ITEM]}, headers=as_user(employee)
    )
    url = f"{REPORTS}{report.json()['id']}"

    assert (await client.delete(url, headers=as_user(outsider))).status_code == 403
    assert (await client.delete(url, headers=as_user(employee))).status_code == 204
    assert (await client.get(f"{REPORTS}2025-05-02", headers=as_user(employee))).status_code == 404
