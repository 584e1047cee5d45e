"""
Test task endpoints
"""

from datetime import datetime, timedelta

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.audit import DueDateChange, TaskProgressUpdate
from taskboard.models.profile import Profile
from taskboard.models.task import Task
from tests.helpers import RecordingChangeFeed, as_user, due_in

TASKS = "/api/v1/tasks/"


async def create_task(client: AsyncClient, creator: Profile, assignee: Profile, **fields) -> dict:
    body = {"title": "Prepare quarterly report", "assigned_to_id": str(assignee.id), **fields}
    response = await client.post(TASKS, json=body, headers=as_user(creator))
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_task_is_classified(client: AsyncClient, employee: Profile, change_feed: RecordingChangeFeed):
    """A task due tomorrow lands in quadrant 1"""
    data = await create_task(client, employee, employee, due_date=due_in(1))

    assert data["quadrant"] == 1
    assert data["progress"] == 0
    assert data["completed"] is False
    assert data["icon"] == "📝"
    assert data["created_by_name"] == employee.name
    assert data["assigned_to_name"] == employee.name
    assert data["quadrant_override"] is False
    assert change_feed.of("tasks")[0]["event"] == "INSERT"


async def test_create_task_without_due_date_is_quadrant_4(client: AsyncClient, employee: Profile):
    data = await create_task(client, employee, employee)

    assert data["quadrant"] == 4
    assert data["priority_label"] == "No due date"


async def test_create_routine_task(client: AsyncClient, employee: Profile):
    data = await create_task(client, employee, employee, due_date=due_in(-3), quadrant=5)
    assert data["quadrant"] == 5

    listed = await client.get(TASKS, headers=as_user(employee))
    assert listed.json()["items"][0]["quadrant"] == 5


async def test_create_task_validation(client: AsyncClient, employee: Profile):
    no_title = await client.post(
        TASKS, json={"title": "   ", "assigned_to_id": str(employee.id)}, headers=as_user(employee)
    )
    no_assignee = await client.post(TASKS, json={"title": "Orphan"}, headers=as_user(employee))

    assert no_title.status_code == 422
    assert no_assignee.status_code == 422
    assert no_assignee.json()["detail"] == "Assignee is required"


async def test_employee_cannot_assign_outside_scope(client: AsyncClient, employee: Profile, outsider: Profile):
    response = await client.post(
        TASKS, json={"title": "Not yours", "assigned_to_id": str(outsider.id)}, headers=as_user(employee)
    )
    assert response.status_code == 403


async def test_missing_or_unknown_user_is_401(client: AsyncClient):
    assert (await client.get(TASKS)).status_code == 401
    assert (await client.get(TASKS, headers={"X-User-Id": "00000000-0000-0000-0000-000000000000"})).status_code == 401


async def test_progress_edit_requires_note(client: AsyncClient, db_session: AsyncSession, employee: Profile):
    """40 -> 70 without a note is rejected and leaves no trace; with a note it is stored and audited"""
    task = await create_task(client, employee, employee, due_date=due_in(1))
    url = f"{TASKS}{task['id']}/progress"

    first = await client.patch(url, json={"progress": 40, "note": "started"}, headers=as_user(employee))
    assert first.status_code == 200
    assert first.json()["progress"] == 40

    rejected = await client.patch(url, json={"progress": 70}, headers=as_user(employee))
    assert rejected.status_code == 422

    current = await client.get(f"{TASKS}{task['id']}", headers=as_user(employee))
    assert current.json()["progress"] == 40
    history = await client.get(f"{TASKS}{task['id']}/progress-updates", headers=as_user(employee))
    assert len(history.json()) == 1

    accepted = await client.patch(url, json={"progress": 70, "note": "halfway done"}, headers=as_user(employee))
    assert accepted.status_code == 200
    assert accepted.json()["progress"] == 70

    result = await db_session.execute(
        select(TaskProgressUpdate).where(TaskProgressUpdate.current_progress == 70)  # type: ignore[arg-type]
    )
    rows = result.scalars().all()
    assert len(rows) == 1
    assert (rows[0].previous_progress, rows[0].current_progress, rows[0].updates) == (40, 70, "halfway done")


async def test_progress_cannot_decrease(client: AsyncClient, employee: Profile):
    task = await create_task(client, employee, employee)
    url = f"{TASKS}{task['id']}/progress"
    await client.patch(url, json={"progress": 60, "note": "most of it"}, headers=as_user(employee))

    response = await client.patch(url, json={"progress": 30, "note": "oops"}, headers=as_user(employee))

    assert response.status_code == 422
    assert (await client.get(f"{TASKS}{task['id']}", headers=as_user(employee))).json()["progress"] == 60


async def test_progress_100_completes_task(client: AsyncClient, employee: Profile):
    task = await create_task(client, employee, employee)

    response = await client.patch(
        f"{TASKS}{task['id']}/progress", json={"progress": 100, "note": "shipped"}, headers=as_user(employee)
    )

    assert response.json()["completed"] is True
    assert response.json()["priority_label"] == "Completed"


async def test_completion_toggle(client: AsyncClient, employee: Profile):
    task = await create_task(client, employee, employee)
    url = f"{TASKS}{task['id']}/completion"

    done = await client.patch(url, json={"completed": True}, headers=as_user(employee))
    assert (done.json()["completed"], done.json()["progress"]) == (True, 100)

    undone = await client.patch(url, json={"completed": False}, headers=as_user(employee))
    assert (undone.json()["completed"], undone.json()["progress"]) == (False, 0)

    history = (await client.get(f"{TASKS}{task['id']}/progress-updates", headers=as_user(employee))).json()
    assert [(row["previous_progress"], row["current_progress"]) for row in history] == [(100, 0), (0, 100)]
    assert all(row["updates"] == "No reason provided" for row in history)


async def test_completed_task_keeps_quadrant(client: AsyncClient, employee: Profile):
    task = await create_task(client, employee, employee, due_date=due_in(10))
    assert task["quadrant"] == 3

    await client.patch(f"{TASKS}{task['id']}/completion", json={"completed": True}, headers=as_user(employee))
    body = {"due_date": due_in(-2), "due_date_change_reason": "slipped"}
    moved = await client.put(f"{TASKS}{task['id']}", json=body, headers=as_user(employee))

    assert moved.json()["quadrant"] == 3


async def test_due_date_change_requires_reason(client: AsyncClient, db_session: AsyncSession, employee: Profile):
    task = await create_task(client, employee, employee, due_date=due_in(1))
    url = f"{TASKS}{task['id']}"

    rejected = await client.put(url, json={"due_date": due_in(20)}, headers=as_user(employee))
    assert rejected.status_code == 422

    accepted = await client.put(
        url, json={"due_date": due_in(20), "due_date_change_reason": "waiting on vendor"}, headers=as_user(employee)
    )
    assert accepted.status_code == 200
    assert accepted.json()["quadrant"] == 3

    result = await db_session.execute(select(DueDateChange))
    rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].reason_to_change == "waiting on vendor"

    history = await client.get(f"{url}/due-date-changes", headers=as_user(employee))
    assert history.json()[0]["reason_to_change"] == "waiting on vendor"


async def test_same_day_due_date_needs_no_reason(client: AsyncClient, db_session: AsyncSession, employee: Profile):
    task = await create_task(client, employee, employee, due_date=due_in(2))
    later_same_day = (datetime.fromisoformat(due_in(2)) + timedelta(hours=3)).isoformat()

    response = await client.put(
        f"{TASKS}{task['id']}", json={"due_date": later_same_day, "title": "Renamed"}, headers=as_user(employee)
    )

    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert (await db_session.execute(select(DueDateChange))).scalars().all() == []


async def test_offset_due_date_crossing_local_midnight_is_audited(
    client: AsyncClient, db_session: AsyncSession, employee: Profile, local_utc
):
    task = await create_task(client, employee, employee, due_date="2026-10-20T12:00:00")
    url = f"{TASKS}{task['id']}"
    # 23:00 at -04:00 is 03:00 on the 21st in UTC
    next_day = "2026-10-20T23:00:00-04:00"

    rejected = await client.put(url, json={"due_date": next_day}, headers=as_user(employee))
    assert rejected.status_code == 422

    accepted = await client.put(
        url, json={"due_date": next_day, "due_date_change_reason": "shipping from New York"}, headers=as_user(employee)
    )
    assert accepted.status_code == 200

    rows = (await db_session.execute(select(DueDateChange))).scalars().all()
    assert [row.reason_to_change for row in rows] == ["shipping from New York"]


async def test_offset_due_date_on_same_local_day_needs_no_reason(
    client: AsyncClient, db_session: AsyncSession, employee: Profile, local_utc
):
    task = await create_task(client, employee, employee, due_date="2026-10-20T22:00:00")
    # 01:30 at +02:00 is still 23:30 on the 20th in UTC
    same_day = "2026-10-21T01:30:00+02:00"

    response = await client.put(f"{TASKS}{task['id']}", json={"due_date": same_day}, headers=as_user(employee))

    assert response.status_code == 200
    assert (await db_session.execute(select(DueDateChange))).scalars().all() == []


async def test_manual_move_and_back_to_auto(client: AsyncClient, employee: Profile):
    task = await create_task(client, employee, employee, due_date=due_in(1))
    url = f"{TASKS}{task['id']}/quadrant"

    moved = await client.patch(url, json={"quadrant": 3}, headers=as_user(employee))
    assert (moved.json()["quadrant"], moved.json()["quadrant_override"]) == (3, True)

    listed = await client.get(TASKS, headers=as_user(employee))
    assert listed.json()["items"][0]["quadrant"] == 3

    auto = await client.patch(url, json={"auto": True}, headers=as_user(employee))
    assert (auto.json()["quadrant"], auto.json()["quadrant_override"]) == (1, False)

    missing = await client.patch(url, json={}, headers=as_user(employee))
    assert missing.status_code == 422


async def test_list_reclassifies_and_persists(client: AsyncClient, db_session: AsyncSession, employee: Profile):
    """A task classified days ago as quadrant 3 is overdue now"""
    stale = Task(
        title="Stale",
        assigned_to_id=employee.id,
        created_by_id=employee.id,
        due_date=datetime.fromisoformat(due_in(-1)),
        quadrant=3,
    )
    db_session.add(stale)
    await db_session.commit()
    task_id = stale.id

    response = await client.get(TASKS, headers=as_user(employee))

    assert response.json()["items"][0]["quadrant"] == 1
    assert response.json()["items"][0]["priority_label"] == "Overdue by 1 days"
    stored = await db_session.get(Task, task_id)
    assert stored is not None and stored.quadrant == 1


async def test_history_reads_do_not_reclassify(client: AsyncClient, db_session: AsyncSession, employee: Profile):
    stale = Task(
        title="Stale",
        assigned_to_id=employee.id,
        created_by_id=employee.id,
        due_date=datetime.fromisoformat(due_in(-1)),
        quadrant=3,
    )
    db_session.add(stale)
    await db_session.commit()
    url = f"{TASKS}{stale.id}"

    due_dates = await client.get(f"{url}/due-date-changes", headers=as_user(employee))
    progress = await client.get(f"{url}/progress-updates", headers=as_user(employee))

    assert (due_dates.status_code, progress.status_code) == (200, 200)
    await db_session.refresh(stale)
    assert stale.quadrant == 3


async def test_history_requires_task_access(client: AsyncClient, employee: Profile, outsider: Profile):
    task = await create_task(client, employee, employee, due_date=due_in(3))

    response = await client.get(f"{TASKS}{task['id']}/progress-updates", headers=as_user(outsider))

    assert response.status_code == 403


async def test_list_sorting_and_pagination(client: AsyncClient, employee: Profile):
    await create_task(client, employee, employee, title="Later", due_date=due_in(10))
    await create_task(client, employee, employee, title="Soon", due_date=due_in(1))
    await create_task(client, employee, employee, title="Someday")

    async def titles(**params) -> list[str]:
        response = await client.get(TASKS, params=params, headers=as_user(employee))
        return [item["title"] for item in response.json()["items"]]

    assert await titles() == ["Soon", "Later", "Someday"]
    assert await titles(sort="duedate-desc") == ["Later", "Soon", "Someday"]
    assert await titles(sort="priority-asc") == ["Soon", "Later", "Someday"]
    assert await titles(sort="priority-desc") == ["Someday", "Later", "Soon"]

    page = await client.get(TASKS, params={"limit": 2, "page": 2}, headers=as_user(employee))
    assert page.json()["total"] == 3
    assert [item["title"] for item in page.json()["items"]] == ["Someday"]


async def test_hide_completed(client: AsyncClient, employee: Profile):
    done = await create_task(client, employee, employee, title="Done")
    await create_task(client, employee, employee, title="Open")
    await client.patch(f"{TASKS}{done['id']}/completion", json={"completed": True}, headers=as_user(employee))

    response = await client.get(TASKS, params={"hide_completed": True}, headers=as_user(employee))

    assert [item["title"] for item in response.json()["items"]] == ["Open"]


async def test_visibility_scope(
    client: AsyncClient,
    admin: Profile,
    manager: Profile,
    employee: Profile,
    outsider: Profile,
):
    mine = await create_task(client, employee, employee, title="Mine")
    theirs = await create_task(client, outsider, outsider, title="Theirs")

    employee_view = await client.get(TASKS, headers=as_user(employee))
    manager_view = await client.get(TASKS, headers=as_user(manager))
    admin_view = await client.get(TASKS, headers=as_user(admin))

    assert [item["title"] for item in employee_view.json()["items"]] == ["Mine"]
    assert [item["title"] for item in manager_view.json()["items"]] == ["Mine"]
    assert admin_view.json()["total"] == 2

    assert (await client.get(f"{TASKS}{theirs['id']}", headers=as_user(employee))).status_code == 403
    assert (await client.get(f"{TASKS}{mine['id']}", headers=as_user(manager))).status_code == 200

    filtered = await client.get(TASKS, params={"assigned_to": str(outsider.id)}, headers=as_user(manager))
    assert filtered.status_code == 403


async def test_manager_assigns_to_report(client: AsyncClient, manager: Profile, employee: Profile):
    data = await create_task(client, manager, employee, title="Delegated")

    assert data["created_by_name"] == manager.name
    assert data["assigned_to_name"] == employee.name


async def test_delete_task(client: AsyncClient, employee: Profile, change_feed: RecordingChangeFeed):
    task = await create_task(client, employee, employee)

    response = await client.delete(f"{TASKS}{task['id']}", headers=as_user(employee))

    assert response.status_code == 204
    assert (await client.get(f"{TASKS}{task['id']}", headers=as_user(employee))).status_code == 404
    assert [event["event"] for event in change_feed.of("tasks")] == ["INSERT", "DELETE"]
