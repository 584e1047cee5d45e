"""
Test profile and privileged function endpoints
"""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.profile import Profile
from tests.helpers import RecordingChangeFeed, as_user

PROFILES = "/api/v1/profiles/"
FUNCTIONS = "/api/v1/functions"


async def test_get_me_and_list(client: AsyncClient, manager: Profile, employee: Profile):
    me = await client.get(f"{PROFILES}me", headers=as_user(employee))
    assert me.status_code == 200
    assert me.json()["role"] == "employee"
    assert me.json()["manager_name"] == manager.name

    managers = await client.get(PROFILES, params={"role": "manager"}, headers=as_user(employee))
    assert [profile["id"] for profile in managers.json()] == [str(manager.id)]


async def test_get_unknown_profile(client: AsyncClient, employee: Profile):
    response = await client.get(f"{PROFILES}00000000-0000-0000-0000-000000000000", headers=as_user(employee))
    assert response.status_code == 404


async def test_update_own_profile(client: AsyncClient, employee: Profile, change_feed: RecordingChangeFeed):
    response = await client.put(
        f"{PROFILES}me",
        json={"name": "Eve E.", "avatar_url": "https://cdn.example.com/eve.png"},
        headers=as_user(employee),
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Eve E."
    assert response.json()["role"] == "employee"
    assert change_feed.of("profiles")[0]["event"] == "UPDATE"


async def test_own_profile_update_cannot_touch_role(client: AsyncClient, employee: Profile):
    response = await client.put(f"{PROFILES}me", json={"role": "admin"}, headers=as_user(employee))

    assert response.status_code == 200
    assert response.json()["role"] == "employee"


async def test_create_profile_admin_only(client: AsyncClient, admin: Profile, manager: Profile, employee: Profile):
    body = {"email": "New.Hire@example.com", "name": "New Hire", "role": "employee", "manager_id": str(manager.id)}

    denied = await client.post(PROFILES, json=body, headers=as_user(employee))
    created = await client.post(PROFILES, json=body, headers=as_user(admin))
    duplicate = await client.post(PROFILES, json=body, headers=as_user(admin))

    assert denied.status_code == 403
    assert created.status_code == 201
    assert created.json()["email"] == "new.hire@example.com"
    assert created.json()["manager_id"] == str(manager.id)
    assert duplicate.status_code == 422


async def test_create_profile_rejects_unknown_role(client: AsyncClient, admin: Profile):
    body = {"email": "boss@example.com", "name": "Boss", "role": "super-manager"}
    response = await client.post(PROFILES, json=body, headers=as_user(admin))
    assert response.status_code == 422


async def test_permissions_endpoint(client: AsyncClient, manager: Profile, employee: Profile, outsider: Profile):
    own = await client.get(f"{PROFILES}{employee.id}/permissions", headers=as_user(manager))
    other = await client.get(f"{PROFILES}{outsider.id}/permissions", headers=as_user(manager))

    assert own.json()["can_change_user_roles"] is True
    assert own.json()["can_assign_employees"] is True
    assert other.json()["can_change_user_roles"] is False
    assert other.json()["can_create_teams"] is True


async def test_manager_promotes_own_employee(client: AsyncClient, manager: Profile, employee: Profile):
    response = await client.put(
        f"{PROFILES}{employee.id}/role", json={"new_role": "team-lead"}, headers=as_user(manager)
    )

    assert response.status_code == 200
    assert response.json()["role"] == "team-lead"
    assert response.json()["manager_id"] == str(manager.id)


async def test_manager_cannot_make_managers(client: AsyncClient, manager: Profile, employee: Profile):
    response = await client.put(f"{PROFILES}{employee.id}/role", json={"new_role": "manager"}, headers=as_user(manager))
    assert response.status_code == 403


async def test_manager_cannot_touch_other_teams(client: AsyncClient, manager: Profile, outsider: Profile):
    response = await client.put(
        f"{PROFILES}{outsider.id}/role", json={"new_role": "team-lead"}, headers=as_user(manager)
    )
    assert response.status_code == 403


async def test_admin_cannot_change_own_role(client: AsyncClient, admin: Profile):
    response = await client.put(f"{PROFILES}{admin.id}/role", json={"new_role": "employee"}, headers=as_user(admin))
    assert response.status_code == 403


async def test_promotion_to_manager_clears_manager(client: AsyncClient, admin: Profile, employee: Profile):
    response = await client.put(f"{PROFILES}{employee.id}/role", json={"new_role": "manager"}, headers=as_user(admin))

    assert response.status_code == 200
    assert response.json()["role"] == "manager"
    assert response.json()["manager_id"] is None


async def test_change_manager(
    client: AsyncClient,
    admin: Profile,
    manager: Profile,
    other_manager: Profile,
    employee: Profile,
    outsider: Profile,
):
    moved = await client.put(
        f"{PROFILES}{employee.id}/manager", json={"manager_id": str(other_manager.id)}, headers=as_user(admin)
    )
    assert moved.status_code == 200
    assert moved.json()["manager_id"] == str(other_manager.id)
    assert moved.json()["manager_name"] == other_manager.name

    denied = await client.put(
        f"{PROFILES}{outsider.id}/manager", json={"manager_id": str(manager.id)}, headers=as_user(manager)
    )
    assert denied.status_code == 403

    not_a_manager = await client.put(
        f"{PROFILES}{outsider.id}/manager", json={"manager_id": str(employee.id)}, headers=as_user(admin)
    )
    assert not_a_manager.status_code == 422


async def test_function_update_user_role(client: AsyncClient, db_session: AsyncSession, employee: Profile):
    response = await client.post(
        f"{FUNCTIONS}/update-user-role", json={"user_id": str(employee.id), "new_role": "admin"}
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    stored = await db_session.get(Profile, employee.id)
    assert stored is not None
    assert (stored.role, stored.manager_id) == ("admin", None)


async def test_function_update_user_role_errors(client: AsyncClient, employee: Profile):
    missing = await client.post(f"{FUNCTIONS}/update-user-role", json={"user_id": str(employee.id)})
    invalid = await client.post(
        f"{FUNCTIONS}/update-user-role", json={"user_id": str(employee.id), "new_role": "super-manager"}
    )
    unknown = await client.post(
        f"{FUNCTIONS}/update-user-role",
        json={"user_id": "00000000-0000-0000-0000-000000000000", "new_role": "employee"},
    )

    assert missing.status_code == 400 and "error" in missing.json()
    assert invalid.status_code == 400
    assert unknown.status_code == 404


async def test_function_update_user_manager(
    client: AsyncClient,
    manager: Profile,
    other_manager: Profile,
    employee: Profile,
):
    moved = await client.post(
        f"{FUNCTIONS}/update-user-manager", json={"user_id": str(employee.id), "manager_id": str(other_manager.id)}
    )
    cleared = await client.post(
        f"{FUNCTIONS}/update-user-manager", json={"user_id": str(employee.id), "manager_id": None}
    )
    manager_of_manager = await client.post(
        f"{FUNCTIONS}/update-user-manager", json={"user_id": str(manager.id), "manager_id": str(other_manager.id)}
    )

    assert moved.json() == {"success": True}
    assert cleared.json() == {"success": True}
    assert manager_of_manager.status_code == 400
