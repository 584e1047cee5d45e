"""
Test the role-based permission model
"""

import uuid

import pytest

from taskboard.domain.permissions import (
    PermissionCheck,
    UserRole,
    can_access_user_tasks,
    can_change_user_role,
    can_hold_manager,
    get_user_permissions,
    is_allowed_to_manage_teams,
    is_allowed_to_view_teams,
)

ME = uuid.uuid4()
SOMEONE = uuid.uuid4()


def test_admin_has_everything_but_own_role_change():
    on_other = get_user_permissions(UserRole.ADMIN, SOMEONE, ME)
    on_self = get_user_permissions(UserRole.ADMIN, ME, ME)

    assert on_other.can_create_teams and on_other.can_assign_team_leads and on_other.can_change_user_roles
    assert not on_self.can_change_user_roles
    assert on_self.can_update_teams


def test_manager_gated_by_reporting_line():
    own_report = get_user_permissions(UserRole.MANAGER, SOMEONE, ME, is_user_under_manager=True)
    stranger = get_user_permissions(UserRole.MANAGER, SOMEONE, ME, is_user_under_manager=False)

    assert own_report.can_assign_employees and own_report.can_assign_team_leads and own_report.can_change_user_roles
    assert not stranger.can_assign_employees
    assert not stranger.can_change_user_roles
    assert stranger.can_create_teams and stranger.can_view_teams


def test_team_lead_and_employee():
    lead = get_user_permissions("team-lead")
    employee = get_user_permissions("employee")

    assert lead.can_view_teams and not lead.can_create_teams and not lead.can_change_user_roles
    assert employee == PermissionCheck()
    assert employee.can_view_tasks and employee.can_update_tasks and employee.can_update_own_profile


def test_every_role_can_work_on_tasks():
    for role in UserRole:
        permissions = get_user_permissions(role)
        assert permissions.can_view_tasks and permissions.can_update_tasks and permissions.can_upload_profile_image


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        get_user_permissions("super-manager")


def test_to_dict_has_all_flags():
    flags = get_user_permissions(UserRole.TEAM_LEAD).to_dict()
    assert len(flags) == 10
    assert flags["can_view_teams"] is True


@pytest.mark.parametrize(
    ("current", "target", "new_role", "under", "allowed"),
    [
        (UserRole.ADMIN, UserRole.EMPLOYEE, UserRole.MANAGER, False, True),
        (UserRole.ADMIN, UserRole.MANAGER, UserRole.EMPLOYEE, False, True),
        (UserRole.MANAGER, UserRole.EMPLOYEE, UserRole.TEAM_LEAD, True, True),
        (UserRole.MANAGER, UserRole.EMPLOYEE, UserRole.TEAM_LEAD, False, False),
        (UserRole.MANAGER, UserRole.EMPLOYEE, UserRole.MANAGER, True, False),
        (UserRole.MANAGER, UserRole.TEAM_LEAD, UserRole.EMPLOYEE, True, False),
        (UserRole.TEAM_LEAD, UserRole.EMPLOYEE, UserRole.TEAM_LEAD, True, False),
        (UserRole.EMPLOYEE, UserRole.EMPLOYEE, UserRole.TEAM_LEAD, False, False),
    ],
)
def test_role_transitions(current, target, new_role, under, allowed):
    assert can_change_user_role(current, target, new_role, under) is allowed


def test_team_helpers():
    assert is_allowed_to_view_teams(UserRole.TEAM_LEAD)
    assert not is_allowed_to_view_teams(UserRole.EMPLOYEE)
    assert is_allowed_to_manage_teams(UserRole.MANAGER)
    assert not is_allowed_to_manage_teams(UserRole.TEAM_LEAD)
    assert can_hold_manager(UserRole.EMPLOYEE) and can_hold_manager(UserRole.TEAM_LEAD)
    assert not can_hold_manager(UserRole.MANAGER) and not can_hold_manager(UserRole.ADMIN)


def test_task_access_scope():
    member = uuid.uuid4()

    assert can_access_user_tasks(UserRole.ADMIN, ME, SOMEONE)
    assert can_access_user_tasks(UserRole.EMPLOYEE, ME, ME)
    assert not can_access_user_tasks(UserRole.EMPLOYEE, ME, SOMEONE)
    assert can_access_user_tasks(UserRole.MANAGER, ME, SOMEONE, target_manager_id=ME)
    assert not can_access_user_tasks(UserRole.MANAGER, ME, SOMEONE, target_manager_id=None)
    assert can_access_user_tasks(UserRole.TEAM_LEAD, ME, member, led_member_ids={member})
    assert not can_access_user_tasks(UserRole.TEAM_LEAD, ME, SOMEONE, led_member_ids={member})
