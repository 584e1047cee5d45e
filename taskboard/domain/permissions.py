"""
Role-based permission model

Capability table (role is the primary key, two fields are gated by the manager chain):

    Role        Teams (create/update/view)  Assign leads/employees      Change roles
    ----------  --------------------------  --------------------------  ---------------------------------------
    admin       all                         all                         yes, except their own role
    manager     all                         only users reporting to     only users reporting to them, not self
                                            them
    team-lead   view only                   no                          no
    employee    none                        no                          no

Every role may upload a profile image, view/update tasks and update its own profile; narrowing
those to the user's own scope happens in the data-access layer (see can_access_user_tasks).
"""

from collections.abc import Collection
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class UserRole(str, Enum):
    """Closed set of roles; anything else is rejected at the model boundary"""

    ADMIN = "admin"
    MANAGER = "manager"
    TEAM_LEAD = "team-lead"
    EMPLOYEE = "employee"


# Roles that report to a manager (carry a non-null manager_id)
MANAGED_ROLES = frozenset({UserRole.TEAM_LEAD, UserRole.EMPLOYEE})


@dataclass(frozen=True)
class PermissionCheck:
    can_create_teams: bool = False
    can_update_teams: bool = False
    can_view_teams: bool = False
    can_assign_team_leads: bool = False
    can_assign_employees: bool = False
    can_change_user_roles: bool = False
    can_upload_profile_image: bool = True
    can_view_tasks: bool = True
    can_update_tasks: bool = True
    can_update_own_profile: bool = True

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


def get_user_permissions(
    user_role: UserRole | str,
    target_user_id: Any = None,
    current_user_id: Any = None,
    is_user_under_manager: bool = False,
) -> PermissionCheck:
    """
    Capability set of a user acting on an (optional) target user.

    Args:
        user_role: role of the acting user
        target_user_id: user being acted upon, if any
        current_user_id: acting user
        is_user_under_manager: True when the target's manager_id is the acting user
    """
    role = UserRole(user_role)
    is_self = target_user_id == current_user_id

    if role == UserRole.ADMIN:
        return PermissionCheck(
            can_create_teams=True,
            can_update_teams=True,
            can_view_teams=True,
            can_assign_team_leads=True,
            can_assign_employees=True,
            can_change_user_roles=not is_self,
        )

    if role == UserRole.MANAGER:
        return PermissionCheck(
            can_create_teams=True,
            can_update_teams=True,
            can_view_teams=True,
            can_assign_team_leads=is_user_under_manager,
            can_assign_employees=is_user_under_manager,
            can_change_user_roles=is_user_under_manager and not is_self,
        )

    if role == UserRole.TEAM_LEAD:
        return PermissionCheck(can_view_teams=True)

    return PermissionCheck()


def can_change_user_role(
    current_user_role: UserRole | str,
    target_user_role: UserRole | str,
    new_role: UserRole | str,
    is_user_under_manager: bool = False,
) -> bool:
    """Whether a specific role transition is allowed for the acting role"""
    current = UserRole(current_user_role)

    if current == UserRole.ADMIN:
        return True

    # Managers may only promote their own employees to team lead
    if current == UserRole.MANAGER and is_user_under_manager:
        return UserRole(target_user_role) == UserRole.EMPLOYEE and UserRole(new_role) == UserRole.TEAM_LEAD

    return False


def is_allowed_to_view_teams(role: UserRole | str) -> bool:
    return UserRole(role) in (UserRole.ADMIN, UserRole.MANAGER, UserRole.TEAM_LEAD)


def is_allowed_to_manage_teams(role: UserRole | str) -> bool:
    return UserRole(role) in (UserRole.ADMIN, UserRole.MANAGER)


def can_hold_manager(role: UserRole | str) -> bool:
    """Only team leads and employees report to a manager"""
    return UserRole(role) in MANAGED_ROLES


def can_access_user_tasks(
    current_user_role: UserRole | str,
    current_user_id: Any,
    target_user_id: Any,
    *,
    target_manager_id: Any = None,
    led_member_ids: Collection[Any] = (),
) -> bool:
    """
    Whether the acting user may see/update tasks assigned to the target user.

    - admin: everyone
    - anyone: themselves
    - manager: users whose manager_id is the manager
    - team-lead: members of the teams they lead
    """
    role = UserRole(current_user_role)
    if role == UserRole.ADMIN:
        return True
    if target_user_id is not None and target_user_id == current_user_id:
        return True
    if role == UserRole.MANAGER:
        return target_manager_id is not None and target_manager_id == current_user_id
    if role == UserRole.TEAM_LEAD:
        return target_user_id in led_member_ids
    return False
