"""
Team service

Role        List / view                 Create / update / delete
----------  --------------------------  ------------------------
admin       every team                  every team
manager     teams they manage           teams they manage
team-lead   teams they belong to        -
employee    -                           -

Membership rule: every member is an employee and the lead is a team lead or employee, all of them
reporting to the team's manager. Lead and members are replaced as a whole on update.
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import NotFound, PermissionDenied, ValidationError
from taskboard.core.logger import get_logger
from taskboard.domain.permissions import UserRole, get_user_permissions
from taskboard.models.profile import Profile
from taskboard.models.team import Team, TeamCreate, TeamMember, TeamRead, TeamUpdate
from taskboard.services.change_feed import ChangeFeed

logger = get_logger(__name__, logging.INFO)


def to_read(team: Team, members: Sequence[TeamMember]) -> TeamRead:
    lead_id = next((member.user_id for member in members if member.is_lead), None)
    return TeamRead(
        id=team.id,
        name=team.name,
        manager_id=team.manager_id,
        lead_id=lead_id,
        member_ids=[member.user_id for member in members if not member.is_lead],
        created_at=team.created_at,
        updated_at=team.updated_at,
    )


async def _members_of(db: AsyncSession, team_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, list[TeamMember]]:
    grouped: dict[uuid.UUID, list[TeamMember]] = {team_id: [] for team_id in team_ids}
    if not team_ids:
        return grouped
    result = await db.execute(
        select(TeamMember)
        .where(TeamMember.team_id.in_(list(team_ids)))  # type: ignore[attr-defined]
        .order_by(TeamMember.created_at)  # type: ignore[arg-type]
    )
    for member in result.scalars().all():
        grouped[member.team_id].append(member)
    return grouped


async def _read_one(db: AsyncSession, team: Team) -> TeamRead:
    members = await _members_of(db, [team.id])
    return to_read(team, members[team.id])


def _require_view(current_user: Profile) -> None:
    if not get_user_permissions(current_user.role).can_view_teams:
        logger.info(f"User {current_user.id} ({current_user.role}) denied team access")
        raise PermissionDenied("You are not allowed to view teams")


def _require_manage(current_user: Profile, team: Team | None = None, *, create: bool = False) -> None:
    permissions = get_user_permissions(current_user.role)
    allowed = permissions.can_create_teams if create else permissions.can_update_teams
    if not allowed:
        raise PermissionDenied("You are not allowed to manage teams")
    if team is not None and current_user.role == UserRole.MANAGER.value and team.manager_id != current_user.id:
        raise PermissionDenied("Managers can only manage their own teams")


async def _is_member(db: AsyncSession, team_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(TeamMember.id).where(
            TeamMember.team_id == team_id,  # type: ignore[arg-type]
            TeamMember.user_id == user_id,  # type: ignore[arg-type]
        )
    )
    return result.first() is not None


async def _load_team(db: AsyncSession, team_id: uuid.UUID) -> Team:
    team = await db.get(Team, team_id)
    if team is None:
        raise NotFound("Team not found")
    return team


async def validate_membership(
    db: AsyncSession,
    manager_id: uuid.UUID | None,
    lead_id: uuid.UUID | None,
    member_ids: Sequence[uuid.UUID],
) -> list[uuid.UUID]:
    """
    Check the lead and members against the team's manager.

    Returns:
        member ids without duplicates and without the lead

    Raises:
        ValidationError: when a user is missing, has the wrong role or reports to another manager
    """
    members = [member_id for member_id in dict.fromkeys(member_ids) if member_id != lead_id]
    wanted = set(members) | ({lead_id} if lead_id else set())
    if not wanted:
        return members

    result = await db.execute(select(Profile).where(Profile.id.in_(list(wanted))))  # type: ignore[attr-defined]
    profiles = {profile.id: profile for profile in result.scalars().all()}

    missing = wanted - profiles.keys()
    if missing:
        raise ValidationError(f"Unknown users: {', '.join(sorted(str(user_id) for user_id in missing))}")

    if lead_id is not None:
        lead = profiles[lead_id]
        if lead.role not in (UserRole.TEAM_LEAD.value, UserRole.EMPLOYEE.value):
            raise ValidationError(f"{lead.name} cannot lead a team (role {lead.role})")
        if lead.manager_id != manager_id:
            raise ValidationError(f"{lead.name} does not report to the team's manager")

    for member_id in members:
        member = profiles[member_id]
        if member.role != UserRole.EMPLOYEE.value:
            raise ValidationError(f"{member.name} is not an employee")
        if member.manager_id != manager_id:
            raise ValidationError(f"{member.name} does not report to the team's manager")

    return members


async def _validate_manager(db: AsyncSession, manager_id: uuid.UUID | None) -> None:
    if manager_id is None:
        raise ValidationError("Team manager is required")
    manager = await db.get(Profile, manager_id)
    if manager is None or manager.role != UserRole.MANAGER.value:
        raise ValidationError("Team manager must be an existing manager")


def _membership_rows(
    team_id: uuid.UUID,
    lead_id: uuid.UUID | None,
    member_ids: Sequence[uuid.UUID],
) -> list[TeamMember]:
    rows = [TeamMember(team_id=team_id, user_id=member_id, is_lead=False) for member_id in member_ids]
    if lead_id is not None:
        rows.insert(0, TeamMember(team_id=team_id, user_id=lead_id, is_lead=True))
    return rows


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def list_teams(db: AsyncSession, current_user: Profile) -> list[TeamRead]:
    _require_view(current_user)

    query = select(Team).order_by(Team.name)  # type: ignore[arg-type]
    if current_user.role == UserRole.MANAGER.value:
        query = query.where(Team.manager_id == current_user.id)  # type: ignore[arg-type]
    elif current_user.role == UserRole.TEAM_LEAD.value:
        own_teams = select(TeamMember.team_id).where(TeamMember.user_id == current_user.id)  # type: ignore[arg-type]
        query = query.where(Team.id.in_(own_teams))  # type: ignore[attr-defined]

    result = await db.execute(query)
    teams = list(result.scalars().all())
    members = await _members_of(db, [team.id for team in teams])
    return [to_read(team, members[team.id]) for team in teams]


async def get_team(db: AsyncSession, current_user: Profile, team_id: uuid.UUID) -> TeamRead:
    _require_view(current_user)
    team = await _load_team(db, team_id)

    if current_user.role == UserRole.MANAGER.value and team.manager_id != current_user.id:
        raise PermissionDenied("Managers can only view their own teams")
    if current_user.role == UserRole.TEAM_LEAD.value and not await _is_member(db, team.id, current_user.id):
        raise PermissionDenied("You are not a member of this team")

    return await _read_one(db, team)


async def create_team(
    db: AsyncSession,
    current_user: Profile,
    data: TeamCreate,
    feed: ChangeFeed,
) -> TeamRead:
    _require_manage(current_user, create=True)

    manager_id = data.manager_id
    if current_user.role == UserRole.MANAGER.value:
        if manager_id is not None and manager_id != current_user.id:
            raise PermissionDenied("Managers can only create teams they manage")
        manager_id = current_user.id

    await _validate_manager(db, manager_id)
    member_ids = await validate_membership(db, manager_id, data.lead_id, data.member_ids)

    team = Team(name=data.name.strip(), manager_id=manager_id)
    db.add(team)
    await db.flush()
    db.add_all(_membership_rows(team.id, data.lead_id, member_ids))
    await db.commit()
    await db.refresh(team)

    logger.info(f"Team {team.id} '{team.name}' created by {current_user.id} with {len(member_ids)} members")
    await feed.publish("teams", "INSERT", team.id, {"manager_id": team.manager_id})
    await feed.publish("team_members", "INSERT", team.id)
    return await _read_one(db, team)


async def update_team(
    db: AsyncSession,
    current_user: Profile,
    team_id: uuid.UUID,
    data: TeamUpdate,
    feed: ChangeFeed,
) -> TeamRead:
    team = await _load_team(db, team_id)
    _require_manage(current_user, team)

    update_data = data.model_dump(exclude_unset=True)
    current = (await _members_of(db, [team.id]))[team.id]

    manager_id = team.manager_id
    if "manager_id" in update_data and update_data["manager_id"] != team.manager_id:
        if current_user.role != UserRole.ADMIN.value:
            raise PermissionDenied("Only admins can move a team to another manager")
        manager_id = update_data["manager_id"]
        await _validate_manager(db, manager_id)

    membership_touched = any(key in update_data for key in ("lead_id", "member_ids", "manager_id"))
    if membership_touched:
        lead_id = (
            update_data["lead_id"]
            if "lead_id" in update_data
            else next((member.user_id for member in current if member.is_lead), None)
        )
        requested = (
            update_data["member_ids"]
            if update_data.get("member_ids") is not None
            else [member.user_id for member in current if not member.is_lead]
        )
        member_ids = await validate_membership(db, manager_id, lead_id, requested)

        await db.execute(delete(TeamMember).where(TeamMember.team_id == team.id))  # type: ignore[arg-type]
        db.add_all(_membership_rows(team.id, lead_id, member_ids))

    if update_data.get("name") is not None:
        team.name = update_data["name"].strip()
    team.manager_id = manager_id
    team.updated_at = datetime.now(UTC)

    db.add(team)
    await db.commit()
    await db.refresh(team)

    logger.info(f"Team {team.id} updated by {current_user.id}")
    await feed.publish("teams", "UPDATE", team.id)
    if membership_touched:
        await feed.publish("team_members", "UPDATE", team.id)
    return await _read_one(db, team)


async def delete_team(
    db: AsyncSession,
    current_user: Profile,
    team_id: uuid.UUID,
    feed: ChangeFeed,
) -> None:
    team = await _load_team(db, team_id)
    _require_manage(current_user, team)

    await db.execute(delete(TeamMember).where(TeamMember.team_id == team.id))  # type: ignore[arg-type]
    await db.delete(team)
    await db.commit()

    logger.info(f"Team {team_id} deleted by {current_user.id}")
    await feed.publish("teams", "DELETE", team_id)
    await feed.publish("team_members", "DELETE", team_id)
