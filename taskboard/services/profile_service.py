"""
Profile service

Regular profile writes are limited to a user's own name and avatar_url. Role and manager changes
are checked against the permission model here and then delegated to admin_functions.
"""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import NotFound, PermissionDenied, TaskboardError, ValidationError
from taskboard.core.logger import get_logger
from taskboard.domain.permissions import (
    PermissionCheck,
    UserRole,
    can_change_user_role,
    can_hold_manager,
    get_user_permissions,
)
from taskboard.models.profile import (
    Profile,
    ProfileCreate,
    ProfileRead,
    ProfileUpdate,
    UpdateUserManagerPayload,
    UpdateUserRolePayload,
)
from taskboard.services import admin_functions
from taskboard.services.change_feed import ChangeFeed

logger = get_logger(__name__, logging.INFO)


async def _manager_names(db: AsyncSession, profiles: list[Profile]) -> dict[uuid.UUID, str]:
    manager_ids = {profile.manager_id for profile in profiles if profile.manager_id is not None}
    if not manager_ids:
        return {}
    result = await db.execute(select(Profile.id, Profile.name).where(Profile.id.in_(manager_ids)))  # type: ignore[attr-defined]
    return {row.id: row.name for row in result.all()}


def to_read(profile: Profile, manager_names: dict[uuid.UUID, str]) -> ProfileRead:
    return ProfileRead(
        id=profile.id,
        email=profile.email,
        name=profile.name,
        avatar_url=profile.avatar_url,
        role=UserRole(profile.role),
        manager_id=profile.manager_id,
        manager_name=manager_names.get(profile.manager_id) if profile.manager_id else None,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


async def read_profile(db: AsyncSession, profile: Profile) -> ProfileRead:
    return to_read(profile, await _manager_names(db, [profile]))


async def get_profile(db: AsyncSession, profile_id: uuid.UUID) -> Profile:
    profile = await db.get(Profile, profile_id)
    if profile is None:
        raise NotFound("User not found")
    return profile


async def list_profiles(db: AsyncSession, role: UserRole | None = None) -> list[ProfileRead]:
    query = select(Profile).order_by(Profile.name)  # type: ignore[arg-type]
    if role is not None:
        query = query.where(Profile.role == role.value)  # type: ignore[arg-type]

    result = await db.execute(query)
    profiles = list(result.scalars().all())
    names = await _manager_names(db, profiles)
    return [to_read(profile, names) for profile in profiles]


async def create_profile(
    db: AsyncSession,
    current_user: Profile,
    data: ProfileCreate,
    feed: ChangeFeed,
) -> ProfileRead:
    """
    Create a profile (admin only). Sign-up itself happens in the external auth provider.

    Raises:
        PermissionDenied: if the acting user is not an admin
        ValidationError: on a duplicate email or an invalid manager assignment
    """
    if current_user.role != UserRole.ADMIN.value:
        raise PermissionDenied("Only admins can create users")

    email = data.email.strip().lower()
    result = await db.execute(select(Profile).where(Profile.email == email))  # type: ignore[arg-type]
    if result.scalar_one_or_none() is not None:
        raise ValidationError("Email already registered")

    if data.manager_id is not None:
        if not can_hold_manager(data.role):
            raise ValidationError("Only employees and team leads can be assigned a manager")
        manager = await db.get(Profile, data.manager_id)
        if manager is None or manager.role != UserRole.MANAGER.value:
            raise ValidationError("Assigned manager must be an existing manager")

    profile = Profile(
        email=email,
        name=data.name.strip(),
        avatar_url=data.avatar_url,
        role=data.role.value,
        manager_id=data.manager_id,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    logger.info(f"Profile {profile.id} ({profile.role}) created by {current_user.id}")
    await feed.publish("profiles", "INSERT", profile.id, {"role": profile.role})
    return await read_profile(db, profile)


async def update_own_profile(
    db: AsyncSession,
    current_user: Profile,
    data: ProfileUpdate,
    feed: ChangeFeed,
) -> ProfileRead:
    if not get_user_permissions(current_user.role).can_update_own_profile:
        raise PermissionDenied("You are not allowed to update your profile")

    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "name":
            if value is None or not value.strip():
                raise ValidationError("Name is required")
            value = value.strip()
        setattr(current_user, field, value)

    current_user.updated_at = datetime.now(UTC)
    db.add(current_user)
    await db.commit()
    await db.refresh(current_user)

    await feed.publish("profiles", "UPDATE", current_user.id)
    return await read_profile(db, current_user)


def permissions_against(current_user: Profile, target: Profile) -> PermissionCheck:
    """Capability set of the current user acting on the target profile"""
    return get_user_permissions(
        current_user.role,
        target_user_id=target.id,
        current_user_id=current_user.id,
        is_user_under_manager=target.manager_id is not None and target.manager_id == current_user.id,
    )


def _raise_for(result: admin_functions.FunctionResult) -> None:
    if result.ok:
        return
    message = result.body.get("error", "Request failed")
    if result.status_code == 404:
        raise NotFound(message)
    if result.status_code == 400:
        raise ValidationError(message)
    error = TaskboardError(message)
    error.status_code = result.status_code
    raise error


async def change_role(
    db: AsyncSession,
    current_user: Profile,
    target_id: uuid.UUID,
    new_role: UserRole,
    feed: ChangeFeed,
) -> ProfileRead:
    """
    Change another user's role.

    Raises:
        PermissionDenied: when the capability table or the transition rule forbids it
    """
    target = await get_profile(db, target_id)
    permissions = permissions_against(current_user, target)
    under_manager = target.manager_id is not None and target.manager_id == current_user.id

    if not permissions.can_change_user_roles:
        logger.info(f"User {current_user.id} may not change the role of {target_id}")
        raise PermissionDenied("You are not allowed to change this user's role")
    if not can_change_user_role(current_user.role, target.role, new_role, under_manager):
        raise PermissionDenied(f"You cannot change a {target.role} to {new_role.value}")

    result = await admin_functions.update_user_role(
        db, UpdateUserRolePayload(user_id=target_id, new_role=new_role.value), feed
    )
    _raise_for(result)

    await db.refresh(target)
    return await read_profile(db, target)


async def change_manager(
    db: AsyncSession,
    current_user: Profile,
    target_id: uuid.UUID,
    manager_id: uuid.UUID | None,
    feed: ChangeFeed,
) -> ProfileRead:
    """
    Reassign the manager of an employee or team lead.

    Raises:
        PermissionDenied: unless the acting user is an admin, or the target's current manager
    """
    target = await get_profile(db, target_id)
    permissions = permissions_against(current_user, target)

    if not permissions.can_assign_employees:
        logger.info(f"User {current_user.id} may not reassign the manager of {target_id}")
        raise PermissionDenied("You are not allowed to change this user's manager")

    result = await admin_functions.update_user_manager(
        db, UpdateUserManagerPayload(user_id=target_id, manager_id=manager_id), feed
    )
    _raise_for(result)

    await db.refresh(target)
    return await read_profile(db, target)
