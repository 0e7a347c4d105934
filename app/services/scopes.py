"""
Role scoped visibility and authorization rules.

Scopes describe *which* bookings or rooms an actor may see; the ``ensure_*`` guards
decide whether an actor may mutate a given booking, room or account.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from app.models.enums import Role, RoomAccessLevel
from app.utils.errors import ForbiddenError, ScopeError

logger = logging.getLogger(__name__)


class ScopeKind(str, enum.Enum):
    ALL = "all"
    ORGANIZATION = "organization"
    OWNER = "owner"
    ACCESSIBLE = "accessible"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    organization_id: Optional[str] = None
    user_id: Optional[str] = None


def require_organization(user) -> str:
    if user.organization_id is None:
        logger.warning(f"User {user.id} with role {user.role} has no organization")
        raise ScopeError(f"{Role(user.role).value} is not associated with an organization.")
    return user.organization_id


def _unknown_role(user):
    return ValueError(f"Unknown role: {user.role!r}")


def booking_scope_for(user) -> Scope:
    role = Role(user.role)
    if role is Role.SYSTEM_ADMIN:
        return Scope(ScopeKind.ALL)
    if role is Role.ADMIN:
        return Scope(ScopeKind.ORGANIZATION, organization_id=require_organization(user))
    if role is Role.USER:
        return Scope(ScopeKind.OWNER, user_id=user.id)
    raise _unknown_role(user)


def pending_scope_for(user, organization_id: Optional[str] = None) -> Scope:
    """Scope of the pending-approval queue; only moderators have one."""
    role = Role(user.role)
    if role is Role.SYSTEM_ADMIN:
        if organization_id is None:
            return Scope(ScopeKind.ALL)
        return Scope(ScopeKind.ORGANIZATION, organization_id=organization_id)
    if role is Role.ADMIN:
        own_organization = require_organization(user)
        if organization_id is not None and organization_id != own_organization:
            raise ForbiddenError("You can only view pending bookings of your own organization")
        return Scope(ScopeKind.ORGANIZATION, organization_id=own_organization)
    if role is Role.USER:
        raise ForbiddenError("Only administrators can view pending bookings")
    raise _unknown_role(user)


def room_scope_for(user) -> Scope:
    role = Role(user.role)
    if role is Role.SYSTEM_ADMIN:
        return Scope(ScopeKind.ALL)
    if role is Role.ADMIN:
        return Scope(ScopeKind.ORGANIZATION, organization_id=require_organization(user))
    if role is Role.USER:
        return Scope(ScopeKind.ACCESSIBLE, organization_id=user.organization_id)
    raise _unknown_role(user)


def booking_in_scope(scope: Scope, booking) -> bool:
    if scope.kind is ScopeKind.ALL:
        return True
    if scope.kind is ScopeKind.ORGANIZATION:
        return booking.room.organization_id == scope.organization_id
    if scope.kind is ScopeKind.OWNER:
        return booking.user_id == scope.user_id
    return False



def room_in_scope(scope: Scope, room) -> bool:
    if scope.kind is ScopeKind.ALL:
        return True
    if scope.kind is ScopeKind.ORGANIZATION:
        return room.organization_id == scope.organization_id
    if scope.kind is ScopeKind.ACCESSIBLE:
        if not room.is_active:
            return False
        if room.access_level == RoomAccessLevel.PUBLIC:
            return True
        if scope.organization_id is None:
            return False
        return room.organization_id == scope.organization_id or any(
            organization.id == scope.organization_id for organization in room.allowed_organizations
        )
    return False


def ensure_can_moderate(user, booking) -> None:
    """Approve/reject: system admins, or admins of the room's organization."""
    role = Role(user.role)
    if role is Role.SYSTEM_ADMIN:
        return
    if role is Role.ADMIN and user.organization_id is not None \
            and booking.room.organization_id == user.organization_id:
        return
    raise ForbiddenError("You can only approve or reject bookings in your own organization")


def ensure_owner(user, booking, action: str = "cancel") -> None:
    if booking.user_id != user.id:
        raise ForbiddenError(f"You can only {action} your own bookings")


def ensure_can_cancel(user, booking) -> None:
    ensure_owner(user, booking, "cancel")


def ensure_can_manage_room(user, room) -> None:
    role = Role(user.role)
    if role is Role.SYSTEM_ADMIN:
        return
    if role is Role.ADMIN and user.organization_id is not None \
            and room.organization_id == user.organization_id:
        return
    raise ForbiddenError("You can only manage rooms of your own organization")


def ensure_can_manage_user(actor, target) -> None:
    """Account moderation: admins manage regular users of their own organization."""
    role = Role(actor.role)
    if role is Role.SYSTEM_ADMIN:
        return
    if role is Role.ADMIN and Role(target.role) is Role.USER \
            and actor.organization_id is not None \
            and target.organization_id == actor.organization_id:
        return
    raise ForbiddenError("You are not allowed to manage this account")
