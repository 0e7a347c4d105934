"""Account moderation: pending-user queues and approval notifications."""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import SYSTEM_ADMIN_EMAIL, SYSTEM_ADMIN_PASSWORD
from app.models.enums import Role
from app.models.user import User
from app.services import scopes
from app.utils.auth import get_password_hash
from app.utils.errors import NotFoundError, ValidationError
from app.utils.notifications import Notification

logger = logging.getLogger(__name__)


def pending_account_notices(db: Session, user: User) -> List[Notification]:
    """Tell whoever can approve ``user`` that an account is waiting."""
    recipients = []
    if user.role == Role.USER and user.organization_id is not None:
        recipients = db.query(User).filter(
            User.organization_id == user.organization_id,
            User.role == Role.ADMIN,
            User.is_approved.is_(True),
        ).all()
    recipients += db.query(User).filter(User.role == Role.SYSTEM_ADMIN).all()
    return [
        Notification(
            admin.email,
            "Account Pending Approval",
            f"{user.full_name} ({user.email}) requested a {user.role.value} account and is waiting for approval.",
        )
        for admin in recipients
    ]


def pending_users(db: Session, actor: User) -> List[User]:
    query = db.query(User).filter(User.is_approved.is_(False))
    if actor.role == Role.SYSTEM_ADMIN:
        return query.order_by(User.created_at).all()
    if actor.role == Role.ADMIN:
        organization_id = scopes.require_organization(actor)
        return query.filter(
            User.organization_id == organization_id, User.role == Role.USER
        ).order_by(User.created_at).all()
    return []


def _get_user_or_404(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def approve_user(db: Session, user_id: str, actor: User) -> Tuple[User, List[Notification]]:
    user = _get_user_or_404(db, user_id)
    scopes.ensure_can_manage_user(actor, user)
    if user.is_approved:
        raise ValidationError("User is already approved")
    user.is_approved = True
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.email} approved by {actor.email}")
    notice = Notification(
        user.email,
        "Account Approved",
        f"Hello {user.first_name}, your {user.role.value} account was approved by {actor.full_name}. You can now log in.",
    )
    return user, [notice]


def reject_user(db: Session, user_id: str, actor: User) -> List[Notification]:
    """Reject a pending account; the account is removed."""
    user = _get_user_or_404(db, user_id)
    scopes.ensure_can_manage_user(actor, user)
    if user.is_approved:
        raise ValidationError("Only pending accounts can be rejected")
    notice = Notification(
        user.email,
        "Account Request Rejected",
        f"Hello {user.first_name}, your account request was not approved.",
    )
    db.delete(user)
    db.commit()
    logger.info(f"Pending user {notice.recipient} rejected by {actor.email}")
    return [notice]


def set_user_active(db: Session, user_id: str, is_active: bool, actor: User) -> User:
    user = _get_user_or_404(db, user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot change your own status")
    scopes.ensure_can_manage_user(actor, user)
    user.is_active = is_active
    db.commit()
    db.refresh(user)
    return user


def seed_system_admin(db: Session, email: Optional[str] = SYSTEM_ADMIN_EMAIL, password: Optional[str] = SYSTEM_ADMIN_PASSWORD) -> Optional[User]:
    """Create the bootstrap system admin if configured and missing."""
    if not email or not password:
        return None
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing
    admin = User(
        email=email,
        first_name="System",
        last_name="Admin",
        hashed_password=get_password_hash(password),
        role=Role.SYSTEM_ADMIN,
        is_approved=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(f"Seeded system admin {email}")
    return admin
