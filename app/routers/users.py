from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.db import get_db
from app.models.enums import Role
from app.models.user import User
from app.schemas.user import UserResponse, UserStatusUpdate
from app.services import accounts
from app.utils.auth import require_roles
from app.utils.notifications import dispatch_notifications


router = APIRouter(
    prefix="/users",
    tags=["users"],
)

moderators = require_roles(Role.ADMIN, Role.SYSTEM_ADMIN)


@router.get("/pending", response_model=List[UserResponse])
def get_pending_users(db: Session = Depends(get_db), current_user: User = Depends(moderators)):
    """
    Accounts waiting for approval that the current admin may decide on.
    """
    return accounts.pending_users(db, current_user)


@router.post("/{user_id}/approve", response_model=UserResponse)
def approve_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(moderators),
):
    user, notices = accounts.approve_user(db, user_id, current_user)
    background_tasks.add_task(dispatch_notifications, notices)
    return user


@router.post("/{user_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
def reject_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(moderators),
):
    notices = accounts.reject_user(db, user_id, current_user)
    background_tasks.add_task(dispatch_notifications, notices)
    return None


@router.put("/{user_id}/status", response_model=UserResponse)
def update_user_status(
    user_id: str,
    status_update: UserStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(moderators),
):
    """
    Activate or deactivate an account. Deactivated users cannot log in.
    """
    return accounts.set_user_active(db, user_id, status_update.is_active, current_user)
