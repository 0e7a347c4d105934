from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.db import get_db
from app.models.enums import Role
from app.models.organization import Organization
from app.models.user import User
from app.schemas.organization import OrganizationRegister, OrganizationResponse
from app.services import accounts
from app.utils.auth import get_password_hash
from app.utils.errors import ValidationError
from app.utils.notifications import dispatch_notifications
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/organizations",
    tags=["organizations"],
)


@router.post("/register", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
def register_organization(
    registration: OrganizationRegister,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Register an organization together with its first admin.
    The admin account waits for a system admin's approval.
    """
    if db.query(Organization).filter(Organization.name == registration.name).first():
        raise ValidationError("Organization name is already taken")
    if db.query(User).filter(User.email == registration.admin_email).first():
        raise ValidationError("Email is already registered")

    organization = Organization(name=registration.name, description=registration.description)
    admin = User(
        email=registration.admin_email,
        first_name=registration.admin_first_name,
        last_name=registration.admin_last_name,
        hashed_password=get_password_hash(registration.admin_password),
        role=Role.ADMIN,
        organization=organization,
        is_approved=False,
    )
    db.add_all([organization, admin])
    db.commit()
    db.refresh(organization)
    logger.info(f"Organization {organization.name} registered, admin {admin.email} pending approval")

    background_tasks.add_task(dispatch_notifications, accounts.pending_account_notices(db, admin))
    return organization


@router.get("/", response_model=List[OrganizationResponse])
def get_organizations(db: Session = Depends(get_db)):
    """
    List organizations, e.g. for the registration form.
    """
    return db.query(Organization).order_by(Organization.name).all()
