from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from app.db import get_db
from app.models.enums import Role
from app.models.organization import Organization
from app.models.user import User
from app.schemas.user import RegistrationResponse, Token, UserRegister, UserResponse
from app.services import accounts
from app.utils.auth import authenticate_user, get_current_user, get_password_hash, token_for_user
from app.utils.errors import NotFoundError, ValidationError
from app.utils.notifications import dispatch_notifications
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
def register(
    registration: UserRegister,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Request a user account in an organization.
    The account cannot log in until an admin of that organization approves it.
    """
    organization = db.query(Organization).filter(Organization.id == registration.organization_id).first()
    if not organization:
        raise NotFoundError("Organization not found")
    if db.query(User).filter(User.email == registration.email).first():
        raise ValidationError("Email is already registered")

    user = User(
        email=registration.email,
        first_name=registration.first_name,
        last_name=registration.last_name,
        hashed_password=get_password_hash(registration.password),
        role=Role.USER,
        organization_id=organization.id,
        is_approved=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.email} registered in organization {organization.name}, pending approval")

    background_tasks.add_task(dispatch_notifications, accounts.pending_account_notices(db, user))
    return RegistrationResponse(organization_name=organization.name)


@router.post("/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Exchange email (as ``username``) and password for a bearer token.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        logger.error(f"Failed login for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_approved:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is pending approval")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return Token(access_token=token_for_user(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
