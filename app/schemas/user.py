from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional
from app.models.enums import Role


class UserRegister(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    password: str = Field(min_length=8)
    organization_id: str


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: Role
    organization_id: Optional[str] = None
    is_approved: bool
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegistrationResponse(BaseModel):
    message: str = "Registration successful"
    status: str = "PENDING"
    next_step: str = "Wait for admin approval"
    organization_name: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
