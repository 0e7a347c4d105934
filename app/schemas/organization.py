from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional


class OrganizationRegister(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    admin_email: EmailStr
    admin_first_name: str = Field(min_length=1)
    admin_last_name: str = Field(min_length=1)
    admin_password: str = Field(min_length=8)


class OrganizationResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
