from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from app.models.enums import RoomAccessLevel
from app.utils.validation_helpers import reject_null


class RoomBase(BaseModel):
    name: str
    capacity: int = Field(ge=1)
    description: Optional[str] = None
    location: Optional[str] = None
    floor: Optional[str] = None


class RoomCreate(RoomBase):
    # Only read for system admins; admins always create in their own organization
    organization_id: Optional[str] = None


class RoomUpdate(BaseModel):
    name: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None
    location: Optional[str] = None
    floor: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "capacity", "is_active")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class RoomAccessUpdate(BaseModel):
    access_level: RoomAccessLevel
    allowed_organization_ids: List[str] = []


class RoomResponse(RoomBase):
    id: str
    organization_id: str
    organization_name: str
    access_level: RoomAccessLevel
    allowed_organization_ids: List[str] = []
    is_active: bool

    @classmethod
    def from_room(cls, room):
        return cls(
            id=room.id,
            name=room.name,
            capacity=room.capacity,
            description=room.description,
            location=room.location,
            floor=room.floor,
            organization_id=room.organization_id,
            organization_name=room.organization.name,
            access_level=room.access_level,
            allowed_organization_ids=[org.id for org in room.allowed_organizations],
            is_active=room.is_active,
        )
