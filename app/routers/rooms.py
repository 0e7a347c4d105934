from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.db import get_db
from app.models.enums import Role, RoomAccessLevel
from app.models.organization import Organization
from app.models.room import Room
from app.models.user import User
from app.schemas.booking import BookingResponse
from app.schemas.room import RoomAccessUpdate, RoomCreate, RoomResponse, RoomUpdate
from app.services import bookings as booking_service
from app.services import booking_store, scopes
from app.utils.auth import get_current_user, require_roles
from app.utils.errors import NotFoundError, ValidationError
from app.utils.scheduler import find_available_rooms
from app.utils.validation_helpers import drop_timezone
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)

room_managers = require_roles(Role.ADMIN, Role.SYSTEM_ADMIN)


def get_room_or_404(db: Session, room_id: str) -> Room:
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        raise NotFoundError("Room not found")
    return room


def get_visible_room_or_404(db: Session, room_id: str, user: User) -> Room:
    room = get_room_or_404(db, room_id)
    if not scopes.room_in_scope(scopes.room_scope_for(user), room):
        logger.debug(f"Room {room_id} is outside the scope of {user.email}")
        raise NotFoundError("Room not found")
    return room


def ensure_unique_name(db: Session, organization_id: str, name: str, exclude_room_id: str = None):
    query = db.query(Room).filter(Room.organization_id == organization_id, Room.name == name)
    if exclude_room_id is not None:
        query = query.filter(Room.id != exclude_room_id)
    if query.first():
        raise ValidationError("Room with this name already exists in organization")


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(room: RoomCreate, db: Session = Depends(get_db), current_user: User = Depends(room_managers)):
    """
    Create a new meeting room.
    Admins create rooms in their own organization; system admins must name the organization.
    """
    if current_user.role == Role.SYSTEM_ADMIN:
        if not room.organization_id:
            raise ValidationError("organization_id is required")
        organization_id = room.organization_id
    else:
        organization_id = scopes.require_organization(current_user)

    if not db.query(Organization).filter(Organization.id == organization_id).first():
        raise NotFoundError("Organization not found")
    ensure_unique_name(db, organization_id, room.name)

    db_room = Room(
        **room.model_dump(exclude={"organization_id"}),
        organization_id=organization_id,
        access_level=RoomAccessLevel.PUBLIC,
    )
    db.add(db_room)
    db.commit()
    db.refresh(db_room)
    logger.info(f"Room created: {db_room.id} ({db_room.name}) in organization {organization_id}")
    return RoomResponse.from_room(db_room)


@router.get("/", response_model=List[RoomResponse])
def get_rooms(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Retrieve the meeting rooms visible to the current user.
    """
    rooms = booking_store.rooms_in_scope(db, scopes.room_scope_for(current_user))
    logger.debug(f"Found {len(rooms)} rooms for {current_user.email}")
    return [RoomResponse.from_room(room) for room in rooms]


@router.get("/search", response_model=List[RoomResponse])
def search_rooms(q: str = "", db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Rooms visible to the current user whose name, description or location contain ``q``.
    """
    rooms = booking_store.search_rooms(db, scopes.room_scope_for(current_user), q)
    return [RoomResponse.from_room(room) for room in rooms]


@router.get("/available", response_model=List[RoomResponse])
def get_available_rooms(
    start_time: datetime,
    end_time: datetime,
    capacity: int = 0,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Rooms free for the whole interval with at least ``capacity`` seats, smallest first.
    """
    start_time, end_time = drop_timezone(start_time), drop_timezone(end_time)
    if end_time <= start_time:
        raise ValidationError("End time must be after start time.")
    rooms = find_available_rooms(db, scopes.room_scope_for(current_user), start_time, end_time, capacity)
    return [RoomResponse.from_room(room) for room in rooms]


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Retrieve a specific meeting room by ID.
    """
    return RoomResponse.from_room(get_visible_room_or_404(db, room_id, current_user))


@router.get("/{room_id}/bookings/upcoming", response_model=List[BookingResponse])
def get_room_upcoming_bookings(room_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Pending and approved bookings of a room that have not started yet.
    """
    room = get_visible_room_or_404(db, room_id, current_user)
    return [BookingResponse.from_booking(booking) for booking in booking_service.list_upcoming_for_room(db, room)]


@router.get("/{room_id}/bookings/today", response_model=List[BookingResponse])
def get_room_bookings_today(room_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Pending and approved bookings of a room that start today.
    """
    room = get_visible_room_or_404(db, room_id, current_user)
    return [BookingResponse.from_booking(booking) for booking in booking_service.list_today_for_room(db, room)]


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(room_id: str, room_update: RoomUpdate, db: Session = Depends(get_db), current_user: User = Depends(room_managers)):
    """
    Update a meeting room's details.
    Existing bookings are not re-validated against the new details.
    """
    db_room = get_room_or_404(db, room_id)
    scopes.ensure_can_manage_room(current_user, db_room)

    update_data = room_update.model_dump(exclude_unset=True)
    if "name" in update_data:
        ensure_unique_name(db, db_room.organization_id, update_data["name"], exclude_room_id=db_room.id)
    for key, value in update_data.items():
        setattr(db_room, key, value)

    db.commit()
    db.refresh(db_room)
    return RoomResponse.from_room(db_room)


@router.put("/{room_id}/access", response_model=RoomResponse)
def update_room_access(room_id: str, access: RoomAccessUpdate, db: Session = Depends(get_db), current_user: User = Depends(room_managers)):
    """
    Change who may see a room: PUBLIC, or ORG_ONLY with an allow-list of organizations.
    """
    db_room = get_room_or_404(db, room_id)
    scopes.ensure_can_manage_room(current_user, db_room)

    allowed = []
    if access.access_level == RoomAccessLevel.ORG_ONLY:
        for organization_id in access.allowed_organization_ids:
            organization = db.query(Organization).filter(Organization.id == organization_id).first()
            if not organization:
                raise NotFoundError(f"Organization not found: {organization_id}")
            allowed.append(organization)

    db_room.access_level = access.access_level
    db_room.allowed_organizations = allowed
    db.commit()
    db.refresh(db_room)
    return RoomResponse.from_room(db_room)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(room_id: str, db: Session = Depends(get_db), current_user: User = Depends(room_managers)):
    """
    Delete a meeting room together with all of its bookings.
    """
    db_room = get_room_or_404(db, room_id)
    scopes.ensure_can_manage_room(current_user, db_room)

    db.delete(db_room)
    db.commit()
    logger.info(f"Room deleted: {room_id}")
    return None
