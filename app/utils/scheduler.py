from datetime import datetime
from sqlalchemy.orm import Session
from app.models.booking import Booking
from app.services import booking_store
from app.services.booking_state import ACTIVE_STATUSES
from app.services.scopes import Scope


def find_available_rooms(db: Session, scope: Scope, start_time: datetime, end_time: datetime, required_capacity: int = 0):
    """
    Rooms in scope with enough capacity and no active booking overlapping the interval.
    Smallest sufficient room first, so large rooms stay free for large meetings.
    """
    if end_time <= start_time:
        raise ValueError("End time must be after start time")

    candidates = [
        room for room in booking_store.rooms_in_scope(db, scope)
        if room.is_active and room.capacity >= required_capacity
    ]
    if not candidates:
        return []

    busy_room_ids = {
        room_id for (room_id,) in db.query(Booking.room_id).filter(
            Booking.room_id.in_([room.id for room in candidates]),
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        ).distinct()
    }

    available = [room for room in candidates if room.id not in busy_room_ids]
    available.sort(key=lambda room: (room.capacity, room.name))
    return available
