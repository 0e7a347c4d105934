"""
Booking lifecycle operations used by the API layer.

Mutating operations return a ``BookingOutcome``: the persisted booking together with
the notifications the transition produced. Notifications are never sent from inside
these functions, so a mail failure cannot undo a committed transition.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.enums import Role
from app.models.room import Room
from app.models.user import User
from app.services import booking_state, booking_store, scopes
from app.services.booking_state import BookingEvent
from app.utils.errors import (
    ConflictError,
    DuplicateRequestError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.utils.notifications import Notification

logger = logging.getLogger(__name__)


@dataclass
class BookingOutcome:
    booking: Booking
    notifications: List[Notification] = field(default_factory=list)


def _unique(bookings) -> List[Booking]:
    """Drop repeated bookings, keeping the first occurrence."""
    seen = set()
    result = []
    for booking in bookings:
        if booking.id not in seen:
            seen.add(booking.id)
            result.append(booking)
    return result


def _get_booking_or_404(db: Session, booking_id: str) -> Booking:
    booking = booking_store.get_booking(db, booking_id)
    if booking is None:
        logger.error(f"Booking not found: {booking_id}")
        raise NotFoundError("Booking not found")
    return booking


def _apply_event(db: Session, booking: Booking, event: BookingEvent, **values) -> Booking:
    """Move ``booking`` along ``event`` with a conditional update and commit it."""
    current = booking.status
    target = booking_state.transition(current, event)
    try:
        changed = booking_store.compare_and_set_status(db, booking.id, current, target, **values)
    except Exception:
        db.rollback()
        raise
    if not changed:
        # Lost the race to another writer; report the status it left behind
        db.rollback()
        db.refresh(booking)
        raise StateConflictError(booking.status, event.value)
    db.commit()
    db.refresh(booking)
    logger.info(f"Booking {booking.id} transitioned: {current.value} -> {target.value}")
    return booking


def create_booking(db: Session, payload, user: User, now: Optional[datetime] = None) -> BookingOutcome:
    """
    Create a PENDING booking after validating the interval and checking conflicts.

    Checks run in order and the first failure wins: times present, neither time in the
    past, end after start, room exists, no overlapping active booking on the room.
    """
    now = now or datetime.now()
    start_time, end_time = payload.start_time, payload.end_time
    logger.debug(f"Creating booking for user: {user.email}, room_id: {payload.room_id}")

    if start_time is None or end_time is None:
        raise ValidationError("Start time and end time are required.")
    if start_time < now or end_time < now:
        logger.error(f"Booking in the past rejected: {start_time} to {end_time}, now {now}")
        raise ValidationError("Cannot book a room for a past date or time.")
    if end_time <= start_time:
        raise ValidationError("End time must be after start time.")

    room = db.query(Room).filter(Room.id == payload.room_id).first()
    if not room:
        logger.error(f"Room not found: {payload.room_id}")
        raise NotFoundError("Room not found")

    try:
        booking_store.lock_room_intervals(db, room.id)
        conflicts = booking_store.find_conflicts(db, room.id, start_time, end_time)
        if conflicts:
            existing = conflicts[0]
            logger.error(
                f"Overlapping booking {existing.id} found for room_id: {room.id}, "
                f"time: {start_time} to {end_time}"
            )
            if existing.user_id == user.id:
                raise DuplicateRequestError("You have already booked this room for the selected time.")
            raise ConflictError(
                existing.start_time,
                existing.end_time,
                existing.user.full_name,
                existing.user.email,
                room.organization.name,
            )

        booking = Booking(
            room_id=room.id,
            user_id=user.id,
            start_time=start_time,
            end_time=end_time,
            status=booking_state.INITIAL_STATUS,
            is_active=True,
            purpose=payload.purpose,
            notes=payload.notes,
            attendee_count=payload.attendee_count,
            is_recurring=payload.is_recurring,
        )
        db.add(booking)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info(
        f"Booking created: ID={booking.id}, Purpose={booking.purpose}, StartTime={booking.start_time}, "
        f"EndTime={booking.end_time}, Status={booking.status.value}"
    )

    org_admins = db.query(User).filter(
        User.organization_id == room.organization_id, User.role == Role.ADMIN
    ).all()
    system_admins = db.query(User).filter(User.role == Role.SYSTEM_ADMIN).all()
    return BookingOutcome(booking, booking_state.creation_notices(booking, org_admins, system_admins))


def cancel_booking(db: Session, booking_id: str, user: User) -> BookingOutcome:
    booking = _get_booking_or_404(db, booking_id)
    scopes.ensure_can_cancel(user, booking)
    return BookingOutcome(_apply_event(db, booking, BookingEvent.CANCEL))


def approve_booking(db: Session, booking_id: str, user: User, now: Optional[datetime] = None) -> BookingOutcome:
    booking = _get_booking_or_404(db, booking_id)
    scopes.ensure_can_moderate(user, booking)
    booking = _apply_event(
        db,
        booking,
        BookingEvent.APPROVE,
        approved_by_id=user.id,
        approved_at=now or datetime.now(),
    )
    return BookingOutcome(booking, booking_state.approval_notices(booking))


def reject_booking(db: Session, booking_id: str, user: User, reason: Optional[str] = None) -> BookingOutcome:
    booking = _get_booking_or_404(db, booking_id)
    scopes.ensure_can_moderate(user, booking)
    booking = _apply_event(db, booking, BookingEvent.REJECT, rejection_reason=reason)
    return BookingOutcome(booking, booking_state.rejection_notices(booking, reason))


def update_booking(db: Session, booking_id: str, payload, user: User) -> BookingOutcome:
    """Edit the descriptive fields of an active booking; times and room never change."""
    booking = _get_booking_or_404(db, booking_id)
    scopes.ensure_owner(user, booking, "update")
    if not booking_state.is_active_status(booking.status):
        raise StateConflictError(booking.status, "update")

    update_data = payload.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(booking, key, value)
    db.commit()
    db.refresh(booking)
    logger.debug(f"Updated booking: {booking.id}")
    return BookingOutcome(booking)


def get_booking_for_actor(db: Session, booking_id: str, user: User) -> Booking:
    booking = _get_booking_or_404(db, booking_id)
    if not scopes.booking_in_scope(scopes.booking_scope_for(user), booking):
        raise NotFoundError("Booking not found")
    return booking


def list_for_actor(db: Session, user: User) -> List[Booking]:
    scope = scopes.booking_scope_for(user)
    bookings = _unique(booking_store.bookings_in_scope(db, scope))
    logger.debug(f"Retrieved {len(bookings)} bookings for {user.email} ({scope.kind.value} scope)")
    return bookings


def list_pending_for_organization(db: Session, user: User, organization_id: Optional[str] = None) -> List[Booking]:
    scope = scopes.pending_scope_for(user, organization_id)
    return _unique(booking_store.pending_in_scope(db, scope))


def list_upcoming_for_user(db: Session, user: User, now: Optional[datetime] = None) -> List[Booking]:
    return _unique(booking_store.upcoming(db, now or datetime.now(), user_id=user.id))


def list_upcoming_global(db: Session, now: Optional[datetime] = None) -> List[Booking]:
    return _unique(booking_store.upcoming(db, now or datetime.now()))


def list_ongoing_global(db: Session, now: Optional[datetime] = None) -> List[Booking]:
    return _unique(booking_store.ongoing(db, now or datetime.now()))


def list_history_for_user(db: Session, user: User) -> List[Booking]:
    return _unique(booking_store.history_for_user(db, user.id))


def search_for_actor(db: Session, user: User, term: str) -> List[Booking]:
    scope = scopes.booking_scope_for(user)
    bookings = _unique(booking_store.search_bookings(db, scope, term))
    logger.debug(f"Search '{term}' matched {len(bookings)} bookings for {user.email}")
    return bookings


def list_upcoming_for_room(db: Session, room: Room, now: Optional[datetime] = None) -> List[Booking]:
    return _unique(booking_store.upcoming_for_room(db, room.id, now or datetime.now()))


def list_today_for_room(db: Session, room: Room, today: Optional[date] = None) -> List[Booking]:
    return _unique(booking_store.bookings_for_room_on(db, room.id, today or date.today()))
