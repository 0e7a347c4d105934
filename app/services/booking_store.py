"""
Persistence queries over bookings, keyed by room and time interval.

Two intervals conflict iff ``existing.start < new.end AND existing.end > new.start``;
bookings that only touch at an endpoint do not conflict.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import List

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.enums import BookingStatus, RoomAccessLevel
from app.models.room import Room, room_allowed_organizations
from app.services.booking_state import ACTIVE_STATUSES, TERMINAL_STATUSES
from app.services.scopes import Scope, ScopeKind

logger = logging.getLogger(__name__)


def get_booking(db: Session, booking_id: str):
    return db.query(Booking).filter(Booking.id == booking_id).first()


def lock_room_intervals(db: Session, room_id: str) -> None:
    """
    Serialize booking creation per room.

    The UPDATE is the first write of the transaction, so a concurrent creator for the
    same room blocks here until the current transaction commits or rolls back, and only
    then runs its own conflict query.
    """
    db.execute(
        update(Room)
        .where(Room.id == room_id)
        .values(booking_revision=Room.booking_revision + 1)
        .execution_options(synchronize_session=False)
    )


def find_conflicts(db: Session, room_id: str, start_time: datetime, end_time: datetime) -> List[Booking]:
    """Active bookings of the room overlapping [start_time, end_time), oldest request first."""
    return (
        db.query(Booking)
        .filter(
            Booking.room_id == room_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        )
        .order_by(Booking.created_at, Booking.id)
        .all()
    )


def compare_and_set_status(db: Session, booking_id: str, expected: BookingStatus, target: BookingStatus, **values) -> bool:
    """
    Move a booking from ``expected`` to ``target`` status.

    Returns False when the booking is no longer in ``expected``, i.e. another writer
    got there first. The caller owns the commit.
    """
    result = db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == expected)
        .values(status=target, updated_at=datetime.now(), **values)
        .execution_options(synchronize_session=False)
    )
    changed = result.rowcount == 1
    if not changed:
        logger.debug(f"Booking {booking_id} is no longer {expected.value}, skipped move to {target.value}")
    return changed


def _booking_scope_filter(query, scope: Scope):
    if scope.kind is ScopeKind.ORGANIZATION:
        return query.join(Room, Booking.room_id == Room.id).filter(
            Room.organization_id == scope.organization_id
        )
    if scope.kind is ScopeKind.OWNER:
        return query.filter(Booking.user_id == scope.user_id)
    if scope.kind is not ScopeKind.ALL:
        raise ValueError(f"Unsupported booking scope: {scope.kind}")
    return query


def bookings_in_scope(db: Session, scope: Scope) -> List[Booking]:
    query = _booking_scope_filter(db.query(Booking), scope)
    return query.order_by(Booking.start_time, Booking.created_at).all()


def search_bookings(db: Session, scope: Scope, term: str) -> List[Booking]:
    """Bookings in scope whose purpose or notes contain ``term``, ignoring case. A blank term matches all."""
    query = _booking_scope_filter(db.query(Booking), scope)
    term = (term or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(Booking.purpose.ilike(pattern), Booking.notes.ilike(pattern)))
    return query.order_by(Booking.start_time, Booking.created_at).all()


def pending_in_scope(db: Session, scope: Scope) -> List[Booking]:
    query = db.query(Booking).filter(Booking.status == BookingStatus.PENDING)
    if scope.kind is ScopeKind.ORGANIZATION:
        query = query.join(Room, Booking.room_id == Room.id).filter(
            Room.organization_id == scope.organization_id
        )
    elif scope.kind is not ScopeKind.ALL:
        raise ValueError(f"Unsupported pending scope: {scope.kind}")
    return query.order_by(Booking.start_time, Booking.created_at).all()


def expired_pending(db: Session, now: datetime) -> List[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.status == BookingStatus.PENDING, Booking.start_time < now)
        .order_by(Booking.start_time, Booking.created_at)
        .all()
    )


def finished_approved(db: Session, now: datetime) -> List[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.status == BookingStatus.APPROVED, Booking.end_time < now)
        .order_by(Booking.end_time)
        .all()
    )


def upcoming(db: Session, now: datetime, user_id: str = None) -> List[Booking]:
    query = db.query(Booking).filter(
        Booking.start_time > now,
        Booking.is_active.is_(True),
        Booking.status.in_(ACTIVE_STATUSES),
    )
    if user_id is not None:
        query = query.filter(Booking.user_id == user_id)
    return query.order_by(Booking.start_time).all()


def upcoming_for_room(db: Session, room_id: str, now: datetime) -> List[Booking]:
    return (
        db.query(Booking)
        .filter(
            Booking.room_id == room_id,
            Booking.start_time > now,
            Booking.is_active.is_(True),
            Booking.status.in_(ACTIVE_STATUSES),
        )
        .order_by(Booking.start_time)
        .all()
    )


def bookings_for_room_on(db: Session, room_id: str, day: date) -> List[Booking]:
    """Pending and approved bookings of the room that start on ``day``."""
    day_start = datetime.combine(day, time.min)
    return (
        db.query(Booking)
        .filter(
            Booking.room_id == room_id,
            Booking.start_time >= day_start,
            Booking.start_time < day_start + timedelta(days=1),
            Booking.is_active.is_(True),
            Booking.status.in_(ACTIVE_STATUSES),
        )
        .order_by(Booking.start_time)
        .all()
    )


def ongoing(db: Session, now: datetime) -> List[Booking]:
    return (
        db.query(Booking)
        .filter(
            Booking.status == BookingStatus.APPROVED,
            Booking.start_time <= now,
            Booking.end_time >= now,
        )
        .order_by(Booking.start_time)
        .all()
    )


def history_for_user(db: Session, user_id: str) -> List[Booking]:
    return (
        db.query(Booking)
        .filter(
            Booking.user_id == user_id,
            or_(Booking.is_active.is_(False), Booking.status.in_(TERMINAL_STATUSES)),
        )
        .order_by(Booking.start_time.desc())
        .all()
    )


def _room_scope_filter(query, scope: Scope):
    if scope.kind is ScopeKind.ORGANIZATION:
        query = query.filter(Room.organization_id == scope.organization_id)
    elif scope.kind is ScopeKind.ACCESSIBLE:
        visible = [Room.access_level == RoomAccessLevel.PUBLIC]
        if scope.organization_id is not None:
            allowed_rooms = select(room_allowed_organizations.c.room_id).where(
                room_allowed_organizations.c.organization_id == scope.organization_id
            )
            visible.append(Room.organization_id == scope.organization_id)
            visible.append(Room.id.in_(allowed_rooms))
        query = query.filter(Room.is_active.is_(True), or_(*visible))
    elif scope.kind is not ScopeKind.ALL:
        raise ValueError(f"Unsupported room scope: {scope.kind}")
    return query


def rooms_in_scope(db: Session, scope: Scope) -> List[Room]:
    return _room_scope_filter(db.query(Room), scope).order_by(Room.name).all()


def search_rooms(db: Session, scope: Scope, term: str) -> List[Room]:
    """Rooms in scope whose name, description or location contain ``term``, ignoring case."""
    query = _room_scope_filter(db.query(Room), scope)
    term = (term or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(
            or_(Room.name.ilike(pattern), Room.description.ilike(pattern), Room.location.ilike(pattern))
        )
    return query.order_by(Room.name).all()
