"""
Time triggered status transitions.

``reject_expired_pending`` auto-rejects PENDING bookings whose start time has passed;
``complete_finished_bookings`` marks APPROVED bookings COMPLETED once they have ended.
Both are safe to run concurrently with request handlers and with themselves: every
flip is a conditional update that skips bookings another writer already moved.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.models.enums import BookingStatus
from app.services import booking_state, booking_store
from app.services.booking_state import BookingEvent
from app.utils import notifications
from app.utils.notifications import Notification

logger = logging.getLogger(__name__)

def reject_expired_pending(
    db: Session,
    now: Optional[datetime] = None,
    notify: Optional[Callable[[Iterable[Notification]], None]] = None,
) -> int:
    """Reject every PENDING booking that started before ``now``. Returns how many were rejected."""
    now = now or datetime.now()
    target = booking_state.transition(BookingStatus.PENDING, BookingEvent.EXPIRE)
    notify = notify or notifications.dispatch_notifications
    rejected = 0

    for booking in booking_store.expired_pending(db, now):
        try:
            changed = booking_store.compare_and_set_status(
                db,
                booking.id,
                BookingStatus.PENDING,
                target,
                rejection_reason=booking_state.AUTO_REJECTION_REASON,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        if changed:
            rejected += 1
            logger.info(f"Booking {booking.id} auto-rejected: start time {booking.start_time} passed")
            # Each notice goes out once its own commit has landed
            notify(booking_state.expiry_notices(booking))

    if rejected:
        logger.info(f"Expiry sweep rejected {rejected} pending booking(s)")
    else:
        logger.debug("No expired pending bookings")
    return rejected

def complete_finished_bookings(db: Session, now: Optional[datetime] = None) -> int:
    """Mark APPROVED bookings whose end time has passed as COMPLETED."""
    now = now or datetime.now()
    target = booking_state.transition(BookingStatus.APPROVED, BookingEvent.COMPLETE)
    completed = 0

    for booking in booking_store.finished_approved(db, now):
        try:
            changed = booking_store.compare_and_set_status(db, booking.id, BookingStatus.APPROVED, target)
            db.commit()
        except Exception:
            db.rollback()
            raise
        if changed:
            completed += 1
            logger.info(f"Booking {booking.id} transitioned: APPROVED -> COMPLETED")
    return completed

def sweep_once() -> dict:
    db = SessionLocal()
    try:
        summary = {
            "rejected": reject_expired_pending(db),
            "completed": complete_finished_bookings(db),
        }
    finally:
        db.close()
    if any(summary.values()):
        logger.info(f"Booking sweep summary: {summary}")
    return summary

