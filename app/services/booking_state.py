"""
Booking status state machine.

PENDING is the only initial state. Transitions:

    PENDING  --approve-->  APPROVED
    PENDING  --reject--->  REJECTED
    PENDING  --expire--->  REJECTED   (sweeper, start time passed)
    PENDING  --cancel--->  CANCELLED
    APPROVED --cancel--->  CANCELLED
    APPROVED --complete->  COMPLETED  (end time passed)

REJECTED, CANCELLED and COMPLETED accept no further events.
"""

import enum
from typing import Iterable, List, Optional

from app.models.enums import BookingStatus
from app.utils.errors import StateConflictError
from app.utils.notifications import Notification


class BookingEvent(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    EXPIRE = "expire"
    COMPLETE = "complete"


INITIAL_STATUS = BookingStatus.PENDING

# Statuses that occupy the room for conflict detection
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED)

TERMINAL_STATUSES = (
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
)

TRANSITIONS = {
    (BookingStatus.PENDING, BookingEvent.APPROVE): BookingStatus.APPROVED,
    (BookingStatus.PENDING, BookingEvent.REJECT): BookingStatus.REJECTED,
    (BookingStatus.PENDING, BookingEvent.EXPIRE): BookingStatus.REJECTED,
    (BookingStatus.PENDING, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.APPROVED, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.APPROVED, BookingEvent.COMPLETE): BookingStatus.COMPLETED,
}

AUTO_REJECTION_REASON = "Not approved before the meeting start time."


def transition(current: BookingStatus, event: BookingEvent) -> BookingStatus:
    """Return the status reached from ``current`` on ``event`` or raise StateConflictError."""
    target = TRANSITIONS.get((BookingStatus(current), event))
    if target is None:
        raise StateConflictError(current, event.value)
    return target


def allowed_events(current: BookingStatus) -> List[BookingEvent]:
    return [event for (status, event) in TRANSITIONS if status == current]


def is_active_status(status: BookingStatus) -> bool:
    return status in ACTIVE_STATUSES


# Notification intents. Each builder only reads the booking; delivery is left to the caller.

def creation_notices(booking, org_admins: Iterable, system_admins: Iterable) -> List[Notification]:
    room_name = booking.room.name
    notices = [
        Notification(
            booking.user.email,
            "Booking Request Sent",
            "Your booking request has been sent and is pending approval.",
        )
    ]
    notices.extend(
        Notification(
            admin.email,
            "Booking Pending Approval",
            f"A new booking is pending your approval for room: {room_name}",
        )
        for admin in org_admins
    )
    notices.extend(
        Notification(
            admin.email,
            "Booking Pending Approval",
            f"A new booking is pending approval for room: {room_name}",
        )
        for admin in system_admins
    )
    return notices


def approval_notices(booking) -> List[Notification]:
    return [
        Notification(
            booking.user.email,
            "Booking Approved",
            f"Your booking for room: {booking.room.name} has been approved.",
        )
    ]


def rejection_notices(booking, reason: Optional[str] = None) -> List[Notification]:
    body = f"Your booking for room: {booking.room.name} has been rejected."
    if reason:
        body = f"{body} Reason: {reason}"
    return [Notification(booking.user.email, "Booking Rejected", body)]


def expiry_notices(booking) -> List[Notification]:
    return [
        Notification(
            booking.user.email,
            "Booking Automatically Rejected",
            f"Your booking for room: {booking.room.name} was automatically rejected "
            "because it was not approved before the meeting start time.",
        )
    ]
