from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Body, Depends, status
from sqlalchemy.orm import Session
from app.db import get_db
from app.models.user import User
from app.schemas.booking import BookingCreate, BookingReject, BookingResponse, BookingUpdate
from app.services import bookings as booking_service
from app.utils.auth import get_current_user
from app.utils.notifications import dispatch_notifications
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
)


def _respond(outcome, background_tasks: BackgroundTasks):
    """Queue the outcome's notifications to run after the response and serialize the booking."""
    if outcome.notifications:
        background_tasks.add_task(dispatch_notifications, outcome.notifications)
    return BookingResponse.from_booking(outcome.booking)


def _respond_many(bookings):
    return [BookingResponse.from_booking(booking) for booking in bookings]


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
    description="Request a room for a time interval. The booking starts PENDING until an admin approves it.",
)
def create_booking(
    booking: BookingCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Request a room for a time interval.

    - **room_id**: ID of the room to book.
    - **start_time** / **end_time**: the interval; both in the future, end after start.
    - **purpose**, **notes**, **attendee_count**, **is_recurring**: descriptive fields.

    Fails with 409 when the room already holds an overlapping pending or approved booking.
    """
    outcome = booking_service.create_booking(db, booking, current_user)
    return _respond(outcome, background_tasks)


@router.get(
    "/",
    response_model=List[BookingResponse],
    summary="List bookings visible to the current user",
    description="System admins see every booking, admins their organization's rooms, users their own bookings.",
)
def list_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond_many(booking_service.list_for_actor(db, current_user))


@router.get("/upcoming", response_model=List[BookingResponse], summary="Upcoming bookings of the current user")
def list_upcoming_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond_many(booking_service.list_upcoming_for_user(db, current_user))


@router.get("/history", response_model=List[BookingResponse], summary="Past bookings of the current user")
def list_booking_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond_many(booking_service.list_history_for_user(db, current_user))


@router.get("/all/upcoming", response_model=List[BookingResponse], summary="Upcoming bookings of every room")
def list_all_upcoming_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond_many(booking_service.list_upcoming_global(db))


@router.get("/ongoing", response_model=List[BookingResponse], summary="Approved bookings happening now")
def list_ongoing_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond_many(booking_service.list_ongoing_global(db))


@router.get(
    "/organization/pending",
    response_model=List[BookingResponse],
    summary="Bookings waiting for approval",
    description="Admins get their organization's queue; system admins may pass organization_id or see all.",
)
def list_pending_bookings(
    organization_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond_many(
        booking_service.list_pending_for_organization(db, current_user, organization_id)
    )


@router.get(
    "/search",
    response_model=List[BookingResponse],
    summary="Search bookings by purpose or notes",
    description="Case-insensitive substring match over purpose and notes, within the bookings the current user may see.",
)
def search_bookings(
    q: str = "",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond_many(booking_service.search_for_actor(db, current_user, q))


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get a booking by ID")
def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = booking_service.get_booking_for_actor(db, booking_id, current_user)
    logger.debug(f"Retrieved booking: {booking_id}")
    return BookingResponse.from_booking(booking)


@router.put(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Update a booking",
    description="Update purpose, notes, attendee count or the recurring flag. Owner only; times cannot change.",
)
def update_booking(
    booking_id: str,
    booking_update: BookingUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    outcome = booking_service.update_booking(db, booking_id, booking_update, current_user)
    return _respond(outcome, background_tasks)


@router.post("/{booking_id}/approve", response_model=BookingResponse, summary="Approve a pending booking")
def approve_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    outcome = booking_service.approve_booking(db, booking_id, current_user)
    return _respond(outcome, background_tasks)


@router.post("/{booking_id}/reject", response_model=BookingResponse, summary="Reject a pending booking")
def reject_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    rejection: Optional[BookingReject] = Body(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reason = rejection.reason if rejection else None
    outcome = booking_service.reject_booking(db, booking_id, current_user, reason)
    return _respond(outcome, background_tasks)


@router.post("/{booking_id}/cancel", response_model=BookingResponse, summary="Cancel your own booking")
def cancel_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    outcome = booking_service.cancel_booking(db, booking_id, current_user)
    return _respond(outcome, background_tasks)
