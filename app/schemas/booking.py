from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional
from app.models.enums import BookingStatus
from app.utils.validation_helpers import drop_timezone, format_duration, reject_null


class BookingBase(BaseModel):
    purpose: Optional[str] = None
    notes: Optional[str] = None
    attendee_count: Optional[int] = Field(default=None, ge=1)
    is_recurring: bool = False


class BookingCreate(BookingBase):
    room_id: str
    # Optional here so missing times surface as a booking validation error
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_times(cls, value):
        return drop_timezone(value)


class BookingUpdate(BaseModel):
    purpose: Optional[str] = None
    notes: Optional[str] = None
    attendee_count: Optional[int] = Field(default=None, ge=1)
    is_recurring: Optional[bool] = None

    @field_validator("is_recurring")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class BookingReject(BaseModel):
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    id: str
    room_id: str
    room_name: str
    room_organization_id: str
    organization_name: str
    user_id: str
    user_name: str
    user_email: str
    organization_id: Optional[str] = None
    booking_date: str
    start_time: datetime
    end_time: datetime
    duration: str
    status: BookingStatus
    purpose: Optional[str] = None
    notes: Optional[str] = None
    attendee_count: Optional[int] = None
    is_active: bool
    approved_by_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    recurring_info: str

    @classmethod
    def from_booking(cls, booking):
        room, user = booking.room, booking.user
        return cls(
            id=booking.id,
            room_id=room.id,
            room_name=room.name,
            room_organization_id=room.organization_id,
            organization_name=room.organization.name,
            user_id=user.id,
            user_name=user.full_name,
            user_email=user.email,
            organization_id=user.organization_id,
            booking_date=booking.start_time.date().isoformat(),
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration=format_duration(booking.start_time, booking.end_time),
            status=booking.status,
            purpose=booking.purpose,
            notes=booking.notes,
            attendee_count=booking.attendee_count,
            is_active=booking.is_active,
            approved_by_name=booking.approved_by.full_name if booking.approved_by else None,
            approved_at=booking.approved_at,
            rejection_reason=booking.rejection_reason,
            recurring_info="Recurring" if booking.is_recurring else "One-time meeting",
        )
