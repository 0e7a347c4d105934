import uuid
from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from app.db import Base
from app.models.enums import RoomAccessLevel
import app.models.organization  # noqa: F401


room_allowed_organizations = Table(
    "room_allowed_organizations",
    Base.metadata,
    Column("room_id", String(36), ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True),
    Column("organization_id", String(36), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
)


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_rooms_organization_name"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=True)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    capacity = Column(Integer, nullable=False)
    location = Column(String, nullable=True)
    floor = Column(String, nullable=True)
    access_level = Column(Enum(RoomAccessLevel), default=RoomAccessLevel.PUBLIC, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Bumped inside every booking-creation transaction to lock the room's interval set
    booking_revision = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    organization = relationship("Organization", back_populates="rooms")
    allowed_organizations = relationship("Organization", secondary=room_allowed_organizations)
    bookings = relationship(
        "Booking", back_populates="room", cascade="all, delete-orphan"
    )
