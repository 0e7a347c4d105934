import enum


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SYSTEM_ADMIN = "SYSTEM_ADMIN"


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class RoomAccessLevel(str, enum.Enum):
    PUBLIC = "PUBLIC"
    ORG_ONLY = "ORG_ONLY"
