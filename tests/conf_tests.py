import os
import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.db import Base, get_db
from app.models.booking import Booking
from app.models.enums import BookingStatus, Role
from app.models.organization import Organization
from app.models.room import Room
from app.models.user import User
from app.utils import notifications
from app.utils.auth import get_password_hash, token_for_user
from app.utils.notifications import Notification

# Test database setup
if not os.path.exists("./out"):
    os.makedirs("./out")

SQLALCHEMY_DATABASE_URL = "sqlite:///./out/tests.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create test tables
Base.metadata.create_all(bind=engine)


# Dependency override
def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db

client = TestClient(app)

TEST_PASSWORD = "testpassword"
# Hashed once; bcrypt is deliberately slow
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

TOMORROW = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)


def at(hour, minute=0, day=TOMORROW):
    """A time on tomorrow's date, safely in the future."""
    return day + timedelta(hours=hour, minutes=minute)


# Fixtures
@pytest.fixture(autouse=True)
def clear_db():
    """Clear all data from all tables after each test"""
    with engine.connect() as conn:
        trans = conn.begin()
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        trans.commit()


@pytest.fixture
def test_db():
    """Provide a database session for testing"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_next_user():
    """Helper function to generate unique usernames"""
    if not hasattr(get_next_user, "user_count"):
        get_next_user.user_count = 0
    get_next_user.user_count += 1
    return get_next_user.user_count


def make_organization(db, name):
    organization = Organization(name=name)
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


def make_user(db, role=Role.USER, organization=None, is_approved=True, first_name="Test"):
    number = get_next_user()
    user = User(
        email=f"user_{number}@acme.io",
        first_name=first_name,
        last_name=f"User{number}",
        hashed_password=TEST_PASSWORD_HASH,
        role=role,
        organization_id=organization.id if organization else None,
        is_approved=is_approved,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_room(db, organization, name="Conference Room A", capacity=10):
    room = Room(name=name, capacity=capacity, location="Floor 1", organization_id=organization.id)
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


def make_booking(db, room, user, start_time, end_time, status=BookingStatus.PENDING):
    """Insert a booking directly, bypassing creation checks (e.g. for past intervals)."""
    booking = Booking(
        room_id=room.id,
        user_id=user.id,
        start_time=start_time,
        end_time=end_time,
        status=status,
        purpose="Team Meeting",
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def auth_headers_for(user):
    return {"Authorization": f"Bearer {token_for_user(user)}"}


def booking_payload(room, start_time, end_time, **extra):
    payload = {
        "room_id": room.id,
        "start_time": start_time.isoformat(),
        "end_time": end_time.isoformat(),
        "purpose": "Team Meeting",
        "attendee_count": 4,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def organization(test_db):
    return make_organization(test_db, "Acme")


@pytest.fixture
def other_organization(test_db):
    return make_organization(test_db, "Globex")


@pytest.fixture
def test_user(test_db, organization):
    return make_user(test_db, Role.USER, organization, first_name="Alice")


@pytest.fixture
def other_user(test_db, other_organization):
    return make_user(test_db, Role.USER, other_organization, first_name="Bob")


@pytest.fixture
def admin_user(test_db, organization):
    return make_user(test_db, Role.ADMIN, organization, first_name="Ada")


@pytest.fixture
def other_admin(test_db, other_organization):
    return make_user(test_db, Role.ADMIN, other_organization, first_name="Grace")


@pytest.fixture
def system_admin(test_db):
    return make_user(test_db, Role.SYSTEM_ADMIN, None, first_name="Root")


@pytest.fixture
def test_room(test_db, organization):
    return make_room(test_db, organization)


@pytest.fixture
def outbox(monkeypatch):
    """Capture emails instead of sending them"""
    sent = []

    def fake_send_email(recipient, subject, body):
        sent.append(Notification(recipient, subject, body))

    monkeypatch.setattr(notifications, "send_email", fake_send_email)
    return sent
