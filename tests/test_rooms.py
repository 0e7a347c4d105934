from datetime import date, datetime, time, timedelta
from fastapi import status
from app.models.booking import Booking
from app.models.enums import BookingStatus
from app.models.room import Room
from tests.conf_tests import (
    client,
    clear_db,
    test_db,
    organization,
    other_organization,
    test_user,
    other_user,
    admin_user,
    other_admin,
    system_admin,
    test_room,
    at,
    auth_headers_for,
    make_booking,
    make_room,
)

ROOM_DATA = {"name": "Meeting Room", "capacity": 5, "location": "Floor 2"}


# Tests
def test_create_room_unauthorized():
    response = client.post("/rooms/", json=ROOM_DATA)
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


def test_create_room_success(admin_user):  # pylint: disable=redefined-outer-name
    response = client.post("/rooms/", json=ROOM_DATA, headers=auth_headers_for(admin_user))
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["organization_id"] == admin_user.organization_id
    assert data["access_level"] == "PUBLIC"
    assert data["is_active"] is True


def test_create_room_as_regular_user(test_user):  # pylint: disable=redefined-outer-name
    response = client.post("/rooms/", json=ROOM_DATA, headers=auth_headers_for(test_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


# pylint: disable-next=redefined-outer-name
def test_system_admin_creates_room_for_organization(system_admin, other_organization):
    headers = auth_headers_for(system_admin)

    response = client.post("/rooms/", json=ROOM_DATA, headers=headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.post("/rooms/", json={**ROOM_DATA, "organization_id": "missing"}, headers=headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = client.post(
        "/rooms/", json={**ROOM_DATA, "organization_id": other_organization.id}, headers=headers
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["organization_name"] == "Globex"


# pylint: disable-next=redefined-outer-name
def test_create_room_duplicate_name(admin_user, other_admin, test_room):
    duplicate = {**ROOM_DATA, "name": test_room.name}

    response = client.post("/rooms/", json=duplicate, headers=auth_headers_for(admin_user))
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    # Names are unique per organization only
    response = client.post("/rooms/", json=duplicate, headers=auth_headers_for(other_admin))
    assert response.status_code == status.HTTP_201_CREATED


def test_get_rooms_with_data(test_user, test_room):  # pylint: disable=redefined-outer-name
    response = client.get("/rooms/", headers=auth_headers_for(test_user))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == test_room.id
    assert data[0]["name"] == test_room.name


# pylint: disable-next=redefined-outer-name
def test_room_visibility_follows_access_level(test_user, other_user, admin_user, other_admin, test_room):
    headers = auth_headers_for(admin_user)
    response = client.put(
        f"/rooms/{test_room.id}/access",
        json={"access_level": "ORG_ONLY", "allowed_organization_ids": []},
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["access_level"] == "ORG_ONLY"

    def visible_to(user):
        return [room["id"] for room in client.get("/rooms/", headers=auth_headers_for(user)).json()]

    assert visible_to(test_user) == [test_room.id]
    assert visible_to(other_user) == []
    assert visible_to(other_admin) == []

    response = client.put(
        f"/rooms/{test_room.id}/access",
        json={"access_level": "ORG_ONLY", "allowed_organization_ids": [other_user.organization_id]},
        headers=headers,
    )
    assert response.json()["allowed_organization_ids"] == [other_user.organization_id]
    assert visible_to(other_user) == [test_room.id]


# pylint: disable-next=redefined-outer-name
def test_update_room_access_of_other_organization(other_admin, test_room):
    response = client.put(
        f"/rooms/{test_room.id}/access",
        json={"access_level": "ORG_ONLY"},
        headers=auth_headers_for(other_admin),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_get_room_success(test_user, test_room):  # pylint: disable=redefined-outer-name
    response = client.get(f"/rooms/{test_room.id}", headers=auth_headers_for(test_user))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == test_room.id
    assert data["capacity"] == test_room.capacity
    assert data["location"] == test_room.location


def test_get_room_not_found(test_user):  # pylint: disable=redefined-outer-name
    response = client.get("/rooms/9999", headers=auth_headers_for(test_user))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Room not found"


def test_update_room_unauthorized(test_room):  # pylint: disable=redefined-outer-name
    response = client.put(f"/rooms/{test_room.id}", json={"name": "Updated Name"})
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


def test_update_room_success(admin_user, test_room):  # pylint: disable=redefined-outer-name
    update_data = {
        "name": "Updated Conference Room",
        "capacity": 15,
        "location": "Floor 3",
    }
    response = client.put(
        f"/rooms/{test_room.id}", json=update_data, headers=auth_headers_for(admin_user)
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["name"] == update_data["name"]
    assert data["capacity"] == update_data["capacity"]
    assert data["location"] == update_data["location"]


def test_partial_update_room(admin_user, test_room):  # pylint: disable=redefined-outer-name
    update_data = {"capacity": 20}
    response = client.put(
        f"/rooms/{test_room.id}", json=update_data, headers=auth_headers_for(admin_user)
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["capacity"] == 20
    assert data["name"] == test_room.name
    assert data["location"] == test_room.location


def test_update_room_of_other_organization(other_admin, test_room):  # pylint: disable=redefined-outer-name
    response = client.put(
        f"/rooms/{test_room.id}", json={"capacity": 3}, headers=auth_headers_for(other_admin)
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_update_room_not_found(admin_user):  # pylint: disable=redefined-outer-name
    response = client.put(
        "/rooms/9999", json={"name": "Non-existent Room"}, headers=auth_headers_for(admin_user)
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_delete_room_unauthorized(test_room):  # pylint: disable=redefined-outer-name
    response = client.delete(f"/rooms/{test_room.id}")
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


# pylint: disable-next=redefined-outer-name
def test_delete_room_removes_its_bookings(admin_user, test_user, test_room, test_db):
    make_booking(test_db, test_room, test_user, at(10), at(11))
    make_booking(test_db, test_room, test_user, at(12), at(13), status=BookingStatus.APPROVED)

    response = client.delete(f"/rooms/{test_room.id}", headers=auth_headers_for(admin_user))
    assert response.status_code == status.HTTP_204_NO_CONTENT

    test_db.expire_all()
    assert test_db.query(Room).filter(Room.id == test_room.id).first() is None
    assert test_db.query(Booking).count() == 0


def test_delete_room_not_found(admin_user):  # pylint: disable=redefined-outer-name
    response = client.delete("/rooms/9999", headers=auth_headers_for(admin_user))
    assert response.status_code == status.HTTP_404_NOT_FOUND


# pylint: disable-next=redefined-outer-name
def test_available_rooms(test_db, organization, test_user, test_room):
    small = make_room(test_db, organization, name="Huddle", capacity=4)
    large = make_room(test_db, organization, name="Auditorium", capacity=40)
    make_booking(test_db, test_room, test_user, at(10), at(11), status=BookingStatus.APPROVED)
    # Terminal bookings do not occupy the room
    make_booking(test_db, small, test_user, at(10), at(11), status=BookingStatus.CANCELLED)

    def available(start_time, end_time, capacity=0):
        response = client.get(
            "/rooms/available",
            params={"start_time": start_time.isoformat(), "end_time": end_time.isoformat(), "capacity": capacity},
            headers=auth_headers_for(test_user),
        )
        assert response.status_code == status.HTTP_200_OK
        return [room["id"] for room in response.json()]

    assert available(at(10, 30), at(11, 30)) == [small.id, large.id]
    assert available(at(10, 30), at(11, 30), capacity=5) == [large.id]
    assert available(at(11), at(12)) == [small.id, test_room.id, large.id]


def test_available_rooms_invalid_interval(test_user):  # pylint: disable=redefined-outer-name
    response = client.get(
        "/rooms/available",
        params={"start_time": at(11).isoformat(), "end_time": at(10).isoformat()},
        headers=auth_headers_for(test_user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_get_room_hides_rooms_outside_scope(test_user, other_user, admin_user, other_admin, test_room):
    client.put(
        f"/rooms/{test_room.id}/access",
        json={"access_level": "ORG_ONLY", "allowed_organization_ids": []},
        headers=auth_headers_for(admin_user),
    )

    assert client.get(f"/rooms/{test_room.id}", headers=auth_headers_for(test_user)).status_code == 200
    response = client.get(f"/rooms/{test_room.id}", headers=auth_headers_for(other_user))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Room not found"
    assert client.get(f"/rooms/{test_room.id}", headers=auth_headers_for(other_admin)).status_code == 404

    client.put(
        f"/rooms/{test_room.id}/access",
        json={"access_level": "ORG_ONLY", "allowed_organization_ids": [other_user.organization_id]},
        headers=auth_headers_for(admin_user),
    )
    assert client.get(f"/rooms/{test_room.id}", headers=auth_headers_for(other_user)).status_code == 200


# pylint: disable-next=redefined-outer-name
def test_update_room_rejects_null_for_required_fields(admin_user, test_room):
    headers = auth_headers_for(admin_user)
    for field in ("name", "capacity", "is_active"):
        response = client.put(f"/rooms/{test_room.id}", json={field: None}, headers=headers)
        assert response.status_code == 422, field

    response = client.put(f"/rooms/{test_room.id}", json={"description": None}, headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["description"] is None
    assert response.json()["name"] == test_room.name


# pylint: disable-next=redefined-outer-name
def test_search_rooms(test_db, organization, other_organization, test_user, test_room):
    boardroom = make_room(test_db, organization, name="Boardroom", capacity=12)
    boardroom.description = "Video conferencing and whiteboard"
    huddle = make_room(test_db, organization, name="Huddle", capacity=4)
    huddle.location = "Annex, ground floor"
    test_db.commit()
    # Public room of another organization; visible to every user
    make_room(test_db, other_organization, name="Globex Boardroom")

    def search(term):
        response = client.get("/rooms/search", params={"q": term}, headers=auth_headers_for(test_user))
        assert response.status_code == status.HTTP_200_OK
        return [room["name"] for room in response.json()]

    assert search("boardroom") == ["Boardroom", "Globex Boardroom"]
    assert search("WHITEBOARD") == ["Boardroom"]
    assert search("annex") == ["Huddle"]
    assert search("floor 1") == ["Boardroom", "Conference Room A", "Globex Boardroom"]
    assert search("") == ["Boardroom", "Conference Room A", "Globex Boardroom", "Huddle"]
    assert search("cafeteria") == []


# pylint: disable-next=redefined-outer-name
def test_room_upcoming_and_today_bookings(test_db, organization, test_user, other_user, test_room):
    today = datetime.combine(date.today(), time.min)
    other_room = make_room(test_db, organization, name="Huddle", capacity=4)
    pending = make_booking(test_db, test_room, test_user, at(10), at(11))
    approved = make_booking(test_db, test_room, other_user, at(12), at(13), status=BookingStatus.APPROVED)
    make_booking(test_db, test_room, test_user, at(14), at(15), status=BookingStatus.CANCELLED)
    make_booking(test_db, other_room, test_user, at(10), at(11))
    early = make_booking(
        test_db, test_room, test_user, today + timedelta(minutes=5), today + timedelta(minutes=35),
        status=BookingStatus.APPROVED,
    )
    make_booking(
        test_db, test_room, test_user, today - timedelta(hours=2), today - timedelta(hours=1),
        status=BookingStatus.COMPLETED,
    )

    headers = auth_headers_for(test_user)
    response = client.get(f"/rooms/{test_room.id}/bookings/upcoming", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert [item["id"] for item in response.json()] == [pending.id, approved.id]

    response = client.get(f"/rooms/{test_room.id}/bookings/today", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert [item["id"] for item in response.json()] == [early.id]

    response = client.get("/rooms/missing/bookings/today", headers=headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


# pylint: disable-next=redefined-outer-name
def test_room_bookings_hidden_outside_scope(other_user, admin_user, test_room):
    client.put(
        f"/rooms/{test_room.id}/access",
        json={"access_level": "ORG_ONLY", "allowed_organization_ids": []},
        headers=auth_headers_for(admin_user),
    )

    for path in ("upcoming", "today"):
        response = client.get(f"/rooms/{test_room.id}/bookings/{path}", headers=auth_headers_for(other_user))
        assert response.status_code == status.HTTP_404_NOT_FOUND
