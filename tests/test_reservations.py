"""Reservation booking conflicts, status side effects and availability."""

from datetime import date, datetime

import pytest

from restaurant_crm.core.exceptions import (
    CustomerNotFound,
    InvalidStatusTransition,
    TableConflict,
)
from restaurant_crm.models import ReservationStatus
from restaurant_crm.schemas import ReservationCreate, ReservationUpdate
from restaurant_crm.services.reservation_service import (
    ReservationService,
    within_booking_window,
)
from tests.factories import make_customer, make_reservation

BOOKING_DAY = date(2030, 6, 1)


def booking(customer_id: int, **overrides) -> ReservationCreate:
    values = {
        "customer": customer_id,
        "date": BOOKING_DAY,
        "time": "19:00",
        "party_size": 4,
        "table_number": 5,
        "contact_phone": "555-123-4567",
        "contact_email": "john@example.com",
    }
    values.update(overrides)
    return ReservationCreate(**values)


def test_booking_window_compares_hours_and_minutes_separately():
    assert within_booking_window("19:00", "19:00")
    assert within_booking_window("19:00", "20:15")
    assert within_booking_window("18:00", "20:00")
    assert not within_booking_window("19:00", "12:45")
    assert not within_booking_window("18:00", "18:45")


def test_single_digit_hours_are_zero_padded():
    assert booking(1, time="9:30").time == "09:30"


async def test_same_table_and_slot_is_rejected(db):
    customer = await make_customer(db)
    await ReservationService.create_reservation(db, booking(customer.id))

    with pytest.raises(TableConflict):
        await ReservationService.create_reservation(db, booking(customer.id))


async def test_distant_time_or_other_table_is_accepted(db):
    customer = await make_customer(db)
    await ReservationService.create_reservation(db, booking(customer.id))

    lunch = await ReservationService.create_reservation(db, booking(customer.id, time="12:45"))
    other_table = await ReservationService.create_reservation(db, booking(customer.id, table_number=6))

    assert lunch.time == "12:45"
    assert other_table.table_number == 6
    assert lunch.status == ReservationStatus.PENDING


async def test_nearby_time_on_same_table_is_rejected(db):
    customer = await make_customer(db)
    await ReservationService.create_reservation(db, booking(customer.id))

    with pytest.raises(TableConflict):
        await ReservationService.create_reservation(db, booking(customer.id, time="20:15"))


async def test_cancelled_reservation_frees_the_table(db):
    customer = await make_customer(db)
    await make_reservation(db, customer, status=ReservationStatus.CANCELLED)
    customer_id = customer.id

    reservation = await ReservationService.create_reservation(db, booking(customer_id))

    assert reservation.table_number == 5


async def test_unknown_customer_cannot_book(db):
    with pytest.raises(CustomerNotFound):
        await ReservationService.create_reservation(db, booking(4242))


async def test_moving_onto_a_taken_slot_is_rejected(db):
    customer = await make_customer(db)
    await make_reservation(db, customer, time="19:00", table_number=5)
    second = await make_reservation(db, customer, time="13:00", table_number=5)

    with pytest.raises(TableConflict):
        await ReservationService.update_reservation(db, second.id, ReservationUpdate(time="19:00"))


async def test_moving_within_the_window_is_allowed(db):
    customer = await make_customer(db)
    await make_reservation(db, customer, time="19:00", table_number=5)
    second = await make_reservation(db, customer, time="13:00", table_number=5)

    moved = await ReservationService.update_reservation(db, second.id, ReservationUpdate(time="20:00"))

    assert moved.time == "20:00"


async def test_seating_and_completing_stamp_times(db):
    customer = await make_customer(db)
    reservation = await make_reservation(db, customer)

    seated = await ReservationService.update_reservation(
        db,
        reservation.id,
        ReservationUpdate(status=ReservationStatus.SEATED),
        now=datetime(2030, 6, 1, 19, 5),
    )
    assert seated.arrival_time == datetime(2030, 6, 1, 19, 5)
    assert seated.departure_time is None

    completed = await ReservationService.update_reservation(
        db,
        reservation.id,
        ReservationUpdate(status=ReservationStatus.COMPLETED),
        now=datetime(2030, 6, 1, 20, 35),
    )
    assert completed.departure_time == datetime(2030, 6, 1, 20, 35)
    assert completed.actual_duration == 90


async def test_finished_reservation_cannot_be_reopened(db):
    customer = await make_customer(db)
    reservation = await make_reservation(db, customer, status=ReservationStatus.COMPLETED)

    with pytest.raises(InvalidStatusTransition):
        await ReservationService.update_reservation(
            db, reservation.id, ReservationUpdate(status=ReservationStatus.PENDING)
        )


async def test_reopening_onto_a_taken_slot_reports_table_conflict(db, monkeypatch):
    monkeypatch.setenv("ENFORCE_STATUS_TRANSITIONS", "false")
    customer = await make_customer(db)
    cancelled = await make_reservation(db, customer, status=ReservationStatus.CANCELLED)
    cancelled_id = cancelled.id
    active = await make_reservation(db, customer)
    active_id = active.id

    with pytest.raises(TableConflict) as excinfo:
        await ReservationService.update_reservation(
            db, cancelled_id, ReservationUpdate(status=ReservationStatus.PENDING)
        )

    assert excinfo.value.status_code == 400
    reopened = await ReservationService.get_reservation(db, cancelled_id)
    assert reopened.status == ReservationStatus.CANCELLED
    kept = await ReservationService.get_reservation(db, active_id)
    assert kept.status == ReservationStatus.PENDING


async def test_availability_lists_free_tables_per_slot(db):
    customer = await make_customer(db)
    await make_reservation(db, customer, time="19:00", table_number=5)
    await make_reservation(db, customer, time="19:00", table_number=7, status=ReservationStatus.CANCELLED)

    grid = await ReservationService.availability(db, BOOKING_DAY)

    assert grid["date"] == "2030-06-01"
    assert grid["total_tables"] == 20
    slots = {slot["time"]: slot for slot in grid["slots"]}
    assert slots["19:00"]["available_count"] == 19
    assert slots["19:00"]["reserved_count"] == 1
    assert 5 not in slots["19:00"]["available_tables"]
    assert 7 in slots["19:00"]["available_tables"]
    assert slots["12:00"]["available_count"] == 20


async def test_stats_overview_counts_statuses(db):
    customer = await make_customer(db)
    await make_reservation(db, customer, time="12:00", party_size=2)
    await make_reservation(db, customer, time="19:00", party_size=4, status=ReservationStatus.CANCELLED)

    stats = await ReservationService.stats_overview(db, today=date(2030, 6, 1))

    assert stats["total_reservations"] == 2
    assert stats["pending"] == 1
    assert stats["cancelled"] == 1
    assert stats["average_party_size"] == 3.0
    assert stats["today"] == 2
    assert stats["upcoming"] == 1


# =============================================================================
# API
# =============================================================================

async def create_customer_via_api(client) -> int:
    response = await client.post(
        "/api/customers",
        json={"name": "Jane Roe", "email": "jane@example.com", "phone": "555-987-6543"},
    )
    assert response.status_code == 201
    return response.json()["customer"]["id"]


def booking_json(customer_id: int, **overrides) -> dict:
    body = {
        "customer": customer_id,
        "date": "2030-06-01",
        "time": "19:00",
        "party_size": 2,
        "table_number": 3,
        "contact_phone": "555-987-6543",
        "contact_email": "jane@example.com",
    }
    body.update(overrides)
    return body


async def test_api_double_booking_returns_400(client):
    customer_id = await create_customer_via_api(client)

    first = await client.post("/api/reservations", json=booking_json(customer_id))
    second = await client.post("/api/reservations", json=booking_json(customer_id))

    assert first.status_code == 201
    payload = first.json()["reservation"]
    assert payload["datetime"] == "2030-06-01T19:00:00"
    assert payload["status"] == "pending"
    assert second.status_code == 400
    assert second.json() == {"message": "Table is already reserved for this time slot"}


async def test_api_unknown_customer_returns_404(client):
    response = await client.post("/api/reservations", json=booking_json(999))

    assert response.status_code == 404
    assert response.json()["message"] == "Customer not found"


async def test_api_rejects_malformed_time(client):
    customer_id = await create_customer_via_api(client)

    response = await client.post("/api/reservations", json=booking_json(customer_id, time="25:00"))

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "time"


async def test_api_availability_and_filters(client):
    customer_id = await create_customer_via_api(client)
    await client.post("/api/reservations", json=booking_json(customer_id))

    availability = await client.get("/api/reservations/availability/2030-06-01")
    listing = await client.get("/api/reservations", params={"date": "2030-06-01", "table_number": 3})

    assert availability.status_code == 200
    slots = {s["time"]: s for s in availability.json()["availability"]["slots"]}
    assert 3 not in slots["19:00"]["available_tables"]
    assert listing.json()["pagination"]["total"] == 1


async def test_api_delete_requires_manager(client, as_user):
    customer_id = await create_customer_via_api(client)
    created = await client.post("/api/reservations", json=booking_json(customer_id))
    reservation_id = created.json()["reservation"]["id"]

    forbidden = await client.delete(f"/api/reservations/{reservation_id}", headers=as_user("staff"))
    deleted = await client.delete(f"/api/reservations/{reservation_id}", headers=as_user("manager"))
    missing = await client.get(f"/api/reservations/{reservation_id}")

    assert forbidden.status_code == 403
    assert deleted.status_code == 200
    assert missing.status_code == 404


async def test_api_update_rejects_null_for_required_fields(client):
    customer_id = await create_customer_via_api(client)
    created = await client.post("/api/reservations", json=booking_json(customer_id))
    reservation_id = created.json()["reservation"]["id"]

    cleared_status = await client.put(f"/api/reservations/{reservation_id}", json={"status": None})
    cleared_size = await client.put(f"/api/reservations/{reservation_id}", json={"party_size": None})
    unchanged = await client.get(f"/api/reservations/{reservation_id}")

    assert cleared_status.status_code == 400
    assert cleared_status.json()["errors"][0]["field"] == "status"
    assert cleared_size.status_code == 400
    assert cleared_size.json()["errors"][0]["field"] == "party_size"
    assert unchanged.json()["reservation"]["status"] == "pending"
    assert unchanged.json()["reservation"]["party_size"] == 2
