"""
Tests for the HTTP surface.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from courtbook.application.exceptions import BookingStoreUnavailableError
from courtbook.application.use_cases.hold_expiry import HoldExpirySweep
from courtbook.application.use_cases.reservation_hold import ReservationHoldService
from courtbook.application.use_cases.venue_availability import VenueAvailabilityUseCase
from courtbook.domain.entities.booking import BookingStatus
from courtbook.infrastructure.store.memory_store import MemoryBookingStore
from courtbook.main import ContextFormatter, app
from courtbook.wiring.dependencies import get_expiry_sweep, get_hold_service, get_venue_availability

from helpers import DAY, SUNDAY, VENUE_ID, make_booking


class UnavailableStore(MemoryBookingStore):
    def _persist(self, bookings):
        raise BookingStoreUnavailableError("disk full")


@pytest.fixture
def client(store, catalog, pricing, clock):
    app.dependency_overrides[get_venue_availability] = lambda: VenueAvailabilityUseCase(
        store=store, catalog=catalog, pricing=pricing, clock=clock
    )
    app.dependency_overrides[get_hold_service] = lambda: ReservationHoldService(
        store=store, catalog=catalog, pricing=pricing, clock=clock
    )
    app.dependency_overrides[get_expiry_sweep] = lambda: HoldExpirySweep(store=store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _hold_payload(**overrides):
    payload = {
        "venue_id": VENUE_ID,
        "court_id": "court-a",
        "date": DAY.isoformat(),
        "start": "10:00",
        "end": "11:00",
        "user_name": "Robin",
    }
    payload.update(overrides)
    return payload


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_availability_reports_slots_and_courts(client, store):
    store.insert_if_free(make_booking("b1", "court-a", "14:00", "15:00"))

    response = client.get(
        f"/api/v1/venues/{VENUE_ID}/availability",
        params={"date": DAY.isoformat(), "start": "14:00", "end": "16:00"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["open"] is True
    assert data["time_slots"][0] == {"label": "08:00", "value": 480, "available": True}
    courts = {court["court_id"]: court for court in data["courts"]}
    assert set(courts) == {"court-a", "court-b"}
    assert courts["court-a"]["fully_available"] is False
    assert courts["court-a"]["available_time_slots"] == ["15:00", "15:30"]
    assert courts["court-b"]["fully_available"] is True


def test_availability_on_closed_day(client):
    response = client.get(f"/api/v1/venues/{VENUE_ID}/availability", params={"date": SUNDAY.isoformat()})

    assert response.status_code == 200
    assert response.json()["open"] is False
    assert response.json()["time_slots"] == []


def test_unknown_venue_is_404(client):
    response = client.get("/api/v1/venues/nowhere/availability", params={"date": DAY.isoformat()})

    assert response.status_code == 404


def test_durations_endpoint(client, store):
    store.insert_if_free(make_booking("b1", "court-a", "14:00", "15:00"))

    blocked = client.get(
        f"/api/v1/venues/{VENUE_ID}/durations",
        params={"date": DAY.isoformat(), "start": "14:30", "court_id": "court-a"},
    )
    averaged = client.get(
        f"/api/v1/venues/{VENUE_ID}/durations",
        params={"date": DAY.isoformat(), "start": "10:00"},
    )

    assert blocked.status_code == 200
    assert blocked.json()["durations"] == []
    assert averaged.json()["durations"][1] == {"label": "1h", "value": 60, "price": 50.0}


def test_invalid_time_is_422(client):
    response = client.get(
        f"/api/v1/venues/{VENUE_ID}/durations",
        params={"date": DAY.isoformat(), "start": "26:00"},
    )

    assert response.status_code == 422


def test_alternatives_endpoint(client, store):
    store.insert_if_free(make_booking("b1", "court-a", "10:00", "10:30"))

    response = client.get(
        f"/api/v1/venues/{VENUE_ID}/courts/court-a/alternatives",
        params={"date": DAY.isoformat(), "start": "10:00", "end": "11:00", "price": 40},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["partial_slot"]["start"] == "10:30"
    assert data["partial_price"] == 20.0
    assert data["extended_slot"] == {
        "start": "10:30",
        "end": "11:30",
        "duration": 60,
        "description": "Entire booking shifted 30m later",
    }
    assert data["recommended"] == "extended"


def test_create_hold_then_conflict(client):
    first = client.post("/api/v1/holds", json=_hold_payload())
    second = client.post("/api/v1/holds", json=_hold_payload(start="10:30", end="11:30"))

    assert first.status_code == 201
    assert first.json()["status"] == "holding"
    assert first.json()["payment_status"] == "pending"
    assert first.json()["price"] == 40.0
    assert second.status_code == 409
    assert second.json()["detail"]["conflicting_booking_id"] == first.json()["id"]


def test_invalid_hold_is_422(client):
    response = client.post("/api/v1/holds", json=_hold_payload(date=SUNDAY.isoformat()))

    assert response.status_code == 422
    assert "date" in response.json()["detail"]["field_errors"]

    assert client.post("/api/v1/holds", json=_hold_payload(end="9:00")).status_code == 422
    assert client.post("/api/v1/holds", json=_hold_payload(start="ten")).status_code == 422


def test_hold_for_unknown_venue_is_404(client):
    assert client.post("/api/v1/holds", json=_hold_payload(venue_id="nowhere")).status_code == 404


def test_store_outage_is_503(catalog, pricing, clock):
    app.dependency_overrides[get_hold_service] = lambda: ReservationHoldService(
        store=UnavailableStore(), catalog=catalog, pricing=pricing, clock=clock
    )
    try:
        response = TestClient(app).post("/api/v1/holds", json=_hold_payload())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503


def test_touch_hold(client, clock):
    created = client.post("/api/v1/holds", json=_hold_payload()).json()
    clock.advance(3)

    response = client.post(f"/api/v1/holds/{created['id']}/touch")

    assert response.status_code == 200
    assert response.json()["last_active"] != created["last_active"]
    assert client.post("/api/v1/holds/missing/touch").status_code == 404


def test_expire_holds_endpoint(client, store):
    old = datetime(2020, 1, 1, 12, 0, tzinfo=timezone.utc)
    store.insert_if_free(
        make_booking("stale", "court-b", "10:00", "11:00", status=BookingStatus.holding, created_at=old, last_active=old)
    )
    store.insert_if_free(make_booking("paid", "court-a", "10:00", "11:00"))

    response = client.post("/api/v1/maintenance/expire-holds")

    assert response.status_code == 200
    assert response.json() == {"cleaned": 1, "booking_ids": ["stale"]}
    assert store.get("stale").status == BookingStatus.cancelled


def test_hold_price_comes_from_court_rate(client):
    response = client.post("/api/v1/holds", json=_hold_payload(price=0.01))

    assert response.status_code == 201
    assert response.json()["price"] == 40.0


def test_out_of_range_minutes_are_422(client):
    assert client.post("/api/v1/holds", json=_hold_payload(start="10:75")).status_code == 422
    response = client.get(
        f"/api/v1/venues/{VENUE_ID}/durations",
        params={"date": DAY.isoformat(), "start": "10:75"},
    )
    assert response.status_code == 422


def test_log_lines_carry_date_and_path():
    formatter = ContextFormatter("%(levelname)s:%(name)s:%(message)s")
    record = logging.LogRecord("courtbook", logging.INFO, __file__, 1, "Loaded", None, None)
    record.date = "2030-06-12"
    record.path = "./data/venues.json"

    line = formatter.format(record)

    assert line == "INFO:courtbook:Loaded | date=2030-06-12 path=./data/venues.json"
