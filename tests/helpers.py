"""
Builders shared by the test modules.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from courtbook.application.utils.timeline import instant_at, parse_hhmm
from courtbook.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from courtbook.domain.entities.booking_flow import BookingFlowType
from courtbook.domain.entities.venue import (
    WEEKDAYS,
    Court,
    CourtPricing,
    DayHours,
    SpecialRate,
    VenueOperatingConfig,
)
from courtbook.infrastructure.venues.venue_catalog_store import VenueCatalogStore

VENUE_ID = "venue-1"
TZ = ZoneInfo("Europe/Berlin")
DAY = date(2030, 6, 12)  # Wednesday
SATURDAY = date(2030, 6, 15)
SUNDAY = date(2030, 6, 16)  # closed
NOW = datetime(2030, 6, 1, 6, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> datetime:
        self.now = self.now + timedelta(minutes=minutes)
        return self.now


def make_venue(
    flow: BookingFlowType = BookingFlowType.DATE_COURT_TIME_DURATION,
    **overrides: object,
) -> VenueOperatingConfig:
    hours: dict[str, DayHours | None] = {day: DayHours(open="08:00", close="22:00") for day in WEEKDAYS}
    hours["sunday"] = None
    values: dict[str, object] = {
        "venue_id": VENUE_ID,
        "name": "Test Arena",
        "operating_hours": hours,
        "min_booking_time": 30,
        "max_booking_time": 180,
        "booking_time_step": 30,
        "timezone": "Europe/Berlin",
        "booking_flow": flow,
    }
    values.update(overrides)
    return VenueOperatingConfig(**values)


def make_courts(venue_id: str = VENUE_ID) -> list[Court]:
    return [
        Court(
            id="court-a",
            venue_id=venue_id,
            name="Court A",
            pricing=CourtPricing(
                base_hourly_rate=40.0,
                peak_hour_rate=60.0,
                weekend_rate=50.0,
                special_rates=(
                    SpecialRate(name="Early bird", rate=20.0, apply_days=("monday",), start_time="08:00", end_time="10:00"),
                ),
            ),
        ),
        Court(id="court-b", venue_id=venue_id, name="Court B", pricing=CourtPricing(base_hourly_rate=60.0)),
        Court(
            id="court-c",
            venue_id=venue_id,
            name="Court C",
            pricing=CourtPricing(base_hourly_rate=45.0),
            status="maintenance",
        ),
    ]


def make_catalog(venue: VenueOperatingConfig | None = None, courts: list[Court] | None = None) -> VenueCatalogStore:
    venue = venue or make_venue()
    return VenueCatalogStore(venues={venue.venue_id: venue}, courts=courts if courts is not None else make_courts())


def make_booking(
    booking_id: str,
    court_id: str,
    start: str,
    end: str,
    day: date = DAY,
    status: BookingStatus = BookingStatus.confirmed,
    **fields: object,
) -> Booking:
    values: dict[str, object] = {
        "id": booking_id,
        "venue_id": VENUE_ID,
        "court_id": court_id,
        "date": day,
        "start_time": instant_at(day, parse_hhmm(start), TZ),
        "end_time": instant_at(day, parse_hhmm(end), TZ),
        "status": status,
        "payment_status": PaymentStatus.paid if status == BookingStatus.confirmed else PaymentStatus.pending,
        "price": 40.0,
        "created_at": NOW,
        "last_active": NOW,
    }
    values.update(fields)
    return Booking(**values)
