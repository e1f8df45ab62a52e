from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from courtbook.application.exceptions import BookingValidationError, VenueNotFoundError
from courtbook.application.ports.booking_store import BookingQuery, BookingStorePort
from courtbook.application.ports.venue_catalog import VenueCatalogPort
from courtbook.application.use_cases.alternative_slots import AlternativeOptions, AlternativeSlotResolver
from courtbook.application.use_cases.availability_index import AvailabilityIndex
from courtbook.application.use_cases.durations import FALLBACK_STEP, DurationPriceCalculator
from courtbook.application.use_cases.reservation_hold import utc_now
from courtbook.application.utils.pricing import PricingPolicy
from courtbook.application.utils.timeline import OperatingDay, operating_day
from courtbook.domain.entities.availability import CourtAvailabilityStatus, Duration, TimeSlot, TimeWindow
from courtbook.domain.entities.booking import Booking
from courtbook.domain.entities.venue import Court, VenueOperatingConfig


@dataclass(frozen=True)
class VenueAvailability:
    venue_id: str
    date: date
    open: bool
    time_slots: list[TimeSlot]
    court_statuses: dict[str, CourtAvailabilityStatus]


class VenueAvailabilityUseCase:
    """Read-only availability answers for one venue and day, built from the current bookings."""

    def __init__(
        self,
        store: BookingStorePort,
        catalog: VenueCatalogPort,
        pricing: PricingPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
        fallback_step: int = FALLBACK_STEP,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._pricing = pricing or PricingPolicy()
        self._clock = clock
        self._fallback_step = fallback_step
        self._logger = logging.getLogger(__name__)

    def availability(self, venue_id: str, day: date, window: TimeWindow | None = None) -> VenueAvailability:
        venue, courts = self._load_venue(venue_id)
        op_day = operating_day(venue, day)
        if op_day is None:
            return VenueAvailability(venue_id=venue_id, date=day, open=False, time_slots=[], court_statuses={})

        index = AvailabilityIndex.build(self._bookings(venue_id, day), [c.id for c in courts], op_day)
        return VenueAvailability(
            venue_id=venue_id,
            date=day,
            open=True,
            time_slots=index.time_slots(not_before=self._now_minutes(venue, day)),
            court_statuses=index.court_statuses(window=window, court_names={c.id: c.name for c in courts}),
        )

    def durations(self, venue_id: str, day: date, start_minutes: int, court_id: str | None = None) -> list[Duration]:
        venue, courts = self._load_venue(venue_id)
        calculator = DurationPriceCalculator(
            venue,
            courts,
            self._bookings(venue_id, day),
            day,
            pricing=self._pricing,
            fallback_step=self._fallback_step,
        )
        return calculator.available_durations(start_minutes, court_id)

    def alternatives(
        self,
        venue_id: str,
        court_id: str,
        day: date,
        window: TimeWindow,
        original_price: float | None = None,
    ) -> AlternativeOptions:
        venue, courts = self._load_venue(venue_id)
        court = next((c for c in courts if c.id == court_id), None)
        if court is None:
            raise BookingValidationError(
                f"Court {court_id} cannot be booked",
                field_errors={"court_id": "Court is not available for booking"},
            )
        op_day = self._require_open(venue, day)
        if window.end <= window.start:
            raise BookingValidationError(
                "Requested window must end after it starts",
                field_errors={"end": "End time must be after start time"},
            )

        index = AvailabilityIndex.build(self._bookings(venue_id, day), [court.id], op_day)
        if original_price is None:
            original_price = self._pricing.price(court, day, window.start, window.duration)
        resolver = AlternativeSlotResolver(op_day.timeline, index.court_slots(court.id))
        return resolver.resolve(window, original_price)

    def _load_venue(self, venue_id: str) -> tuple[VenueOperatingConfig, list[Court]]:
        venue = self._catalog.get_venue(venue_id)
        if venue is None:
            raise VenueNotFoundError(f"Unknown venue {venue_id}")
        courts = [court for court in self._catalog.list_courts(venue_id) if court.is_active]
        return venue, courts

    def _require_open(self, venue: VenueOperatingConfig, day: date) -> OperatingDay:
        op_day = operating_day(venue, day)
        if op_day is None:
            raise BookingValidationError(
                f"{venue.name} is closed on {day.isoformat()}",
                field_errors={"date": "Venue is closed on this day"},
            )
        return op_day

    def _bookings(self, venue_id: str, day: date) -> list[Booking]:
        return list(self._store.list_bookings(BookingQuery(venue_id=venue_id, date=day)).values())

    def _now_minutes(self, venue: VenueOperatingConfig, day: date) -> int | None:
        now = self._clock().astimezone(ZoneInfo(venue.timezone))
        if now.date() != day:
            return None
        return now.hour * 60 + now.minute
