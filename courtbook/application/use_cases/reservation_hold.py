from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from courtbook.application.exceptions import (
    BookingConflictError,
    BookingValidationError,
    VenueNotFoundError,
)
from courtbook.application.ports.booking_store import BookingStorePort
from courtbook.application.ports.venue_catalog import VenueCatalogPort
from courtbook.application.utils.pricing import PricingPolicy
from courtbook.application.utils.timeline import format_minutes, operating_day
from courtbook.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from courtbook.domain.entities.progress import BookingDraft


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HoldConflict:
    """The store refused the hold because the court is already taken for that window."""

    court_id: str
    start_minutes: int
    end_minutes: int
    message: str
    conflicting_booking_id: str | None = None


class ReservationHoldService:
    def __init__(
        self,
        store: BookingStorePort,
        catalog: VenueCatalogPort,
        pricing: PricingPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._pricing = pricing or PricingPolicy()
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def new_booking_id(self) -> str:
        return uuid.uuid4().hex

    def create_hold(self, draft: BookingDraft, booking_id: str | None = None) -> Booking | HoldConflict:
        """
        Write a provisional booking for the draft's court and window.

        Returns the stored Booking, or HoldConflict when an active booking on the
        same court overlaps the window. A conflict is never retried here; the
        caller has to let the user pick another time.
        """
        booking = self._build_booking(draft, booking_id or self.new_booking_id())

        try:
            stored = self._store.insert_if_free(booking)
        except BookingConflictError as e:
            self._logger.info(
                "Hold rejected by store",
                extra={
                    "booking_id": booking.id,
                    "court_id": booking.court_id,
                    "venue_id": booking.venue_id,
                    "reason": "conflict",
                },
            )
            return HoldConflict(
                court_id=booking.court_id,
                start_minutes=draft.start_minutes,
                end_minutes=draft.end_minutes,
                message=str(e),
                conflicting_booking_id=e.conflicting_booking_id,
            )

        self._logger.info(
            "Hold created",
            extra={"booking_id": stored.id, "court_id": stored.court_id, "venue_id": stored.venue_id},
        )
        return stored

    def touch_hold(self, booking_id: str) -> Booking:
        """Refresh ``last_active`` of a holding booking. Raises KeyError if unknown."""
        now = self._clock()
        touched = self._store.update_if(
            booking_id, expected_status=BookingStatus.holding, last_active=now, updated_at=now
        )
        if touched is not None:
            return touched
        booking = self._store.get(booking_id)
        if booking is None:
            raise KeyError(booking_id)
        return booking

    def release_hold(self, booking_id: str, reason: str) -> Booking | None:
        """Cancel a still-holding booking; anything else is left untouched."""
        released = self._store.update_if(
            booking_id,
            expected_status=BookingStatus.holding,
            status=BookingStatus.cancelled,
            payment_status=PaymentStatus.abandoned,
            cancellation_reason=reason,
            updated_at=self._clock(),
        )
        if released is None:
            return self._store.get(booking_id)
        self._logger.info(
            "Hold released",
            extra={"booking_id": booking_id, "court_id": released.court_id, "reason": reason},
        )
        return released

    def _build_booking(self, draft: BookingDraft, booking_id: str) -> Booking:
        missing = {
            name: "This field is required"
            for name in ("date", "court_id", "start_minutes", "end_minutes")
            if getattr(draft, name) is None
        }
        if missing:
            raise BookingValidationError(
                f"Booking is missing: {', '.join(missing)}",
                field_errors=missing,
            )

        venue = self._catalog.get_venue(draft.venue_id)
        if venue is None:
            raise VenueNotFoundError(f"Unknown venue {draft.venue_id}")

        court = next((c for c in self._catalog.list_courts(draft.venue_id) if c.id == draft.court_id), None)
        if court is None or not court.is_active:
            raise BookingValidationError(
                f"Court {draft.court_id} cannot be booked",
                field_errors={"court_id": "Court is not available for booking"},
            )

        day = operating_day(venue, draft.date)
        if day is None:
            raise BookingValidationError(
                f"{venue.name} is closed on {draft.date.isoformat()}",
                field_errors={"date": "Venue is closed on this day"},
            )

        start, end = draft.start_minutes, draft.end_minutes
        if end <= start:
            raise BookingValidationError(
                "Booking must end after it starts",
                field_errors={"end_minutes": "End time must be after start time"},
            )
        if start < day.timeline.open or end > day.timeline.close:
            raise BookingValidationError(
                f"{format_minutes(start)}-{format_minutes(end)} is outside opening hours",
                field_errors={"start_minutes": "Outside opening hours"},
            )
        if end - start > venue.max_booking_time:
            raise BookingValidationError(
                f"Bookings are limited to {venue.max_booking_time} minutes",
                field_errors={"end_minutes": "Duration exceeds the maximum booking time"},
            )

        now = self._clock()
        start_time = day.to_instant(start)
        if start_time < now:
            raise BookingValidationError(
                "Selected time has already passed",
                field_errors={"start_minutes": "Selected time is in the past"},
            )

        price = self._pricing.price(court, draft.date, start, end - start)
        if draft.price is not None and draft.price != price:
            self._logger.info(
                "Quoted price replaced by court rate",
                extra={"court_id": court.id, "reason": f"quoted {draft.price}, charged {price}"},
            )

        return Booking(
            id=booking_id,
            venue_id=draft.venue_id,
            court_id=court.id,
            date=draft.date,
            start_time=start_time,
            end_time=day.to_instant(end),
            status=BookingStatus.holding,
            payment_status=PaymentStatus.pending,
            price=price,
            user_id=draft.user_id,
            user_name=draft.user_name,
            customer_email=draft.customer_email,
            customer_phone=draft.customer_phone,
            created_at=now,
            updated_at=now,
            last_active=now,
        )
