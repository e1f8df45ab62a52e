from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from courtbook.application.use_cases.availability_index import busy_intervals
from courtbook.application.utils.pricing import PricingPolicy, round_price
from courtbook.application.utils.timeline import operating_day
from courtbook.domain.entities.availability import Duration
from courtbook.domain.entities.booking import Booking
from courtbook.domain.entities.venue import Court, VenueOperatingConfig

FALLBACK_STEP = 15


def format_duration_label(minutes: int) -> str:
    """Compact label: 30m, 1h, 1.5h, 1h15m."""
    hours, rest = divmod(minutes, 60)
    if hours == 0:
        return f"{rest}m"
    if rest == 0:
        return f"{hours}h"
    if rest == 30:
        return f"{hours}.5h"
    return f"{hours}h{rest}m"


class DurationPriceCalculator:
    """Bookable durations from a start time, priced per court or averaged across free courts."""

    def __init__(
        self,
        venue: VenueOperatingConfig,
        courts: Iterable[Court],
        bookings: Iterable[Booking],
        day: date,
        pricing: PricingPolicy | None = None,
        fallback_step: int = FALLBACK_STEP,
        exclude_booking_ids: Iterable[str] = (),
    ) -> None:
        self._venue = venue
        self._date = day
        self._day = operating_day(venue, day)
        self._pricing = pricing or PricingPolicy()
        self._fallback_step = fallback_step
        self._courts = {
            court.id: court for court in courts if court.is_active and court.venue_id == venue.venue_id
        }
        bookings = list(bookings)
        excluded = list(exclude_booking_ids)
        self._busy: dict[str, list[tuple[int, int]]] = {}
        if self._day is not None:
            self._busy = {
                court_id: busy_intervals(bookings, court_id, self._day, excluded) for court_id in self._courts
            }
        self._logger = logging.getLogger(__name__)

    def available_durations(self, start_minutes: int, court_id: str | None = None) -> list[Duration]:
        if self._day is None or not self._courts:
            return []
        if court_id is not None and court_id not in self._courts:
            return []

        timeline = self._day.timeline
        if start_minutes < timeline.open or start_minutes >= timeline.close:
            return []

        step = self._venue.booking_time_step or timeline.step
        minimum = max(self._venue.min_booking_time, step)
        standard = range(minimum, self._venue.max_booking_time + 1, step)
        durations = self._collect(start_minutes, standard, court_id)

        if not durations and 0 < self._fallback_step < step:
            durations = self._collect(
                start_minutes,
                range(self._fallback_step, self._venue.max_booking_time + 1, self._fallback_step),
                court_id,
            )
            if durations:
                self._logger.info(
                    "Offering short durations at fallback granularity",
                    extra={"venue_id": self._venue.venue_id, "court_id": court_id, "start": start_minutes},
                )
        return durations

    def is_offered(self, start_minutes: int, duration_minutes: int, court_id: str | None = None) -> bool:
        return any(d.value == duration_minutes for d in self.available_durations(start_minutes, court_id))

    def _collect(self, start: int, candidates: Iterable[int], court_id: str | None) -> list[Duration]:
        closing = self._day.timeline.close
        courts = [self._courts[court_id]] if court_id else list(self._courts.values())
        durations: list[Duration] = []
        for minutes in candidates:
            end = start + minutes
            if end > closing:
                break
            free = [court for court in courts if not self._overlaps(court.id, start, end)]
            if not free:
                continue
            prices = [self._pricing.price(court, self._date, start, minutes) for court in free]
            price = prices[0] if court_id else round_price(sum(prices) / len(prices))
            durations.append(Duration(label=format_duration_label(minutes), value=minutes, price=price))
        return durations

    def _overlaps(self, court_id: str, start: int, end: int) -> bool:
        return any(busy_start < end and busy_end > start for busy_start, busy_end in self._busy.get(court_id, []))
