from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from courtbook.application.utils.timeline import parse_hhmm
from courtbook.domain.entities.venue import WEEKDAYS, Court, SpecialRate


def round_price(value: float) -> float:
    """Round half-up to cents."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class PricingPolicy:
    """Hourly rate for a court at a given local start time.

    Weekend rate applies on Saturday and Sunday. On weekdays a matching special
    rate wins over the peak-hour rate, which wins over the base rate.
    """

    def __init__(
        self,
        default_hourly_rate: float = 50.0,
        peak_start: str = "17:00",
        peak_end: str = "21:00",
    ) -> None:
        self._default_hourly_rate = default_hourly_rate
        self._peak_start = parse_hhmm(peak_start)
        self._peak_end = parse_hhmm(peak_end)

    def hourly_rate(self, court: Court, day: date, start_minutes: int) -> float:
        pricing = court.pricing
        base = pricing.base_hourly_rate if pricing.base_hourly_rate > 0 else self._default_hourly_rate

        if day.weekday() >= 5:
            return pricing.weekend_rate if pricing.weekend_rate else base

        special = self._special_rate(pricing.special_rates, day, start_minutes)
        if special is not None:
            return special.rate

        if pricing.peak_hour_rate and self._peak_start <= start_minutes < self._peak_end:
            return pricing.peak_hour_rate

        return base

    def price(self, court: Court, day: date, start_minutes: int, duration_minutes: int) -> float:
        return round_price(self.hourly_rate(court, day, start_minutes) * duration_minutes / 60)

    def _special_rate(
        self,
        special_rates: tuple[SpecialRate, ...],
        day: date,
        start_minutes: int,
    ) -> SpecialRate | None:
        day_name = WEEKDAYS[day.weekday()]
        for special in special_rates:
            if special.apply_days and day_name not in special.apply_days:
                continue
            if special.start_time and special.end_time:
                if not parse_hhmm(special.start_time) <= start_minutes < parse_hhmm(special.end_time):
                    continue
            return special
        return None
