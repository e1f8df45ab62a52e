from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from courtbook.domain.entities.booking_flow import BookingFlowType

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class DayHours:
    open: str  # HH:mm
    close: str  # HH:mm, "24:00" allowed


@dataclass(frozen=True)
class SpecialRate:
    name: str
    rate: float
    apply_days: tuple[str, ...] = ()  # empty means every day
    start_time: str | None = None  # HH:mm
    end_time: str | None = None  # HH:mm


@dataclass(frozen=True)
class CourtPricing:
    base_hourly_rate: float
    peak_hour_rate: float | None = None
    weekend_rate: float | None = None
    special_rates: tuple[SpecialRate, ...] = ()


@dataclass(frozen=True)
class Court:
    id: str
    venue_id: str
    name: str
    pricing: CourtPricing
    status: str = "active"  # "active" | "maintenance" | "inactive"

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True)
class VenueOperatingConfig:
    venue_id: str
    name: str
    operating_hours: dict[str, DayHours | None] = field(default_factory=dict)
    min_booking_time: int = 30
    max_booking_time: int = 180
    booking_time_step: int = 30
    timezone: str = "Europe/Berlin"
    booking_flow: BookingFlowType = BookingFlowType.DATE_COURT_TIME_DURATION
    status: str = "active"

    def hours_for(self, day: date) -> DayHours | None:
        """Opening hours for the weekday of ``day``; None when the venue is closed."""
        return self.operating_hours.get(WEEKDAYS[day.weekday()])
