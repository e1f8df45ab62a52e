from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TimeWindow:
    start: int  # minutes since midnight
    end: int

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class TimeSlot:
    label: str
    value: int  # minutes since midnight
    available: bool


@dataclass(frozen=True)
class Duration:
    label: str
    value: int  # minutes
    price: float


@dataclass(frozen=True)
class CourtAvailabilityStatus:
    court_id: str
    court_name: str
    available: bool
    fully_available: bool
    available_time_slots: tuple[int, ...] = ()
    unavailable_time_slots: tuple[int, ...] = ()
