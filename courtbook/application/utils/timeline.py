from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from courtbook.domain.entities.venue import VenueOperatingConfig

MINUTES_PER_DAY = 24 * 60
DEFAULT_STEP = 30
HHMM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(value: str) -> int:
    """Parse "HH:mm" (or "24:00") into minutes since midnight."""
    match = HHMM_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"Expected HH:mm, got {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    total = hours * 60 + minutes
    if minutes > 59 or total > MINUTES_PER_DAY:
        raise ValueError(f"Time of day out of range: {value!r}")
    return total


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_between(a: int, b: int) -> int:
    return b - a


def minutes_since_midnight(instant: datetime, tz: ZoneInfo, day: date) -> int:
    """Wall-clock minutes of ``instant`` counted from local midnight of ``day``.

    Instants on other days yield negative values or values past 1440.
    """
    local = instant.astimezone(tz)
    return (local.date() - day).days * MINUTES_PER_DAY + local.hour * 60 + local.minute


def instant_at(day: date, minutes: int, tz: ZoneInfo) -> datetime:
    """UTC instant for ``minutes`` past local midnight of ``day``."""
    local = datetime.combine(day, time.min, tzinfo=tz) + timedelta(minutes=minutes)
    return local.astimezone(timezone.utc)


@dataclass(frozen=True)
class Timeline:
    """A business day cut into fixed-size slots between ``open`` and ``close``.

    Slots start on multiples of ``step`` and must end by ``close``. All rounding
    of arbitrary minute values onto the slot grid happens in ``floor``/``ceil``.
    """

    open: int
    close: int
    step: int = DEFAULT_STEP

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError("Slot step must be positive")
        if self.close < self.open:
            raise ValueError("Closing time precedes opening time")

    @property
    def first_slot(self) -> int:
        return self.ceil(self.open)

    def floor(self, minutes: int) -> int:
        return (minutes // self.step) * self.step

    def ceil(self, minutes: int) -> int:
        return -((-minutes) // self.step) * self.step

    def slots(self) -> list[int]:
        return list(range(self.first_slot, self.close - self.step + 1, self.step))

    def boundaries(self) -> list[int]:
        """Slot start values plus the end of the last slot."""
        slots = self.slots()
        if not slots:
            return []
        return slots + [slots[-1] + self.step]

    def slot_index(self, minutes: int) -> int:
        return (self.floor(minutes) - self.first_slot) // self.step

    def slot_at(self, index: int) -> int:
        return self.first_slot + index * self.step

    def next_slot(self, minutes: int) -> int:
        return self.floor(minutes) + self.step

    def contains(self, minutes: int) -> bool:
        """True when the slot starting at ``floor(minutes)`` lies within opening hours."""
        start = self.floor(minutes)
        return start >= self.first_slot and start + self.step <= self.close

    def __len__(self) -> int:
        return len(self.slots())


@dataclass(frozen=True)
class OperatingDay:
    day: date
    timeline: Timeline
    tz: ZoneInfo

    def to_minutes(self, instant: datetime) -> int:
        return minutes_since_midnight(instant, self.tz, self.day)

    def to_instant(self, minutes: int) -> datetime:
        return instant_at(self.day, minutes, self.tz)


def operating_day(venue: VenueOperatingConfig, day: date, step: int | None = None) -> OperatingDay | None:
    """Operating day for ``venue`` on ``day``; None when the venue is closed that weekday."""
    hours = venue.hours_for(day)
    if hours is None:
        return None
    timeline = Timeline(
        open=parse_hhmm(hours.open),
        close=parse_hhmm(hours.close),
        step=step or venue.booking_time_step or DEFAULT_STEP,
    )
    return OperatingDay(day=day, timeline=timeline, tz=ZoneInfo(venue.timezone))
