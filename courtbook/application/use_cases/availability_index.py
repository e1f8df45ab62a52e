from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from courtbook.application.utils.timeline import OperatingDay, format_minutes
from courtbook.domain.entities.availability import CourtAvailabilityStatus, TimeSlot, TimeWindow
from courtbook.domain.entities.booking import Booking

SlotGrid = dict[str, dict[int, bool]]


def busy_intervals(
    bookings: Iterable[Booking],
    court_id: str,
    day: OperatingDay,
    exclude_booking_ids: Iterable[str] = (),
) -> list[tuple[int, int]]:
    """Active bookings of ``court_id`` as (start, end) minute intervals relative to ``day``."""
    excluded = set(exclude_booking_ids)
    intervals = [
        (day.to_minutes(booking.start_time), day.to_minutes(booking.end_time))
        for booking in bookings
        if booking.court_id == court_id and booking.is_active and booking.id not in excluded
    ]
    intervals.sort()
    return intervals


def build_availability(
    bookings: Iterable[Booking],
    court_ids: Iterable[str],
    day: OperatingDay,
    exclude_booking_ids: Iterable[str] = (),
) -> SlotGrid:
    """Per-court, per-slot free/busy grid. Pure: equal inputs give equal grids."""
    bookings = list(bookings)
    step = day.timeline.step
    slots = day.timeline.slots()
    grid: SlotGrid = {}
    for court_id in sorted(set(court_ids)):
        intervals = busy_intervals(bookings, court_id, day, exclude_booking_ids)
        grid[court_id] = {
            slot: not any(start < slot + step and end > slot for start, end in intervals)
            for slot in slots
        }
    return grid


@dataclass(frozen=True)
class AvailabilityIndex:
    day: OperatingDay
    grid: SlotGrid

    @classmethod
    def build(
        cls,
        bookings: Iterable[Booking],
        court_ids: Iterable[str],
        day: OperatingDay,
        exclude_booking_ids: Iterable[str] = (),
    ) -> AvailabilityIndex:
        return cls(day=day, grid=build_availability(bookings, court_ids, day, exclude_booking_ids))

    @property
    def court_ids(self) -> list[str]:
        return list(self.grid)

    def court_slots(self, court_id: str) -> dict[int, bool]:
        return dict(self.grid.get(court_id, {}))

    def is_free(self, court_id: str, start: int, end: int) -> bool:
        """True when every slot touching ``[start, end)`` is free for the court."""
        timeline = self.day.timeline
        if end <= start or start < timeline.first_slot or end > timeline.close:
            return False
        slots = self.grid.get(court_id)
        if slots is None:
            return False
        covered = [slot for slot in slots if slot < end and slot + timeline.step > start]
        return bool(covered) and all(slots[slot] for slot in covered)

    def free_courts(self, start: int, end: int) -> list[str]:
        return [court_id for court_id in self.grid if self.is_free(court_id, start, end)]

    def time_slots(self, court_id: str | None = None, not_before: int | None = None) -> list[TimeSlot]:
        """Start times of the day; a slot is available if the court (or any court) is free."""
        court_ids = [court_id] if court_id else self.court_ids
        result: list[TimeSlot] = []
        for slot in self.day.timeline.slots():
            if not_before is not None and slot < not_before:
                continue
            available = any(self.grid.get(cid, {}).get(slot, False) for cid in court_ids)
            result.append(TimeSlot(label=format_minutes(slot), value=slot, available=available))
        return result

    def court_statuses(
        self,
        window: TimeWindow | None = None,
        court_names: dict[str, str] | None = None,
    ) -> dict[str, CourtAvailabilityStatus]:
        names = court_names or {}
        timeline = self.day.timeline
        step = timeline.step
        within_hours = window is None or (window.start >= timeline.first_slot and window.end <= timeline.close)
        statuses: dict[str, CourtAvailabilityStatus] = {}
        for court_id, slots in self.grid.items():
            in_window = [
                slot
                for slot in slots
                if window is None or (slot < window.end and slot + step > window.start)
            ]
            free = tuple(slot for slot in in_window if slots[slot])
            busy = tuple(slot for slot in in_window if not slots[slot])
            statuses[court_id] = CourtAvailabilityStatus(
                court_id=court_id,
                court_name=names.get(court_id, court_id),
                available=bool(free),
                fully_available=within_hours and bool(in_window) and not busy,
                available_time_slots=free,
                unavailable_time_slots=busy,
            )
        return statuses
