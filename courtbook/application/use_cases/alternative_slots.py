from __future__ import annotations

import logging
from dataclasses import dataclass

from courtbook.application.utils.pricing import round_price
from courtbook.application.utils.timeline import Timeline
from courtbook.domain.entities.availability import TimeWindow

MAX_SINGLE_SIDE_EXTENSION = 8
MAX_BOTH_SIDES_EXTENSION = 4


@dataclass(frozen=True)
class AlternativeOptions:
    original: TimeWindow
    extended_slot: TimeWindow | None = None
    alternative_slot: TimeWindow | None = None
    partial_slot: TimeWindow | None = None
    partial_price: float | None = None

    def recommended(self) -> tuple[str, TimeWindow] | None:
        """Option to present first: extended, then alternative, then partial."""
        for option, window in (
            ("extended", self.extended_slot),
            ("alternative", self.alternative_slot),
            ("partial", self.partial_slot),
        ):
            if window is not None:
                return option, window
        return None


class AlternativeSlotResolver:
    """Searches one court's slot grid for windows close to a request that collided.

    Every search is first-found: candidates are tried in a fixed order and the
    first one that is fully free is returned.
    """

    def __init__(self, timeline: Timeline, court_slots: dict[int, bool]) -> None:
        self._timeline = timeline
        self._bounds = timeline.boundaries()
        self._free = [bool(court_slots.get(slot, False)) for slot in timeline.slots()]
        self._logger = logging.getLogger(__name__)

    def resolve(self, original: TimeWindow, original_price: float = 0.0) -> AlternativeOptions:
        positions = self._positions(original)
        if positions is None:
            self._logger.warning(
                "Requested window is outside the timeline",
                extra={"start": original.start, "end": original.end},
            )
            return AlternativeOptions(original=original)

        partial = self.partial_slot(original)
        partial_price = None
        if partial is not None and original.duration > 0:
            partial_price = round_price(partial.duration / original.duration * original_price)

        return AlternativeOptions(
            original=original,
            extended_slot=self.extended_slot(original),
            alternative_slot=self.alternative_slot(original.duration),
            partial_slot=partial,
            partial_price=partial_price,
        )

    def partial_slot(self, original: TimeWindow) -> TimeWindow | None:
        """First contiguous free run inside the requested window."""
        positions = self._positions(original)
        if positions is None:
            return None
        start_idx, end_idx = positions
        run_start = None
        for i in range(start_idx, end_idx):
            if self._free[i]:
                if run_start is None:
                    run_start = i
            elif run_start is not None:
                return self._window(run_start, i)
        if run_start is not None:
            return self._window(run_start, end_idx)
        return None

    def extended_slot(self, original: TimeWindow) -> TimeWindow | None:
        positions = self._positions(original)
        if positions is None:
            return None
        start_idx, end_idx = positions
        duration = original.duration
        required = self._required_slots(duration)
        n = len(self._free)

        if required <= end_idx - start_idx and self._run_free(start_idx, end_idx):
            return self._window(start_idx, end_idx)

        # keep the start, push the end later
        for extension in range(1, MAX_SINGLE_SIDE_EXTENSION + 1):
            new_end = end_idx + extension
            if new_end > n:
                break
            if self._run_free(start_idx, new_end) and self._span(start_idx, new_end) >= duration:
                return self._window(start_idx, new_end)

        # keep the end, pull the start earlier
        for extension in range(1, MAX_SINGLE_SIDE_EXTENSION + 1):
            new_start = start_idx - extension
            if new_start < 0:
                break
            if self._run_free(new_start, end_idx) and self._span(new_start, end_idx) >= duration:
                return self._window(new_start, end_idx)

        for start_ext in range(1, MAX_BOTH_SIDES_EXTENSION + 1):
            for end_ext in range(1, MAX_BOTH_SIDES_EXTENSION + 1):
                new_start = start_idx - start_ext
                new_end = end_idx + end_ext
                if new_start < 0 or new_end > n:
                    continue
                if self._run_free(new_start, new_end) and self._span(new_start, new_end) >= duration:
                    return self._window(new_start, new_end)

        # any run of the required length that still overlaps the request
        for candidate in range(max(0, start_idx - required + 1), min(end_idx, n - required + 1)):
            if self._run_free(candidate, candidate + required):
                return self._window(candidate, candidate + required)

        return None

    def alternative_slot(self, duration: int) -> TimeWindow | None:
        """First free run of the requested length anywhere in the day, in slot order."""
        required = self._required_slots(duration)
        if required <= 0:
            return None
        for candidate in range(0, len(self._free) - required + 1):
            if self._run_free(candidate, candidate + required):
                return self._window(candidate, candidate + required)
        return None

    def _positions(self, window: TimeWindow) -> tuple[int, int] | None:
        if not self._bounds or window.end <= window.start:
            return None
        first = self._timeline.first_slot
        step = self._timeline.step
        start_idx = (self._timeline.floor(window.start) - first) // step
        end_idx = (self._timeline.ceil(window.end) - first) // step
        if start_idx < 0 or end_idx > len(self._free):
            return None
        return start_idx, end_idx

    def _required_slots(self, duration: int) -> int:
        return -(-duration // self._timeline.step)

    def _run_free(self, start_idx: int, end_idx: int) -> bool:
        return 0 <= start_idx < end_idx <= len(self._free) and all(self._free[start_idx:end_idx])

    def _span(self, start_idx: int, end_idx: int) -> int:
        return self._bounds[end_idx] - self._bounds[start_idx]

    def _window(self, start_idx: int, end_idx: int) -> TimeWindow:
        return TimeWindow(start=self._bounds[start_idx], end=self._bounds[end_idx])


def describe_shift(original: TimeWindow, candidate: TimeWindow) -> str:
    """How a proposed window differs from the requested one, e.g. "Starts 30m earlier"."""
    start_diff = candidate.start - original.start
    end_diff = candidate.end - original.end

    if start_diff == 0 and end_diff == 0:
        return "Same time as requested"
    if start_diff == 0:
        return f"Ends {_format_shift(end_diff)}"
    if end_diff == 0:
        return f"Starts {_format_shift(start_diff)}"
    if start_diff == end_diff:
        return f"Entire booking shifted {_format_shift(start_diff)}"
    return f"Starts {_format_shift(start_diff)}, ends {_format_shift(end_diff)}"


def _format_shift(diff: int) -> str:
    hours, minutes = divmod(abs(diff), 60)
    text = (f"{hours}h" if hours else "") + (f"{minutes}m" if minutes else "")
    return f"{text} later" if diff > 0 else f"{text} earlier"
