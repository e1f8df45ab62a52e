"""
Tests for extended / alternative / partial window search.
"""

from __future__ import annotations

from courtbook.application.use_cases.alternative_slots import AlternativeSlotResolver, describe_shift
from courtbook.application.utils.timeline import Timeline
from courtbook.domain.entities.availability import TimeWindow

TIMELINE = Timeline(open=480, close=1320, step=30)


def _slots(busy=()):
    return {slot: slot not in set(busy) for slot in TIMELINE.slots()}


def test_partial_slot_and_prorated_price():
    resolver = AlternativeSlotResolver(TIMELINE, _slots(busy=[600]))

    options = resolver.resolve(TimeWindow(start=600, end=660), original_price=40.0)

    assert options.partial_slot == TimeWindow(start=630, end=660)
    assert options.partial_price == 20.0


def test_extended_slot_overlapping_request_wins():
    resolver = AlternativeSlotResolver(TIMELINE, _slots(busy=[600]))

    options = resolver.resolve(TimeWindow(start=600, end=660), original_price=40.0)

    assert options.extended_slot == TimeWindow(start=630, end=690)
    assert options.alternative_slot == TimeWindow(start=480, end=540)
    assert options.recommended() == ("extended", TimeWindow(start=630, end=690))


def test_extended_slot_can_start_before_request():
    resolver = AlternativeSlotResolver(TIMELINE, _slots(busy=[630, 660]))

    assert resolver.extended_slot(TimeWindow(start=600, end=660)) == TimeWindow(start=570, end=630)


def test_request_free_except_rounding_keeps_original_start():
    resolver = AlternativeSlotResolver(TIMELINE, _slots())

    assert resolver.extended_slot(TimeWindow(start=600, end=645)) == TimeWindow(start=600, end=660)


def test_partial_slot_takes_first_run_only():
    resolver = AlternativeSlotResolver(TIMELINE, _slots(busy=[630, 690]))

    assert resolver.partial_slot(TimeWindow(start=600, end=720)) == TimeWindow(start=600, end=630)


def test_alternative_when_nothing_near_request_is_free():
    busy = range(540, 720, 30)
    resolver = AlternativeSlotResolver(TIMELINE, _slots(busy=busy))

    options = resolver.resolve(TimeWindow(start=600, end=660), original_price=40.0)

    assert options.extended_slot is None
    assert options.partial_slot is None
    assert options.partial_price is None
    assert options.alternative_slot == TimeWindow(start=480, end=540)
    assert options.recommended() == ("alternative", TimeWindow(start=480, end=540))


def test_partial_is_last_resort():
    busy = [slot for slot in TIMELINE.slots() if slot != 630]
    resolver = AlternativeSlotResolver(TIMELINE, _slots(busy=busy))

    options = resolver.resolve(TimeWindow(start=600, end=660), original_price=55.0)

    assert options.extended_slot is None
    assert options.alternative_slot is None
    assert options.recommended() == ("partial", TimeWindow(start=630, end=660))
    assert options.partial_price == 27.5


def test_fully_booked_day_has_no_options():
    resolver = AlternativeSlotResolver(TIMELINE, _slots(busy=TIMELINE.slots()))

    options = resolver.resolve(TimeWindow(start=600, end=660), original_price=40.0)

    assert options.recommended() is None


def test_window_outside_timeline_yields_empty_options():
    resolver = AlternativeSlotResolver(TIMELINE, _slots())

    options = resolver.resolve(TimeWindow(start=1290, end=1380), original_price=40.0)

    assert options.recommended() is None


def test_describe_shift():
    original = TimeWindow(start=600, end=660)

    assert describe_shift(original, TimeWindow(start=600, end=690)) == "Ends 30m later"
    assert describe_shift(original, TimeWindow(start=570, end=660)) == "Starts 30m earlier"
    assert describe_shift(original, TimeWindow(start=630, end=690)) == "Entire booking shifted 30m later"
    assert describe_shift(original, TimeWindow(start=540, end=720)) == "Starts 1h earlier, ends 1h later"
    assert describe_shift(original, original) == "Same time as requested"
