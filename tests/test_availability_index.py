"""
Tests for the per-court slot grid and the views derived from it.
"""

from __future__ import annotations

from courtbook.application.use_cases.availability_index import AvailabilityIndex, build_availability
from courtbook.application.utils.timeline import operating_day
from courtbook.domain.entities.availability import TimeWindow
from courtbook.domain.entities.booking import BookingStatus

from helpers import DAY, make_booking, make_venue

COURTS = ["court-a", "court-b"]


def _day():
    return operating_day(make_venue(), DAY)


def test_booked_slots_are_marked_busy():
    bookings = [make_booking("b1", "court-a", "14:00", "15:00")]

    grid = build_availability(bookings, COURTS, _day())

    assert grid["court-a"][810] is True
    assert grid["court-a"][840] is False
    assert grid["court-a"][870] is False
    assert grid["court-a"][900] is True
    assert all(grid["court-b"].values())
    assert len(grid["court-a"]) == 28


def test_build_is_pure():
    bookings = [
        make_booking("b1", "court-a", "14:00", "15:00"),
        make_booking("b2", "court-b", "09:15", "10:00"),
    ]
    day = _day()

    first = build_availability(bookings, COURTS, day)
    second = build_availability(list(bookings), list(reversed(COURTS)), day)

    assert first == second
    assert list(first) == list(second)


def test_unaligned_booking_blocks_every_touched_slot():
    grid = build_availability([make_booking("b1", "court-b", "09:15", "10:00")], COURTS, _day())

    assert grid["court-b"][540] is False
    assert grid["court-b"][570] is False
    assert grid["court-b"][600] is True


def test_cancelled_and_excluded_bookings_do_not_block():
    bookings = [
        make_booking("b1", "court-a", "14:00", "15:00", status=BookingStatus.cancelled),
        make_booking("own-hold", "court-b", "10:00", "11:00", status=BookingStatus.holding),
    ]

    index = AvailabilityIndex.build(bookings, COURTS, _day(), exclude_booking_ids=["own-hold"])

    assert index.is_free("court-a", 840, 900)
    assert index.is_free("court-b", 600, 660)


def test_holding_booking_blocks_other_users():
    index = AvailabilityIndex.build(
        [make_booking("h1", "court-b", "10:00", "11:00", status=BookingStatus.holding)],
        COURTS,
        _day(),
    )

    assert not index.is_free("court-b", 630, 660)
    assert index.free_courts(600, 660) == ["court-a"]


def test_is_free_rejects_windows_outside_opening_hours():
    index = AvailabilityIndex.build([], COURTS, _day())

    assert not index.is_free("court-a", 450, 510)
    assert not index.is_free("court-a", 1290, 1350)
    assert not index.is_free("court-x", 600, 660)
    assert index.is_free("court-a", 1290, 1320)


def test_time_slots_available_when_any_court_is_free():
    bookings = [
        make_booking("b1", "court-a", "14:00", "15:00"),
        make_booking("b2", "court-b", "14:00", "14:30"),
    ]
    index = AvailabilityIndex.build(bookings, COURTS, _day())

    slots = {slot.value: slot for slot in index.time_slots()}
    assert slots[840].available is False
    assert slots[870].available is True
    assert slots[870].label == "14:30"

    court_a = {slot.value: slot.available for slot in index.time_slots("court-a")}
    assert court_a[870] is False


def test_time_slots_skip_the_past():
    index = AvailabilityIndex.build([], COURTS, _day())

    slots = index.time_slots(not_before=725)

    assert slots[0].value == 750


def test_court_statuses_for_requested_window():
    index = AvailabilityIndex.build([make_booking("b1", "court-a", "14:00", "15:00")], COURTS, _day())

    statuses = index.court_statuses(TimeWindow(start=840, end=960), court_names={"court-a": "Court A"})

    court_a = statuses["court-a"]
    assert court_a.court_name == "Court A"
    assert court_a.available is True
    assert court_a.fully_available is False
    assert court_a.available_time_slots == (900, 930)
    assert court_a.unavailable_time_slots == (840, 870)
    assert statuses["court-b"].fully_available is True
    assert statuses["court-b"].court_name == "court-b"


def test_window_past_closing_is_never_fully_available():
    index = AvailabilityIndex.build([], COURTS, _day())

    statuses = index.court_statuses(TimeWindow(start=1290, end=1350))

    assert statuses["court-a"].available is True
    assert statuses["court-a"].fully_available is False


def test_court_statuses_without_window_cover_the_day():
    index = AvailabilityIndex.build([make_booking("b1", "court-a", "08:00", "22:00")], COURTS, _day())

    statuses = index.court_statuses()

    assert statuses["court-a"].available is False
    assert len(statuses["court-a"].unavailable_time_slots) == 28
    assert statuses["court-b"].fully_available is True
