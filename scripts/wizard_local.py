#!/usr/bin/env python3
from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from courtbook.application.use_cases.booking_wizard import BookingWizardSession
from courtbook.application.use_cases.reservation_hold import HoldConflict
from courtbook.application.utils.timeline import format_minutes, parse_hhmm
from courtbook.wiring.dependencies import open_wizard

"""
Interactive local booking wizard (no HTTP).

Usage:
  python3 scripts/wizard_local.py [venue_id]

Commands:
  date YYYY-MM-DD   court ID   time HH:MM   duration MINUTES
  hold              pay        back N       show   /quit
"""


def _print_state(session: BookingWizardSession) -> None:
    progress = session.progress
    draft = session.draft
    steps = " > ".join(
        f"[{step.label.value}]" if step.step == progress.current_step else step.label.value
        for step in progress.steps
    )
    print("-" * 60)
    print(f"steps: {steps}   expanded={list(progress.expanded_steps)} completed={progress.completed}")
    print(
        "draft: date=%s court=%s start=%s end=%s price=%s hold=%s"
        % (
            draft.date,
            draft.court_id,
            format_minutes(draft.start_minutes) if draft.start_minutes is not None else None,
            format_minutes(draft.end_minutes) if draft.end_minutes is not None else None,
            draft.price,
            draft.hold_booking_id,
        )
    )
    if progress.current_error:
        print(f"error ({progress.current_error.category.value}): {progress.current_error.message}")
    for notice in session.drain_notices():
        print(f"notice: {notice.message}")


def _print_options(session: BookingWizardSession) -> None:
    free = [slot.label for slot in session.time_slots() if slot.available]
    if free:
        print("free start times: " + " ".join(free))
    durations = session.durations()
    if durations:
        print("durations: " + " ".join(f"{d.label}={d.price:.2f}" for d in durations))
    statuses = session.court_statuses()
    if statuses:
        print(
            "courts: "
            + " ".join(
                f"{s.court_id}({'full' if s.fully_available else 'partial' if s.available else 'busy'})"
                for s in statuses.values()
            )
        )


def _handle(session: BookingWizardSession, command: str, arg: str) -> None:
    if command == "date":
        session.select_date(date.fromisoformat(arg))
    elif command == "court":
        session.select_court(arg)
    elif command == "time":
        session.select_time(parse_hhmm(arg))
    elif command == "duration":
        session.select_duration(int(arg))
    elif command == "hold":
        result = session.confirm_hold()
        if isinstance(result, HoldConflict):
            print(f"conflict: {result.message}")
        elif result is not None:
            print(f"hold created: {result.id}")
    elif command == "pay":
        session.complete_payment()
    elif command == "back":
        session.navigate_to_step(int(arg))
    elif command != "show":
        print("unknown command")


def main() -> None:
    venue_id = sys.argv[1] if len(sys.argv) > 1 else "riverside"
    session = open_wizard(venue_id)
    print(f"\nBooking wizard for {venue_id}")
    _print_state(session)

    try:
        while True:
            try:
                line = input("> ").strip()
            except EOFError:
                break
            if not line:
                continue
            if line in {"/quit", "/exit"}:
                break
            command, _, arg = line.partition(" ")
            try:
                _handle(session, command, arg.strip())
            except ValueError as e:
                print(f"invalid input: {e}")
            _print_state(session)
            _print_options(session)
    finally:
        session.close()


if __name__ == "__main__":
    main()
