"""
Tests for wizard step sequencing, back-navigation cascade and reactive invalidation.
"""

from __future__ import annotations

from courtbook.application.use_cases.booking_flow import BookingFlowStateMachine
from courtbook.domain.entities.booking_flow import BookingFlowType, StepLabel, flow_steps
from courtbook.domain.entities.progress import ErrorCategory

from helpers import DAY, VENUE_ID


def _filled_to_duration(machine):
    state = machine.initial_state(VENUE_ID)
    state = machine.update_draft(state, date=DAY)
    state = machine.transition_to_next_step(state, StepLabel.DATE)
    state = machine.update_draft(state, court_id="court-a")
    state = machine.transition_to_next_step(state, StepLabel.COURT)
    state = machine.update_draft(state, start_minutes=600)
    state = machine.transition_to_next_step(state, StepLabel.TIME)
    return machine.update_draft(state, end_minutes=660, price=40.0)


def test_flow_types_define_step_order():
    labels = [step.label for step in flow_steps(BookingFlowType.DATE_TIME_DURATION_COURT)]

    assert labels == [StepLabel.DATE, StepLabel.TIME, StepLabel.DURATION, StepLabel.COURT, StepLabel.PAYMENT]
    assert [step.step for step in flow_steps("date_time_court_duration")] == [1, 2, 3, 4, 5]
    assert flow_steps("unknown") == flow_steps(BookingFlowType.DATE_COURT_TIME_DURATION)


def test_initial_state():
    machine = BookingFlowStateMachine(BookingFlowType.DATE_COURT_TIME_DURATION)

    state = machine.initial_state(VENUE_ID)

    assert state.progress.current_step == 1
    assert state.progress.expanded_steps == (1,)
    assert state.draft.venue_id == VENUE_ID
    assert machine.last_selection_step == StepLabel.DURATION


def test_forward_transitions_expand_steps_monotonically():
    machine = BookingFlowStateMachine()
    state = _filled_to_duration(machine)

    assert state.progress.current_step == 4
    assert state.progress.expanded_steps == (1, 2, 3, 4)

    state = machine.navigate_to_step(state, 2)
    assert state.progress.expanded_steps == (1, 2, 3, 4)

    state = machine.update_draft(state, court_id="court-b")
    state = machine.transition_to_next_step(state, StepLabel.COURT)
    assert state.progress.current_step == 3
    assert state.progress.expanded_steps == (1, 2, 3, 4)


def test_transition_requires_completed_fields():
    machine = BookingFlowStateMachine()
    state = machine.initial_state(VENUE_ID)

    state = machine.transition_to_next_step(state, StepLabel.DATE)

    assert state.progress.current_step == 1
    assert state.progress.expanded_steps == (1,)
    assert state.progress.current_error.category == ErrorCategory.VALIDATION
    assert state.progress.current_error.code == "missing_fields"
    assert [e.field for e in state.progress.current_error.field_errors] == ["date"]


def test_navigating_back_from_duration_to_court_keeps_date():
    machine = BookingFlowStateMachine()
    state = _filled_to_duration(machine)

    state = machine.navigate_to_step(state, 2)

    assert state.progress.current_step == 2
    assert state.draft.date == DAY
    assert state.draft.court_id == "court-a"
    assert state.draft.start_minutes is None
    assert state.draft.end_minutes is None
    assert state.draft.price is None


def test_navigating_back_to_date_clears_everything_after_it():
    machine = BookingFlowStateMachine()
    state = machine.update_draft(_filled_to_duration(machine), hold_booking_id="hold-1")

    state = machine.navigate_to_step(state, 1)

    assert state.draft.date == DAY
    assert state.draft.court_id is None
    assert state.draft.start_minutes is None
    assert state.draft.hold_booking_id is None


def test_navigation_to_unvisited_step_is_refused():
    machine = BookingFlowStateMachine()
    state = machine.update_draft(machine.initial_state(VENUE_ID), date=DAY)

    refused = machine.navigate_to_step(state, 3)

    assert refused.progress.current_step == 1
    assert refused.progress.current_error.code == "step_not_reached"
    assert refused.draft == state.draft


def test_forward_navigation_is_clamped_to_first_incomplete_step():
    machine = BookingFlowStateMachine()
    state = machine.navigate_to_step(_filled_to_duration(machine), 2)

    state = machine.navigate_to_step(state, 4)

    assert state.progress.current_step == 3


def test_set_active_step_only_moves_current_step():
    machine = BookingFlowStateMachine()
    state = _filled_to_duration(machine)

    moved = machine.set_active_step(state, 2)

    assert moved.progress.current_step == 2
    assert moved.progress.expanded_steps == state.progress.expanded_steps
    assert moved.draft == state.draft


def test_completing_payment_marks_flow_completed():
    machine = BookingFlowStateMachine()
    state = machine.transition_to_next_step(_filled_to_duration(machine), StepLabel.DURATION)
    state = machine.update_draft(state, hold_booking_id="hold-1")

    state = machine.transition_to_next_step(state, StepLabel.PAYMENT)

    assert state.progress.completed is True
    assert state.progress.current_step == 5
    assert state.progress.current_step in [step.step for step in machine.steps]


def test_reconcile_clears_first_invalid_selection_and_later_steps():
    machine = BookingFlowStateMachine()
    state = _filled_to_duration(machine)

    state = machine.reconcile(state, lambda label, draft: label != StepLabel.TIME)

    assert state.draft.court_id == "court-a"
    assert state.draft.start_minutes is None
    assert state.draft.end_minutes is None
    assert state.progress.current_step == 3
    assert state.progress.current_error.category == ErrorCategory.AVAILABILITY
    assert {e.field for e in state.progress.current_error.field_errors} >= {"start_minutes", "end_minutes"}


def test_reconcile_keeps_state_when_everything_is_valid():
    machine = BookingFlowStateMachine()
    state = _filled_to_duration(machine)

    assert machine.reconcile(state, lambda label, draft: True) is state


def test_reconcile_does_not_move_current_step_forward():
    machine = BookingFlowStateMachine()
    state = machine.navigate_to_step(_filled_to_duration(machine), 2)
    state = machine.update_draft(state, start_minutes=600)

    state = machine.reconcile(state, lambda label, draft: label != StepLabel.TIME)

    assert state.progress.current_step == 2
    assert state.draft.start_minutes is None
