from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import fields, replace

from courtbook.domain.entities.booking_flow import BookingFlowType, FlowStep, StepLabel, flow_steps
from courtbook.domain.entities.progress import (
    BookingDraft,
    BookingError,
    BookingProgress,
    ErrorCategory,
    FieldError,
    WizardState,
)

# Draft fields owned by each step; clearing a step resets exactly these.
STEP_FIELDS: dict[StepLabel, tuple[str, ...]] = {
    StepLabel.DATE: ("date",),
    StepLabel.COURT: ("court_id",),
    StepLabel.TIME: ("start_minutes",),
    StepLabel.DURATION: ("end_minutes", "price"),
    StepLabel.PAYMENT: ("hold_booking_id",),
}

FIELD_MESSAGES = {
    "date": "Please select a date",
    "court_id": "Please select a court",
    "start_minutes": "Please select a start time",
    "end_minutes": "Please select a duration",
    "price": "Please select a duration",
    "hold_booking_id": "Please confirm your reservation",
}

SelectionValidity = Callable[[StepLabel, BookingDraft], bool]


class BookingFlowStateMachine:
    """Step sequencing for one venue's booking flow.

    Every operation is a pure function of the state it is given and returns a
    new ``WizardState``; the instance only carries the ordered step list.
    """

    def __init__(self, flow_type: BookingFlowType | str | None = None) -> None:
        self._steps = flow_steps(flow_type)
        self._logger = logging.getLogger(__name__)

    @property
    def steps(self) -> tuple[FlowStep, ...]:
        return self._steps

    @property
    def labels(self) -> tuple[StepLabel, ...]:
        return tuple(step.label for step in self._steps)

    @property
    def last_selection_step(self) -> StepLabel:
        """The step completed by confirming the hold (the one right before payment)."""
        return self._steps[-2].label

    def initial_state(self, venue_id: str) -> WizardState:
        return WizardState(
            progress=BookingProgress(steps=self._steps, current_step=1, expanded_steps=(1,)),
            draft=BookingDraft(venue_id=venue_id),
        )

    def position_of(self, label: StepLabel) -> int:
        for step in self._steps:
            if step.label == label:
                return step.step
        raise ValueError(f"Step {label!r} is not part of this booking flow")

    def label_at(self, position: int) -> StepLabel:
        if not 1 <= position <= len(self._steps):
            raise ValueError(f"Step position {position} is outside the booking flow")
        return self._steps[position - 1].label

    def comes_before(self, first: StepLabel, second: StepLabel) -> bool:
        return self.position_of(first) < self.position_of(second)

    def missing_fields(self, draft: BookingDraft, up_to: int) -> dict[str, str]:
        """Required draft fields that are still empty for steps 1..``up_to``."""
        missing: dict[str, str] = {}
        for step in self._steps[:up_to]:
            for name in STEP_FIELDS[step.label]:
                if getattr(draft, name) is None:
                    missing[name] = FIELD_MESSAGES[name]
        return missing

    def transition_to_next_step(self, state: WizardState, completed: StepLabel) -> WizardState:
        position = self.position_of(completed)
        progress = state.progress

        missing = self.missing_fields(state.draft, position)
        if missing:
            return replace(state, progress=replace(progress, current_error=_validation_error(missing)))

        if position == len(self._steps):
            self._logger.info("Booking flow completed", extra={"step": completed.value})
            return replace(
                state,
                progress=replace(progress, current_step=position, completed=True, current_error=None),
            )

        next_position = position + 1
        expanded = progress.expanded_steps
        if next_position not in expanded:
            expanded = expanded + (next_position,)
        return replace(
            state,
            progress=replace(
                progress,
                current_step=next_position,
                expanded_steps=expanded,
                current_error=None,
            ),
        )

    def set_active_step(self, state: WizardState, position: int) -> WizardState:
        self.label_at(position)
        return replace(state, progress=replace(state.progress, current_step=position))

    def navigate_to_step(self, state: WizardState, position: int) -> WizardState:
        """User clicked a step header: backward clears later steps, forward is clamped."""
        self.label_at(position)
        progress = state.progress

        if position not in progress.expanded_steps:
            error = BookingError(
                message="Please complete the previous steps first",
                category=ErrorCategory.VALIDATION,
                code="step_not_reached",
            )
            return replace(state, progress=replace(progress, current_error=error))

        if position < progress.current_step:
            draft = self.clear_steps(state.draft, self.labels[position:])
            return WizardState(
                progress=replace(progress, current_step=position, current_error=None),
                draft=draft,
            )

        target = position
        for step in self._steps[: position - 1]:
            if self.missing_fields(state.draft, step.step):
                target = step.step
                break
        return self.set_active_step(state, target)

    def update_draft(self, state: WizardState, **changes: object) -> WizardState:
        unknown = set(changes) - {f.name for f in fields(BookingDraft)}
        if unknown:
            raise ValueError(f"Unknown booking fields: {sorted(unknown)}")
        return replace(state, draft=replace(state.draft, **changes))

    def clear_steps(self, draft: BookingDraft, labels: Iterable[StepLabel]) -> BookingDraft:
        cleared = {name: None for label in labels for name in STEP_FIELDS[label]}
        return replace(draft, **cleared)

    def invalidate(
        self,
        state: WizardState,
        labels: Iterable[StepLabel],
        message: str,
        code: str = "selection_unavailable",
    ) -> WizardState:
        """Clear the given steps, move back to the earliest of them and flag the change."""
        labels = [label for label in self.labels if label in set(labels)]
        if not labels:
            return state
        earliest = self.position_of(labels[0])
        cleared_fields = tuple(
            FieldError(field=name, message=FIELD_MESSAGES[name]) for label in labels for name in STEP_FIELDS[label]
        )
        error = BookingError(
            message=message,
            category=ErrorCategory.AVAILABILITY,
            code=code,
            field_errors=cleared_fields,
        )
        progress = state.progress
        return WizardState(
            progress=replace(
                progress,
                current_step=min(progress.current_step, earliest),
                current_error=error,
                completed=False,
            ),
            draft=self.clear_steps(state.draft, labels),
        )

    def reconcile(self, state: WizardState, is_valid: SelectionValidity) -> WizardState:
        """Clear the first selection that is no longer valid, together with every later step."""
        for step in self._steps:
            if step.label == StepLabel.PAYMENT:
                break
            names = STEP_FIELDS[step.label]
            if any(getattr(state.draft, name) is None for name in names):
                continue
            if is_valid(step.label, state.draft):
                continue
            self._logger.info(
                "Selection no longer available",
                extra={"step": step.label.value, "venue_id": state.draft.venue_id},
            )
            return self.invalidate(
                state,
                self.labels[step.step - 1 :],
                f"The selected {step.label.value.lower()} is no longer available. Please choose again.",
            )
        return state


def _validation_error(missing: dict[str, str]) -> BookingError:
    return BookingError(
        message="Please complete all booking details before continuing",
        category=ErrorCategory.VALIDATION,
        code="missing_fields",
        field_errors=tuple(FieldError(field=name, message=message) for name, message in missing.items()),
    )
