from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BookingFlowType(str, Enum):
    DATE_COURT_TIME_DURATION = "date_court_time_duration"
    DATE_TIME_DURATION_COURT = "date_time_duration_court"
    DATE_TIME_COURT_DURATION = "date_time_court_duration"


class StepLabel(str, Enum):
    DATE = "Date"
    COURT = "Court"
    TIME = "Time"
    DURATION = "Duration"
    PAYMENT = "Payment"


@dataclass(frozen=True)
class FlowStep:
    step: int  # 1-based position in the flow
    label: StepLabel
    icon: str


_ICONS = {
    StepLabel.DATE: "event",
    StepLabel.COURT: "sports_tennis",
    StepLabel.TIME: "schedule",
    StepLabel.DURATION: "timer",
    StepLabel.PAYMENT: "payment",
}

_ORDERS: dict[BookingFlowType, tuple[StepLabel, ...]] = {
    BookingFlowType.DATE_COURT_TIME_DURATION: (
        StepLabel.DATE,
        StepLabel.COURT,
        StepLabel.TIME,
        StepLabel.DURATION,
        StepLabel.PAYMENT,
    ),
    BookingFlowType.DATE_TIME_DURATION_COURT: (
        StepLabel.DATE,
        StepLabel.TIME,
        StepLabel.DURATION,
        StepLabel.COURT,
        StepLabel.PAYMENT,
    ),
    BookingFlowType.DATE_TIME_COURT_DURATION: (
        StepLabel.DATE,
        StepLabel.TIME,
        StepLabel.COURT,
        StepLabel.DURATION,
        StepLabel.PAYMENT,
    ),
}

BOOKING_FLOWS: dict[BookingFlowType, tuple[FlowStep, ...]] = {
    flow_type: tuple(
        FlowStep(step=index + 1, label=label, icon=_ICONS[label]) for index, label in enumerate(order)
    )
    for flow_type, order in _ORDERS.items()
}


def flow_steps(flow_type: BookingFlowType | str | None) -> tuple[FlowStep, ...]:
    """Ordered steps for a flow type, defaulting to Date → Court → Time → Duration."""
    try:
        return BOOKING_FLOWS[BookingFlowType(flow_type)]
    except ValueError:
        return BOOKING_FLOWS[BookingFlowType.DATE_COURT_TIME_DURATION]
