from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from courtbook.domain.entities.booking_flow import FlowStep


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    AVAILABILITY = "availability"
    NETWORK = "network"
    SYSTEM = "system"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class BookingError:
    message: str
    category: ErrorCategory
    code: str | None = None
    timestamp: float = field(default_factory=time.time)
    field_errors: tuple[FieldError, ...] = ()
    is_dismissible: bool = True


@dataclass(frozen=True)
class BookingDraft:
    """Selections made so far in the wizard. Times are minutes since local midnight."""

    venue_id: str
    date: date | None = None
    court_id: str | None = None
    start_minutes: int | None = None
    end_minutes: int | None = None
    price: float | None = None
    user_id: str | None = None
    user_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    hold_booking_id: str | None = None

    @property
    def duration_minutes(self) -> int | None:
        if self.start_minutes is None or self.end_minutes is None:
            return None
        return self.end_minutes - self.start_minutes


@dataclass(frozen=True)
class BookingProgress:
    steps: tuple[FlowStep, ...]
    current_step: int = 1
    expanded_steps: tuple[int, ...] = (1,)
    current_error: BookingError | None = None
    completed: bool = False  # set once the payment step has been completed


@dataclass(frozen=True)
class WizardState:
    progress: BookingProgress
    draft: BookingDraft
