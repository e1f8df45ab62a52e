from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class BookingStatus(str, Enum):
    holding = "holding"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no-show"
    refunded = "refunded"
    failed = "failed"
    processing = "processing"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    refunded = "refunded"
    abandoned = "abandoned"


@dataclass(frozen=True)
class Booking:
    id: str
    venue_id: str
    court_id: str
    date: date
    start_time: datetime  # UTC
    end_time: datetime  # UTC
    status: BookingStatus = BookingStatus.holding
    payment_status: PaymentStatus = PaymentStatus.pending
    price: float = 0.0
    user_id: str | None = None
    user_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_active: datetime | None = None
    cancellation_reason: str | None = None

    def __post_init__(self) -> None:
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Booking {self.id or '<new>'} must start before it ends "
                f"({self.start_time.isoformat()} >= {self.end_time.isoformat()})"
            )

    @property
    def is_active(self) -> bool:
        """Every booking except a cancelled one occupies its court."""
        return self.status != BookingStatus.cancelled

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_time < end and self.end_time > start

    def conflicts_with(self, other: Booking) -> bool:
        return (
            self.court_id == other.court_id
            and self.is_active
            and other.is_active
            and self.overlaps(other.start_time, other.end_time)
        )

    def idle_since(self, inactive_before: datetime) -> bool:
        """Payment still pending and no activity since ``inactive_before``."""
        last_active = self.last_active or self.created_at
        return (
            self.payment_status == PaymentStatus.pending
            and last_active is not None
            and last_active < inactive_before
        )

    def created_before(self, cutoff: datetime) -> bool:
        return self.created_at is not None and self.created_at < cutoff
