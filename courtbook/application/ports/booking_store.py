from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from courtbook.domain.entities.booking import Booking, BookingStatus

BookingSnapshot = dict[str, Booking]
SnapshotListener = Callable[[BookingSnapshot], None]


@dataclass(frozen=True)
class BookingQuery:
    venue_id: str | None = None
    date: date | None = None
    court_ids: frozenset[str] | None = None
    statuses: frozenset[BookingStatus] | None = None

    def matches(self, booking: Booking) -> bool:
        if self.venue_id is not None and booking.venue_id != self.venue_id:
            return False
        if self.date is not None and booking.date != self.date:
            return False
        if self.court_ids is not None and booking.court_id not in self.court_ids:
            return False
        if self.statuses is not None and booking.status not in self.statuses:
            return False
        return True


class Subscription(ABC):
    @abstractmethod
    def unsubscribe(self) -> None:
        raise NotImplementedError


class BookingStorePort(ABC):
    @abstractmethod
    def subscribe(self, query: BookingQuery, listener: SnapshotListener) -> Subscription:
        """
        Deliver the bookings matching ``query`` to ``listener`` now and after every change.
        Each delivery is the full current snapshot keyed by booking id.
        """
        raise NotImplementedError

    @abstractmethod
    def list_bookings(self, query: BookingQuery) -> BookingSnapshot:
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def insert_if_free(self, booking: Booking) -> Booking:
        """
        Atomically insert ``booking`` unless an active booking on the same court overlaps it.
        Raises BookingConflictError on overlap, BookingStoreUnavailableError on I/O failure.
        """
        raise NotImplementedError

    @abstractmethod
    def update(self, booking_id: str, **changes: object) -> Booking:
        """Apply field changes to an existing booking. Raises KeyError if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def update_if(self, booking_id: str, expected_status: BookingStatus, **changes: object) -> Booking | None:
        """
        Apply field changes only while the booking still has ``expected_status``.
        Returns None, without writing, when the booking is missing or its status moved on.
        """
        raise NotImplementedError

    @abstractmethod
    def find_stale_holds(self, inactive_before: datetime, created_before: datetime) -> list[Booking]:
        """Holding bookings idle since ``inactive_before`` or created before ``created_before``."""
        raise NotImplementedError
