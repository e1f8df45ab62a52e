from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime

from courtbook.application.exceptions import BookingConflictError
from courtbook.application.ports.booking_store import (
    BookingQuery,
    BookingSnapshot,
    BookingStorePort,
    SnapshotListener,
    Subscription,
)
from courtbook.domain.entities.booking import Booking, BookingStatus
from courtbook.infrastructure.store.channel import BookingChannel, select


class MemoryBookingStore(BookingStorePort):
    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._version = 0
        self._lock = threading.Lock()
        self._channel = BookingChannel()
        self._logger = logging.getLogger(__name__)

    def subscribe(self, query: BookingQuery, listener: SnapshotListener) -> Subscription:
        listener_id, subscription = self._channel.add(query, listener)
        with self._lock:
            snapshot, version = dict(self._bookings), self._version
        self._channel.publish(snapshot, version, only=listener_id)
        return subscription

    def list_bookings(self, query: BookingQuery) -> BookingSnapshot:
        return select(self._snapshot(), query)

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._bookings.get(booking_id)

    def insert_if_free(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            for existing in self._bookings.values():
                if existing.conflicts_with(booking):
                    self._logger.info(
                        "Booking write rejected",
                        extra={
                            "booking_id": booking.id,
                            "court_id": booking.court_id,
                            "reason": f"overlaps {existing.id}",
                        },
                    )
                    raise BookingConflictError(
                        f"Court {booking.court_id} is already booked for the selected time. "
                        "Please select another time.",
                        conflicting_booking_id=existing.id,
                    )
            snapshot, version = self._commit(booking)
        self._channel.publish(snapshot, version)
        return booking

    def update(self, booking_id: str, **changes: object) -> Booking:
        with self._lock:
            booking = replace(self._bookings[booking_id], **changes)
            snapshot, version = self._commit(booking)
        self._channel.publish(snapshot, version)
        return booking

    def update_if(self, booking_id: str, expected_status: BookingStatus, **changes: object) -> Booking | None:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None or current.status != expected_status:
                return None
            booking = replace(current, **changes)
            snapshot, version = self._commit(booking)
        self._channel.publish(snapshot, version)
        return booking

    def find_stale_holds(self, inactive_before: datetime, created_before: datetime) -> list[Booking]:
        stale: list[Booking] = []
        for booking in self._snapshot().values():
            if booking.status != BookingStatus.holding:
                continue
            if booking.idle_since(inactive_before) or booking.created_before(created_before):
                stale.append(booking)
        return stale

    def _commit(self, booking: Booking) -> tuple[dict[str, Booking], int]:
        # Caller holds the lock
        updated = dict(self._bookings)
        updated[booking.id] = booking
        self._persist(updated)
        self._bookings = updated
        self._version += 1
        return dict(updated), self._version

    def _snapshot(self) -> dict[str, Booking]:
        with self._lock:
            return dict(self._bookings)

    def _persist(self, bookings: dict[str, Booking]) -> None:
        """Hook for durable stores; called under the write lock before the change is visible."""
        return None
