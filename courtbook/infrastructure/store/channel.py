from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from courtbook.application.ports.booking_store import (
    BookingQuery,
    BookingSnapshot,
    SnapshotListener,
    Subscription,
)
from courtbook.domain.entities.booking import Booking


class ChannelSubscription(Subscription):
    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._cancel()


class BookingChannel:
    """Publish/subscribe fan-out of full booking snapshots, filtered per subscriber query."""

    def __init__(self) -> None:
        self._listeners: dict[int, tuple[BookingQuery, SnapshotListener]] = {}
        self._delivered: dict[int, int] = {}
        self._next_id = 0
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def add(self, query: BookingQuery, listener: SnapshotListener) -> tuple[int, ChannelSubscription]:
        with self._lock:
            listener_id = self._next_id
            self._next_id += 1
            self._listeners[listener_id] = (query, listener)
        return listener_id, ChannelSubscription(lambda: self._remove(listener_id))

    def publish(self, bookings: dict[str, Booking], version: int, only: int | None = None) -> None:
        """
        Deliver the snapshot taken at ``version`` to each listener.

        A listener never receives a version older than, or equal to, one it has
        already seen. A listener that writes from inside its callback publishes a
        newer snapshot first, and the older one still in flight is dropped.
        """
        with self._lock:
            listener_ids = [
                listener_id for listener_id in self._listeners if only is None or listener_id == only
            ]
        for listener_id in listener_ids:
            with self._lock:
                entry = self._listeners.get(listener_id)
                if entry is None or self._delivered.get(listener_id, -1) >= version:
                    continue
                self._delivered[listener_id] = version
            query, listener = entry
            try:
                listener(select(bookings, query))
            except Exception:
                self._logger.exception("Booking snapshot listener failed")

    def _remove(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)
            self._delivered.pop(listener_id, None)


def select(bookings: dict[str, Booking], query: BookingQuery) -> BookingSnapshot:
    return {booking_id: booking for booking_id, booking in bookings.items() if query.matches(booking)}
