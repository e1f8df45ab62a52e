from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

from courtbook.application.exceptions import BookingStoreUnavailableError
from courtbook.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from courtbook.infrastructure.store.memory_store import MemoryBookingStore


class JsonBookingStore(MemoryBookingStore):
    """Booking store persisted to a single JSON document, rewritten atomically on every write."""

    def __init__(self, path: str = "./data/bookings.json") -> None:
        super().__init__()
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger(__name__)
        self._bookings = self._load()

    def _load(self) -> dict[str, Booking]:
        """Load bookings from disk, empty if the file is missing or corrupted."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            self._logger.error("Booking file unreadable, starting empty", extra={"error": str(e)})
            return {}

        bookings: dict[str, Booking] = {}
        for raw in data.get("bookings", []):
            try:
                booking = self._deserialize_booking(raw)
            except (KeyError, ValueError, TypeError) as e:
                self._logger.warning(
                    "Skipping malformed booking record",
                    extra={"booking_id": raw.get("id"), "error": str(e)},
                )
                continue
            bookings[booking.id] = booking
        return bookings

    def _persist(self, bookings: dict[str, Booking]) -> None:
        """Save bookings to the JSON file atomically."""
        temp_path = self._path.with_suffix(".json.tmp")
        data = {
            "version": 1,
            "bookings": [self._serialize_booking(booking) for booking in bookings.values()],
        }

        try:
            # Write to temp file
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            # Atomic rename
            temp_path.replace(self._path)
        except OSError as e:
            # Clean up temp file on error
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise BookingStoreUnavailableError(f"Could not write bookings to {self._path}: {e}") from e

    def _serialize_booking(self, booking: Booking) -> dict[str, Any]:
        """Serialize Booking to dict with ISO string conversion."""
        return {
            "id": booking.id,
            "venue_id": booking.venue_id,
            "court_id": booking.court_id,
            "date": booking.date.isoformat(),
            "start_time": booking.start_time.isoformat(),
            "end_time": booking.end_time.isoformat(),
            "status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "price": booking.price,
            "user_id": booking.user_id,
            "user_name": booking.user_name,
            "customer_email": booking.customer_email,
            "customer_phone": booking.customer_phone,
            "notes": booking.notes,
            "created_at": _iso(booking.created_at),
            "updated_at": _iso(booking.updated_at),
            "last_active": _iso(booking.last_active),
            "cancellation_reason": booking.cancellation_reason,
        }

    def _deserialize_booking(self, data: dict[str, Any]) -> Booking:
        """Deserialize dict to Booking with datetime parsing."""
        return Booking(
            id=data["id"],
            venue_id=data["venue_id"],
            court_id=data["court_id"],
            date=date.fromisoformat(data["date"]),
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(data["end_time"]),
            status=BookingStatus(data.get("status", BookingStatus.holding.value)),
            payment_status=PaymentStatus(data.get("payment_status", PaymentStatus.pending.value)),
            price=float(data.get("price") or 0.0),
            user_id=data.get("user_id"),
            user_name=data.get("user_name"),
            customer_email=data.get("customer_email"),
            customer_phone=data.get("customer_phone"),
            notes=data.get("notes"),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
            last_active=_parse_datetime(data.get("last_active")),
            cancellation_reason=data.get("cancellation_reason"),
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
