from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from courtbook.application.ports.booking_store import BookingStorePort
from courtbook.domain.entities.booking import Booking, BookingStatus, PaymentStatus

CLEANUP_REASON = "auto_cleanup_abandoned_booking"
OLD_HOLD_REASON = "auto_cleanup_old_holding_booking"


@dataclass(frozen=True)
class SweepResult:
    cleaned: int
    booking_ids: tuple[str, ...] = ()


class HoldExpirySweep:
    """Cancels holding bookings whose owner walked away from the payment step."""

    def __init__(
        self,
        store: BookingStorePort,
        inactivity_minutes: int = 8,
        max_age_minutes: int = 30,
    ) -> None:
        self._store = store
        self._inactivity = timedelta(minutes=inactivity_minutes)
        self._max_age = timedelta(minutes=max_age_minutes)
        self._logger = logging.getLogger(__name__)

    def sweep(self, now: datetime) -> SweepResult:
        inactive_before = now - self._inactivity
        stale = self._store.find_stale_holds(
            inactive_before=inactive_before,
            created_before=now - self._max_age,
        )

        cleaned: list[str] = []
        for booking in stale:
            reason = self._reason(booking, inactive_before)
            # Payment may have confirmed the hold since the lookup
            cancelled = self._store.update_if(
                booking.id,
                expected_status=BookingStatus.holding,
                status=BookingStatus.cancelled,
                payment_status=PaymentStatus.abandoned,
                cancellation_reason=reason,
                updated_at=now,
            )
            if cancelled is None:
                self._logger.info(
                    "Hold left untouched, no longer holding",
                    extra={"booking_id": booking.id, "court_id": booking.court_id},
                )
                continue
            cleaned.append(booking.id)
            self._logger.info(
                "Abandoned hold cancelled",
                extra={"booking_id": booking.id, "court_id": booking.court_id, "reason": reason},
            )

        if cleaned:
            self._logger.info("Hold sweep finished", extra={"cleaned": len(cleaned)})
        return SweepResult(cleaned=len(cleaned), booking_ids=tuple(cleaned))

    @staticmethod
    def _reason(booking: Booking, inactive_before: datetime) -> str:
        if booking.idle_since(inactive_before):
            return CLEANUP_REASON
        return OLD_HOLD_REASON
