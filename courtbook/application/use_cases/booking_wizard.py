from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime
from zoneinfo import ZoneInfo

from courtbook.application.exceptions import (
    BookingStoreUnavailableError,
    BookingValidationError,
    VenueNotFoundError,
)
from courtbook.application.ports.booking_store import (
    BookingQuery,
    BookingSnapshot,
    BookingStorePort,
    Subscription,
)
from courtbook.application.ports.venue_catalog import VenueCatalogPort
from courtbook.application.use_cases.alternative_slots import AlternativeOptions, AlternativeSlotResolver
from courtbook.application.use_cases.availability_index import AvailabilityIndex
from courtbook.application.use_cases.booking_flow import BookingFlowStateMachine
from courtbook.application.use_cases.durations import FALLBACK_STEP, DurationPriceCalculator
from courtbook.application.use_cases.reservation_hold import HoldConflict, ReservationHoldService, utc_now
from courtbook.application.utils.pricing import PricingPolicy
from courtbook.application.utils.timeline import operating_day
from courtbook.domain.entities.availability import CourtAvailabilityStatus, Duration, TimeSlot, TimeWindow
from courtbook.domain.entities.booking import Booking, BookingStatus
from courtbook.domain.entities.booking_flow import StepLabel
from courtbook.domain.entities.progress import (
    BookingDraft,
    BookingError,
    BookingProgress,
    ErrorCategory,
    FieldError,
    WizardState,
)

RELEASE_REASON = "released_on_selection_change"


class BookingWizardSession:
    """One user's pass through the booking wizard of a venue.

    Owns the only mutable ``WizardState``. User intents and booking snapshots
    both enter here; availability is rebuilt from the latest snapshot and every
    selection that stopped being bookable is cleared through the flow machine.
    """

    def __init__(
        self,
        venue_id: str,
        store: BookingStorePort,
        catalog: VenueCatalogPort,
        hold_service: ReservationHoldService,
        pricing: PricingPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
        fallback_step: int = FALLBACK_STEP,
    ) -> None:
        venue = catalog.get_venue(venue_id)
        if venue is None:
            raise VenueNotFoundError(f"Unknown venue {venue_id}")

        self._venue = venue
        self._tz = ZoneInfo(venue.timezone)
        self._courts = {court.id: court for court in catalog.list_courts(venue_id)}
        self._store = store
        self._hold_service = hold_service
        self._pricing = pricing or PricingPolicy()
        self._clock = clock
        self._fallback_step = fallback_step
        self._machine = BookingFlowStateMachine(venue.booking_flow)
        self._state = self._machine.initial_state(venue_id)

        self._subscription: Subscription | None = None
        self._watched_date: date | None = None
        self._bookings: BookingSnapshot = {}
        self._index: AvailabilityIndex | None = None
        self._pending_hold_id: str | None = None
        self._notices: list[BookingError] = []
        self._logger = logging.getLogger(__name__)

    # -- state -----------------------------------------------------------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def progress(self) -> BookingProgress:
        return self._state.progress

    @property
    def draft(self) -> BookingDraft:
        return self._state.draft

    @property
    def machine(self) -> BookingFlowStateMachine:
        return self._machine

    def drain_notices(self) -> list[BookingError]:
        """Notices raised by background updates since the last call."""
        notices, self._notices = self._notices, []
        return notices

    def dismiss_error(self) -> WizardState:
        error = self._state.progress.current_error
        if error is not None and error.is_dismissible:
            self._state = replace(self._state, progress=replace(self._state.progress, current_error=None))
        return self._state

    # -- intents ---------------------------------------------------------

    def select_date(self, day: date) -> WizardState:
        candidate = self._machine.update_draft(self._state, date=day)
        if not self._is_valid(StepLabel.DATE, candidate.draft):
            return self._reject("The venue cannot be booked on this date", "date", code="date_unavailable")

        held = candidate.draft.hold_booking_id
        if held is not None:
            candidate = self._machine.update_draft(candidate, hold_booking_id=None)
        self._state = candidate
        self._watch(day)
        self._state = self._machine.reconcile(self._state, self._is_valid)
        if held is not None:
            self._step_back_to(StepLabel.DATE)
            self._release(held)
        return self._advance(StepLabel.DATE)

    def select_court(self, court_id: str) -> WizardState:
        if self._index is None:
            return self._reject("Please select a date first", "date", category=ErrorCategory.VALIDATION)

        changes: dict[str, object] = {"court_id": court_id}
        draft = self._state.draft
        court = self._courts.get(court_id)
        if court is not None and draft.start_minutes is not None and draft.duration_minutes:
            changes["price"] = self._pricing.price(court, draft.date, draft.start_minutes, draft.duration_minutes)
        return self._select(StepLabel.COURT, "court_id", changes, "This court is not available")

    def select_time(self, start_minutes: int) -> WizardState:
        if self._index is None:
            return self._reject("Please select a date first", "date", category=ErrorCategory.VALIDATION)

        changes: dict[str, object] = {"start_minutes": start_minutes}
        duration = self._state.draft.duration_minutes
        if duration:
            # Keep the chosen duration by moving the end along with the start
            changes["end_minutes"] = start_minutes + duration
            price = self._duration_price(start_minutes, duration)
            if price is None:
                changes["end_minutes"] = None
                changes["price"] = None
            else:
                changes["price"] = price
        return self._select(StepLabel.TIME, "start_minutes", changes, "This start time is not available")

    def select_duration(self, duration_minutes: int) -> WizardState:
        start = self._state.draft.start_minutes
        if self._index is None or start is None:
            return self._reject(
                "Please select a start time first",
                "start_minutes",
                category=ErrorCategory.VALIDATION,
            )

        price = self._duration_price(start, duration_minutes)
        if price is None:
            return self._reject("This duration is not available", "end_minutes")
        changes = {"end_minutes": start + duration_minutes, "price": price}
        return self._select(StepLabel.DURATION, "end_minutes", changes, "This duration is not available")

    def confirm_hold(self) -> Booking | HoldConflict | None:
        """Create the holding booking for the current selection and move on to payment."""
        last = self._machine.last_selection_step
        draft = self._state.draft
        if self._machine.missing_fields(draft, self._machine.position_of(last)):
            self._state = self._machine.transition_to_next_step(self._state, last)
            return None

        if draft.hold_booking_id is not None:
            self._state = self._machine.transition_to_next_step(self._state, last)
            return self._store.get(draft.hold_booking_id)

        self._pending_hold_id = self._hold_service.new_booking_id()
        try:
            result = self._hold_service.create_hold(draft, booking_id=self._pending_hold_id)
        except BookingValidationError as e:
            self._pending_hold_id = None
            self._fail(
                BookingError(
                    message=str(e),
                    category=ErrorCategory.VALIDATION,
                    code="invalid_booking",
                    field_errors=tuple(FieldError(field=k, message=v) for k, v in e.field_errors.items()),
                )
            )
            return None
        except BookingStoreUnavailableError as e:
            self._pending_hold_id = None
            self._logger.warning("Hold could not be written", extra={"venue_id": draft.venue_id, "error": str(e)})
            self._fail(
                BookingError(
                    message="We could not reach the booking service. Please try again.",
                    category=ErrorCategory.NETWORK,
                    code="store_unavailable",
                )
            )
            return None
        except Exception:
            self._pending_hold_id = None
            self._logger.exception("Unexpected error while creating hold", extra={"venue_id": draft.venue_id})
            self._fail(
                BookingError(
                    message="Something went wrong. Please try again.",
                    category=ErrorCategory.SYSTEM,
                    code="unexpected_error",
                )
            )
            return None

        self._pending_hold_id = None
        if isinstance(result, HoldConflict):
            time_position = self._machine.position_of(StepLabel.TIME)
            self._state = self._machine.invalidate(
                self._state,
                self._machine.labels[time_position - 1 :],
                "Sorry, this time was just booked by someone else. Please choose another time.",
                code="hold_conflict",
            )
            return result

        state = self._machine.update_draft(self._state, hold_booking_id=result.id)
        self._state = self._machine.transition_to_next_step(state, last)
        return result

    def navigate_to_step(self, position: int) -> WizardState:
        held = self._state.draft.hold_booking_id
        self._state = self._machine.navigate_to_step(self._state, position)
        if held is not None and self._state.draft.hold_booking_id is None:
            self._release(held)
        return self._state

    def complete_payment(self) -> WizardState:
        self._state = self._machine.transition_to_next_step(self._state, StepLabel.PAYMENT)
        return self._state

    def keep_alive(self) -> None:
        """Refresh the hold while the user is still on the payment step."""
        booking_id = self._state.draft.hold_booking_id
        if booking_id is not None:
            self._hold_service.touch_hold(booking_id)

    def close(self) -> None:
        """Stop listening for bookings. A created hold is left to expire on its own."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._watched_date = None

    # -- queries ---------------------------------------------------------

    def time_slots(self) -> list[TimeSlot]:
        if self._index is None:
            return []
        draft = self._state.draft
        court_id = draft.court_id if self._machine.comes_before(StepLabel.COURT, StepLabel.TIME) else None
        return self._index.time_slots(court_id=court_id, not_before=self._now_minutes(self._index.day.day))

    def durations(self) -> list[Duration]:
        draft = self._state.draft
        if self._index is None or draft.start_minutes is None:
            return []
        court_id = draft.court_id if self._machine.comes_before(StepLabel.COURT, StepLabel.DURATION) else None
        return self._calculator().available_durations(draft.start_minutes, court_id)

    def court_statuses(self) -> dict[str, CourtAvailabilityStatus]:
        if self._index is None:
            return {}
        names = {court.id: court.name for court in self._courts.values()}
        return self._index.court_statuses(window=self._window(self._state.draft), court_names=names)

    def alternatives(self, court_id: str) -> AlternativeOptions | None:
        draft = self._state.draft
        court = self._courts.get(court_id)
        if self._index is None or court is None or draft.start_minutes is None or draft.end_minutes is None:
            return None
        original = TimeWindow(start=draft.start_minutes, end=draft.end_minutes)
        price = draft.price
        if price is None or draft.court_id != court_id:
            price = self._pricing.price(court, self._index.day.day, original.start, original.duration)
        resolver = AlternativeSlotResolver(self._index.day.timeline, self._index.court_slots(court_id))
        return resolver.resolve(original, price)

    # -- snapshots -------------------------------------------------------

    def _watch(self, day: date) -> None:
        if self._watched_date == day and self._subscription is not None:
            self._rebuild()
            return
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self._bookings = {}
        self._index = None
        self._watched_date = day
        query = BookingQuery(
            venue_id=self._venue.venue_id,
            date=day,
            court_ids=frozenset(self._active_court_ids()),
        )
        self._logger.debug("Watching bookings", extra={"venue_id": self._venue.venue_id, "date": day.isoformat()})
        self._subscription = self._store.subscribe(query, self._on_snapshot)

    def _on_snapshot(self, snapshot: BookingSnapshot) -> None:
        self._bookings = dict(snapshot)
        self._rebuild()

        state = self._expire_lost_hold(self._state)
        reconciled = self._machine.reconcile(state, self._is_valid)
        if reconciled is not state and reconciled.progress.current_error is not None:
            self._notices.append(reconciled.progress.current_error)
        self._state = reconciled

    def _expire_lost_hold(self, state: WizardState) -> WizardState:
        booking_id = state.draft.hold_booking_id
        if booking_id is None:
            return state
        booking = self._bookings.get(booking_id)
        if booking is not None and booking.status != BookingStatus.cancelled:
            return state
        reason = booking.cancellation_reason if booking is not None else "removed"
        self._logger.info("Hold expired", extra={"booking_id": booking_id, "reason": reason})
        state = self._machine.invalidate(
            state,
            [StepLabel.PAYMENT],
            "Your reservation has expired. Please confirm it again.",
            code="hold_expired",
        )
        self._notices.append(state.progress.current_error)
        return self._machine.set_active_step(state, self._machine.position_of(self._machine.last_selection_step))

    def _rebuild(self) -> None:
        if self._watched_date is None:
            self._index = None
            return
        day = operating_day(self._venue, self._watched_date)
        if day is None:
            self._index = None
            return
        self._index = AvailabilityIndex.build(
            self._bookings.values(),
            self._active_court_ids(),
            day,
            exclude_booking_ids=self._own_booking_ids(),
        )

    # -- validity --------------------------------------------------------

    def _is_valid(self, label: StepLabel, draft: BookingDraft) -> bool:
        if label == StepLabel.DATE:
            return self._date_is_valid(draft.date)
        if self._index is None or draft.date != self._index.day.day:
            return label == StepLabel.PAYMENT
        if label == StepLabel.COURT:
            return self._court_is_valid(draft)
        if label == StepLabel.TIME:
            return self._time_is_valid(draft)
        if label == StepLabel.DURATION:
            return self._duration_is_valid(draft)
        return True

    def _date_is_valid(self, day: date | None) -> bool:
        if day is None or self._venue.status != "active":
            return False
        if day < self._clock().astimezone(self._tz).date():
            return False
        return operating_day(self._venue, day) is not None

    def _court_is_valid(self, draft: BookingDraft) -> bool:
        court = self._courts.get(draft.court_id)
        if court is None or not court.is_active:
            return False
        if self._machine.comes_before(StepLabel.COURT, StepLabel.TIME) or draft.start_minutes is None:
            not_before = self._now_minutes(self._index.day.day)
            return any(slot.available for slot in self._index.time_slots(court.id, not_before=not_before))
        window = self._window(draft)
        return self._index.is_free(court.id, window.start, window.end)

    def _time_is_valid(self, draft: BookingDraft) -> bool:
        start = draft.start_minutes
        timeline = self._index.day.timeline
        if not timeline.contains(start) or timeline.floor(start) != start:
            return False
        now = self._now_minutes(self._index.day.day)
        if now is not None and start < now:
            return False
        end = start + timeline.step
        if draft.court_id is not None and self._machine.comes_before(StepLabel.COURT, StepLabel.TIME):
            return self._index.is_free(draft.court_id, start, end)
        return bool(self._index.free_courts(start, end))

    def _duration_is_valid(self, draft: BookingDraft) -> bool:
        if draft.start_minutes is None:
            return False
        court_id = draft.court_id if self._machine.comes_before(StepLabel.COURT, StepLabel.DURATION) else None
        return self._calculator().is_offered(draft.start_minutes, draft.duration_minutes, court_id)

    # -- helpers ---------------------------------------------------------

    def _select(
        self,
        label: StepLabel,
        field_name: str,
        changes: dict[str, object],
        unavailable_message: str,
    ) -> WizardState:
        candidate = self._machine.update_draft(self._state, **changes)
        if not self._is_valid(label, candidate.draft):
            return self._reject(unavailable_message, field_name)
        held = candidate.draft.hold_booking_id
        if held is not None:
            candidate = self._machine.update_draft(candidate, hold_booking_id=None)
        self._state = self._machine.reconcile(candidate, self._is_valid)
        if held is not None:
            self._step_back_to(label)
            self._release(held)
        return self._advance(label)

    def _step_back_to(self, label: StepLabel) -> None:
        position = min(self._state.progress.current_step, self._machine.position_of(label))
        self._state = self._machine.set_active_step(self._state, position)

    def _release(self, booking_id: str) -> None:
        # The hold id is already cleared from the draft, so the release snapshot is not read as an expiry
        try:
            self._hold_service.release_hold(booking_id, RELEASE_REASON)
        except BookingStoreUnavailableError as e:
            self._logger.warning("Hold release failed", extra={"booking_id": booking_id, "error": str(e)})
            self._notices.append(
                BookingError(
                    message="Your previous reservation could not be released yet.",
                    category=ErrorCategory.NETWORK,
                    code="release_failed",
                )
            )

    def _advance(self, label: StepLabel) -> WizardState:
        missing = self._machine.missing_fields(self._state.draft, self._machine.position_of(label))
        if missing or label == self._machine.last_selection_step:
            return self._state
        notice = self._state.progress.current_error
        state = self._machine.transition_to_next_step(self._state, label)
        if notice is not None and state.progress.current_error is None:
            state = replace(state, progress=replace(state.progress, current_error=notice))
        self._state = state
        self._logger.debug(
            "Step completed",
            extra={"venue_id": self._venue.venue_id, "step": label.value},
        )
        return self._state

    def _reject(
        self,
        message: str,
        field_name: str,
        category: ErrorCategory = ErrorCategory.AVAILABILITY,
        code: str = "selection_unavailable",
    ) -> WizardState:
        return self._fail(
            BookingError(
                message=message,
                category=category,
                code=code,
                field_errors=(FieldError(field=field_name, message=message),),
            )
        )

    def _fail(self, error: BookingError) -> WizardState:
        self._state = replace(self._state, progress=replace(self._state.progress, current_error=error))
        return self._state

    def _calculator(self) -> DurationPriceCalculator:
        return DurationPriceCalculator(
            self._venue,
            self._courts.values(),
            self._bookings.values(),
            self._index.day.day,
            pricing=self._pricing,
            fallback_step=self._fallback_step,
            exclude_booking_ids=self._own_booking_ids(),
        )

    def _duration_price(self, start: int, duration: int) -> float | None:
        draft = self._state.draft
        court = self._courts.get(draft.court_id) if draft.court_id else None
        if court is not None and not self._machine.comes_before(StepLabel.DURATION, StepLabel.COURT):
            if not self._calculator().is_offered(start, duration, court.id):
                return None
            return self._pricing.price(court, self._index.day.day, start, duration)
        for option in self._calculator().available_durations(start):
            if option.value == duration:
                if court is not None:
                    return self._pricing.price(court, self._index.day.day, start, duration)
                return option.price
        return None

    def _window(self, draft: BookingDraft) -> TimeWindow | None:
        if draft.start_minutes is None:
            return None
        if draft.end_minutes is not None:
            return TimeWindow(start=draft.start_minutes, end=draft.end_minutes)
        step = self._index.day.timeline.step if self._index else self._venue.booking_time_step
        return TimeWindow(start=draft.start_minutes, end=draft.start_minutes + step)

    def _now_minutes(self, day: date) -> int | None:
        """Current local minute when ``day`` is today, otherwise None."""
        now = self._clock().astimezone(self._tz)
        if now.date() != day:
            return None
        return now.hour * 60 + now.minute

    def _active_court_ids(self) -> list[str]:
        return [court.id for court in self._courts.values() if court.is_active]

    def _own_booking_ids(self) -> tuple[str, ...]:
        return tuple(
            booking_id
            for booking_id in (self._state.draft.hold_booking_id, self._pending_hold_id)
            if booking_id is not None
        )
