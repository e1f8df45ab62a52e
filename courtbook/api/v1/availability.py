from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from courtbook.api.v1.schemas import (
    AlternativesResponseSchema,
    AvailabilityResponseSchema,
    CourtStatusSchema,
    DurationSchema,
    DurationsResponseSchema,
    TimeSlotSchema,
    WindowSchema,
)
from courtbook.application.exceptions import BookingValidationError, VenueNotFoundError
from courtbook.application.use_cases.alternative_slots import describe_shift
from courtbook.application.use_cases.venue_availability import VenueAvailabilityUseCase
from courtbook.application.utils.timeline import format_minutes, parse_hhmm
from courtbook.domain.entities.availability import TimeWindow
from courtbook.wiring.dependencies import get_venue_availability

router = APIRouter()


def _minutes(value: str, field: str) -> int:
    try:
        return parse_hhmm(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid {field}: {e}")


def _window_schema(window: TimeWindow | None, original: TimeWindow | None = None) -> WindowSchema | None:
    if window is None:
        return None
    return WindowSchema(
        start=format_minutes(window.start),
        end=format_minutes(window.end),
        duration=window.duration,
        description=describe_shift(original, window) if original is not None else None,
    )


@router.get("/venues/{venue_id}/availability", response_model=AvailabilityResponseSchema)
def availability(
    venue_id: str,
    date: date,
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    uc: VenueAvailabilityUseCase = Depends(get_venue_availability),
):
    window = None
    if start and end:
        window = TimeWindow(start=_minutes(start, "start"), end=_minutes(end, "end"))
        if window.end <= window.start:
            raise HTTPException(status_code=422, detail="end must be after start")

    try:
        result = uc.availability(venue_id, date, window)
    except VenueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return AvailabilityResponseSchema(
        venue_id=result.venue_id,
        date=result.date,
        open=result.open,
        time_slots=[TimeSlotSchema(label=s.label, value=s.value, available=s.available) for s in result.time_slots],
        courts=[
            CourtStatusSchema(
                court_id=status.court_id,
                court_name=status.court_name,
                available=status.available,
                fully_available=status.fully_available,
                available_time_slots=[format_minutes(m) for m in status.available_time_slots],
                unavailable_time_slots=[format_minutes(m) for m in status.unavailable_time_slots],
            )
            for status in result.court_statuses.values()
        ],
    )


@router.get("/venues/{venue_id}/durations", response_model=DurationsResponseSchema)
def durations(
    venue_id: str,
    date: date,
    start: str,
    court_id: str | None = Query(default=None),
    uc: VenueAvailabilityUseCase = Depends(get_venue_availability),
):
    try:
        options = uc.durations(venue_id, date, _minutes(start, "start"), court_id)
    except VenueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return DurationsResponseSchema(
        venue_id=venue_id,
        date=date,
        start=start,
        court_id=court_id,
        durations=[DurationSchema(label=d.label, value=d.value, price=d.price) for d in options],
    )


@router.get("/venues/{venue_id}/courts/{court_id}/alternatives", response_model=AlternativesResponseSchema)
def alternatives(
    venue_id: str,
    court_id: str,
    date: date,
    start: str,
    end: str,
    price: float | None = Query(default=None, ge=0),
    uc: VenueAvailabilityUseCase = Depends(get_venue_availability),
):
    original = TimeWindow(start=_minutes(start, "start"), end=_minutes(end, "end"))
    try:
        options = uc.alternatives(venue_id, court_id, date, original, price)
    except VenueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BookingValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    recommended = options.recommended()
    return AlternativesResponseSchema(
        court_id=court_id,
        original=_window_schema(original),
        extended_slot=_window_schema(options.extended_slot, original),
        alternative_slot=_window_schema(options.alternative_slot, original),
        partial_slot=_window_schema(options.partial_slot, original),
        partial_price=options.partial_price,
        recommended=recommended[0] if recommended else None,
    )
