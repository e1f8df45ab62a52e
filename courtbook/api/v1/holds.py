import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from courtbook.api.v1.schemas import BookingSchema, HoldRequestSchema, SweepResponseSchema
from courtbook.application.exceptions import (
    BookingStoreUnavailableError,
    BookingValidationError,
    VenueNotFoundError,
)
from courtbook.application.use_cases.hold_expiry import HoldExpirySweep
from courtbook.application.use_cases.reservation_hold import HoldConflict, ReservationHoldService
from courtbook.application.utils.timeline import parse_hhmm
from courtbook.domain.entities.booking import Booking
from courtbook.domain.entities.progress import BookingDraft
from courtbook.wiring.dependencies import get_expiry_sweep, get_hold_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _booking_schema(booking: Booking) -> BookingSchema:
    return BookingSchema(
        id=booking.id,
        venue_id=booking.venue_id,
        court_id=booking.court_id,
        date=booking.date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        status=booking.status,
        payment_status=booking.payment_status,
        price=booking.price,
        user_id=booking.user_id,
        user_name=booking.user_name,
        created_at=booking.created_at,
        last_active=booking.last_active,
        cancellation_reason=booking.cancellation_reason,
    )


@router.post("/holds", response_model=BookingSchema, status_code=201)
def create_hold(
    req: HoldRequestSchema,
    service: ReservationHoldService = Depends(get_hold_service),
):
    try:
        draft = BookingDraft(
            venue_id=req.venue_id,
            date=req.date,
            court_id=req.court_id,
            start_minutes=parse_hhmm(req.start),
            end_minutes=parse_hhmm(req.end),
            user_id=req.user_id,
            user_name=req.user_name,
            customer_email=req.customer_email,
            customer_phone=req.customer_phone,
        )
        result = service.create_hold(draft)
    except VenueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BookingValidationError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "field_errors": e.field_errors})
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except BookingStoreUnavailableError as e:
        logger.warning("Hold write failed", extra={"venue_id": req.venue_id, "error": str(e)})
        raise HTTPException(status_code=503, detail="Booking store unavailable, please retry")

    if isinstance(result, HoldConflict):
        raise HTTPException(
            status_code=409,
            detail={"message": result.message, "conflicting_booking_id": result.conflicting_booking_id},
        )
    return _booking_schema(result)


@router.post("/holds/{booking_id}/touch", response_model=BookingSchema)
def touch_hold(
    booking_id: str,
    service: ReservationHoldService = Depends(get_hold_service),
):
    try:
        booking = service.touch_hold(booking_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown booking {booking_id}")
    except BookingStoreUnavailableError as e:
        logger.warning("Hold refresh failed", extra={"booking_id": booking_id, "error": str(e)})
        raise HTTPException(status_code=503, detail="Booking store unavailable, please retry")
    return _booking_schema(booking)


@router.post("/maintenance/expire-holds", response_model=SweepResponseSchema)
def expire_holds(sweep: HoldExpirySweep = Depends(get_expiry_sweep)):
    try:
        result = sweep.sweep(datetime.now(timezone.utc))
    except BookingStoreUnavailableError as e:
        logger.warning("Hold sweep failed", extra={"error": str(e)})
        raise HTTPException(status_code=503, detail="Booking store unavailable, please retry")
    return SweepResponseSchema(cleaned=result.cleaned, booking_ids=list(result.booking_ids))
