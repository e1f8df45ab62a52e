from functools import lru_cache
import logging
from datetime import datetime, timezone

from courtbook.core.config import settings
from courtbook.application.ports.booking_store import BookingStorePort
from courtbook.application.ports.venue_catalog import VenueCatalogPort
from courtbook.application.use_cases.booking_wizard import BookingWizardSession
from courtbook.application.use_cases.hold_expiry import HoldExpirySweep
from courtbook.application.use_cases.reservation_hold import ReservationHoldService
from courtbook.application.use_cases.venue_availability import VenueAvailabilityUseCase
from courtbook.application.utils.pricing import PricingPolicy
from courtbook.infrastructure.store.json_store import JsonBookingStore
from courtbook.infrastructure.store.memory_store import MemoryBookingStore
from courtbook.infrastructure.venues.venue_catalog_store import VenueCatalogStore


_booking_store: MemoryBookingStore | JsonBookingStore | None = None


def get_clock():
    return lambda: datetime.now(timezone.utc)


def get_booking_store() -> BookingStorePort:
    global _booking_store
    if _booking_store is None:
        logger = logging.getLogger(__name__)
        logger.info("ENV=%s", settings.ENV)
        if settings.STORE_PROVIDER.lower() == "json":
            logger.info("Using JsonBookingStore", extra={"path": settings.BOOKINGS_DATA_PATH})
            _booking_store = JsonBookingStore(path=settings.BOOKINGS_DATA_PATH)
        else:
            logger.info("Using MemoryBookingStore")
            _booking_store = MemoryBookingStore()
    return _booking_store


@lru_cache
def get_venue_catalog() -> VenueCatalogPort:
    return VenueCatalogStore.from_json(settings.VENUES_DATA_PATH, default_timezone=settings.DEFAULT_TIMEZONE)


@lru_cache
def get_pricing_policy() -> PricingPolicy:
    return PricingPolicy(
        default_hourly_rate=settings.DEFAULT_HOURLY_RATE,
        peak_start=settings.PEAK_HOURS_START,
        peak_end=settings.PEAK_HOURS_END,
    )


def get_hold_service() -> ReservationHoldService:
    return ReservationHoldService(
        store=get_booking_store(),
        catalog=get_venue_catalog(),
        pricing=get_pricing_policy(),
        clock=get_clock(),
    )


def get_venue_availability() -> VenueAvailabilityUseCase:
    return VenueAvailabilityUseCase(
        store=get_booking_store(),
        catalog=get_venue_catalog(),
        pricing=get_pricing_policy(),
        clock=get_clock(),
        fallback_step=settings.FALLBACK_TIME_STEP,
    )


def get_expiry_sweep() -> HoldExpirySweep:
    return HoldExpirySweep(
        store=get_booking_store(),
        inactivity_minutes=settings.HOLD_INACTIVITY_MINUTES,
        max_age_minutes=settings.HOLD_MAX_AGE_MINUTES,
    )


def open_wizard(venue_id: str) -> BookingWizardSession:
    return BookingWizardSession(
        venue_id=venue_id,
        store=get_booking_store(),
        catalog=get_venue_catalog(),
        hold_service=get_hold_service(),
        pricing=get_pricing_policy(),
        clock=get_clock(),
        fallback_step=settings.FALLBACK_TIME_STEP,
    )
