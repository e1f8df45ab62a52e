from __future__ import annotations

import pytest

from courtbook.application.use_cases.reservation_hold import ReservationHoldService
from courtbook.application.utils.pricing import PricingPolicy
from courtbook.infrastructure.store.memory_store import MemoryBookingStore
from courtbook.infrastructure.venues.venue_catalog_store import VenueCatalogStore

from helpers import FixedClock, make_catalog


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> MemoryBookingStore:
    return MemoryBookingStore()


@pytest.fixture
def catalog() -> VenueCatalogStore:
    return make_catalog()


@pytest.fixture
def pricing() -> PricingPolicy:
    return PricingPolicy(default_hourly_rate=50.0, peak_start="17:00", peak_end="21:00")


@pytest.fixture
def hold_service(store, catalog, pricing, clock) -> ReservationHoldService:
    return ReservationHoldService(store=store, catalog=catalog, pricing=pricing, clock=clock)
