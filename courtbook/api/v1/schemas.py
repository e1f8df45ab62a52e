from datetime import date, datetime
from pydantic import BaseModel, Field

from courtbook.domain.entities.booking import BookingStatus, PaymentStatus


class TimeSlotSchema(BaseModel):
    label: str
    value: int
    available: bool


class CourtStatusSchema(BaseModel):
    court_id: str
    court_name: str
    available: bool
    fully_available: bool
    available_time_slots: list[str] = Field(default_factory=list)
    unavailable_time_slots: list[str] = Field(default_factory=list)


class AvailabilityResponseSchema(BaseModel):
    venue_id: str
    date: date
    open: bool
    time_slots: list[TimeSlotSchema] = Field(default_factory=list)
    courts: list[CourtStatusSchema] = Field(default_factory=list)


class DurationSchema(BaseModel):
    label: str
    value: int
    price: float


class DurationsResponseSchema(BaseModel):
    venue_id: str
    date: date
    start: str
    court_id: str | None = None
    durations: list[DurationSchema] = Field(default_factory=list)


class WindowSchema(BaseModel):
    start: str
    end: str
    duration: int
    description: str | None = None


class AlternativesResponseSchema(BaseModel):
    court_id: str
    original: WindowSchema
    extended_slot: WindowSchema | None = None
    alternative_slot: WindowSchema | None = None
    partial_slot: WindowSchema | None = None
    partial_price: float | None = None
    recommended: str | None = None


class HoldRequestSchema(BaseModel):
    venue_id: str
    court_id: str
    date: date
    start: str = Field(pattern=r"^\d{1,2}:\d{2}$")
    end: str = Field(pattern=r"^\d{1,2}:\d{2}$")
    user_id: str | None = None
    user_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None


class BookingSchema(BaseModel):
    id: str
    venue_id: str
    court_id: str
    date: date
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    payment_status: PaymentStatus
    price: float
    user_id: str | None = None
    user_name: str | None = None
    created_at: datetime | None = None
    last_active: datetime | None = None
    cancellation_reason: str | None = None


class SweepResponseSchema(BaseModel):
    cleaned: int
    booking_ids: list[str] = Field(default_factory=list)
