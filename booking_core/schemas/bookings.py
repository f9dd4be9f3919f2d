# booking_core/schemas/bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ..services.bookings.status import BookingStatus


class BookingCreate(BaseModel):
    provider_id: int
    service_id: int
    start: datetime = Field(description="Start instant; naive values are read in the caller timezone")
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingTransition(BaseModel):
    status: BookingStatus


class BookingRead(BaseModel):
    id: int

    provider_id: int
    service_id: int
    customer_id: int
    slot_id: Optional[int] = None

    date_start: datetime
    date_end: datetime
    duration_minutes: int

    status: BookingStatus
    notes: Optional[str] = None
    cancelled_by: Optional[str] = None

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {"from_attributes": True}
