"""
Pydantic schemas for slots API.
"""

from datetime import date
from pydantic import BaseModel, Field


class SlotsDayResponse(BaseModel):
    """Available start times of a service on one day."""
    service_id: int
    date: date
    timezone: str
    slots: list[str] = Field(description='Start times "HH:MM" in the caller timezone')

    model_config = {"from_attributes": True}


class SlotsWeekResponse(BaseModel):
    """Available start times for consecutive days."""
    service_id: int
    timezone: str
    days: dict[str, list[str]] = Field(description='"YYYY-MM-DD" → ["HH:MM", ...]')

    model_config = {"from_attributes": True}


class SlotsInvalidateResponse(BaseModel):
    provider_id: int
    deleted_keys: int
    dates: list[date] | str
