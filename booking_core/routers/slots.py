# booking_core/routers/slots.py
"""
Slots API endpoints.

GET  /slots/day        - Start times of a service on a day
GET  /slots/week       - Start times for consecutive days
POST /slots/invalidate - Drop cached open intervals of a provider
"""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..context import CallerContext, get_caller_context
from ..database import get_db
from ..redis_client import redis_client
from ..schemas.slots import SlotsDayResponse, SlotsInvalidateResponse, SlotsWeekResponse
from ..services.slots import (
    compute_available_slots,
    compute_week_slots,
    get_booking_config,
    invalidate_provider_cache,
)
from ..services.slots.invalidator import get_affected_dates_from_window
from ..services.windows import WindowStore


router = APIRouter(prefix="/slots", tags=["slots"])


def get_slots_redis():
    """Redis used for slot caching; overridden in tests."""
    return redis_client


@router.get("/day", response_model=SlotsDayResponse)
def get_slots_day(
    service_id: int,
    target_date: date = Query(..., alias="date"),
    ctx: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
    redis=Depends(get_slots_redis),
):
    """Available start times for a service on a specific day."""
    slots = compute_available_slots(
        db,
        service_id,
        ctx,
        target_date,
        config=get_booking_config(),
        redis=redis,
    )
    return SlotsDayResponse(
        service_id=service_id,
        date=target_date,
        timezone=ctx.timezone,
        slots=slots,
    )


@router.get("/week", response_model=SlotsWeekResponse)
def get_slots_week(
    service_id: int,
    start_date: date | None = None,
    days: int = Query(7, ge=1, le=31),
    ctx: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
    redis=Depends(get_slots_redis),
):
    """Available start times for `days` consecutive days."""
    result = compute_week_slots(
        db,
        service_id,
        ctx,
        start_date,
        days,
        config=get_booking_config(),
        redis=redis,
    )
    return SlotsWeekResponse(service_id=service_id, timezone=ctx.timezone, days=result)


@router.post("/invalidate", response_model=SlotsInvalidateResponse)
def invalidate_slots_cache(
    provider_id: int | None = None,
    window_id: int | None = None,
    dates: list[date] | None = Query(None),
    db: Session = Depends(get_db),
    redis=Depends(get_slots_redis),
):
    """
    Manually invalidate cached open intervals (admin endpoint).

    window_id: drop the days a changed window touches (every day for a
    recurring window); otherwise provider_id with optional dates.
    """
    if window_id is not None:
        window = WindowStore(db).get_window(window_id)
        if window is None:
            raise HTTPException(status_code=404, detail="Window not found")
        provider_id = window.provider_id
        dates = get_affected_dates_from_window(window)
    elif provider_id is None:
        raise HTTPException(status_code=422, detail="provider_id or window_id required")

    deleted = invalidate_provider_cache(redis, provider_id, dates)

    return SlotsInvalidateResponse(
        provider_id=provider_id,
        deleted_keys=deleted,
        dates=dates if dates else "all",
    )
