# booking_core/routers/bookings.py
# Typed BookingError raised below is rendered by the handler in main.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..context import CallerContext, get_caller_context
from ..database import get_db
from ..schemas.bookings import BookingCreate, BookingRead, BookingTransition
from ..services.bookings.guard import reserve
from ..services.bookings.ledger import delete_booking, get_booking, list_bookings
from ..services.bookings.state_machine import transition
from ..services.bookings.status import BookingStatus

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/", response_model=list[BookingRead])
def list_all_bookings(
    provider_id: int | None = None,
    customer_id: int | None = None,
    status_filter: BookingStatus | None = None,
    db: Session = Depends(get_db),
):
    return list_bookings(db, provider_id=provider_id, customer_id=customer_id, status=status_filter)


@router.get("/{id}", response_model=BookingRead)
def get_one_booking(id: int, db: Session = Depends(get_db)):
    return get_booking(db, id)


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    ctx: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    if ctx.customer_id is None:
        raise HTTPException(status_code=400, detail="X-Customer-Id header required")

    start = data.start
    if start.tzinfo is None:
        start = start.replace(tzinfo=ctx.tz)

    obj = reserve(
        db,
        provider_id=data.provider_id,
        service_id=data.service_id,
        customer_id=ctx.customer_id,
        start=start,
        notes=data.notes,
    )
    db.refresh(obj)
    return obj


@router.post("/{id}/transition", response_model=BookingRead)
def transition_booking(
    id: int,
    data: BookingTransition,
    ctx: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    obj = transition(db, id, data.status, actor_role=ctx.role)
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def soft_delete_booking(id: int, db: Session = Depends(get_db)):
    delete_booking(db, id)
