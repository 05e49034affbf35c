from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, get_current_principal, get_db, get_notifier, require_role
from app.core.logging_config import get_logger
from app.models.enums import BookingStatus, CancelledBy
from app.schemas.booking import (
    BookingCreate,
    BookingOut,
    BookingStatusOut,
    CancellationQuoteOut,
    CancellationResult,
    CancelRequest,
    RejectRequest,
)
from app.services import booking_state_machine as state_machine
from app.utils.cancellation_fees import quote_cancellation
from app.utils.deadlines import utcnow

router = APIRouter(prefix="/bookings", tags=["Bookings"])
logger = get_logger()


# ---------------------------------------------------------------------
# SCOPE
# ---------------------------------------------------------------------
def scoped_booking(db: Session, booking_id: int, principal: Principal):
    """Couples and vendors only ever see their own bookings."""
    if principal.role == "couple":
        return state_machine.get_booking(db, booking_id, couple_id=principal.user_id)
    if principal.role == "vendor":
        return state_machine.get_booking(db, booking_id, vendor_id=principal.user_id)
    return state_machine.get_booking(db, booking_id)


# ---------------------------------------------------------------------
# CREATE BOOKING REQUEST
# ---------------------------------------------------------------------
@router.post("/", response_model=BookingOut, status_code=201)
def create_booking(
    data: BookingCreate,
    principal: Principal = Depends(require_role("couple")),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    if data.reserved_date < utcnow().date():
        raise HTTPException(status_code=400, detail="Cannot book past dates")

    return state_machine.create_booking_request(
        db,
        couple_id=principal.user_id,
        vendor_id=data.vendor_id,
        reserved_date=data.reserved_date,
        selected_services=[s.model_dump() for s in data.selected_services],
        project_id=data.project_id,
        notifier=notifier,
    )


# ---------------------------------------------------------------------
# READ
# ---------------------------------------------------------------------
@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return scoped_booking(db, booking_id, principal)


@router.get("/{booking_id}/status", response_model=BookingStatusOut)
def get_booking_status(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    booking = scoped_booking(db, booking_id, principal)
    return {"booking_id": booking.id, "status": state_machine.current_status(db, booking.id)}


# ---------------------------------------------------------------------
# VENDOR DECISION
# ---------------------------------------------------------------------
@router.post("/{booking_id}/accept", response_model=BookingOut)
def accept_booking(
    booking_id: int,
    principal: Principal = Depends(require_role("vendor")),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return state_machine.accept_booking(db, booking_id, vendor_id=principal.user_id, notifier=notifier)


@router.post("/{booking_id}/reject", response_model=BookingOut)
def reject_booking(
    booking_id: int,
    data: RejectRequest | None = None,
    principal: Principal = Depends(require_role("vendor")),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return state_machine.reject_booking(
        db,
        booking_id,
        vendor_id=principal.user_id,
        reason=data.reason if data else None,
        notifier=notifier,
    )


# ---------------------------------------------------------------------
# CANCELLATION
# ---------------------------------------------------------------------
@router.get("/{booking_id}/cancellation-quote", response_model=CancellationQuoteOut)
def get_cancellation_quote(
    booking_id: int,
    principal: Principal = Depends(require_role("couple")),
    db: Session = Depends(get_db),
):
    booking = state_machine.get_booking(db, booking_id, couple_id=principal.user_id)
    if BookingStatus(booking.status).is_terminal:
        raise HTTPException(status_code=400, detail=f"Booking is already {BookingStatus(booking.status).value}")

    return CancellationQuoteOut.model_validate(quote_cancellation(booking, booking.amount_paid, utcnow()))


@router.post("/{booking_id}/cancel", response_model=CancellationResult)
def cancel_booking(
    booking_id: int,
    data: CancelRequest | None = None,
    principal: Principal = Depends(require_role("couple", "vendor")),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    cancelled_by = CancelledBy.COUPLE if principal.role == "couple" else CancelledBy.VENDOR

    quote, cancellation = state_machine.request_cancellation(
        db,
        booking_id,
        cancelled_by,
        actor_user_id=principal.user_id,
        reason=data.reason if data else None,
        notifier=notifier,
    )

    return {
        "status": state_machine.current_status(db, booking_id),
        "requires_payment": cancellation is None,
        "quote": CancellationQuoteOut.model_validate(quote) if quote else None,
        "cancellation": cancellation,
    }
