from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, get_db, get_notifier, require_role
from app.schemas.payment import PaymentCreate, PaymentOut
from app.services import payment_ledger
from app.services.booking_state_machine import get_booking

router = APIRouter(prefix="/bookings", tags=["Payments"])


@router.post("/{booking_id}/payments", response_model=PaymentOut, status_code=201)
def record_payment(
    booking_id: int,
    data: PaymentCreate,
    principal: Principal = Depends(require_role("couple")),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return payment_ledger.record_payment(
        db,
        booking_id,
        payment_type=data.payment_type,
        amount=data.amount,
        method=data.payment_method,
        receipt=data.receipt,
        couple_id=principal.user_id,
        notifier=notifier,
    )


@router.get("/{booking_id}/payments", response_model=list[PaymentOut])
def list_payments(
    booking_id: int,
    principal: Principal = Depends(require_role("couple", "admin")),
    db: Session = Depends(get_db),
):
    if principal.role == "couple":
        get_booking(db, booking_id, couple_id=principal.user_id)
    return payment_ledger.list_payments(db, booking_id)
