from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidBookingRequest, NotFound, PaymentTypeMismatch
from app.core.logging_config import get_logger
from app.models.enums import BookingStatus, PaymentMethod, PaymentType
from app.models.payment import Payment
from app.services.booking_state_machine import apply_payment_side_effect, get_booking
from app.utils.cancellation_fees import money, quote_cancellation
from app.utils.deadlines import utcnow

logger = get_logger()

# Payment type -> the only status it may be paid in
EXPECTED_STATUS = {
    PaymentType.DEPOSIT: BookingStatus.PENDING_DEPOSIT_PAYMENT,
    PaymentType.FINAL: BookingStatus.PENDING_FINAL_PAYMENT,
}


def amount_paid(db: Session, booking_id: int) -> Decimal:
    total = db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.booking_id == booking_id
    ).scalar()
    return money(total)


def _validate_payment(booking, payment_type: PaymentType, amount: Decimal, now: datetime):
    status = BookingStatus(booking.status)

    if payment_type in EXPECTED_STATUS:
        expected = EXPECTED_STATUS[payment_type]
        if any(PaymentType(p.payment_type) == payment_type for p in booking.payments):
            raise PaymentTypeMismatch(f"A {payment_type.value} payment already exists for this booking")
        if status != expected:
            raise PaymentTypeMismatch(
                f"Cannot record {payment_type.value} payment while booking is {status.value}"
            )
        return

    # Cancellation fee: only for an accepted, still-live booking
    if status.is_terminal or status == BookingStatus.PENDING_VENDOR_CONFIRMATION:
        raise PaymentTypeMismatch(
            f"Cannot record cancellation fee while booking is {status.value}"
        )

    quote = quote_cancellation(booking, booking.amount_paid, now)
    if not quote.requires_payment:
        raise PaymentTypeMismatch("No cancellation fee is owed for this booking")
    if amount < quote.fee_difference:
        raise InvalidBookingRequest(
            f"Cancellation fee payment must cover {quote.fee_difference}"
        )


def record_payment(
    db: Session,
    booking_id: int,
    payment_type,
    amount,
    method,
    receipt: str | None = None,
    couple_id=None,
    now: datetime | None = None,
    notifier=None,
) -> Payment:
    now = now or utcnow()
    booking = get_booking(db, booking_id, couple_id=couple_id)
    payment_type = PaymentType(payment_type)

    try:
        amount = money(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidBookingRequest("Payment amount must be a number")
    if amount <= 0:
        raise InvalidBookingRequest("Payment amount must be positive")

    _validate_payment(booking, payment_type, amount, now)

    payment = Payment(
        payment_type=payment_type,
        amount=amount,
        payment_method=PaymentMethod(method),
        payment_date=now,
        receipt=receipt,
    )

    try:
        booking.payments.append(payment)
        db.flush()
        if payment_type != PaymentType.CANCELLATION_FEE:
            apply_payment_side_effect(db, booking.id, payment_type)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.bind(log_type="payment").info(
        f"Payment recorded | Booking={booking.id} | Type={payment_type.value} | Amount={amount} | Method={payment.payment_method.value}"
    )

    if payment_type == PaymentType.CANCELLATION_FEE:
        apply_payment_side_effect(
            db, booking.id, payment_type, payment=payment, now=now, notifier=notifier
        )

    return payment


def list_payments(db: Session, booking_id: int):
    return db.query(Payment).filter(
        Payment.booking_id == booking_id
    ).order_by(Payment.payment_date.asc()).all()


def release_to_vendor(db: Session, payment_id: int, now: datetime | None = None) -> Payment:
    payment = db.get(Payment, payment_id)
    if not payment:
        raise NotFound("Payment not found")

    if payment.released_to_vendor:
        return payment

    payment.released_to_vendor = True
    payment.released_at = now or utcnow()
    db.commit()
    db.refresh(payment)

    logger.bind(log_type="payment").info(f"Payment released to vendor | Payment={payment.id}")
    return payment
