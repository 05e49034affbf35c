"""
Booking lifecycle transitions.

Every status change goes through ``transition``, which checks the table on
``BookingStatus`` and then writes with a conditional UPDATE on the status the
caller loaded. If another request moved the booking first, zero rows match and
the caller gets ``InvalidTransition`` carrying the status actually stored.
"""
from datetime import date, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from app.core.exceptions import InvalidBookingRequest, InvalidTransition, NotFound
from app.core.logging_config import get_logger
from app.models.booking import Booking, SelectedService
from app.models.cancellation import Cancellation
from app.models.enums import (
    ANCHOR_VENUE_STATUSES,
    BookingStatus,
    CancelledBy,
    PaymentType,
    RefundStatus,
)
from app.models.project import WeddingProject
from app.models.service_listing import ServiceListing
from app.services import notifications
from app.services.notifications import notify_safely
from app.services.time_slots import ensure_booked_slot, release_booked_slot
from app.services import venue_cascade
from app.utils.cancellation_fees import money, quote_cancellation
from app.utils.deadlines import FINAL_LEAD_DAYS, initial_due_dates, is_overdue, utcnow

logger = get_logger()


# ---------------------------------------------------------------------
# LOOKUPS
# ---------------------------------------------------------------------
def get_booking(db: Session, booking_id: int, couple_id=None, vendor_id=None) -> Booking:
    query = db.query(Booking).filter(Booking.id == booking_id)
    if couple_id is not None:
        query = query.filter(Booking.couple_id == couple_id)
    if vendor_id is not None:
        query = query.filter(Booking.vendor_id == vendor_id)

    booking = query.first()
    if not booking:
        raise NotFound("Booking not found")
    return booking


def current_status(db: Session, booking_id: int) -> BookingStatus:
    status = db.execute(
        select(Booking.status).where(Booking.id == booking_id)
    ).scalar_one_or_none()
    if status is None:
        raise NotFound("Booking not found")
    return BookingStatus(status)


# ---------------------------------------------------------------------
# CORE TRANSITION (does not commit)
# ---------------------------------------------------------------------
def transition(db: Session, booking: Booking, target, **fields) -> Booking:
    current = BookingStatus(booking.status)
    target = BookingStatus(target)

    if not current.can_transition_to(target):
        raise InvalidTransition(current, target, booking.id)

    db.flush()
    result = db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == current)
        .values(status=target, **fields)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        latest = current_status(db, booking.id)
        raise InvalidTransition(latest, target, booking.id)

    # Keep the loaded instance in step with the row we just wrote
    set_committed_value(booking, "status", target)
    for name, value in fields.items():
        set_committed_value(booking, name, value)

    logger.bind(log_type="booking").info(
        f"Booking {booking.id} | {current.value} -> {target.value}"
    )
    return booking


# =====================================================================
# CREATE REQUEST (couple)
# =====================================================================
def create_booking_request(
    db: Session,
    couple_id: int,
    vendor_id: int,
    reserved_date: date,
    selected_services: list[dict],
    project_id: int | None = None,
    notifier=None,
) -> Booking:
    if not selected_services:
        raise InvalidBookingRequest("At least one service must be selected")

    if project_id is not None:
        project = db.query(WeddingProject).filter(
            WeddingProject.id == project_id,
            WeddingProject.couple_id == couple_id,
        ).first()
        if not project:
            raise NotFound("Project not found")

    listing_ids = {s["service_listing_id"] for s in selected_services}
    listings = db.query(ServiceListing).filter(
        ServiceListing.id.in_(listing_ids),
        ServiceListing.vendor_id == vendor_id,
        ServiceListing.is_active == True,  # noqa: E712
    ).all()
    if len(listings) != len(listing_ids):
        raise InvalidBookingRequest("One or more service listings not found or inactive")

    booking = Booking(
        couple_id=couple_id,
        vendor_id=vendor_id,
        project_id=project_id,
        reserved_date=reserved_date,
        status=BookingStatus.PENDING_VENDOR_CONFIRMATION,
        selected_services=[
            SelectedService(
                service_listing_id=s["service_listing_id"],
                quantity=s.get("quantity", 1),
                total_price=money(s["total_price"]),
            )
            for s in selected_services
        ],
    )

    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.bind(log_type="booking").info(
        f"Booking Requested | Booking={booking.id} | Couple={couple_id} | Vendor={vendor_id} | Date={reserved_date}"
    )

    notify_safely(notifier, notifications.BOOKING_REQUEST_CREATED, vendor_id, {
        "booking_id": booking.id,
        "couple_id": couple_id,
        "reserved_date": reserved_date.isoformat(),
    })
    return booking


# =====================================================================
# VENDOR ACCEPT / REJECT
# =====================================================================
def accept_booking(db: Session, booking_id: int, vendor_id=None, now: datetime | None = None, notifier=None):
    now = now or utcnow()
    booking = get_booking(db, booking_id, vendor_id=vendor_id)
    deposit_due, final_due = initial_due_dates(booking.reserved_date, now.date())

    try:
        transition(
            db,
            booking,
            BookingStatus.PENDING_DEPOSIT_PAYMENT,
            deposit_due_date=deposit_due,
            final_due_date=final_due,
        )
        ensure_booked_slot(db, booking.vendor_id, booking.reserved_date)
        becomes_anchor = _anchor_within_project(db, booking)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.bind(log_type="booking").info(
        f"Booking Accepted | Booking={booking.id} | Deposit due={deposit_due} | Final due={final_due}"
    )

    if becomes_anchor:
        venue_cascade.on_venue_binding_changed(
            db, booking.project_id, booking.id, now=now, notifier=notifier
        )

    notify_safely(notifier, notifications.BOOKING_ACCEPTED, booking.couple_id, {
        "booking_id": booking.id,
        "vendor_id": booking.vendor_id,
        "deposit_due_date": deposit_due.isoformat(),
        "final_due_date": final_due.isoformat(),
    })
    return booking


def _anchor_within_project(db: Session, booking: Booking) -> bool:
    """Tie a freshly accepted booking to its project's venue.

    Returns True when the booking is a venue that should become the project's
    anchor; binding it runs the replacement path and is done after commit.
    """
    if booking.project_id is None:
        return False

    project = db.get(WeddingProject, booking.project_id)
    anchor = db.get(Booking, project.venue_booking_id) if project.venue_booking_id else None
    has_anchor = anchor is not None and BookingStatus(anchor.status) in ANCHOR_VENUE_STATUSES

    if booking.is_venue_booking:
        return not has_anchor

    if has_anchor and not booking.is_pending_venue_replacement:
        booking.depends_on_venue_booking_id = anchor.id
    return False


def reject_booking(db: Session, booking_id: int, vendor_id=None, reason: str | None = None, notifier=None):
    booking = get_booking(db, booking_id, vendor_id=vendor_id)

    try:
        transition(db, booking, BookingStatus.REJECTED)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.bind(log_type="booking").info(f"Booking Rejected | Booking={booking.id} | Reason={reason}")

    notify_safely(notifier, notifications.BOOKING_REJECTED, booking.couple_id, {
        "booking_id": booking.id,
        "vendor_id": booking.vendor_id,
        "reason": reason,
    })
    return booking


# =====================================================================
# PAYMENTS
# =====================================================================
def apply_payment_side_effect(
    db: Session,
    booking_id: int,
    payment_type,
    payment=None,
    now: datetime | None = None,
    notifier=None,
):
    """Status change that follows a recorded payment.

    Deposit and final payments join the caller's transaction (the ledger
    commits the payment row and the new status together). A cancellation fee
    completes the couple's pending cancellation in its own transaction.
    """
    payment_type = PaymentType(payment_type)
    booking = get_booking(db, booking_id)

    if payment_type == PaymentType.DEPOSIT:
        return transition(db, booking, BookingStatus.CONFIRMED)

    if payment_type == PaymentType.FINAL:
        return transition(db, booking, BookingStatus.COMPLETED)

    now = now or utcnow()
    quote = quote_cancellation(booking, booking.amount_paid, now)
    cancel_booking(
        db,
        booking.id,
        CancelledBy.COUPLE,
        actor_user_id=booking.couple_id,
        reason="Cancelled by couple after paying the cancellation fee",
        fee=quote.fee_amount,
        fee_payment_id=payment.id if payment is not None else None,
        refund_amount=quote.refund_amount,
        now=now,
        notifier=notifier,
    )
    return booking


def move_to_final_payment(db: Session, booking_id: int, now: datetime | None = None):
    """confirmed -> pending_final_payment once the wedding is close.

    Returns None, leaving the booking alone, when its final due date already passed.
    """
    now = now or utcnow()
    booking = get_booking(db, booking_id)
    final_due = booking.final_due_date or (booking.reserved_date - timedelta(days=FINAL_LEAD_DAYS))
    if is_overdue(final_due, now):
        return None

    try:
        transition(db, booking, BookingStatus.PENDING_FINAL_PAYMENT, final_due_date=final_due)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return booking


# =====================================================================
# CANCELLATION
# =====================================================================
def cancel_booking(
    db: Session,
    booking_id: int,
    cancelled_by,
    actor_user_id=None,
    reason: str | None = None,
    fee=None,
    fee_payment_id=None,
    refund_amount=None,
    now: datetime | None = None,
    notifier=None,
    notify_kind: str = notifications.CANCELLATION_COMPLETED,
) -> Cancellation:
    """Cancel a booking and record exactly one Cancellation row.

    The status change and the Cancellation row commit together. A venue
    booking then cascades to its dependents; notifications go out last.
    """
    now = now or utcnow()
    cancelled_by = CancelledBy(cancelled_by)
    target = (
        BookingStatus.CANCELLED_BY_COUPLE
        if cancelled_by == CancelledBy.COUPLE
        else BookingStatus.CANCELLED_BY_VENDOR
    )
    booking = get_booking(db, booking_id)
    refund = money(refund_amount) if refund_amount is not None else None

    try:
        transition(db, booking, target)

        cancellation = Cancellation(
            booking_id=booking.id,
            cancelled_at=now,
            cancelled_by=cancelled_by,
            cancelled_by_user_id=actor_user_id,
            cancellation_reason=reason,
            cancellation_fee=money(fee) if fee else None,
            cancellation_fee_payment_id=fee_payment_id,
            refund_required=bool(refund and refund > 0),
            refund_amount=refund if refund and refund > 0 else None,
            refund_status=RefundStatus.PENDING if refund and refund > 0 else RefundStatus.NOT_APPLICABLE,
        )
        db.add(cancellation)

        release_booked_slot(db, booking.vendor_id, booking.reserved_date, cancelled_booking_id=booking.id)

        if booking.project_id is not None:
            project = db.get(WeddingProject, booking.project_id)
            if project is not None and project.venue_booking_id == booking.id:
                project.venue_booking_id = None

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.bind(log_type="booking").info(
        f"Booking Cancelled | Booking={booking.id} | By={cancelled_by.value} | Fee={cancellation.cancellation_fee} | Reason={reason}"
    )

    if booking.project_id is not None and booking.is_venue_booking:
        venue_cascade.on_venue_cancelled(db, booking, now=now, notifier=notifier)

    payload = {
        "booking_id": booking.id,
        "status": target.value,
        "reason": reason,
        "cancellation_fee": str(cancellation.cancellation_fee) if cancellation.cancellation_fee else None,
        "refund_amount": str(cancellation.refund_amount) if cancellation.refund_amount else None,
    }
    notify_safely(notifier, notify_kind, booking.couple_id, payload)
    if notify_kind == notifications.CANCELLATION_COMPLETED:
        notify_safely(notifier, notify_kind, booking.vendor_id, payload)

    return cancellation


def request_cancellation(
    db: Session,
    booking_id: int,
    cancelled_by,
    actor_user_id: int,
    reason: str | None = None,
    now: datetime | None = None,
    notifier=None,
):
    """Couple or vendor asks to cancel.

    A couple whose fee exceeds what they already paid gets the quote back and
    the booking stays as it is until the cancellation fee is paid. Returns
    ``(quote, cancellation)``; ``cancellation`` is None while a fee is owed.
    """
    now = now or utcnow()
    cancelled_by = CancelledBy(cancelled_by)
    scope = {"couple_id": actor_user_id} if cancelled_by == CancelledBy.COUPLE else {"vendor_id": actor_user_id}
    booking = get_booking(db, booking_id, **scope)

    target = (
        BookingStatus.CANCELLED_BY_COUPLE
        if cancelled_by == CancelledBy.COUPLE
        else BookingStatus.CANCELLED_BY_VENDOR
    )
    status = BookingStatus(booking.status)
    if not status.can_transition_to(target):
        raise InvalidTransition(status, target, booking.id)

    paid = booking.amount_paid

    if cancelled_by == CancelledBy.VENDOR:
        # Vendor pulls out: no fee, everything paid goes back
        cancellation = cancel_booking(
            db, booking.id, cancelled_by, actor_user_id, reason,
            refund_amount=paid, now=now, notifier=notifier,
        )
        return None, cancellation

    quote = quote_cancellation(booking, paid, now)

    if quote.requires_payment:
        logger.bind(log_type="booking").info(
            f"Cancellation fee required | Booking={booking.id} | Fee={quote.fee_amount} | Owed={quote.fee_difference}"
        )
        notify_safely(notifier, notifications.CANCELLATION_FEE_REQUIRED, booking.couple_id, {
            "booking_id": booking.id,
            "cancellation_fee": str(quote.fee_amount),
            "amount_paid": str(quote.amount_paid),
            "payment_required": str(quote.fee_difference),
        })
        return quote, None

    cancellation = cancel_booking(
        db, booking.id, cancelled_by, actor_user_id, reason,
        fee=quote.fee_amount if quote.fee_amount > 0 else None,
        refund_amount=quote.refund_amount,
        now=now,
        notifier=notifier,
    )
    return quote, cancellation
