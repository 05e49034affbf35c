from datetime import date, datetime
from decimal import Decimal

import pytest

from app.core.exceptions import InvalidBookingRequest, InvalidTransition, NotFound
from app.models.booking import Booking
from app.models.cancellation import Cancellation
from app.models.enums import (
    BookingStatus,
    CancelledBy,
    PaymentType,
    RefundStatus,
    ServiceCategory,
    TimeSlotStatus,
)
from app.models.time_slot import TimeSlot
from app.services import booking_state_machine as sm

from conftest import COUPLE_ID, VENDOR_ID

ACCEPT_DAY = datetime(2025, 1, 1, 9, 0)


def test_accept_sets_due_dates_and_books_slot(db, make_booking, notifier):
    booking = make_booking(reserved_date=date(2025, 6, 1))

    sm.accept_booking(db, booking.id, vendor_id=VENDOR_ID, now=ACCEPT_DAY, notifier=notifier)

    db.expire_all()
    booking = db.get(Booking, booking.id)
    assert booking.status == BookingStatus.PENDING_DEPOSIT_PAYMENT
    assert booking.deposit_due_date == date(2025, 4, 2)
    assert booking.final_due_date == date(2025, 5, 25)

    slot = db.query(TimeSlot).filter_by(vendor_id=VENDOR_ID, date=date(2025, 6, 1)).one()
    assert slot.status == TimeSlotStatus.BOOKED
    assert notifier.kinds(COUPLE_ID) == ["booking_accepted"]


def test_accept_keeps_personal_time_off(db, make_booking):
    db.add(TimeSlot(vendor_id=VENDOR_ID, date=date(2025, 6, 1), status=TimeSlotStatus.PERSONAL_TIME_OFF))
    db.commit()
    booking = make_booking(reserved_date=date(2025, 6, 1))

    sm.accept_booking(db, booking.id, vendor_id=VENDOR_ID, now=ACCEPT_DAY)

    slot = db.query(TimeSlot).filter_by(vendor_id=VENDOR_ID, date=date(2025, 6, 1)).one()
    assert slot.status == TimeSlotStatus.PERSONAL_TIME_OFF


def test_accept_by_another_vendor_is_not_found(db, make_booking):
    booking = make_booking()

    with pytest.raises(NotFound):
        sm.accept_booking(db, booking.id, vendor_id=999, now=ACCEPT_DAY)


def test_illegal_transition_leaves_status_unchanged(db, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED)

    with pytest.raises(InvalidTransition) as exc:
        sm.reject_booking(db, booking.id, vendor_id=VENDOR_ID)

    assert exc.value.current_status == "confirmed"
    assert exc.value.attempted_status == "rejected"
    assert sm.current_status(db, booking.id) == BookingStatus.CONFIRMED


def test_concurrent_accepts_only_one_wins(session_factory, make_booking):
    booking = make_booking()
    first, second = session_factory(), session_factory()

    # Both vendors' requests load the booking before either writes
    assert second.get(Booking, booking.id).status == BookingStatus.PENDING_VENDOR_CONFIRMATION
    sm.accept_booking(first, booking.id, vendor_id=VENDOR_ID, now=ACCEPT_DAY)

    with pytest.raises(InvalidTransition) as exc:
        sm.accept_booking(second, booking.id, vendor_id=VENDOR_ID, now=ACCEPT_DAY)

    assert exc.value.current_status == "pending_deposit_payment"
    assert exc.value.attempted_status == "pending_deposit_payment"
    first.close()
    second.close()


def test_reject_notifies_couple(db, make_booking, notifier):
    booking = make_booking()

    sm.reject_booking(db, booking.id, vendor_id=VENDOR_ID, reason="Fully booked", notifier=notifier)

    assert sm.current_status(db, booking.id) == BookingStatus.REJECTED
    assert notifier.sent[0][0] == "booking_rejected"
    assert notifier.sent[0][2]["reason"] == "Fully booked"


def test_create_booking_request(db, make_listing, make_project, notifier):
    listing = make_listing()
    project = make_project()

    booking = sm.create_booking_request(
        db,
        couple_id=COUPLE_ID,
        vendor_id=VENDOR_ID,
        reserved_date=date(2025, 6, 1),
        selected_services=[{"service_listing_id": listing.id, "quantity": 2, "total_price": "2000"}],
        project_id=project.id,
        notifier=notifier,
    )

    assert booking.status == BookingStatus.PENDING_VENDOR_CONFIRMATION
    assert booking.total_amount == Decimal("2000.00")
    assert notifier.kinds(VENDOR_ID) == ["booking_request_created"]


def test_create_booking_rejects_foreign_listing(db, make_listing):
    listing = make_listing(vendor_id=999)

    with pytest.raises(InvalidBookingRequest):
        sm.create_booking_request(
            db, COUPLE_ID, VENDOR_ID, date(2025, 6, 1),
            [{"service_listing_id": listing.id, "total_price": "100"}],
        )


def test_create_booking_rejects_other_couples_project(db, make_listing, make_project):
    listing = make_listing()
    project = make_project(couple_id=555)

    with pytest.raises(NotFound):
        sm.create_booking_request(
            db, COUPLE_ID, VENDOR_ID, date(2025, 6, 1),
            [{"service_listing_id": listing.id, "total_price": "100"}],
            project_id=project.id,
        )


# ---------------------------------------------------------------------
# PROJECT ANCHORING
# ---------------------------------------------------------------------
def test_accepted_service_anchors_to_project_venue(db, make_project, make_venue, make_booking):
    project = make_project()
    venue = make_venue(project)
    booking = make_booking(project=project)

    sm.accept_booking(db, booking.id, vendor_id=VENDOR_ID, now=ACCEPT_DAY)

    db.expire_all()
    assert db.get(Booking, booking.id).depends_on_venue_booking_id == venue.id


def test_first_accepted_venue_binds_project(db, make_project, make_booking):
    project = make_project()
    venue = make_booking(project=project, category=ServiceCategory.VENUE.value)

    sm.accept_booking(db, venue.id, vendor_id=VENDOR_ID, now=ACCEPT_DAY)

    db.expire_all()
    assert db.get(type(project), project.id).venue_booking_id == venue.id


# ---------------------------------------------------------------------
# CANCELLATION
# ---------------------------------------------------------------------
def test_cancel_writes_one_cancellation_and_frees_slot(db, make_booking, notifier):
    booking = make_booking(status=BookingStatus.PENDING_VENDOR_CONFIRMATION, reserved_date=date(2025, 6, 1))
    sm.accept_booking(db, booking.id, vendor_id=VENDOR_ID, now=ACCEPT_DAY)

    sm.cancel_booking(db, booking.id, CancelledBy.VENDOR, actor_user_id=VENDOR_ID,
                      reason="Van broke down", now=ACCEPT_DAY, notifier=notifier)

    assert sm.current_status(db, booking.id) == BookingStatus.CANCELLED_BY_VENDOR
    assert db.query(Cancellation).filter_by(booking_id=booking.id).count() == 1
    assert db.query(TimeSlot).filter_by(vendor_id=VENDOR_ID).count() == 0
    assert sorted(notifier.kinds()) == ["cancellation_completed", "cancellation_completed"]


def test_cancel_twice_is_rejected(db, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED)
    sm.cancel_booking(db, booking.id, CancelledBy.COUPLE, actor_user_id=COUPLE_ID, now=ACCEPT_DAY)

    with pytest.raises(InvalidTransition):
        sm.cancel_booking(db, booking.id, CancelledBy.VENDOR, actor_user_id=VENDOR_ID, now=ACCEPT_DAY)

    assert db.query(Cancellation).filter_by(booking_id=booking.id).count() == 1


def test_vendor_cancellation_refunds_everything(db, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED, payments=[(PaymentType.DEPOSIT, "3000.00")])

    quote, cancellation = sm.request_cancellation(
        db, booking.id, CancelledBy.VENDOR, actor_user_id=VENDOR_ID, now=datetime(2025, 5, 30)
    )

    assert quote is None
    assert cancellation.cancellation_fee is None
    assert cancellation.refund_amount == Decimal("3000.00")
    assert cancellation.refund_status == RefundStatus.PENDING


def test_couple_owing_a_fee_is_not_cancelled_yet(db, make_booking, notifier):
    booking = make_booking(status=BookingStatus.CONFIRMED, payments=[(PaymentType.DEPOSIT, "3000.00")])

    quote, cancellation = sm.request_cancellation(
        db, booking.id, CancelledBy.COUPLE, actor_user_id=COUPLE_ID,
        now=datetime(2025, 4, 17), notifier=notifier,
    )

    assert cancellation is None
    assert quote.fee_difference == Decimal("2000.00")
    assert sm.current_status(db, booking.id) == BookingStatus.CONFIRMED
    assert notifier.kinds(COUPLE_ID) == ["cancellation_fee_required"]


def test_couple_early_cancellation_completes(db, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED, payments=[(PaymentType.DEPOSIT, "3000.00")])

    quote, cancellation = sm.request_cancellation(
        db, booking.id, CancelledBy.COUPLE, actor_user_id=COUPLE_ID, now=datetime(2025, 1, 1)
    )

    assert cancellation.cancelled_by == CancelledBy.COUPLE
    assert cancellation.refund_amount == Decimal("3000.00")
    assert sm.current_status(db, booking.id) == BookingStatus.CANCELLED_BY_COUPLE


def test_couple_cannot_cancel_unconfirmed_request(db, make_booking):
    booking = make_booking(status=BookingStatus.PENDING_VENDOR_CONFIRMATION)

    with pytest.raises(InvalidTransition):
        sm.request_cancellation(db, booking.id, CancelledBy.COUPLE, actor_user_id=COUPLE_ID)


# ---------------------------------------------------------------------
# FINAL PAYMENT WINDOW
# ---------------------------------------------------------------------
def test_move_to_final_payment(db, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED, final_due_date=date(2025, 5, 25))

    sm.move_to_final_payment(db, booking.id, now=datetime(2025, 5, 20))

    assert sm.current_status(db, booking.id) == BookingStatus.PENDING_FINAL_PAYMENT


def test_move_to_final_payment_skips_passed_due_date(db, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED, final_due_date=date(2025, 5, 25))

    assert sm.move_to_final_payment(db, booking.id, now=datetime(2025, 5, 27)) is None
    assert sm.current_status(db, booking.id) == BookingStatus.CONFIRMED


def test_move_to_final_payment_on_final_due_day(db, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED, final_due_date=date(2025, 5, 25))

    assert sm.move_to_final_payment(db, booking.id, now=datetime(2025, 5, 25, 18, 0)) is not None
    assert sm.current_status(db, booking.id) == BookingStatus.PENDING_FINAL_PAYMENT
