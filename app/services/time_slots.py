from datetime import date

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, SlotConflict
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import ACTIVE_STATUSES, BookingStatus, TimeSlotStatus
from app.models.time_slot import TimeSlot

logger = get_logger()

# A vendor has committed to the date once the request is accepted
HOLDING_STATUSES = ACTIVE_STATUSES - {BookingStatus.PENDING_VENDOR_CONFIRMATION}


def get_slot(db: Session, vendor_id: int, day: date):
    return db.query(TimeSlot).filter(
        TimeSlot.vendor_id == vendor_id,
        TimeSlot.date == day,
    ).first()


def ensure_booked_slot(db: Session, vendor_id: int, day: date) -> TimeSlot:
    """Create a 'booked' slot unless any slot already exists for the date.

    Personal time off does not block an accepted request and is never
    overwritten. Does not commit.
    """
    slot = get_slot(db, vendor_id, day)
    if slot:
        return slot

    slot = TimeSlot(vendor_id=vendor_id, date=day, status=TimeSlotStatus.BOOKED)
    db.add(slot)
    db.flush()
    return slot


def has_conflicting_booking(db: Session, vendor_id: int, day: date, exclude_booking_id=None) -> bool:
    query = db.query(Booking.id).filter(
        Booking.vendor_id == vendor_id,
        Booking.reserved_date == day,
        Booking.status.in_(ACTIVE_STATUSES),
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.first() is not None


def release_booked_slot(db: Session, vendor_id: int, day: date, cancelled_booking_id=None):
    """Drop the 'booked' slot when no other accepted booking still holds the date."""
    slot = get_slot(db, vendor_id, day)
    if not slot or slot.status != TimeSlotStatus.BOOKED:
        return False

    still_held = db.query(Booking.id).filter(
        Booking.vendor_id == vendor_id,
        Booking.reserved_date == day,
        Booking.status.in_(HOLDING_STATUSES),
        Booking.id != cancelled_booking_id,
    ).first()
    if still_held:
        return False

    db.delete(slot)
    db.flush()
    return True


# =====================================================================
# VENDOR CALENDAR
# =====================================================================
def mark_personal_time_off(db: Session, vendor_id: int, day: date) -> TimeSlot:
    if has_conflicting_booking(db, vendor_id, day):
        raise SlotConflict(f"Vendor {vendor_id} has an active booking on {day.isoformat()}")

    slot = get_slot(db, vendor_id, day)
    if slot:
        slot.status = TimeSlotStatus.PERSONAL_TIME_OFF
    else:
        slot = TimeSlot(vendor_id=vendor_id, date=day, status=TimeSlotStatus.PERSONAL_TIME_OFF)
        db.add(slot)

    db.commit()
    db.refresh(slot)

    logger.bind(log_type="booking").info(f"Time off marked | Vendor={vendor_id} | Date={day}")
    return slot


def list_slots(db: Session, vendor_id: int, start: date | None = None, end: date | None = None):
    query = db.query(TimeSlot).filter(TimeSlot.vendor_id == vendor_id)
    if start:
        query = query.filter(TimeSlot.date >= start)
    if end:
        query = query.filter(TimeSlot.date <= end)
    return query.order_by(TimeSlot.date.asc()).all()


def delete_slot(db: Session, vendor_id: int, day: date):
    slot = get_slot(db, vendor_id, day)
    if not slot:
        raise NotFound("Time slot not found for this date")

    if slot.status == TimeSlotStatus.BOOKED and has_conflicting_booking(db, vendor_id, day):
        raise SlotConflict("Date is held by an active booking")

    db.delete(slot)
    db.commit()
