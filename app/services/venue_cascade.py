"""
Venue dependency cascade.

A project's vendor bookings hang off its venue. When the venue booking is
cancelled every live dependent is suspended (deposit due date snapshotted, grace
period until the wedding). Binding a replacement venue hands each dependent
its remaining deposit runway back.

Each dependent is updated and committed on its own. A run that stops half
way can simply be repeated; dependents already handled are skipped.
"""
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, VenueBindingError
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import ANCHOR_VENUE_STATUSES, TERMINAL_STATUSES, BookingStatus
from app.models.project import WeddingProject
from app.services import notifications
from app.services.notifications import notify_safely
from app.utils.deadlines import SuspendedDeadline, replacement_final_due, utcnow

logger = get_logger()


def find_dependents(db: Session, project_id: int, exclude_booking_id=None) -> list[Booking]:
    """Non-terminal, non-venue bookings of a project."""
    query = db.query(Booking).filter(
        Booking.project_id == project_id,
        Booking.status.notin_(TERMINAL_STATUSES),
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return [b for b in query.order_by(Booking.id.asc()).all() if not b.is_venue_booking]


# =====================================================================
# VENUE CANCELLED
# =====================================================================
def on_venue_cancelled(db: Session, venue_booking: Booking, now: datetime | None = None, notifier=None) -> list[int]:
    now = now or utcnow()
    log = logger.bind(log_type="cascade")

    if venue_booking.project_id is None:
        return []

    project = db.get(WeddingProject, venue_booking.project_id)
    if project is None:
        return []

    # Any venue cancellation suspends every dependent, even while another venue
    # still anchors the project; the couple confirms the anchor again
    dependents = find_dependents(db, project.id, exclude_booking_id=venue_booking.id)
    log.info(
        f"Venue {venue_booking.id} cancelled | Project={project.id} | Dependents={len(dependents)}"
    )

    suspended = []
    for dependent in dependents:
        if dependent.is_pending_venue_replacement:
            continue

        try:
            deadline = SuspendedDeadline.capture(
                dependent.deposit_due_date, dependent.final_due_date, now
            )
            dependent.suspend(deadline, grace_period_end=project.wedding_date)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.error(f"Could not suspend booking {dependent.id} after venue {venue_booking.id} cancelled: {e}")
            continue

        suspended.append(dependent.id)
        log.info(
            f"Suspended booking {dependent.id} | Remaining deposit days={deadline.remaining_days} | Grace until={project.wedding_date}"
        )

        notify_safely(notifier, notifications.VENUE_CANCELLED, dependent.vendor_id, {
            "booking_id": dependent.id,
            "project_id": project.id,
            "venue_booking_id": venue_booking.id,
            "wedding_date": project.wedding_date.isoformat(),
            "grace_period_end_date": project.wedding_date.isoformat(),
        })

    if suspended:
        notify_safely(notifier, notifications.VENUE_CANCELLED, project.couple_id, {
            "project_id": project.id,
            "venue_booking_id": venue_booking.id,
            "affected_booking_ids": suspended,
            "grace_period_end_date": project.wedding_date.isoformat(),
        })

    return suspended


# =====================================================================
# VENUE BOUND / REPLACED
# =====================================================================
def on_venue_binding_changed(
    db: Session,
    project_id: int,
    venue_booking_id: int,
    now: datetime | None = None,
    notifier=None,
) -> list[int]:
    now = now or utcnow()
    today = now.date()
    log = logger.bind(log_type="cascade")

    project = db.get(WeddingProject, project_id)
    if project is None:
        raise NotFound("Project not found")

    venue = db.get(Booking, venue_booking_id)
    if venue is None:
        raise NotFound("Venue booking not found")
    if venue.project_id != project.id:
        raise VenueBindingError("Venue booking belongs to a different project")
    if not venue.is_venue_booking:
        raise VenueBindingError("Booking is not a venue booking")
    if BookingStatus(venue.status) not in ANCHOR_VENUE_STATUSES:
        raise VenueBindingError(f"Venue booking is {BookingStatus(venue.status).value} and cannot anchor the project")

    try:
        project.venue_booking_id = venue.id
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info(f"Project {project.id} bound to venue booking {venue.id}")

    pending = db.query(Booking).filter(
        Booking.project_id == project.id,
        Booking.is_pending_venue_replacement == True,  # noqa: E712
        Booking.status.notin_(TERMINAL_STATUSES),
    ).order_by(Booking.id.asc()).all()

    rebound = []
    for dependent in pending:
        deadline = dependent.suspended_deadline or SuspendedDeadline(suspended_at=now)
        deposit_due = deadline.resume_deposit(today, project.wedding_date)
        final_due = replacement_final_due(project.wedding_date, today)

        try:
            dependent.reinstate(venue.id, deposit_due, final_due)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.error(f"Could not rebind booking {dependent.id} to venue {venue.id}: {e}")
            continue

        rebound.append(dependent.id)
        log.info(
            f"Rebound booking {dependent.id} | Venue={venue.id} | Deposit due={deposit_due} | Final due={final_due}"
        )

        notify_safely(notifier, notifications.VENUE_REPLACEMENT_FOUND, dependent.vendor_id, {
            "booking_id": dependent.id,
            "project_id": project.id,
            "venue_booking_id": venue.id,
            "deposit_due_date": deposit_due.isoformat(),
            "final_due_date": final_due.isoformat(),
        })

    if rebound:
        notify_safely(notifier, notifications.VENUE_REPLACEMENT_FOUND, project.couple_id, {
            "project_id": project.id,
            "venue_booking_id": venue.id,
            "rebound_booking_ids": rebound,
        })

    return rebound
