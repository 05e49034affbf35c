"""
Auto-cancellation scanner.

Runs on a schedule (see ``app.scheduler``) and can be triggered by an admin.
Each sweep loads candidate ids first and then handles every booking in
isolation, so one bad row never stops the rest of the run. Bookings that were
already moved on are not candidates any more, which makes a repeated run a
no-op.
"""
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.core.config import SCANNER_LOCK_KEY, SCANNER_LOCK_TTL_SECONDS
from app.core.exceptions import InvalidTransition, SchedulerOverlap
from app.core.logging_config import get_logger
from app.core.redis import acquire_lock, release_lock
from app.db.session import SessionLocal
from app.models.booking import Booking
from app.models.enums import TERMINAL_STATUSES, BookingStatus, CancelledBy, PaymentType
from app.services import booking_state_machine as state_machine
from app.services import notifications
from app.services.notifications import notify_safely
from app.utils.deadlines import (
    FINAL_PAYMENT_WINDOW_DAYS,
    REMINDER_LEAD_DAYS,
    is_overdue,
    is_past,
    utcnow,
)

logger = get_logger()

DEPOSIT_OVERDUE_REASON = "deposit not paid by due date"
FINAL_OVERDUE_REASON = "final payment not paid by due date"
VENUE_REPLACEMENT_OVERDUE_REASON = "no replacement venue found before wedding date"


@dataclass
class ScanReport:
    started_at: datetime
    finished_at: datetime | None = None
    moved_to_final_payment: list = field(default_factory=list)
    deposit_overdue: list = field(default_factory=list)
    final_overdue: list = field(default_factory=list)
    venue_replacement_overdue: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    skipped: bool = False

    @property
    def cancelled_count(self) -> int:
        return len(self.deposit_overdue) + len(self.final_overdue) + len(self.venue_replacement_overdue)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "moved_to_final_payment": self.moved_to_final_payment,
            "deposit_overdue": self.deposit_overdue,
            "final_overdue": self.final_overdue,
            "venue_replacement_overdue": self.venue_replacement_overdue,
            "failed": self.failed,
            "skipped": self.skipped,
        }


def _has_payment(booking: Booking, payment_type: PaymentType) -> bool:
    return any(PaymentType(p.payment_type) == payment_type for p in booking.payments)


class AutoCancellationScanner:
    def __init__(self, session_factory=SessionLocal, notifier=None,
                 lock_key: str = SCANNER_LOCK_KEY, lock_ttl: int = SCANNER_LOCK_TTL_SECONDS):
        self.session_factory = session_factory
        self.notifier = notifier
        self.lock_key = lock_key
        self.lock_ttl = lock_ttl
        self._local_lock = threading.Lock()

    # =================================================================
    # SINGLE-FLIGHT
    # =================================================================
    def run(self, now: datetime | None = None) -> ScanReport:
        now = now or utcnow()
        log = logger.bind(log_type="scheduler")

        try:
            with self._single_flight():
                report = self._run_sweeps(now)
        except SchedulerOverlap as e:
            log.warning(f"Auto-cancellation run skipped: {e}")
            return ScanReport(started_at=now, finished_at=now, skipped=True)

        log.info(
            f"Auto-cancellation finished | Final window={len(report.moved_to_final_payment)} | "
            f"Deposit overdue={len(report.deposit_overdue)} | Final overdue={len(report.final_overdue)} | "
            f"Venue overdue={len(report.venue_replacement_overdue)} | Failed={len(report.failed)}"
        )
        return report

    @contextmanager
    def _single_flight(self):
        if not self._local_lock.acquire(blocking=False):
            raise SchedulerOverlap("previous run still in progress in this process")

        token = str(uuid.uuid4())
        try:
            if not acquire_lock(self.lock_key, token, self.lock_ttl):
                raise SchedulerOverlap("previous run still in progress in another process")
            try:
                yield
            finally:
                release_lock(self.lock_key, token)
        finally:
            self._local_lock.release()

    def _run_sweeps(self, now: datetime) -> ScanReport:
        report = ScanReport(started_at=now)
        logger.bind(log_type="scheduler").info(f"Auto-cancellation started | Now={now.isoformat()}")

        self.sweep_final_payment_window(now, report)
        self.sweep_deposit_overdue(now, report)
        self.sweep_final_overdue(now, report)
        self.sweep_venue_replacement_overdue(now, report)

        report.finished_at = utcnow()
        return report

    def _each(self, booking_ids, sweep: str, report: ScanReport, handle):
        log = logger.bind(log_type="scheduler")
        for booking_id in booking_ids:
            db = self.session_factory()
            try:
                handle(db, booking_id)
            except InvalidTransition as e:
                # Moved by a user between the query and our write
                log.warning(f"{sweep} | Booking {booking_id} skipped: {e.message}")
                report.failed.append(booking_id)
            except Exception as e:
                db.rollback()
                log.exception(f"{sweep} | Booking {booking_id} failed: {e}")
                report.failed.append(booking_id)
            finally:
                db.close()

    @staticmethod
    def _candidates(db: Session, *criteria) -> list[Booking]:
        return db.query(Booking).filter(*criteria).order_by(Booking.id.asc()).all()

    # =================================================================
    # SWEEP 0: confirmed -> pending_final_payment
    # =================================================================
    def sweep_final_payment_window(self, now: datetime, report: ScanReport):
        today = now.date()
        with self.session_factory() as db:
            ids = [
                b.id for b in self._candidates(
                    db,
                    Booking.status == BookingStatus.CONFIRMED,
                    Booking.reserved_date >= today,
                    Booking.reserved_date <= today + timedelta(days=FINAL_PAYMENT_WINDOW_DAYS),
                )
                if not _has_payment(b, PaymentType.FINAL)
            ]

        def handle(db, booking_id):
            if state_machine.move_to_final_payment(db, booking_id, now=now) is not None:
                report.moved_to_final_payment.append(booking_id)

        self._each(ids, "Final payment window", report, handle)

    # =================================================================
    # SWEEP 1: deposit overdue
    # =================================================================
    def sweep_deposit_overdue(self, now: datetime, report: ScanReport):
        with self.session_factory() as db:
            ids = [
                b.id for b in self._candidates(
                    db,
                    Booking.status == BookingStatus.PENDING_DEPOSIT_PAYMENT,
                    Booking.deposit_due_date < now.date(),
                )
                if is_overdue(b.deposit_due_date, now) and not _has_payment(b, PaymentType.DEPOSIT)
            ]

        def handle(db, booking_id):
            self._auto_cancel(db, booking_id, CancelledBy.COUPLE, DEPOSIT_OVERDUE_REASON, now)
            report.deposit_overdue.append(booking_id)

        self._each(ids, "Deposit overdue", report, handle)

    # =================================================================
    # SWEEP 2: final payment overdue
    # =================================================================
    def sweep_final_overdue(self, now: datetime, report: ScanReport):
        with self.session_factory() as db:
            ids = [
                b.id for b in self._candidates(
                    db,
                    Booking.status == BookingStatus.PENDING_FINAL_PAYMENT,
                    Booking.final_due_date < now.date(),
                )
                if is_overdue(b.final_due_date, now) and not _has_payment(b, PaymentType.FINAL)
            ]

        def handle(db, booking_id):
            self._auto_cancel(db, booking_id, CancelledBy.COUPLE, FINAL_OVERDUE_REASON, now)
            report.final_overdue.append(booking_id)

        self._each(ids, "Final overdue", report, handle)

    # =================================================================
    # SWEEP 3: grace period over without a replacement venue
    # =================================================================
    def sweep_venue_replacement_overdue(self, now: datetime, report: ScanReport):
        with self.session_factory() as db:
            ids = [
                b.id for b in self._candidates(
                    db,
                    Booking.is_pending_venue_replacement == True,  # noqa: E712
                    Booking.status.notin_(TERMINAL_STATUSES),
                    Booking.grace_period_end_date <= now.date(),
                )
                if is_past(b.grace_period_end_date, now)
            ]

        def handle(db, booking_id):
            booking = state_machine.get_booking(db, booking_id)
            if BookingStatus(booking.status) == BookingStatus.PENDING_VENDOR_CONFIRMATION:
                # Never accepted, so it cannot be cancelled; the request lapses
                state_machine.reject_booking(
                    db, booking_id, reason=VENUE_REPLACEMENT_OVERDUE_REASON, notifier=self.notifier
                )
            else:
                self._auto_cancel(
                    db, booking_id, CancelledBy.VENDOR, VENUE_REPLACEMENT_OVERDUE_REASON, now,
                    refund_amount=booking.amount_paid,
                )
            report.venue_replacement_overdue.append(booking_id)

        self._each(ids, "Venue replacement overdue", report, handle)

    def _auto_cancel(self, db, booking_id, cancelled_by, reason, now, refund_amount=None):
        state_machine.cancel_booking(
            db,
            booking_id,
            cancelled_by,
            actor_user_id=None,
            reason=reason,
            refund_amount=refund_amount,
            now=now,
            notifier=self.notifier,
            notify_kind=notifications.AUTO_CANCELLED,
        )
        logger.bind(log_type="scheduler").info(f"Auto-cancelled booking {booking_id} | Reason={reason}")

    # =================================================================
    # PAYMENT REMINDERS
    # =================================================================
    def run_payment_reminders(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        today = now.date()
        horizon = today + timedelta(days=REMINDER_LEAD_DAYS)
        sent = 0

        checks = (
            (BookingStatus.PENDING_DEPOSIT_PAYMENT, Booking.deposit_due_date, "deposit_due_date",
             PaymentType.DEPOSIT, notifications.DEPOSIT_DUE_REMINDER),
            (BookingStatus.PENDING_FINAL_PAYMENT, Booking.final_due_date, "final_due_date",
             PaymentType.FINAL, notifications.FINAL_DUE_REMINDER),
        )

        with self.session_factory() as db:
            for status, due_column, due_attr, payment_type, kind in checks:
                bookings = self._candidates(
                    db,
                    Booking.status == status,
                    due_column >= today,
                    due_column <= horizon,
                )
                for booking in bookings:
                    due = getattr(booking, due_attr)
                    if is_overdue(due, now) or _has_payment(booking, payment_type):
                        continue
                    if notify_safely(self.notifier, kind, booking.couple_id, {
                        "booking_id": booking.id,
                        "due_date": due.isoformat(),
                        "days_left": (due - today).days,
                    }):
                        sent += 1

        logger.bind(log_type="scheduler").info(f"Payment reminders sent: {sent}")
        return sent


scanner = AutoCancellationScanner()
