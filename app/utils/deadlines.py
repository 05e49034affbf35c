"""
Deadline math shared by the state machine, the venue cascade and the scanner.

Due dates are day-level (``date``). Instants are naive UTC ``datetime``s, the
same convention the database columns use. A payment due date stays payable
for the whole of that day. Other date-only deadlines (the grace period end)
lapse at their midnight instant.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

DEPOSIT_LEAD_DAYS = 60
FINAL_LEAD_DAYS = 7
REPLACEMENT_FALLBACK_DAYS = 7
FINAL_PAYMENT_WINDOW_DAYS = 14
REMINDER_LEAD_DAYS = 3

ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min)


def is_past(deadline: date | None, now: datetime) -> bool:
    """True once the deadline's midnight lies before ``now``."""
    if deadline is None:
        return False
    return day_start(deadline) < as_naive_utc(now)


def is_overdue(due_date: date | None, now: datetime) -> bool:
    """True once the whole due day has gone by."""
    if due_date is None:
        return False
    return due_date < as_naive_utc(now).date()


def latest_due_date(wedding_date: date) -> date:
    return wedding_date - ONE_DAY


def initial_due_dates(reserved_date: date, today: date) -> tuple[date, date]:
    """Deposit and final due dates set when a vendor accepts a request."""
    deposit_due = max(reserved_date - timedelta(days=DEPOSIT_LEAD_DAYS), today)
    final_due = reserved_date - timedelta(days=FINAL_LEAD_DAYS)
    return deposit_due, final_due


def replacement_final_due(wedding_date: date, today: date) -> date:
    final_due = wedding_date - timedelta(days=FINAL_LEAD_DAYS)
    if final_due < today:
        return latest_due_date(wedding_date)
    return final_due


@dataclass(frozen=True)
class SuspendedDeadline:
    """A deposit countdown paused when the anchor venue was cancelled.

    ``remaining`` is the runway the couple still had on the deposit at the
    moment of suspension; it is handed back unchanged once a replacement
    venue is bound, instead of restarting the clock.
    """

    suspended_at: datetime
    remaining: timedelta | None = None
    original_deposit_due: date | None = None
    original_final_due: date | None = None

    @classmethod
    def capture(cls, deposit_due: date | None, final_due: date | None, now: datetime):
        now = as_naive_utc(now)
        remaining = day_start(deposit_due) - now if deposit_due else None
        return cls(
            suspended_at=now,
            remaining=remaining,
            original_deposit_due=deposit_due,
            original_final_due=final_due,
        )

    @property
    def remaining_days(self) -> int | None:
        if self.remaining is None:
            return None
        return max(0, math.ceil(self.remaining / ONE_DAY))

    def resume_deposit(self, today: date, wedding_date: date) -> date:
        days = self.remaining_days
        if days is None:
            days = REPLACEMENT_FALLBACK_DAYS
        return min(today + timedelta(days=days), latest_due_date(wedding_date))
