import json
import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from app.core.logging_config import get_logger
from app.models.enums import BookingStatus
from app.utils.deadlines import ONE_DAY, as_naive_utc, day_start

logger = get_logger()

CENT = Decimal("0.01")
DEPOSIT_PERCENTAGE = Decimal("0.30")

TIER_ORDER = (">90", "60-90", "30-59", "7-29", "<7")

DEFAULT_FEE_TIERS = {
    ">90": Decimal("0.00"),
    "60-90": Decimal("0.30"),
    "30-59": Decimal("0.50"),
    "7-29": Decimal("0.70"),
    "<7": Decimal("1.00"),
}


@dataclass(frozen=True)
class CancellationQuote:
    fee_amount: Decimal
    fee_percentage: Decimal
    amount_paid: Decimal
    fee_difference: Decimal
    requires_payment: bool
    days_until_wedding: int
    tier: str
    total_booking_amount: Decimal
    reason: str | None = None

    @property
    def refund_amount(self) -> Decimal:
        return max(Decimal("0.00"), self.amount_paid - self.fee_amount)


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def days_until(reserved_date: date, now: datetime) -> int:
    return math.ceil((day_start(reserved_date) - as_naive_utc(now)) / ONE_DAY)


def tier_for(days: int) -> str:
    if days > 90:
        return ">90"
    if days >= 60:
        return "60-90"
    if days >= 30:
        return "30-59"
    if days >= 7:
        return "7-29"
    if days >= 0:
        return "<7"
    return "past"


def normalize_tiers(raw_tiers) -> dict:
    """Listing tiers, floored at the deposit percentage and non-decreasing."""
    tiers = raw_tiers
    if isinstance(raw_tiers, str):
        try:
            tiers = json.loads(raw_tiers)
        except ValueError:
            logger.warning(f"Unreadable cancellation fee tiers {raw_tiers!r}, using defaults")
            tiers = None
    tiers = tiers or {}

    normalized = {}
    for key in TIER_ORDER:
        value = tiers.get(key)
        pct = Decimal(str(value)) if value is not None else DEFAULT_FEE_TIERS[key]
        floor = Decimal("0") if key == ">90" else DEPOSIT_PERCENTAGE
        normalized[key] = max(floor, pct)

    last = Decimal("0")
    for key in TIER_ORDER:
        if normalized[key] < last:
            normalized[key] = last
        last = normalized[key]

    return normalized


def fee_tiers_for(booking) -> dict:
    # The first listing carrying its own tiers sets the policy for the booking
    for service in booking.selected_services:
        listing = service.service_listing
        if listing is not None and listing.cancellation_fee_tiers:
            return normalize_tiers(listing.cancellation_fee_tiers)
    return normalize_tiers(None)


def quote_cancellation(booking, amount_paid, now: datetime) -> CancellationQuote:
    total = money(booking.total_amount)
    paid = money(amount_paid)
    days = days_until(booking.reserved_date, now)
    status = BookingStatus(booking.status)

    if status == BookingStatus.PENDING_VENDOR_CONFIRMATION or (
        status == BookingStatus.PENDING_DEPOSIT_PAYMENT and paid == 0
    ):
        unconfirmed = status == BookingStatus.PENDING_VENDOR_CONFIRMATION
        return CancellationQuote(
            fee_amount=money(0),
            fee_percentage=Decimal("0"),
            amount_paid=paid,
            fee_difference=money(0),
            requires_payment=False,
            days_until_wedding=days,
            tier="pending_confirmation" if unconfirmed else "no_payment",
            total_booking_amount=total,
            reason=(
                "No penalty: booking request not yet confirmed by vendor"
                if unconfirmed
                else "No penalty: booking cancelled before any payment was made"
            ),
        )

    tier = tier_for(days)
    pct = Decimal("0") if tier == "past" else fee_tiers_for(booking)[tier]
    fee = money(total * pct)
    difference = fee - paid

    return CancellationQuote(
        fee_amount=fee,
        fee_percentage=pct,
        amount_paid=paid,
        fee_difference=max(money(0), difference),
        requires_payment=difference > 0,
        days_until_wedding=days,
        tier=tier,
        total_booking_amount=total,
    )
