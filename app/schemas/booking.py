from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.enums import BookingStatus, CancelledBy, RefundStatus


class SelectedServiceIn(BaseModel):
    service_listing_id: int
    quantity: int = Field(default=1, ge=1)
    total_price: Decimal = Field(ge=0)


class SelectedServiceOut(SelectedServiceIn):
    id: int

    model_config = {"from_attributes": True}


class BookingCreate(BaseModel):
    vendor_id: int
    reserved_date: date
    project_id: int | None = None
    selected_services: list[SelectedServiceIn] = Field(min_length=1)


class BookingOut(BaseModel):
    id: int
    couple_id: int
    vendor_id: int
    project_id: int | None
    reserved_date: date
    status: BookingStatus

    deposit_due_date: date | None
    final_due_date: date | None

    depends_on_venue_booking_id: int | None
    is_pending_venue_replacement: bool
    grace_period_end_date: date | None

    created_at: datetime | None = None
    selected_services: list[SelectedServiceOut] = []

    model_config = {"from_attributes": True}


class BookingStatusOut(BaseModel):
    booking_id: int
    status: BookingStatus


class RejectRequest(BaseModel):
    reason: str | None = None


# ---------------- CANCELLATION ----------------
class CancelRequest(BaseModel):
    reason: str | None = None


class CancellationQuoteOut(BaseModel):
    fee_amount: Decimal
    fee_percentage: Decimal
    amount_paid: Decimal
    fee_difference: Decimal
    refund_amount: Decimal
    requires_payment: bool
    days_until_wedding: int
    tier: str
    total_booking_amount: Decimal
    reason: str | None = None

    model_config = {"from_attributes": True}


class CancellationOut(BaseModel):
    id: int
    booking_id: int
    cancelled_at: datetime
    cancelled_by: CancelledBy
    cancellation_reason: str | None
    cancellation_fee: Decimal | None
    refund_required: bool
    refund_amount: Decimal | None
    refund_status: RefundStatus

    model_config = {"from_attributes": True}


class CancellationResult(BaseModel):
    status: BookingStatus
    requires_payment: bool
    quote: CancellationQuoteOut | None = None
    cancellation: CancellationOut | None = None
