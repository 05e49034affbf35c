from decimal import Decimal

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, func
)
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import BookingStatus, ServiceCategory, db_enum_values
from app.utils.deadlines import SuspendedDeadline, day_start


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    couple_id = Column(Integer, nullable=False, index=True)
    vendor_id = Column(Integer, nullable=False, index=True)
    project_id = Column(
        Integer, ForeignKey("wedding_projects.id", ondelete="SET NULL"), nullable=True, index=True
    )

    reserved_date = Column(Date, nullable=False, index=True)
    status = Column(
        Enum(BookingStatus, name="bookingstatus", values_callable=db_enum_values),
        nullable=False,
        default=BookingStatus.PENDING_VENDOR_CONFIRMATION,
        index=True,
    )

    deposit_due_date = Column(Date, nullable=True)
    final_due_date = Column(Date, nullable=True)

    # VENUE DEPENDENCY
    depends_on_venue_booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_pending_venue_replacement = Column(Boolean, nullable=False, default=False)
    original_deposit_due_date = Column(Date, nullable=True)
    original_final_due_date = Column(Date, nullable=True)
    venue_cancellation_date = Column(DateTime, nullable=True)
    grace_period_end_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    project = relationship("WeddingProject", foreign_keys=[project_id], back_populates="bookings")
    selected_services = relationship(
        "SelectedService", back_populates="booking", cascade="all, delete-orphan"
    )
    payments = relationship("Payment", back_populates="booking", order_by="Payment.payment_date")
    cancellation = relationship("Cancellation", back_populates="booking", uselist=False)
    depends_on_venue_booking = relationship("Booking", remote_side=[id])

    @property
    def is_venue_booking(self) -> bool:
        return any(
            s.service_listing is not None and s.service_listing.category == ServiceCategory.VENUE.value
            for s in self.selected_services
        )

    @property
    def total_amount(self) -> Decimal:
        return sum((Decimal(s.total_price) for s in self.selected_services), Decimal("0"))

    @property
    def amount_paid(self) -> Decimal:
        return sum((Decimal(p.amount) for p in self.payments), Decimal("0"))

    # ---------------- SUSPENDED DEPOSIT COUNTDOWN ----------------
    @property
    def suspended_deadline(self) -> SuspendedDeadline | None:
        if self.venue_cancellation_date is None:
            return None
        remaining = None
        if self.original_deposit_due_date is not None:
            remaining = day_start(self.original_deposit_due_date) - self.venue_cancellation_date
        return SuspendedDeadline(
            suspended_at=self.venue_cancellation_date,
            remaining=remaining,
            original_deposit_due=self.original_deposit_due_date,
            original_final_due=self.original_final_due_date,
        )

    def suspend(self, deadline: SuspendedDeadline, grace_period_end):
        self.is_pending_venue_replacement = True
        self.depends_on_venue_booking_id = None
        self.original_deposit_due_date = deadline.original_deposit_due
        self.original_final_due_date = deadline.original_final_due
        self.venue_cancellation_date = deadline.suspended_at
        self.grace_period_end_date = grace_period_end

    def reinstate(self, venue_booking_id: int, deposit_due, final_due):
        self.deposit_due_date = deposit_due
        self.final_due_date = final_due
        self.depends_on_venue_booking_id = venue_booking_id
        self.is_pending_venue_replacement = False
        self.original_deposit_due_date = None
        self.original_final_due_date = None
        self.venue_cancellation_date = None
        self.grace_period_end_date = None


class SelectedService(Base):
    __tablename__ = "selected_services"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    service_listing_id = Column(
        Integer, ForeignKey("service_listings.id", ondelete="CASCADE"), nullable=False, index=True
    )

    quantity = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(12, 2), nullable=False)

    booking = relationship("Booking", back_populates="selected_services")
    service_listing = relationship("ServiceListing")
