from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, Text, func
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import CancelledBy, RefundStatus, db_enum_values


class Cancellation(Base):
    __tablename__ = "cancellations"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    cancelled_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    cancelled_by = Column(
        Enum(CancelledBy, name="cancelledby", values_callable=db_enum_values), nullable=False
    )
    cancelled_by_user_id = Column(Integer, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    cancellation_fee = Column(Numeric(12, 2), nullable=True)
    cancellation_fee_payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)

    # REFUND TRACKING
    refund_required = Column(Boolean, nullable=False, default=False)
    refund_amount = Column(Numeric(12, 2), nullable=True)
    refund_status = Column(
        Enum(RefundStatus, name="refundstatus", values_callable=db_enum_values),
        nullable=False,
        default=RefundStatus.NOT_APPLICABLE,
        index=True,
    )

    booking = relationship("Booking", back_populates="cancellation")
