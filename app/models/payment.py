from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import PaymentMethod, PaymentType, db_enum_values


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)

    payment_type = Column(
        Enum(PaymentType, name="paymenttype", values_callable=db_enum_values), nullable=False
    )
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(
        Enum(PaymentMethod, name="paymentmethod", values_callable=db_enum_values), nullable=False
    )
    payment_date = Column(DateTime, nullable=False, server_default=func.now())
    receipt = Column(String, nullable=True)

    # Payout tracking
    released_to_vendor = Column(Boolean, nullable=False, default=False)
    released_at = Column(DateTime, nullable=True)

    booking = relationship("Booking", back_populates="payments")
