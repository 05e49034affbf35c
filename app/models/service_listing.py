from sqlalchemy import Boolean, Column, Integer, JSON, Numeric, String, Text

from app.db.session import Base


class ServiceListing(Base):
    __tablename__ = "service_listings"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, nullable=False, index=True)

    name = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)  # "Venue" anchors a project
    price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Cancellation policy
    cancellation_policy = Column(Text, nullable=True)
    cancellation_fee_tiers = Column(JSON, nullable=True)  # {">90": 0.0, "60-90": 0.3, ...}
