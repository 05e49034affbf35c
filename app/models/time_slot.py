from sqlalchemy import Column, Date, DateTime, Enum, Integer, UniqueConstraint, func

from app.db.session import Base
from app.models.enums import TimeSlotStatus, db_enum_values


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(
        Enum(TimeSlotStatus, name="timeslotstatus", values_callable=db_enum_values), nullable=False
    )

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (UniqueConstraint("vendor_id", "date", name="uq_time_slot_vendor_date"),)
