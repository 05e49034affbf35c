from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class WeddingProject(Base):
    __tablename__ = "wedding_projects"

    id = Column(Integer, primary_key=True, index=True)
    couple_id = Column(Integer, nullable=False, index=True)
    project_name = Column(String, nullable=False)
    wedding_date = Column(Date, nullable=False, index=True)

    # Active venue binding (the anchor venue booking)
    venue_booking_id = Column(
        Integer,
        ForeignKey("bookings.id", ondelete="SET NULL", use_alter=True, name="fk_project_venue_booking"),
        nullable=True,
    )

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    bookings = relationship(
        "Booking", foreign_keys="Booking.project_id", back_populates="project"
    )
    venue_booking = relationship("Booking", foreign_keys=[venue_booking_id], post_update=True)
