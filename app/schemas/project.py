from datetime import date

from pydantic import BaseModel


class VenueBindingUpdate(BaseModel):
    venue_booking_id: int


class VenueBindingOut(BaseModel):
    project_id: int
    venue_booking_id: int
    wedding_date: date
    rebound_booking_ids: list[int]
