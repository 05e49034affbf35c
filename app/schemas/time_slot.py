import datetime

from pydantic import BaseModel

from app.models.enums import TimeSlotStatus


class TimeOffCreate(BaseModel):
    date: datetime.date


class TimeSlotOut(BaseModel):
    id: int
    vendor_id: int
    date: datetime.date
    status: TimeSlotStatus

    model_config = {"from_attributes": True}
