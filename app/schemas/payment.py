from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.enums import PaymentMethod, PaymentType


class PaymentCreate(BaseModel):
    payment_type: PaymentType
    amount: Decimal = Field(gt=0)
    payment_method: PaymentMethod
    receipt: str | None = None


class PaymentOut(BaseModel):
    id: int
    booking_id: int
    payment_type: PaymentType
    amount: Decimal
    payment_method: PaymentMethod
    payment_date: datetime
    receipt: str | None
    released_to_vendor: bool

    model_config = {"from_attributes": True}
