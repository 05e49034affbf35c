from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, get_db, require_role
from app.schemas.time_slot import TimeOffCreate, TimeSlotOut
from app.services import time_slots

router = APIRouter(prefix="/time-slots", tags=["Time Slots"])


@router.get("/", response_model=list[TimeSlotOut])
def list_time_slots(
    start: date | None = None,
    end: date | None = None,
    principal: Principal = Depends(require_role("vendor")),
    db: Session = Depends(get_db),
):
    return time_slots.list_slots(db, principal.user_id, start, end)


@router.post("/", response_model=TimeSlotOut, status_code=201)
def mark_time_off(
    data: TimeOffCreate,
    principal: Principal = Depends(require_role("vendor")),
    db: Session = Depends(get_db),
):
    return time_slots.mark_personal_time_off(db, principal.user_id, data.date)


@router.delete("/{day}")
def delete_time_slot(
    day: date,
    principal: Principal = Depends(require_role("vendor")),
    db: Session = Depends(get_db),
):
    time_slots.delete_slot(db, principal.user_id, day)
    return {"message": "Time slot removed"}
