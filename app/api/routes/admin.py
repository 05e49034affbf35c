from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, get_db, get_scanner, require_role
from app.core.logging_config import get_logger
from app.schemas.payment import PaymentOut
from app.services import payment_ledger

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger()


# ---------------------------------------------------------------------
# MANUAL SCANNER RUNS
# ---------------------------------------------------------------------
@router.post("/auto-cancellation/run")
def run_auto_cancellation(
    principal: Principal = Depends(require_role("admin")),
    scanner=Depends(get_scanner),
):
    logger.bind(log_type="scheduler").info(f"Manual auto-cancellation run by admin {principal.user_id}")
    return scanner.run().to_dict()


@router.post("/payment-reminders/run")
def run_payment_reminders(
    principal: Principal = Depends(require_role("admin")),
    scanner=Depends(get_scanner),
):
    return {"sent": scanner.run_payment_reminders()}


# ---------------------------------------------------------------------
# PAYOUTS
# ---------------------------------------------------------------------
@router.post("/payments/{payment_id}/release", response_model=PaymentOut)
def release_payment(
    payment_id: int,
    principal: Principal = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    return payment_ledger.release_to_vendor(db, payment_id)
