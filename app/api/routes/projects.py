from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import Principal, get_db, get_notifier, require_role
from app.models.project import WeddingProject
from app.schemas.project import VenueBindingOut, VenueBindingUpdate
from app.services.venue_cascade import on_venue_binding_changed

router = APIRouter(prefix="/projects", tags=["Projects"])


# ---------------------------------------------------------------------
# SELECT / REPLACE VENUE
# ---------------------------------------------------------------------
@router.put("/{project_id}/venue", response_model=VenueBindingOut)
def set_project_venue(
    project_id: int,
    data: VenueBindingUpdate,
    principal: Principal = Depends(require_role("couple")),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    project = db.query(WeddingProject).filter(
        WeddingProject.id == project_id,
        WeddingProject.couple_id == principal.user_id,
    ).first()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    rebound = on_venue_binding_changed(db, project.id, data.venue_booking_id, notifier=notifier)

    return {
        "project_id": project.id,
        "venue_booking_id": data.venue_booking_id,
        "wedding_date": project.wedding_date,
        "rebound_booking_ids": rebound,
    }
