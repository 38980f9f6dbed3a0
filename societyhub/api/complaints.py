from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import get_current_user, require_admin
from ..models.models import Complaint, User
from ..schemas.schemas import ComplaintCreate, ComplaintRead, ComplaintStatusUpdate
from ..services import complaints as complaint_service
from ..services.audit import audit_log

router = APIRouter()


@router.get("/", response_model=List[ComplaintRead])
def list_complaints(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[Complaint]:
    return complaint_service.list_complaints(db, user.society_id, status_filter)


@router.post("/", response_model=ComplaintRead, status_code=status.HTTP_201_CREATED)
def file_complaint(
    payload: ComplaintCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Complaint:
    complaint = complaint_service.file_complaint(db, filer=user, title=payload.title, description=payload.description)
    db.commit()
    db.refresh(complaint)
    return complaint


@router.patch("/{complaint_id}/status", response_model=ComplaintRead)
def update_complaint_status(
    complaint_id: int,
    payload: ComplaintStatusUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> Complaint:
    complaint = complaint_service.get_complaint(db, actor.society_id, complaint_id)
    complaint_service.transition_complaint(db, complaint, actor, payload.status)
    db.commit()
    db.refresh(complaint)
    return complaint


@router.delete("/{complaint_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_complaint(
    complaint_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    complaint = complaint_service.get_complaint(db, user.society_id, complaint_id)
    title = complaint.title
    complaint_service.delete_complaint(db, actor=user, complaint=complaint)
    db.commit()
    audit_log(
        db_session=db,
        actor_user_id=user.id,
        action="complaint.delete",
        target_entity_type="Complaint",
        target_entity_id=str(complaint_id),
        before={"title": title},
        society_id=user.society_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
