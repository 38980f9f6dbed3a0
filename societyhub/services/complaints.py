from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from ..constants import COMPLAINT_STATUSES, COMPLAINT_TRANSITIONS
from ..core.errors import NotFoundError, PermissionDeniedError, SocietyHubError
from ..models.models import Complaint, User
from .audit import audit_log


def list_complaints(session: Session, society_id: int, status: Optional[str] = None) -> List[Complaint]:
    query = (
        session.query(Complaint)
        .options(joinedload(Complaint.filed_by).joinedload(User.flat))
        .filter(Complaint.society_id == society_id)
    )
    if status and status != "all":
        if status not in COMPLAINT_STATUSES:
            raise SocietyHubError(f"Unknown complaint status {status}")
        query = query.filter(Complaint.status == status)
    return query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()


def file_complaint(session: Session, *, filer: User, title: str, description: str) -> Complaint:
    complaint = Complaint(
        society_id=filer.society_id,
        filed_by_user_id=filer.id,
        title=title,
        description=description,
        status="open",
    )
    session.add(complaint)
    session.flush()
    return complaint


def get_complaint(session: Session, society_id: int, complaint_id: int) -> Complaint:
    complaint = session.get(Complaint, complaint_id)
    if not complaint or complaint.society_id != society_id:
        raise NotFoundError("Complaint not found")
    return complaint


def transition_complaint(session: Session, complaint: Complaint, actor: User, new_status: str) -> Complaint:
    if not actor.is_admin:
        raise PermissionDeniedError("Only Chairman/Secretary can update complaint status")
    current_status = complaint.status
    allowed = COMPLAINT_TRANSITIONS.get(current_status, set())
    if new_status not in allowed:
        raise SocietyHubError(f"Cannot move complaint from {current_status} to {new_status}")

    complaint.status = new_status
    if new_status == "cleared":
        complaint.cleared_at = datetime.now(timezone.utc)
    session.add(complaint)
    session.flush()

    audit_log(
        db_session=session,
        actor_user_id=actor.id,
        action="complaints.transition",
        target_entity_type="Complaint",
        target_entity_id=str(complaint.id),
        before={"status": current_status},
        after={"status": new_status},
        society_id=complaint.society_id,
        commit=False,
    )
    return complaint


def delete_complaint(session: Session, *, actor: User, complaint: Complaint) -> None:
    if not actor.is_admin and complaint.filed_by_user_id != actor.id:
        raise PermissionDeniedError("You can only delete your own complaints")
    session.delete(complaint)
    session.flush()
