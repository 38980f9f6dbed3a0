from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from ..api.dependencies import get_db
from ..auth.jwt import require_admin
from ..models.models import AuditLog, User
from ..schemas.schemas import AuditLogActor, AuditLogEntry, AuditLogList

router = APIRouter()


@router.get("/", response_model=AuditLogList)
def list_audit_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> AuditLogList:
    query = (
        db.query(AuditLog)
        .options(joinedload(AuditLog.actor))
        .filter(AuditLog.society_id == actor.society_id)
    )
    if action:
        query = query.filter(AuditLog.action == action)
    query = query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
    total = query.count()
    logs = query.offset(offset).limit(limit).all()
    items = [
        AuditLogEntry(
            id=entry.id,
            timestamp=entry.timestamp,
            action=entry.action,
            target_entity_type=entry.target_entity_type,
            target_entity_id=entry.target_entity_id,
            before=entry.before,
            after=entry.after,
            actor=AuditLogActor(
                id=entry.actor.id if entry.actor else None,
                email=entry.actor.email if entry.actor else None,
                name=entry.actor.name if entry.actor else None,
            ),
        )
        for entry in logs
    ]
    return AuditLogList(items=items, total=total)
