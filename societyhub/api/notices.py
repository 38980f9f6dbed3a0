from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import get_current_user
from ..models.models import Notice, User
from ..schemas.schemas import NoticeCreate, NoticeRead
from ..services import notices as notice_service
from ..services.audit import audit_log

router = APIRouter()


@router.get("/", response_model=List[NoticeRead])
def list_notices(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[Notice]:
    return notice_service.list_notices(db, user.society_id)


@router.post("/", response_model=NoticeRead, status_code=status.HTTP_201_CREATED)
def create_notice_endpoint(
    payload: NoticeCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Notice:
    notice = notice_service.create_notice(
        db,
        author=user,
        title=payload.title,
        description=payload.description,
        notice_type=payload.notice_type,
    )
    db.commit()
    db.refresh(notice)
    return notice


@router.delete("/{notice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notice_endpoint(
    notice_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    notice = notice_service.delete_notice(db, actor=user, notice_id=notice_id)
    before = {"title": notice.title, "notice_type": notice.notice_type}
    db.commit()
    audit_log(
        db_session=db,
        actor_user_id=user.id,
        action="notice.delete",
        target_entity_type="Notice",
        target_entity_id=str(notice_id),
        before=before,
        society_id=user.society_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
