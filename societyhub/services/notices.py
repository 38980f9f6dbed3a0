from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session, joinedload

from ..constants import NOTICE_TYPES, RESIDENT_NOTICE_TYPES
from ..core.errors import NotFoundError, PermissionDeniedError, SocietyHubError
from ..models.models import Notice, User


def list_notices(session: Session, society_id: int) -> List[Notice]:
    return (
        session.query(Notice)
        .options(joinedload(Notice.creator).joinedload(User.flat))
        .filter(Notice.society_id == society_id)
        .order_by(Notice.created_at.desc(), Notice.id.desc())
        .all()
    )


def create_notice(
    session: Session,
    *,
    author: User,
    title: str,
    description: str,
    notice_type: str = "general",
) -> Notice:
    if notice_type not in NOTICE_TYPES:
        raise SocietyHubError(f"Unknown notice type {notice_type}")
    if not author.is_admin and notice_type not in RESIDENT_NOTICE_TYPES:
        raise PermissionDeniedError("Only Chairman/Secretary can post urgent or maintenance notices")

    notice = Notice(
        society_id=author.society_id,
        created_by_user_id=author.id,
        title=title,
        description=description,
        notice_type=notice_type,
    )
    session.add(notice)
    session.flush()
    return notice


def delete_notice(session: Session, *, actor: User, notice_id: int) -> Notice:
    notice = session.get(Notice, notice_id)
    if not notice or notice.society_id != actor.society_id:
        raise NotFoundError("Notice not found")
    if not actor.is_admin and notice.created_by_user_id != actor.id:
        raise PermissionDeniedError("You can only delete your own notices")
    session.delete(notice)
    session.flush()
    return notice
