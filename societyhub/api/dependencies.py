from typing import Optional

from sqlalchemy.orm import Session

from ..auth.jwt import get_db
from ..models.models import Flat, User

__all__ = ["get_db", "get_flat_for_user"]


def get_flat_for_user(db: Session, user: User) -> Optional[Flat]:
    if user.flat_id is None:
        return None
    return db.get(Flat, user.flat_id)
