from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..models.models import Society
from ..schemas.schemas import SocietyRead
from ..services.accounts import get_society_or_404

router = APIRouter()


@router.get("/", response_model=List[SocietyRead])
def list_societies(db: Session = Depends(get_db)) -> List[Society]:
    return db.query(Society).order_by(Society.name.asc()).all()


@router.get("/{society_id}", response_model=SocietyRead)
def get_society(society_id: int, db: Session = Depends(get_db)) -> Society:
    return get_society_or_404(db, society_id)
