from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import get_current_user
from ..models.models import User, Vehicle
from ..schemas.schemas import VehicleCreate, VehicleOwnerRead, VehicleRead, VehicleSearchResult
from ..services import vehicles as vehicle_service
from ..services.audit import audit_log

router = APIRouter()


@router.get("/", response_model=List[VehicleRead])
def list_my_vehicles(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[Vehicle]:
    return vehicle_service.list_flat_vehicles(db, user)


@router.post("/", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
def add_vehicle(
    payload: VehicleCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Vehicle:
    vehicle = vehicle_service.add_vehicle(db, user, **payload.model_dump())
    db.commit()
    db.refresh(vehicle)
    return vehicle


@router.get("/search", response_model=VehicleSearchResult)
def search_vehicle(
    number_plate: str = Query(default=""),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> VehicleSearchResult:
    vehicle = vehicle_service.search_vehicle(db, user.society_id, number_plate)
    base = VehicleRead.model_validate(vehicle)
    return VehicleSearchResult(**base.model_dump(), owner=VehicleOwnerRead.model_validate(vehicle.user))


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    vehicle = vehicle_service.delete_vehicle(db, user, vehicle_id)
    number_plate = vehicle.number_plate
    db.commit()
    audit_log(
        db_session=db,
        actor_user_id=user.id,
        action="vehicle.delete",
        target_entity_type="Vehicle",
        target_entity_id=str(vehicle_id),
        before={"number_plate": number_plate},
        society_id=user.society_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
