from __future__ import annotations

import logging
from typing import List

from sqlalchemy.orm import Session, joinedload

from ..constants import VEHICLE_TYPES
from ..core.errors import ConflictError, NotFoundError, PermissionDeniedError, SocietyHubError
from ..models.models import User, Vehicle

logger = logging.getLogger(__name__)


def normalise_plate(number_plate: str) -> str:
    return number_plate.strip().upper()


def list_flat_vehicles(session: Session, user: User) -> List[Vehicle]:
    query = session.query(Vehicle).filter(Vehicle.society_id == user.society_id)
    if user.flat_id is not None:
        query = query.filter(Vehicle.flat_id == user.flat_id)
    else:
        query = query.filter(Vehicle.user_id == user.id)
    return query.order_by(Vehicle.created_at.asc()).all()


def add_vehicle(
    session: Session,
    user: User,
    *,
    number_plate: str,
    vehicle_type: str,
    color: str | None = None,
    vehicle_brand: str | None = None,
    vehicle_model: str | None = None,
) -> Vehicle:
    plate = normalise_plate(number_plate)
    if not plate or not vehicle_type:
        raise SocietyHubError("Number plate and vehicle type are required")
    if vehicle_type not in VEHICLE_TYPES:
        raise SocietyHubError(f"Unknown vehicle type {vehicle_type}")
    duplicate = (
        session.query(Vehicle)
        .filter(Vehicle.society_id == user.society_id, Vehicle.number_plate == plate)
        .first()
    )
    if duplicate:
        raise ConflictError(f"Vehicle {plate} is already registered in this society")

    vehicle = Vehicle(
        society_id=user.society_id,
        user_id=user.id,
        flat_id=user.flat_id,
        number_plate=plate,
        vehicle_type=vehicle_type,
        color=color,
        vehicle_brand=vehicle_brand,
        vehicle_model=vehicle_model,
    )
    session.add(vehicle)
    session.flush()
    return vehicle


def delete_vehicle(session: Session, user: User, vehicle_id: int) -> Vehicle:
    vehicle = session.get(Vehicle, vehicle_id)
    if not vehicle or vehicle.society_id != user.society_id:
        raise NotFoundError("Vehicle not found")
    same_flat = vehicle.flat_id is not None and vehicle.flat_id == user.flat_id
    if not (user.is_admin or vehicle.user_id == user.id or same_flat):
        raise PermissionDeniedError("You can only remove vehicles registered to your flat")
    session.delete(vehicle)
    session.flush()
    return vehicle


def search_vehicle(session: Session, society_id: int, number_plate: str) -> Vehicle:
    plate = normalise_plate(number_plate)
    if not plate:
        raise SocietyHubError("Please enter a number plate")
    vehicle = (
        session.query(Vehicle)
        .options(joinedload(Vehicle.user).joinedload(User.flat))
        .filter(Vehicle.society_id == society_id, Vehicle.number_plate == plate)
        .first()
    )
    if not vehicle:
        logger.info("Vehicle search for %s in society %s found nothing", plate, society_id)
        raise NotFoundError("Vehicle not found in this society")
    return vehicle
