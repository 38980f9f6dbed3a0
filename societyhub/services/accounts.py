from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.jwt import get_password_hash, verify_password
from ..constants import ROLE_NAMES
from ..core.errors import ConflictError, NotFoundError, SocietyHubError
from ..models.models import Flat, Society, User

logger = logging.getLogger(__name__)


def normalise_email(email: str) -> str:
    return email.strip().lower()


def get_society_or_404(session: Session, society_id: int) -> Society:
    society = session.get(Society, society_id)
    if not society:
        raise NotFoundError("Society not found")
    return society


def create_society(session: Session, *, name: str, address: Optional[str] = None, city: Optional[str] = None) -> Society:
    existing = session.query(Society).filter(func.lower(Society.name) == name.strip().lower()).first()
    if existing:
        raise ConflictError(f"Society '{name}' already exists")
    society = Society(name=name.strip(), address=address, city=city)
    session.add(society)
    session.flush()
    logger.info("Created society %s (%s)", society.id, society.name)
    return society


def find_user_by_email(session: Session, society_id: int, email: str) -> Optional[User]:
    return (
        session.query(User)
        .filter(User.society_id == society_id, User.email == normalise_email(email))
        .first()
    )


def find_or_create_flat(session: Session, society: Society, flat_number: str, owner: Optional[User] = None) -> Flat:
    """Residents share a flat when they register with the same flat number."""
    flat_number = flat_number.strip()
    flat = (
        session.query(Flat)
        .filter(Flat.society_id == society.id, Flat.flat_number == flat_number)
        .first()
    )
    if flat:
        return flat
    flat = Flat(society_id=society.id, flat_number=flat_number, owner_user_id=owner.id if owner else None)
    session.add(flat)
    session.flush()
    return flat


def register_resident(
    session: Session,
    society: Society,
    *,
    name: str,
    email: str,
    phone: Optional[str],
    flat_number: str,
    password: str,
    role: str = "RESIDENT",
) -> User:
    """Create the account and attach it to its flat. The caller commits both or neither."""
    if role not in ROLE_NAMES:
        raise SocietyHubError(f"Unknown role {role}")
    if find_user_by_email(session, society.id, email):
        raise SocietyHubError("Email already registered")

    user = User(
        society_id=society.id,
        email=normalise_email(email),
        name=name.strip(),
        phone=phone,
        role=role,
        hashed_password=get_password_hash(password),
    )
    session.add(user)
    session.flush()

    flat = find_or_create_flat(session, society, flat_number, owner=user)
    user.flat_id = flat.id
    session.flush()
    logger.info("Registered %s in society %s flat %s", user.id, society.id, flat.flat_number)
    return user


def authenticate(session: Session, society_id: int, email: str, password: str) -> Optional[User]:
    """Verify the credentials and that the account belongs to the chosen society."""
    user = find_user_by_email(session, society_id, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def update_profile(session: Session, user: User, updates: Dict[str, Any]) -> Dict[str, Any]:
    before = profile_snapshot(user)

    new_email = updates.get("email")
    if new_email and normalise_email(new_email) != user.email:
        clash = find_user_by_email(session, user.society_id, new_email)
        if clash and clash.id != user.id:
            raise ConflictError("Email already in use.")
        user.email = normalise_email(new_email)

    if updates.get("name"):
        user.name = updates["name"]
    if "phone" in updates and updates["phone"]:
        user.phone = updates["phone"]

    new_flat_number = updates.get("flat_number")
    if new_flat_number and new_flat_number != user.flat_number:
        flat = find_or_create_flat(session, user.society, new_flat_number, owner=user)
        user.flat_id = flat.id
        # Vehicles follow their owner to the new flat.
        for vehicle in user.vehicles:
            vehicle.flat_id = flat.id

    session.flush()
    session.refresh(user)
    return before


def profile_snapshot(user: User) -> Dict[str, Any]:
    return {
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "flat_number": user.flat_number,
    }


def change_password(session: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.hashed_password):
        raise SocietyHubError("Current password is incorrect.")
    user.hashed_password = get_password_hash(new_password)
    session.flush()


def change_member_role(session: Session, member: User, role: str) -> str:
    if role not in ROLE_NAMES:
        raise SocietyHubError(f"Unknown role {role}")
    previous = member.role
    if previous == "CHAIRMAN" and role != "CHAIRMAN":
        remaining = (
            session.query(User)
            .filter(
                User.society_id == member.society_id,
                User.role == "CHAIRMAN",
                User.id != member.id,
                User.is_active.is_(True),
            )
            .count()
        )
        if remaining == 0:
            raise SocietyHubError("The society must retain at least one active CHAIRMAN.")
    member.role = role
    session.flush()
    return previous
