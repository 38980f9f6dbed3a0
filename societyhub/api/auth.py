from typing import List

from fastapi import APIRouter, Depends, Form, HTTPException, status
from jose import JWTError
from sqlalchemy.orm import Session, joinedload

from ..api.dependencies import get_db
from ..auth.jwt import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    require_admin,
    require_roles,
)
from ..config import settings
from ..core.rate_limit import rate_limit_dependency
from ..models.models import Society, User
from ..schemas.schemas import (
    MemberRoleUpdate,
    PasswordChange,
    ProfileUpdate,
    SignupRequest,
    SocietyRead,
    Token,
    TokenRefreshRequest,
    UserRead,
)
from ..services import accounts
from ..services.audit import audit_log

router = APIRouter()

auth_rate_limit = rate_limit_dependency("auth", settings.auth_rate_limit, settings.auth_rate_window_seconds)


class OAuth2PasswordRequestFormWithSociety:
    def __init__(
        self,
        grant_type: str = Form(default="password"),
        username: str = Form(...),
        password: str = Form(...),
        society_id: int = Form(...),
        scope: str = Form(""),
    ) -> None:
        self.grant_type = grant_type
        self.username = username
        self.password = password
        self.society_id = society_id
        self.scopes = scope.split()


def _build_token_response(user: User, society: Society) -> Token:
    access_payload = {
        "sub": str(user.id),
        "society_id": str(society.id),
        "role": user.role,
        "type": "access",
    }
    return Token(
        access_token=create_access_token(access_payload),
        refresh_token=create_refresh_token(str(user.id), str(society.id)),
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
        refresh_expires_in=settings.refresh_token_expire_minutes * 60,
        user=UserRead.model_validate(user),
        society=SocietyRead.model_validate(society),
    )


@router.post(
    "/signup",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> User:
    society = accounts.get_society_or_404(db, payload.society_id)
    try:
        user = accounts.register_resident(
            db,
            society,
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            flat_number=payload.flat_number,
            password=payload.password,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)

    audit_log(
        db_session=db,
        actor_user_id=user.id,
        action="user.signup",
        target_entity_type="User",
        target_entity_id=str(user.id),
        after={"email": user.email, "flat_number": user.flat_number},
        society_id=society.id,
    )
    return user


@router.post("/login", response_model=Token, dependencies=[Depends(auth_rate_limit)])
def login(
    form_data: OAuth2PasswordRequestFormWithSociety = Depends(),
    db: Session = Depends(get_db),
) -> Token:
    society = accounts.get_society_or_404(db, form_data.society_id)
    user = accounts.authenticate(db, society.id, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is archived or inactive.")
    return _build_token_response(user, society)


@router.post("/refresh", response_model=Token)
def refresh_token(
    payload: TokenRefreshRequest,
    db: Session = Depends(get_db),
) -> Token:
    credentials_exception = HTTPException(status_code=401, detail="Invalid refresh token")
    try:
        decoded = decode_token(payload.refresh_token)
    except JWTError as exc:
        raise credentials_exception from exc

    if decoded.get("type") != "refresh":
        raise credentials_exception

    user_id = decoded.get("sub")
    if not user_id:
        raise credentials_exception

    user = db.query(User).options(joinedload(User.society)).filter(User.id == int(user_id)).first()
    if not user or not user.is_active or str(user.society_id) != str(decoded.get("society_id")):
        raise credentials_exception

    return _build_token_response(user, user.society)


@router.get("/me", response_model=UserRead)
def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.patch("/me", response_model=UserRead)
def update_current_user_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    updates = payload.model_dump(exclude_unset=True)
    db_user = db.get(User, current_user.id)
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found.")
    if not updates:
        return db_user

    before = accounts.update_profile(db, db_user, updates)
    db.commit()
    db.refresh(db_user)

    after = accounts.profile_snapshot(db_user)
    if before != after:
        audit_log(
            db_session=db,
            actor_user_id=db_user.id,
            action="user.profile_update",
            target_entity_type="User",
            target_entity_id=str(db_user.id),
            before=before,
            after=after,
            society_id=db_user.society_id,
        )
    return db_user


@router.post("/me/change-password")
def change_password(
    payload: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_user = db.get(User, current_user.id)
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found.")

    accounts.change_password(db, db_user, payload.current_password, payload.new_password)
    db.commit()

    audit_log(
        db_session=db,
        actor_user_id=db_user.id,
        action="user.password_change",
        target_entity_type="User",
        target_entity_id=str(db_user.id),
        after={"password_changed": True},
        society_id=db_user.society_id,
    )
    return {"message": "Password updated."}


@router.get("/users", response_model=List[UserRead])
def list_members(
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> List[User]:
    return (
        db.query(User)
        .options(joinedload(User.flat))
        .filter(User.society_id == actor.society_id)
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )


@router.patch("/users/{user_id}/role", response_model=UserRead)
def update_member_role(
    user_id: int,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles("CHAIRMAN")),
) -> User:
    member = db.get(User, user_id)
    if not member or member.society_id != actor.society_id:
        raise HTTPException(status_code=404, detail="User not found")

    previous = accounts.change_member_role(db, member, payload.role)
    db.commit()
    db.refresh(member)

    if previous != member.role:
        audit_log(
            db_session=db,
            actor_user_id=actor.id,
            action="user.role_update",
            target_entity_type="User",
            target_entity_id=str(member.id),
            before={"role": previous},
            after={"role": member.role},
            society_id=actor.society_id,
        )
    return member
