from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from bagline.app.api.deps import get_current_user
from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.core.permissions import permissions_for
from bagline.app.models.user import User, UserRole
from bagline.app.services.procedures import update_user_role
from bagline.app.services.user_management import create_user, list_users, set_user_active

router = APIRouter()


# ─── Schemas ─────────────────────────────────────────────────────────────────


class UserOut(BaseModel):
    id: UUID
    username: str
    role: UserRole
    is_active: bool
    permissions: list[str] = []

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=150)
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole


class ActiveUpdate(BaseModel):
    is_active: bool


class RoleUpdate(BaseModel):
    role: UserRole


def _user_out(user: User) -> UserOut:
    out = UserOut.model_validate(user)
    out.permissions = sorted(permissions_for(user.role))
    return out


# ─── Endpoints ───────────────────────────────────────────────────────────────


@router.get("/me", response_model=UserOut)
def read_me(current_user: User = Depends(get_current_user)) -> UserOut:
    return _user_out(current_user)


@router.get("", response_model=list[UserOut])
def get_users(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_permission("user:manage")),
) -> list[UserOut]:
    return [_user_out(u) for u in list_users(db)]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def post_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission("user:manage")),
) -> UserOut:
    try:
        user = create_user(
            db,
            username=payload.username,
            password=payload.password,
            role=payload.role,
            admin_id=admin.id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    db.commit()
    db.refresh(user)
    return _user_out(user)


@router.patch("/{user_id}/role", response_model=UserOut)
def patch_user_role(
    user_id: UUID,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission("user:manage")),
) -> UserOut:
    try:
        user = update_user_role(
            db, target_user_id=user_id, new_role=payload.role, admin_id=admin.id
        )
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        db.rollback()
        code = (
            status.HTTP_404_NOT_FOUND
            if str(e) == "User not found"
            else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(status_code=code, detail=str(e))
    db.commit()
    db.refresh(user)
    return _user_out(user)


@router.patch("/{user_id}/active", response_model=UserOut)
def patch_user_active(
    user_id: UUID,
    payload: ActiveUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission("user:manage")),
) -> UserOut:
    try:
        user = set_user_active(
            db, target_user_id=user_id, is_active=payload.is_active, admin_id=admin.id
        )
    except ValueError as e:
        db.rollback()
        code = (
            status.HTTP_404_NOT_FOUND
            if str(e) == "User not found"
            else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(status_code=code, detail=str(e))
    db.commit()
    db.refresh(user)
    return _user_out(user)
