"""User accounts for the production floor.

All mutations are audit-logged. This module does NOT call db.commit();
the caller (endpoint) is responsible for committing. Role changes live in
``services.procedures.update_user_role``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from bagline.app.core.security import get_password_hash, verify_password
from bagline.app.models.user import User, UserRole
from bagline.app.services.audit import log_action


def list_users(db: Session) -> list[User]:
    """Return all users ordered by creation date descending."""
    return db.query(User).order_by(User.created_at.desc()).all()


def authenticate(db: Session, username: str, password: str) -> User | None:
    user = db.query(User).filter(func.lower(User.username) == username.lower()).first()
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def create_user(
    db: Session,
    *,
    username: str,
    password: str,
    role: UserRole,
    admin_id: UUID,
) -> User:
    """Create a new user account. Raises ValueError if username taken."""
    existing = db.query(User).filter(
        func.lower(User.username) == username.lower()
    ).first()
    if existing:
        raise ValueError("Username already exists")

    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.flush()

    log_action(
        db,
        user_id=admin_id,
        action="USER_CREATED",
        resource_type="users",
        resource_id=str(user.id),
        changes={"username": username, "role": role.value},
    )
    return user


def set_user_active(
    db: Session,
    *,
    target_user_id: UUID,
    is_active: bool,
    admin_id: UUID,
) -> User:
    """Enable or disable a login. Disabled users keep their history.

    An admin cannot disable themselves, and the last active admin cannot be
    disabled by anyone.
    """
    user = db.query(User).filter(User.id == target_user_id).first()
    if not user:
        raise ValueError("User not found")
    if user.is_active == is_active:
        return user

    if not is_active:
        if user.id == admin_id:
            raise ValueError("You cannot deactivate your own account")
        if user.role == UserRole.ADMIN:
            active_admins = (
                db.query(User)
                .filter(User.role == UserRole.ADMIN, User.is_active.is_(True))
                .count()
            )
            if active_admins <= 1:
                raise ValueError("Cannot deactivate the last active admin")

    user.is_active = is_active
    db.flush()

    log_action(
        db,
        user_id=admin_id,
        action="USER_ACTIVATED" if is_active else "USER_DEACTIVATED",
        resource_type="users",
        resource_id=str(user.id),
        changes={"username": user.username},
    )
    return user
