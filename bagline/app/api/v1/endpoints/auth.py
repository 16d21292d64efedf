from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session

from bagline.app.core.database import get_db
from bagline.app.core.security import create_access_token
from bagline.app.models.user import UserRole
from bagline.app.services.audit import log_action
from bagline.app.services.user_management import authenticate

logger = logging.getLogger(__name__)

router = APIRouter()


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: UserRole


@router.post("/login/access-token", response_model=TokenOut)
def login_access_token(
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> TokenOut:
    """OAuth2 password login. Failed attempts are audit-logged by username."""
    user = authenticate(db, form_data.username, form_data.password)

    if user is None or not user.is_active:
        reason = "invalid_credentials" if user is None else "inactive"
        log_action(
            db,
            user_id=user.id if user else None,
            action="LOGIN_FAILED",
            resource_type="auth",
            resource_id=form_data.username,
            changes={"reason": reason},
        )
        db.commit()
        logger.info("Login failed for %s (%s)", form_data.username, reason)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect username or password",
                headers={"WWW-Authenticate": "Bearer"},
            )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    log_action(
        db,
        user_id=user.id,
        action="LOGIN_SUCCESS",
        resource_type="auth",
        resource_id=str(user.id),
    )
    db.commit()

    return TokenOut(
        access_token=create_access_token(subject=str(user.id), role=user.role.value),
        role=user.role,
    )
