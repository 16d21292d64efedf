from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from bagline.app.core.database import get_db
from bagline.app.core.security import decode_access_token
from bagline.app.models.user import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login/access-token")

_INVALID_TOKEN = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> User:
    """Resolve the bearer token to an active user; the role is read from the row."""
    try:
        user_id = UUID(decode_access_token(token)["sub"])
    except (JWTError, KeyError, TypeError, ValueError) as e:
        logger.debug("Rejected access token: %s", e)
        raise _INVALID_TOKEN

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _INVALID_TOKEN
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user
