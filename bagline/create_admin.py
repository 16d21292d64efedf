"""Bootstrap the first admin account, or restore access to an existing one.

Usage:
    python -m bagline.create_admin [--username admin]

The password is always prompted for; it never appears in shell history.
"""

from __future__ import annotations

import argparse
import getpass
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from bagline.app.core.database import SessionLocal
from bagline.app.core.logging import configure_logging
from bagline.app.core.security import get_password_hash
from bagline.app.models.user import User, UserRole
from bagline.app.services.audit import log_action

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def ensure_admin(db: Session, username: str, password: str) -> tuple[User, bool]:
    """Create ``username`` as an active admin, or promote and re-key it.

    Returns ``(user, created)``. Commits on success.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = db.query(User).filter(func.lower(User.username) == username.lower()).first()
    created = user is None
    if user is None:
        user = User(username=username, hashed_password="", role=UserRole.ADMIN)
        db.add(user)

    user.hashed_password = get_password_hash(password)
    user.role = UserRole.ADMIN
    user.is_active = True
    db.flush()

    log_action(
        db,
        user_id=None,
        action="ADMIN_BOOTSTRAPPED" if created else "ADMIN_RESET",
        resource_type="users",
        resource_id=str(user.id),
        changes={"username": user.username},
    )
    db.commit()
    db.refresh(user)
    logger.info("Admin %s %s", user.username, "created" if created else "reset")
    return user, created


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--username", default="admin")
    args = parser.parse_args(argv)

    configure_logging()
    password = getpass.getpass("Password: ")

    db = SessionLocal()
    try:
        user, created = ensure_admin(db, args.username, password)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    finally:
        db.close()

    print(("Created" if created else "Reset") + f" admin {user.username} ({user.id})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
