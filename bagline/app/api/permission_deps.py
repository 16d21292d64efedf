"""Permission dependencies backed by the static role map.

Usage in endpoints::

    @router.post("/{purchase_id}/complete")
    def complete(
        purchase_id: UUID,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission("purchase:write")),
    ):
        ...
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status

from bagline.app.api.deps import get_current_user
from bagline.app.core.permissions import permissions_for
from bagline.app.models.user import User


def require_permission(*permission_codes: str):
    """FastAPI dependency factory; checks the user's role grants **all** listed codes.

    Returns the authenticated ``User`` so the endpoint can use it.
    """

    def _checker(current_user: User = Depends(get_current_user)) -> User:
        missing = set(permission_codes) - permissions_for(current_user.role)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(sorted(missing))}",
            )
        return current_user

    return _checker
