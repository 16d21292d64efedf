from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.models.order import OrderDispatch
from bagline.app.models.user import User
from bagline.app.schemas.order import DispatchCreate, DispatchOut
from bagline.app.services.dispatch import create_dispatch, list_dispatches

router = APIRouter()


@router.post("", response_model=DispatchOut, status_code=status.HTTP_201_CREATED)
def post_dispatch(
    payload: DispatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("dispatch:write")),
) -> OrderDispatch:
    try:
        return create_dispatch(db, **payload.model_dump(), user_id=current_user.id)
    except ValueError as e:
        code = (
            status.HTTP_404_NOT_FOUND
            if str(e) == "Order not found"
            else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(status_code=code, detail=str(e))


@router.get("/order/{order_id}", response_model=list[DispatchOut])
def get_order_dispatches(
    order_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("dispatch:read")),
) -> list[OrderDispatch]:
    return list_dispatches(db, order_id)
