from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.models.order import Order, OrderStatus
from bagline.app.models.user import User
from bagline.app.schemas.order import (
    BulkDeleteRequest,
    BulkDeleteResult,
    OrderCostOut,
    OrderCreate,
    OrderOut,
    OrderQuantityUpdate,
)
from bagline.app.services.orders import (
    bulk_delete_orders,
    create_order,
    delete_order,
    get_order,
    order_cost,
    update_order_quantity,
)

router = APIRouter()


def _error(e: Exception) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if str(e) == "Order not found"
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(e))


@router.get("", response_model=list[OrderOut])
def list_orders(
    status_filter: OrderStatus | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("order:read")),
) -> list[Order]:
    query = db.query(Order)
    if status_filter is not None:
        query = query.filter(Order.status == status_filter)
    return query.order_by(Order.order_date.desc()).all()


@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
def post_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("order:write")),
) -> Order:
    try:
        return create_order(
            db,
            company_name=payload.company_name,
            quantity=payload.quantity,
            components=[c.model_dump() for c in payload.components],
            order_date=payload.order_date,
            order_number=payload.order_number,
            bag_length=payload.bag_length,
            bag_width=payload.bag_width,
            rate=payload.rate,
            delivery_date=payload.delivery_date,
            special_instructions=payload.special_instructions,
            user_id=current_user.id,
        )
    except ValueError as e:
        raise _error(e)


@router.post("/bulk-delete", response_model=BulkDeleteResult)
def post_bulk_delete(
    payload: BulkDeleteRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("order:delete")),
) -> BulkDeleteResult:
    try:
        deleted = bulk_delete_orders(db, payload.ids, user_id=current_user.id)
    except (ValueError, RuntimeError) as e:
        raise _error(e)
    return BulkDeleteResult(deleted=deleted)


@router.get("/{order_id}", response_model=OrderOut)
def read_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("order:read")),
) -> Order:
    try:
        return get_order(db, order_id)
    except ValueError as e:
        raise _error(e)


@router.get("/{order_id}/cost", response_model=OrderCostOut)
def read_order_cost(
    order_id: UUID,
    cutting_charge: Decimal = Decimal("0"),
    printing_charge: Decimal = Decimal("0"),
    stitching_charge: Decimal = Decimal("0"),
    transport_charge: Decimal = Decimal("0"),
    margin_percent: Decimal | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("order:read")),
):
    try:
        return order_cost(
            db,
            order_id,
            cutting_charge=cutting_charge,
            printing_charge=printing_charge,
            stitching_charge=stitching_charge,
            transport_charge=transport_charge,
            margin_percent=margin_percent,
        )
    except ValueError as e:
        raise _error(e)


@router.patch("/{order_id}/quantity", response_model=OrderOut)
def patch_quantity(
    order_id: UUID,
    payload: OrderQuantityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("order:write")),
) -> Order:
    try:
        return update_order_quantity(db, order_id, payload.quantity, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("order:delete")),
) -> None:
    try:
        delete_order(db, order_id, user_id=current_user.id)
    except (ValueError, RuntimeError) as e:
        raise _error(e)
