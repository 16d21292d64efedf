from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from bagline.app.models.order import Order, OrderDispatch, OrderStatus
from bagline.app.services.audit import log_action


def create_dispatch(
    db: Session,
    *,
    order_id: UUID,
    recipient_name: str,
    delivery_address: str,
    delivery_date: date,
    tracking_number: str | None = None,
    quality_checked: bool = False,
    quantity_checked: bool = False,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> OrderDispatch:
    """Record a dispatch and mark the order dispatched."""
    try:
        order = db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise ValueError("Order not found")
        if order.status == OrderStatus.CANCELLED:
            raise ValueError("Cannot dispatch a cancelled order")

        dispatch = OrderDispatch(
            order_id=order.id,
            recipient_name=recipient_name,
            delivery_address=delivery_address,
            delivery_date=delivery_date,
            tracking_number=tracking_number,
            quality_checked=quality_checked,
            quantity_checked=quantity_checked,
            notes=notes,
        )
        db.add(dispatch)
        order.status = OrderStatus.DISPATCHED
        db.flush()

        log_action(
            db,
            user_id=user_id,
            action="ORDER_DISPATCHED",
            resource_type="order_dispatches",
            resource_id=str(dispatch.id),
            changes={"order_number": order.order_number, "tracking_number": tracking_number},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(dispatch)
    return dispatch


def list_dispatches(db: Session, order_id: UUID) -> list[OrderDispatch]:
    return (
        db.query(OrderDispatch)
        .filter(OrderDispatch.order_id == order_id)
        .order_by(OrderDispatch.delivery_date.desc())
        .all()
    )
