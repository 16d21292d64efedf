from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bagline.app.models.inventory import InventoryItem
from bagline.app.models.order import ComponentType, Order, OrderComponent
from bagline.app.models.production import JobCard
from bagline.app.services.audit import log_action
from bagline.app.services.formulas import (
    OrderCost,
    calculate_consumption,
    calculate_order_cost,
    calculate_selling_price,
    is_manual_formula,
    process_order_components,
    quantize,
    to_decimal,
)
from bagline.app.services.job_cards import ReversalResult, reverse_job_card_consumption
from bagline.app.services.numbering import document_number, next_document_number
from bagline.app.services.procedures import delete_order_completely

logger = logging.getLogger(__name__)

ORDER_PREFIX = "ORD"

_COMPONENT_FIELDS = (
    "component_type",
    "custom_name",
    "material_id",
    "color",
    "gsm",
    "size",
    "length",
    "width",
    "roll_width",
    "formula",
    "is_manual_consumption",
    "base_consumption",
    "consumption",
    "material_rate",
)


def generate_order_number(sequence: int, year: int | None = None) -> str:
    """Return a formatted order number like ORD-2026-0001."""
    return document_number(ORDER_PREFIX, sequence, year)


def get_order(db: Session, order_id: UUID) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise ValueError("Order not found")
    return order


def _prepare_components(
    db: Session, components: list[dict[str, Any]], quantity: int
) -> list[dict[str, Any]]:
    """Fill in consumption figures for a new order's components.

    Manual components are scaled from their per-bag figure exactly once.
    Calculated components without an explicit consumption get one from their
    dimensions.
    """
    prepared = []
    for raw in process_order_components(components, quantity):
        if not is_manual_formula(raw):
            if raw.get("consumption") is None:
                raw["consumption"] = calculate_consumption(
                    raw.get("length"), raw.get("width"), raw.get("roll_width"), quantity
                )
            raw["base_consumption"] = raw["consumption"]

        material_id = raw.get("material_id")
        if material_id is not None:
            material = db.get(InventoryItem, material_id)
            if material is None:
                raise ValueError(f"Material not found: {material_id}")
            if raw.get("material_rate") is None:
                raw["material_rate"] = material.purchase_rate
        if raw.get("component_type") == ComponentType.CUSTOM and not raw.get("custom_name"):
            raise ValueError("Custom components need a name")
        prepared.append(raw)
    return prepared


def create_order(
    db: Session,
    *,
    company_name: str,
    quantity: int,
    components: list[dict[str, Any]],
    order_date: date | None = None,
    order_number: str | None = None,
    bag_length: Decimal = Decimal("0"),
    bag_width: Decimal = Decimal("0"),
    rate: Decimal | None = None,
    delivery_date: date | None = None,
    special_instructions: str | None = None,
    user_id: UUID | None = None,
) -> Order:
    if quantity <= 0:
        raise ValueError("Order quantity must be greater than zero")

    try:
        if order_number is None:
            order_number = next_document_number(db, Order.order_number, ORDER_PREFIX)
        elif db.query(Order.id).filter(Order.order_number == order_number).first():
            raise ValueError(f"Order number {order_number} already exists")

        prepared = _prepare_components(db, components, quantity)

        order = Order(
            order_number=order_number,
            company_name=company_name,
            quantity=quantity,
            bag_length=bag_length,
            bag_width=bag_width,
            rate=rate,
            order_date=order_date or date.today(),
            delivery_date=delivery_date,
            special_instructions=special_instructions,
            created_by=user_id,
        )
        db.add(order)
        try:
            db.flush()
        except IntegrityError:
            # another request took the same number between lookup and insert
            raise ValueError(f"Order number {order_number} already exists") from None

        for raw in prepared:
            db.add(
                OrderComponent(
                    order_id=order.id,
                    **{k: raw.get(k) for k in _COMPONENT_FIELDS if k in raw},
                )
            )

        log_action(
            db,
            user_id=user_id,
            action="ORDER_CREATED",
            resource_type="orders",
            resource_id=str(order.id),
            changes={
                "order_number": order.order_number,
                "quantity": quantity,
                "components": len(components),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    return order


def update_order_quantity(
    db: Session, order_id: UUID, quantity: int, user_id: UUID | None = None
) -> Order:
    """Change the bag count and rescale component consumption.

    Manual components are recomputed from their stored per-bag figure, never
    from the already scaled consumption. Stock already consumed by job cards
    is not touched.
    """
    if quantity <= 0:
        raise ValueError("Order quantity must be greater than zero")

    try:
        order = get_order(db, order_id)
        old_quantity = order.quantity
        order.quantity = quantity

        for component in order.components:
            if is_manual_formula(component):
                base = to_decimal(component.base_consumption)
                component.consumption = quantize(base * quantity)
            elif component.length and component.width and component.roll_width:
                component.consumption = calculate_consumption(
                    component.length, component.width, component.roll_width, quantity
                )
                component.base_consumption = component.consumption

        log_action(
            db,
            user_id=user_id,
            action="ORDER_QUANTITY_CHANGED",
            resource_type="orders",
            resource_id=str(order.id),
            changes={"old": old_quantity, "new": quantity},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    return order


def order_cost(
    db: Session,
    order_id: UUID,
    *,
    cutting_charge: Decimal = Decimal("0"),
    printing_charge: Decimal = Decimal("0"),
    stitching_charge: Decimal = Decimal("0"),
    transport_charge: Decimal = Decimal("0"),
    margin_percent: Decimal | None = None,
) -> dict[str, Any]:
    order = get_order(db, order_id)
    cost: OrderCost = calculate_order_cost(
        order.components,
        order.quantity,
        cutting_charge=cutting_charge,
        printing_charge=printing_charge,
        stitching_charge=stitching_charge,
        transport_charge=transport_charge,
    )
    return {
        "order_id": order.id,
        "material_cost": cost.material_cost,
        "production_cost": cost.production_cost,
        "total_cost": cost.total_cost,
        "cost_per_bag": cost.cost_per_bag,
        "selling_price": calculate_selling_price(cost.total_cost, margin_percent),
    }


# ── Deletion ────────────────────────────────────────────────────────────────


def _delete_one(
    db: Session, order_id: UUID, user_id: UUID | None
) -> tuple[str, dict[UUID, ReversalResult]]:
    order = get_order(db, order_id)
    order_number = order.order_number

    # stock first: the cascade removes the job cards the reversal reads
    reversals: dict[UUID, ReversalResult] = {}
    job_cards = db.query(JobCard).filter(JobCard.order_id == order.id).all()
    for job_card in job_cards:
        reversals[job_card.id] = reverse_job_card_consumption(db, job_card, user_id)

    if not delete_order_completely(db, order_id):
        raise RuntimeError(f"Order {order_number} could not be deleted")
    if db.query(Order.id).filter(Order.id == order_id).first():
        raise RuntimeError(f"Order {order_number} still exists after deletion")

    log_action(
        db,
        user_id=user_id,
        action="ORDER_DELETED",
        resource_type="orders",
        resource_id=str(order_id),
        changes={
            "order_number": order_number,
            "job_cards": len(job_cards),
            "restored": sum(len(r.reverted) for r in reversals.values()),
            "errors": [e for r in reversals.values() for e in r.errors],
        },
    )
    return order_number, reversals


def delete_order(
    db: Session, order_id: UUID, user_id: UUID | None = None
) -> dict[UUID, ReversalResult]:
    """Delete an order after giving back every job card's consumption.

    Reversal, cascade and verification share one transaction: if any step
    fails the order and all stock levels stay exactly as they were.
    """
    try:
        order_number, reversals = _delete_one(db, order_id, user_id)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Deleting order %s failed; rolled back", order_id)
        raise
    logger.info("Order %s deleted (%d job card(s) reversed)", order_number, len(reversals))
    return reversals


def bulk_delete_orders(
    db: Session, order_ids: list[UUID], user_id: UUID | None = None
) -> int:
    """Delete several orders in one transaction. Returns the number deleted."""
    unique_ids = list(dict.fromkeys(order_ids))
    try:
        for order_id in unique_ids:
            _delete_one(db, order_id, user_id)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Bulk order deletion failed; rolled back")
        raise
    return len(unique_ids)
