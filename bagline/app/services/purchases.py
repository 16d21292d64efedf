"""Purchase lifecycle: creation, completion into stock, reversal and deletion.

Completing a purchase books each line into inventory by its effective
quantity (``actual_meter`` when positive, else ``quantity``). Reversal takes
out exactly the same amount, so complete → reverse is a no-op on stock.
Each public operation commits once; on any error the whole operation is
rolled back.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bagline.app.models.inventory import InventoryItem, ReferenceType, TransactionType
from bagline.app.models.supplier import Purchase, PurchaseItem, PurchaseStatus
from bagline.app.services.audit import log_action
from bagline.app.services.formulas import (
    ZERO,
    allocate_transport,
    calculate_purchase_line,
    effective_inventory_quantity,
    to_decimal,
)
from bagline.app.services.inventory import apply_inventory_change
from bagline.app.services.numbering import document_number, next_document_number

logger = logging.getLogger(__name__)

PURCHASE_PREFIX = "PUR"


def generate_purchase_number(sequence: int, year: int | None = None) -> str:
    """Return a formatted purchase number like PUR-2026-0001."""
    return document_number(PURCHASE_PREFIX, sequence, year)


def get_purchase(db: Session, purchase_id: UUID, *, for_update: bool = False) -> Purchase:
    query = db.query(Purchase).filter(Purchase.id == purchase_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    purchase = query.first()
    if not purchase:
        raise ValueError("Purchase not found")
    return purchase


def create_purchase(
    db: Session,
    *,
    items: list[dict[str, Any]],
    purchase_date: date | None = None,
    supplier_id: UUID | None = None,
    purchase_number: str | None = None,
    transport_charge: Decimal = ZERO,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> Purchase:
    """Create a pending purchase and compute every derived amount.

    Each item dict carries ``material_id``, ``quantity``, ``unit_price`` and
    optionally ``alt_quantity``, ``alt_unit_price``, ``gst_rate`` and
    ``actual_meter``. Transport is split across lines by alternate quantity.
    """
    if not items:
        raise ValueError("A purchase needs at least one item")

    try:
        if purchase_number is None:
            purchase_number = next_document_number(
                db, Purchase.purchase_number, PURCHASE_PREFIX
            )
        elif db.query(Purchase).filter(Purchase.purchase_number == purchase_number).first():
            raise ValueError(f"Purchase number {purchase_number} already exists")

        material_ids = {i["material_id"] for i in items}
        found = {
            m.id for m in db.query(InventoryItem.id).filter(InventoryItem.id.in_(material_ids))
        }
        missing = material_ids - found
        if missing:
            raise ValueError(f"Material not found: {', '.join(str(m) for m in missing)}")

        shares = allocate_transport(
            [i.get("alt_quantity") or i["quantity"] for i in items], transport_charge
        )

        purchase = Purchase(
            purchase_number=purchase_number,
            supplier_id=supplier_id,
            purchase_date=purchase_date or date.today(),
            status=PurchaseStatus.PENDING,
            transport_charge=to_decimal(transport_charge),
            notes=notes,
            created_by=user_id,
        )

        subtotal = gst_total = ZERO
        for raw, share in zip(items, shares):
            amounts = calculate_purchase_line(
                quantity=raw["quantity"],
                unit_price=raw["unit_price"],
                alt_quantity=raw.get("alt_quantity"),
                alt_unit_price=raw.get("alt_unit_price"),
                gst_rate=raw.get("gst_rate", 0),
            )
            purchase.items.append(
                PurchaseItem(
                    material_id=raw["material_id"],
                    quantity=to_decimal(raw["quantity"]),
                    unit_price=to_decimal(raw["unit_price"]),
                    alt_quantity=raw.get("alt_quantity"),
                    alt_unit_price=raw.get("alt_unit_price"),
                    gst_rate=to_decimal(raw.get("gst_rate", 0)),
                    actual_meter=to_decimal(raw.get("actual_meter")),
                    base_amount=amounts.base_amount,
                    gst_amount=amounts.gst_amount,
                    transport_share=share,
                    line_total=amounts.line_total,
                )
            )
            subtotal += amounts.base_amount
            gst_total += amounts.gst_amount

        purchase.subtotal = subtotal
        purchase.gst_total = gst_total
        purchase.total_amount = subtotal + gst_total + to_decimal(transport_charge)

        db.add(purchase)
        try:
            db.flush()
        except IntegrityError:
            raise ValueError(f"Purchase number {purchase_number} already exists") from None

        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_CREATED",
            resource_type="purchases",
            resource_id=str(purchase.id),
            changes={
                "purchase_number": purchase.purchase_number,
                "items": len(items),
                "total_amount": str(purchase.total_amount),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    return purchase


# ── Stock booking ───────────────────────────────────────────────────────────


def _book_items_into_stock(db: Session, purchase: Purchase, user_id: UUID | None) -> None:
    for item in purchase.items:
        if item.material_id is None:
            raise ValueError(
                f"Purchase {purchase.purchase_number} has a line whose material was deleted"
            )
        amount = effective_inventory_quantity(item)
        apply_inventory_change(
            db,
            material_id=item.material_id,
            delta=amount,
            transaction_type=TransactionType.PURCHASE,
            reference_type=ReferenceType.PURCHASE,
            reference_id=purchase.id,
            reference_number=purchase.purchase_number,
            notes=(
                "Purchase completion - used "
                + ("actual_meter" if to_decimal(item.actual_meter) > 0 else "quantity")
                + f" {amount}"
            ),
            metadata={
                "purchase_item_id": str(item.id),
                "main_quantity": str(item.quantity),
                "actual_meter": str(item.actual_meter),
                "used_quantity": str(amount),
                "unit_price": str(item.unit_price),
                "transport_charge": str(purchase.transport_charge),
                "purchase_date": purchase.purchase_date.isoformat(),
            },
            user_id=user_id,
        )
        # purchase_rate tracks the latest supplier price, transport excluded
        item.material.purchase_rate = item.unit_price


def _take_items_out_of_stock(db: Session, purchase: Purchase, user_id: UUID | None) -> None:
    for item in purchase.items:
        if item.material_id is None:
            logger.warning(
                "Purchase %s line %s has no material any more; nothing to reverse",
                purchase.purchase_number,
                item.id,
            )
            continue
        amount = effective_inventory_quantity(item)
        apply_inventory_change(
            db,
            material_id=item.material_id,
            delta=-amount,
            transaction_type=TransactionType.PURCHASE_REVERSAL,
            reference_type=ReferenceType.PURCHASE,
            reference_id=purchase.id,
            reference_number=purchase.purchase_number,
            notes=f"Purchase reversal - removed {amount}",
            metadata={
                "purchase_item_id": str(item.id),
                "actual_meter": str(item.actual_meter),
                "used_quantity": str(amount),
                "reversal": True,
            },
            user_id=user_id,
        )


# ── Status transitions ──────────────────────────────────────────────────────


def complete_purchase(db: Session, purchase_id: UUID, user_id: UUID | None = None) -> Purchase:
    """Book a pending purchase into stock. A completed purchase is rejected."""
    try:
        purchase = get_purchase(db, purchase_id, for_update=True)
        if purchase.status == PurchaseStatus.COMPLETED:
            raise ValueError(f"Purchase {purchase.purchase_number} is already completed")
        if purchase.status == PurchaseStatus.CANCELLED:
            raise ValueError(f"Purchase {purchase.purchase_number} is cancelled")

        _book_items_into_stock(db, purchase, user_id)
        purchase.status = PurchaseStatus.COMPLETED
        purchase.completed_at = datetime.now(timezone.utc)

        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_COMPLETED",
            resource_type="purchases",
            resource_id=str(purchase.id),
            changes={"purchase_number": purchase.purchase_number},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    logger.info("Purchase %s completed", purchase.purchase_number)
    return purchase


def reverse_purchase_completion(
    db: Session,
    purchase_id: UUID,
    new_status: PurchaseStatus = PurchaseStatus.PENDING,
    user_id: UUID | None = None,
) -> Purchase:
    """Take a completed purchase back out of stock and move it to *new_status*.

    Fails as a whole if any material has already been consumed below the
    amount the purchase added.
    """
    if new_status == PurchaseStatus.COMPLETED:
        raise ValueError("Reversal target status cannot be completed")
    try:
        purchase = get_purchase(db, purchase_id, for_update=True)
        if purchase.status != PurchaseStatus.COMPLETED:
            raise ValueError(
                f"Only completed purchases can be reversed "
                f"(purchase {purchase.purchase_number} is {purchase.status.value})"
            )

        _take_items_out_of_stock(db, purchase, user_id)
        purchase.status = new_status
        purchase.completed_at = None

        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_REVERSED",
            resource_type="purchases",
            resource_id=str(purchase.id),
            changes={"purchase_number": purchase.purchase_number, "status": new_status.value},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    return purchase


def update_purchase_status(
    db: Session,
    purchase_id: UUID,
    new_status: PurchaseStatus,
    user_id: UUID | None = None,
) -> Purchase:
    purchase = get_purchase(db, purchase_id)
    current = purchase.status

    if new_status == current:
        if current == PurchaseStatus.COMPLETED:
            raise ValueError(f"Purchase {purchase.purchase_number} is already completed")
        return purchase
    if new_status == PurchaseStatus.COMPLETED:
        return complete_purchase(db, purchase_id, user_id)
    if current == PurchaseStatus.COMPLETED:
        return reverse_purchase_completion(db, purchase_id, new_status, user_id)

    # pending <-> cancelled does not touch stock
    try:
        purchase.status = new_status
        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_STATUS_CHANGED",
            resource_type="purchases",
            resource_id=str(purchase.id),
            changes={"old": current.value, "new": new_status.value},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    return purchase


def delete_purchase(db: Session, purchase_id: UUID, user_id: UUID | None = None) -> None:
    """Delete a purchase, first taking a completed one back out of stock."""
    try:
        purchase = get_purchase(db, purchase_id, for_update=True)
        number = purchase.purchase_number
        if purchase.status == PurchaseStatus.COMPLETED:
            _take_items_out_of_stock(db, purchase, user_id)

        db.delete(purchase)
        db.flush()
        if db.query(Purchase.id).filter(Purchase.id == purchase_id).first():
            raise RuntimeError(f"Purchase {number} still exists after deletion")

        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_DELETED",
            resource_type="purchases",
            resource_id=str(purchase_id),
            changes={"purchase_number": number},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Purchase %s deleted", number)
