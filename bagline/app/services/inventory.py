from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from bagline.app.models.inventory import (
    InventoryItem,
    InventoryTransactionLog,
    ReferenceType,
    TransactionType,
)
from bagline.app.services.audit import log_action
from bagline.app.services.formulas import to_decimal

logger = logging.getLogger(__name__)

CLEAR_HISTORY_CONFIRMATION = "DELETE_TRANSACTION_HISTORY"


def get_inventory_item(db: Session, item_id: UUID, *, for_update: bool = False) -> InventoryItem:
    query = db.query(InventoryItem).filter(InventoryItem.id == item_id)
    if for_update:
        db.flush()
        query = query.with_for_update().populate_existing()
    item = query.first()
    if not item:
        raise ValueError("Inventory item not found")
    return item


# ── Stock movement primitive ────────────────────────────────────────────────


def apply_inventory_change(
    db: Session,
    *,
    material_id: UUID,
    delta: Decimal,
    transaction_type: TransactionType,
    reference_type: ReferenceType | None = None,
    reference_id: UUID | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
    metadata: dict[str, Any] | None = None,
    user_id: UUID | None = None,
) -> InventoryTransactionLog:
    """Move stock for one material and record the matching transaction log.

    The inventory row is locked for the rest of the transaction, so two
    concurrent movements on the same material serialize instead of losing an
    update. Raises ``ValueError`` when the material is missing or when the
    movement would take stock below zero.

    Does NOT call db.commit(): the movement becomes visible together with the
    business operation that caused it.
    """
    delta = to_decimal(delta)
    item = get_inventory_item(db, material_id, for_update=True)

    previous = to_decimal(item.quantity)
    new_quantity = previous + delta
    if new_quantity < 0:
        raise ValueError(
            f"Insufficient stock for {item.material_name}: "
            f"current {previous}, change {delta} would result in {new_quantity}"
        )

    item.quantity = new_quantity

    entry = InventoryTransactionLog(
        material_id=item.id,
        transaction_type=transaction_type,
        quantity=delta,
        previous_quantity=previous,
        new_quantity=new_quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        reference_number=reference_number,
        notes=notes,
        metadata_={
            "material_name": item.material_name,
            "unit": item.unit,
            **(metadata or {}),
        },
        created_by=user_id,
    )
    db.add(entry)
    db.flush()

    logger.info(
        "%s %s on %s: %s -> %s (ref %s)",
        transaction_type.value,
        delta,
        item.material_name,
        previous,
        new_quantity,
        reference_number or reference_id,
    )
    return entry


# ── Inventory items ─────────────────────────────────────────────────────────


def create_inventory_item(
    db: Session,
    *,
    fields: dict[str, Any],
    opening_quantity: Decimal = Decimal("0"),
    user_id: UUID | None = None,
) -> InventoryItem:
    """Create a material. Opening stock is booked as an adjustment."""
    try:
        item = InventoryItem(**fields, quantity=Decimal("0"))
        db.add(item)
        db.flush()

        if opening_quantity:
            apply_inventory_change(
                db,
                material_id=item.id,
                delta=opening_quantity,
                transaction_type=TransactionType.ADJUSTMENT,
                reference_type=ReferenceType.MANUAL,
                notes="Opening stock",
                user_id=user_id,
            )

        log_action(
            db,
            user_id=user_id,
            action="INVENTORY_CREATED",
            resource_type="inventory",
            resource_id=str(item.id),
            changes={
                "material_name": item.material_name,
                "opening_quantity": str(opening_quantity),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(item)
    return item


def update_inventory_item(
    db: Session,
    item_id: UUID,
    *,
    changes: dict[str, Any],
    user_id: UUID | None = None,
) -> InventoryItem:
    # quantity only moves through apply_inventory_change
    if "quantity" in changes:
        raise ValueError("Quantity cannot be edited directly; use a stock adjustment")

    try:
        item = get_inventory_item(db, item_id)
        old_values = {f: str(getattr(item, f)) for f in changes}
        for field, value in changes.items():
            setattr(item, field, value)

        log_action(
            db,
            user_id=user_id,
            action="INVENTORY_UPDATED",
            resource_type="inventory",
            resource_id=str(item.id),
            changes={"old": old_values, "new": {f: str(v) for f, v in changes.items()}},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(item)
    return item


def adjust_stock(
    db: Session,
    item_id: UUID,
    *,
    delta: Decimal,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> InventoryTransactionLog:
    """Manual stock correction (count error, damage, found roll...)."""
    if to_decimal(delta) == 0:
        raise ValueError("Adjustment must not be zero")

    try:
        entry = apply_inventory_change(
            db,
            material_id=item_id,
            delta=delta,
            transaction_type=TransactionType.ADJUSTMENT,
            reference_type=ReferenceType.MANUAL,
            notes=notes,
            user_id=user_id,
        )
        log_action(
            db,
            user_id=user_id,
            action="STOCK_ADJUSTMENT",
            resource_type="inventory",
            resource_id=str(item_id),
            changes={
                "delta": str(delta),
                "new_quantity": str(entry.new_quantity),
                "notes": notes,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    return entry


# ── Transaction history ─────────────────────────────────────────────────────


def list_transaction_logs(
    db: Session,
    *,
    material_id: UUID | None = None,
    reference_type: ReferenceType | None = None,
    reference_id: UUID | None = None,
    transaction_type: TransactionType | None = None,
    limit: int = 200,
) -> list[InventoryTransactionLog]:
    query = db.query(InventoryTransactionLog)
    if material_id is not None:
        query = query.filter(InventoryTransactionLog.material_id == material_id)
    if reference_type is not None:
        query = query.filter(InventoryTransactionLog.reference_type == reference_type)
    if reference_id is not None:
        query = query.filter(InventoryTransactionLog.reference_id == reference_id)
    if transaction_type is not None:
        query = query.filter(InventoryTransactionLog.transaction_type == transaction_type)
    return (
        query.order_by(InventoryTransactionLog.transaction_date.desc())
        .limit(limit)
        .all()
    )


def transaction_history_stats(db: Session) -> dict[str, Any]:
    total, oldest, newest, materials = db.query(
        func.count(InventoryTransactionLog.id),
        func.min(InventoryTransactionLog.transaction_date),
        func.max(InventoryTransactionLog.transaction_date),
        func.count(func.distinct(InventoryTransactionLog.material_id)),
    ).one()

    by_type = dict(
        db.query(InventoryTransactionLog.transaction_type, func.count(InventoryTransactionLog.id))
        .group_by(InventoryTransactionLog.transaction_type)
        .all()
    )
    return {
        "total_transaction_logs": total,
        "oldest_log_date": oldest,
        "newest_log_date": newest,
        "materials_with_transactions": materials,
        "by_type": {t.value: n for t, n in by_type.items()},
    }


def clear_transaction_history(
    db: Session,
    *,
    confirmation: str,
    start: datetime | None = None,
    end: datetime | None = None,
    material_id: UUID | None = None,
    log_ids: list[UUID] | None = None,
    user_id: UUID | None = None,
) -> int:
    """Delete transaction logs matching every given filter (all logs when none).

    Inventory quantities are left untouched. Returns the number of rows
    deleted.
    """
    if confirmation != CLEAR_HISTORY_CONFIRMATION:
        raise ValueError(f"Confirmation text must be {CLEAR_HISTORY_CONFIRMATION!r}")
    if start and end and start > end:
        raise ValueError("Start date must be before end date")

    query = db.query(InventoryTransactionLog)
    if start is not None:
        query = query.filter(InventoryTransactionLog.transaction_date >= start)
    if end is not None:
        query = query.filter(InventoryTransactionLog.transaction_date <= end)
    if material_id is not None:
        query = query.filter(InventoryTransactionLog.material_id == material_id)
    if log_ids:
        query = query.filter(InventoryTransactionLog.id.in_(log_ids))

    try:
        deleted = query.delete(synchronize_session=False)

        log_action(
            db,
            user_id=user_id,
            action="TRANSACTION_HISTORY_CLEARED",
            resource_type="inventory_transaction_log",
            resource_id=str(material_id) if material_id else "*",
            changes={
                "deleted": deleted,
                "start": start.isoformat() if start else None,
                "end": end.isoformat() if end else None,
                "log_ids": [str(i) for i in log_ids] if log_ids else None,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.warning("Cleared %d inventory transaction logs", deleted)
    return deleted


# ── Reconciliation ──────────────────────────────────────────────────────────


def find_inventory_drift(db: Session) -> list[dict[str, Any]]:
    """Compare each material's quantity with the ``new_quantity`` of its latest log.

    Materials without any log (history cleared, or never moved) are skipped.
    """
    drift = []
    for item in db.query(InventoryItem).order_by(InventoryItem.material_name).all():
        latest = (
            db.query(InventoryTransactionLog)
            .filter(InventoryTransactionLog.material_id == item.id)
            .order_by(InventoryTransactionLog.transaction_date.desc())
            .first()
        )
        if latest is None:
            continue
        if to_decimal(item.quantity) != to_decimal(latest.new_quantity):
            drift.append({
                "material_id": str(item.id),
                "material_name": item.material_name,
                "quantity": str(item.quantity),
                "logged_quantity": str(latest.new_quantity),
                "difference": str(to_decimal(item.quantity) - to_decimal(latest.new_quantity)),
                "last_log_id": str(latest.id),
            })
    return drift
