"""Multi-table maintenance operations.

These run inside the caller's transaction and do NOT call db.commit(); the
caller (service or endpoint) commits once the whole operation succeeded.
None of them move stock: callers that need inventory restored reverse it
before invoking them.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bagline.app.models.billing import SalesInvoice, VendorBill
from bagline.app.models.inventory import InventoryItem, InventoryTransactionLog
from bagline.app.models.order import Order, OrderComponent, OrderDispatch
from bagline.app.models.production import (
    CuttingComponent,
    CuttingJob,
    JobCard,
    PrintingJob,
    StitchingJob,
)
from bagline.app.models.supplier import PurchaseItem
from bagline.app.models.user import User, UserRole
from bagline.app.services.audit import log_action

logger = logging.getLogger(__name__)


# ── Orders and job cards ────────────────────────────────────────────────────


def delete_job_card_rows(db: Session, job_card_ids: list[UUID]) -> int:
    """Delete job cards with their cutting, printing and stitching jobs.

    Vendor bills raised for those jobs are kept and detached from the card.
    """
    if not job_card_ids:
        return 0
    db.flush()
    db.query(VendorBill).filter(VendorBill.job_card_id.in_(job_card_ids)).update(
        {VendorBill.job_card_id: None}, synchronize_session=False
    )
    cutting_job_ids = select(CuttingJob.id).where(CuttingJob.job_card_id.in_(job_card_ids))
    db.query(CuttingComponent).filter(
        CuttingComponent.cutting_job_id.in_(cutting_job_ids)
    ).delete(synchronize_session=False)
    for model in (CuttingJob, PrintingJob, StitchingJob):
        db.query(model).filter(model.job_card_id.in_(job_card_ids)).delete(
            synchronize_session=False
        )
    deleted = db.query(JobCard).filter(JobCard.id.in_(job_card_ids)).delete(
        synchronize_session=False
    )
    db.expire_all()
    return deleted


def delete_order_completely(db: Session, order_id: UUID) -> bool:
    """Delete an order and everything hanging off it. False if it does not exist."""
    if not db.query(Order.id).filter(Order.id == order_id).first():
        return False
    db.flush()

    job_card_ids = [
        row.id for row in db.query(JobCard.id).filter(JobCard.order_id == order_id)
    ]
    delete_job_card_rows(db, job_card_ids)
    # bills and invoices outlive the order; they keep its number and company
    for model in (VendorBill, SalesInvoice):
        db.query(model).filter(model.order_id == order_id).update(
            {model.order_id: None}, synchronize_session=False
        )

    component_ids = select(OrderComponent.id).where(OrderComponent.order_id == order_id)
    db.query(CuttingComponent).filter(
        CuttingComponent.component_id.in_(component_ids)
    ).delete(synchronize_session=False)
    db.query(OrderDispatch).filter(OrderDispatch.order_id == order_id).delete(
        synchronize_session=False
    )
    db.query(OrderComponent).filter(OrderComponent.order_id == order_id).delete(
        synchronize_session=False
    )
    db.query(Order).filter(Order.id == order_id).delete(synchronize_session=False)
    db.expire_all()

    logger.info("Deleted order %s with %d job card(s)", order_id, len(job_card_ids))
    return True


def bulk_delete_orders(db: Session, order_ids: list[UUID]) -> int:
    return sum(1 for order_id in order_ids if delete_order_completely(db, order_id))


# ── Inventory hard delete ───────────────────────────────────────────────────


def preview_inventory_hard_deletion(db: Session, inventory_id: UUID) -> dict[str, Any]:
    """Count the rows that would lose their link to the material."""
    item = db.query(InventoryItem).filter(InventoryItem.id == inventory_id).first()
    if not item:
        raise ValueError("Inventory item not found")

    return {
        "inventory_id": item.id,
        "material_name": item.material_name,
        "quantity": item.quantity,
        "purchase_items": db.query(PurchaseItem)
        .filter(PurchaseItem.material_id == inventory_id)
        .count(),
        "order_components": db.query(OrderComponent)
        .filter(OrderComponent.material_id == inventory_id)
        .count(),
        "transaction_logs": db.query(InventoryTransactionLog)
        .filter(InventoryTransactionLog.material_id == inventory_id)
        .count(),
    }


def hard_delete_inventory_with_consumption_preserve(
    db: Session, inventory_id: UUID, user_id: UUID | None = None
) -> dict[str, Any]:
    """Delete a material while keeping the history that referenced it.

    Purchase lines, order components and transaction logs are detached
    (``material_id`` set to NULL) instead of deleted; logs keep the material's
    name in their metadata so consumption reports still read correctly.
    """
    summary = preview_inventory_hard_deletion(db, inventory_id)
    name = summary["material_name"]

    logs = (
        db.query(InventoryTransactionLog)
        .filter(InventoryTransactionLog.material_id == inventory_id)
        .all()
    )
    for log in logs:
        log.metadata_ = {
            **(log.metadata_ or {}),
            "material_name": name,
            "deleted_material_id": str(inventory_id),
        }
        log.material_id = None

    db.query(PurchaseItem).filter(PurchaseItem.material_id == inventory_id).update(
        {PurchaseItem.material_id: None}, synchronize_session=False
    )
    db.query(OrderComponent).filter(OrderComponent.material_id == inventory_id).update(
        {OrderComponent.material_id: None}, synchronize_session=False
    )
    db.flush()
    db.query(InventoryItem).filter(InventoryItem.id == inventory_id).delete(
        synchronize_session=False
    )
    db.expire_all()

    log_action(
        db,
        user_id=user_id,
        action="INVENTORY_HARD_DELETED",
        resource_type="inventory",
        resource_id=str(inventory_id),
        changes={k: str(v) for k, v in summary.items()},
    )
    logger.warning("Hard-deleted material %s (%s)", name, inventory_id)
    return summary


# ── Users ───────────────────────────────────────────────────────────────────


def update_user_role(
    db: Session,
    *,
    target_user_id: UUID,
    new_role: UserRole,
    admin_id: UUID,
) -> User:
    """Change a user's role. Only admins may do it; the last admin stays admin."""
    admin = db.query(User).filter(User.id == admin_id).first()
    if not admin or admin.role != UserRole.ADMIN:
        raise PermissionError("Only admins can change roles")

    user = db.query(User).filter(User.id == target_user_id).first()
    if not user:
        raise ValueError("User not found")
    if user.role == new_role:
        return user

    if user.role == UserRole.ADMIN:
        other_admins = (
            db.query(User)
            .filter(
                User.role == UserRole.ADMIN,
                User.is_active.is_(True),
                User.id != user.id,
            )
            .count()
        )
        if other_admins == 0:
            raise ValueError("Cannot remove the last active admin")

    old_role = user.role
    user.role = new_role
    db.flush()

    log_action(
        db,
        user_id=admin_id,
        action="USER_ROLE_CHANGED",
        resource_type="users",
        resource_id=str(user.id),
        changes={"old": old_role.value, "new": new_role.value},
    )
    return user
