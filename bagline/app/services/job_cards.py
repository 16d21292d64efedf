"""Job cards: material consumption on creation, restoration on deletion.

Creating a job card consumes every order component's material and writes one
``consumption`` log per component, tagged with the component's id and type.
Deleting it restores, per component, exactly what that component consumed:
two components cut from the same roll are restored separately, never
collapsed into one amount.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, NamedTuple
from uuid import UUID

from sqlalchemy.orm import Session

from bagline.app.models.inventory import (
    InventoryItem,
    InventoryTransactionLog,
    ReferenceType,
    TransactionType,
)
from bagline.app.models.order import Order, OrderComponent, OrderStatus
from bagline.app.models.production import (
    CuttingJob,
    JobCard,
    JobStatus,
    PrintingJob,
    StitchingJob,
)
from bagline.app.services.audit import log_action
from bagline.app.services.formulas import ZERO, to_decimal
from bagline.app.services.inventory import apply_inventory_change
from bagline.app.services.procedures import delete_job_card_rows

logger = logging.getLogger(__name__)


# ── Consumption keys ────────────────────────────────────────────────────────


class ComponentRef(NamedTuple):
    kind: Literal["component_id", "component_type"]
    value: str


class ConsumptionKey(NamedTuple):
    material_id: UUID
    ref: ComponentRef


def key_for_log(log: InventoryTransactionLog) -> ConsumptionKey | None:
    """Key a consumption log by material and the component it was taken for."""
    if log.material_id is None:
        return None
    metadata = log.metadata_ or {}
    if metadata.get("component_id"):
        ref = ComponentRef("component_id", str(metadata["component_id"]))
    elif metadata.get("component_type"):
        ref = ComponentRef("component_type", str(metadata["component_type"]))
    else:
        return None
    return ConsumptionKey(log.material_id, ref)


def build_consumption_map(
    logs: Iterable[InventoryTransactionLog],
) -> dict[ConsumptionKey, Decimal]:
    amounts: dict[ConsumptionKey, Decimal] = defaultdict(lambda: ZERO)
    for log in logs:
        key = key_for_log(log)
        if key is None:
            logger.warning("Consumption log %s has no component reference; ignored", log.id)
            continue
        amounts[key] += abs(to_decimal(log.quantity))
    return dict(amounts)


def lookup_consumed(
    amounts: dict[ConsumptionKey, Decimal], component: OrderComponent
) -> Decimal | None:
    """Amount logged for *component*: by id first, then by type."""
    by_id = ConsumptionKey(
        component.material_id, ComponentRef("component_id", str(component.id))
    )
    if by_id in amounts:
        return amounts[by_id]
    by_type = ConsumptionKey(
        component.material_id,
        ComponentRef("component_type", component.component_type.value),
    )
    return amounts.get(by_type)


# ── Results ─────────────────────────────────────────────────────────────────


@dataclass
class RevertedMaterial:
    material_id: UUID
    material_name: str
    component_id: UUID
    component_type: str
    previous: Decimal
    new: Decimal
    restored: Decimal
    unit: str
    from_log: bool


@dataclass
class ReversalResult:
    reverted: list[RevertedMaterial] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


# ── Creation ────────────────────────────────────────────────────────────────


def generate_job_number(db: Session, order: Order) -> str:
    """JOB-<order number>, then JOB-<order number>-2, -3... for later cards."""
    base = f"JOB-{order.order_number}"
    sequence = db.query(JobCard).filter(JobCard.order_id == order.id).count() + 1
    while True:
        candidate = base if sequence == 1 else f"{base}-{sequence}"
        if not db.query(JobCard.id).filter(JobCard.job_number == candidate).first():
            return candidate
        sequence += 1


def get_job_card(db: Session, job_card_id: UUID) -> JobCard:
    job_card = db.query(JobCard).filter(JobCard.id == job_card_id).first()
    if not job_card:
        raise ValueError("Job card not found")
    return job_card


def create_job_card(
    db: Session,
    *,
    order_id: UUID,
    job_name: str,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> JobCard:
    """Open a job card for an order and consume its materials.

    Fails as a whole, leaving stock untouched, if any material is short.
    """
    try:
        order = db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise ValueError("Order not found")
        if order.status in (OrderStatus.CANCELLED, OrderStatus.DISPATCHED):
            raise ValueError(f"Cannot open a job card on a {order.status.value} order")

        job_card = JobCard(
            job_number=generate_job_number(db, order),
            job_name=job_name,
            order_id=order.id,
            notes=notes,
            created_by=user_id,
        )
        db.add(job_card)
        db.flush()

        consumed = 0
        for component in order.components:
            amount = to_decimal(component.consumption)
            if component.material_id is None or amount <= 0:
                continue
            apply_inventory_change(
                db,
                material_id=component.material_id,
                delta=-amount,
                transaction_type=TransactionType.CONSUMPTION,
                reference_type=ReferenceType.JOB_CARD,
                reference_id=job_card.id,
                reference_number=job_card.job_number,
                notes=f"Material consumed by {component.component_type.value} component",
                metadata={
                    "component_id": str(component.id),
                    "component_type": component.component_type.value,
                    "consumption_quantity": str(amount),
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "order_date": order.order_date.isoformat(),
                    "job_number": job_card.job_number,
                },
                user_id=user_id,
            )
            consumed += 1

        if order.status == OrderStatus.PENDING:
            order.status = OrderStatus.IN_PRODUCTION

        log_action(
            db,
            user_id=user_id,
            action="JOB_CARD_CREATED",
            resource_type="job_cards",
            resource_id=str(job_card.id),
            changes={
                "job_number": job_card.job_number,
                "order_number": order.order_number,
                "components_consumed": consumed,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(job_card)
    return job_card


# ── Reversal ────────────────────────────────────────────────────────────────


def reverse_job_card_consumption(
    db: Session, job_card: JobCard, user_id: UUID | None = None
) -> ReversalResult:
    """Give back to stock what *job_card* consumed, component by component.

    Amounts come from the card's consumption logs; a component with no log
    falls back to its current consumption figure. A component whose material
    has been removed is reported in ``errors`` and skipped. Does NOT commit.
    """
    result = ReversalResult()
    order = job_card.order

    logs = (
        db.query(InventoryTransactionLog)
        .filter(
            InventoryTransactionLog.reference_type == ReferenceType.JOB_CARD,
            InventoryTransactionLog.reference_id == job_card.id,
            InventoryTransactionLog.transaction_type == TransactionType.CONSUMPTION,
        )
        .all()
    )
    amounts = build_consumption_map(logs)

    for component in order.components:
        if component.material_id is None:
            continue

        logged = lookup_consumed(amounts, component)
        amount = logged if logged is not None else to_decimal(component.consumption)
        if amount <= 0:
            continue
        if logged is None:
            logger.warning(
                "No consumption log for %s component %s on %s; restoring current consumption %s",
                component.component_type.value,
                component.id,
                job_card.job_number,
                amount,
            )

        material = db.get(InventoryItem, component.material_id)
        if material is None:
            message = (
                f"Material {component.material_id} for {component.component_type.value} "
                f"component no longer exists"
            )
            logger.warning("%s (job card %s)", message, job_card.job_number)
            result.errors.append(message)
            continue

        entry = apply_inventory_change(
            db,
            material_id=component.material_id,
            delta=amount,
            transaction_type=TransactionType.JOB_CARD_REVERSAL,
            reference_type=ReferenceType.JOB_CARD,
            reference_id=job_card.id,
            reference_number=job_card.job_number,
            notes=(
                f"Material consumption reversal for job card deletion - restored {amount} "
                f"from {component.component_type.value} component (Order: {order.order_number})"
            ),
            metadata={
                "component_id": str(component.id),
                "component_type": component.component_type.value,
                "consumption_quantity": str(amount),
                "order_id": str(order.id),
                "order_number": order.order_number,
                "job_card_id": str(job_card.id),
                "job_number": job_card.job_number,
                "reversal": True,
            },
            user_id=user_id,
        )
        result.reverted.append(
            RevertedMaterial(
                material_id=material.id,
                material_name=material.material_name,
                component_id=component.id,
                component_type=component.component_type.value,
                previous=entry.previous_quantity,
                new=entry.new_quantity,
                restored=amount,
                unit=material.unit,
                from_log=logged is not None,
            )
        )

    logger.info(
        "Reversed %d components of job card %s (%d errors)",
        len(result.reverted),
        job_card.job_number,
        len(result.errors),
    )
    return result


# ── Deletion ────────────────────────────────────────────────────────────────


def validate_job_card_deletion(db: Session, job_card_id: UUID) -> list[str]:
    """Warnings about work already done on the card. Deletion stays allowed."""
    job_card = get_job_card(db, job_card_id)
    warnings: list[str] = []

    for model, stage in ((CuttingJob, "cutting"), (PrintingJob, "printing"), (StitchingJob, "stitching")):
        completed = (
            db.query(model)
            .filter(model.job_card_id == job_card.id, model.status == JobStatus.COMPLETED)
            .count()
        )
        if completed:
            warnings.append(
                f"{completed} completed {stage} job(s) will be deleted with this job card"
            )
    return warnings


def delete_job_card(
    db: Session, job_card_id: UUID, user_id: UUID | None = None
) -> ReversalResult:
    """Restore the card's consumption, then delete the card and its stage jobs."""
    try:
        job_card = get_job_card(db, job_card_id)
        job_number = job_card.job_number
        result = reverse_job_card_consumption(db, job_card, user_id)
        delete_job_card_rows(db, [job_card.id])

        log_action(
            db,
            user_id=user_id,
            action="JOB_CARD_DELETED",
            resource_type="job_cards",
            resource_id=str(job_card_id),
            changes={
                "job_number": job_number,
                "restored": len(result.reverted),
                "errors": result.errors,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result


def bulk_delete_job_cards(
    db: Session, job_card_ids: list[UUID], user_id: UUID | None = None
) -> dict[UUID, ReversalResult]:
    """Delete several job cards in one transaction."""
    results: dict[UUID, ReversalResult] = {}
    try:
        job_cards = db.query(JobCard).filter(JobCard.id.in_(job_card_ids)).all()
        missing = set(job_card_ids) - {jc.id for jc in job_cards}
        if missing:
            raise ValueError(f"Job card not found: {', '.join(str(m) for m in missing)}")

        for job_card in job_cards:
            results[job_card.id] = reverse_job_card_consumption(db, job_card, user_id)
        delete_job_card_rows(db, [jc.id for jc in job_cards])

        log_action(
            db,
            user_id=user_id,
            action="JOB_CARDS_BULK_DELETED",
            resource_type="job_cards",
            resource_id=",".join(str(i) for i in job_card_ids),
            changes={"count": len(job_cards)},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return results
