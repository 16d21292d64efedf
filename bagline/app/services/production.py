from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from bagline.app.models.order import OrderComponent, OrderStatus
from bagline.app.models.production import (
    CuttingComponent,
    CuttingJob,
    JobCard,
    JobStatus,
    PrintingJob,
    StitchingJob,
)
from bagline.app.services.audit import log_action

logger = logging.getLogger(__name__)

STAGE_MODELS: dict[str, type[CuttingJob] | type[PrintingJob] | type[StitchingJob]] = {
    "cutting": CuttingJob,
    "printing": PrintingJob,
    "stitching": StitchingJob,
}

_STITCHING_PARTS = (
    "part_quantity",
    "border_quantity",
    "handle_quantity",
    "chain_quantity",
    "runner_quantity",
    "piping_quantity",
)


def _get_job_card(db: Session, job_card_id: UUID) -> JobCard:
    job_card = db.query(JobCard).filter(JobCard.id == job_card_id).first()
    if not job_card:
        raise ValueError("Job card not found")
    return job_card


def _build_cutting_components(
    db: Session, job_card: JobCard, components: list[dict[str, Any]]
) -> list[CuttingComponent]:
    """Each cutting line must point at a component of the job card's order."""
    rows = []
    for raw in components:
        component_id = raw.get("component_id")
        if component_id is None:
            raise ValueError("Every cutting component needs a component_id")
        component = (
            db.query(OrderComponent)
            .filter(
                OrderComponent.id == component_id,
                OrderComponent.order_id == job_card.order_id,
            )
            .first()
        )
        if component is None:
            raise ValueError(f"Order component {component_id} does not belong to this job card's order")
        rows.append(
            CuttingComponent(
                component_id=component.id,
                **{k: v for k, v in raw.items() if k != "component_id"},
            )
        )
    return rows


# ── Cutting ─────────────────────────────────────────────────────────────────


def create_cutting_job(
    db: Session,
    *,
    job_card_id: UUID,
    roll_width: Decimal,
    components: list[dict[str, Any]],
    consumption_meters: Decimal | None = None,
    worker_name: str | None = None,
    is_internal: bool = True,
    provided_quantity: int | None = None,
    user_id: UUID | None = None,
) -> CuttingJob:
    try:
        job_card = _get_job_card(db, job_card_id)
        job = CuttingJob(
            job_card_id=job_card.id,
            roll_width=roll_width,
            consumption_meters=consumption_meters,
            worker_name=worker_name,
            is_internal=is_internal,
            provided_quantity=provided_quantity,
        )
        job.components = _build_cutting_components(db, job_card, components)
        db.add(job)
        db.flush()

        log_action(
            db,
            user_id=user_id,
            action="CUTTING_JOB_CREATED",
            resource_type="cutting_jobs",
            resource_id=str(job.id),
            changes={"job_number": job_card.job_number, "components": len(components)},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(job)
    return job


def update_cutting_job(
    db: Session,
    cutting_job_id: UUID,
    *,
    changes: dict[str, Any],
    components: list[dict[str, Any]] | None = None,
    user_id: UUID | None = None,
) -> CuttingJob:
    """Update a cutting job; a given component list replaces the old one."""
    try:
        job = db.query(CuttingJob).filter(CuttingJob.id == cutting_job_id).first()
        if not job:
            raise ValueError("Cutting job not found")

        for field, value in changes.items():
            setattr(job, field, value)
        if components is not None:
            job.components = _build_cutting_components(db, job.job_card, components)

        log_action(
            db,
            user_id=user_id,
            action="CUTTING_JOB_UPDATED",
            resource_type="cutting_jobs",
            resource_id=str(job.id),
            changes={k: str(v) for k, v in changes.items()},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(job)
    return job


# ── Printing / stitching ────────────────────────────────────────────────────


def _create_stage_job(
    db: Session,
    model: type[PrintingJob] | type[StitchingJob],
    action: str,
    job_card_id: UUID,
    fields: dict[str, Any],
    user_id: UUID | None,
) -> PrintingJob | StitchingJob:
    try:
        job_card = _get_job_card(db, job_card_id)
        job = model(job_card_id=job_card.id, **fields)
        db.add(job)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action=action,
            resource_type=model.__tablename__,
            resource_id=str(job.id),
            changes={"job_number": job_card.job_number, **fields},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(job)
    return job


def create_printing_job(
    db: Session, *, job_card_id: UUID, fields: dict[str, Any], user_id: UUID | None = None
) -> PrintingJob:
    return _create_stage_job(
        db, PrintingJob, "PRINTING_JOB_CREATED", job_card_id, fields, user_id
    )


def create_stitching_job(
    db: Session, *, job_card_id: UUID, fields: dict[str, Any], user_id: UUID | None = None
) -> StitchingJob:
    fields = dict(fields)
    if fields.get("total_quantity") is None:
        fields["total_quantity"] = sum(fields.get(p) or 0 for p in _STITCHING_PARTS)
    return _create_stage_job(
        db, StitchingJob, "STITCHING_JOB_CREATED", job_card_id, fields, user_id
    )


def update_stage_job(
    db: Session,
    stage: str,
    job_id: UUID,
    *,
    changes: dict[str, Any],
    user_id: UUID | None = None,
) -> PrintingJob | StitchingJob:
    """Edit a printing or stitching job (worker, rate, provided/received pieces...)."""
    if stage not in ("printing", "stitching"):
        raise ValueError(f"Unknown production stage: {stage}")
    if "status" in changes:
        raise ValueError("Use the status endpoint to move a job between statuses")
    model = STAGE_MODELS[stage]

    try:
        job = db.query(model).filter(model.id == job_id).first()
        if not job:
            raise ValueError(f"{stage.capitalize()} job not found")

        for field, value in changes.items():
            setattr(job, field, value)
        if stage == "stitching" and "total_quantity" not in changes and any(
            p in changes for p in _STITCHING_PARTS
        ):
            job.total_quantity = sum(getattr(job, p) or 0 for p in _STITCHING_PARTS)

        log_action(
            db,
            user_id=user_id,
            action=f"{stage.upper()}_JOB_UPDATED",
            resource_type=model.__tablename__,
            resource_id=str(job.id),
            changes={k: str(v) for k, v in changes.items()},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(job)
    return job


def update_stage_status(
    db: Session,
    stage: str,
    job_id: UUID,
    new_status: JobStatus,
    user_id: UUID | None = None,
) -> CuttingJob | PrintingJob | StitchingJob:
    """Move a stage job to *new_status*.

    Starting a stage puts the job card in progress and the order into that
    stage.
    """
    model = STAGE_MODELS.get(stage)
    if model is None:
        raise ValueError(f"Unknown production stage: {stage}")

    try:
        job = db.query(model).filter(model.id == job_id).first()
        if not job:
            raise ValueError(f"{stage.capitalize()} job not found")

        old_status = job.status
        job.status = new_status
        if new_status == JobStatus.IN_PROGRESS:
            job_card = job.job_card
            if job_card.status == JobStatus.PENDING:
                job_card.status = JobStatus.IN_PROGRESS
            if job_card.order.status not in (OrderStatus.CANCELLED, OrderStatus.DISPATCHED):
                job_card.order.status = OrderStatus(stage)

        log_action(
            db,
            user_id=user_id,
            action="STAGE_STATUS_CHANGED",
            resource_type=model.__tablename__,
            resource_id=str(job.id),
            changes={"old": old_status.value, "new": new_status.value},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(job)
    logger.info("%s job %s: %s -> %s", stage, job.id, old_status.value, new_status.value)
    return job
