from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bagline.app.api.deps import get_current_user
from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.core.permissions import permissions_for
from bagline.app.models.production import CuttingJob, PrintingJob, StitchingJob
from bagline.app.models.user import User
from bagline.app.schemas.production import (
    CuttingJobCreate,
    CuttingJobOut,
    CuttingJobUpdate,
    PrintingJobCreate,
    PrintingJobOut,
    StageJobUpdate,
    StageStatusUpdate,
    StitchingJobCreate,
    StitchingJobOut,
)
from bagline.app.services.production import (
    STAGE_MODELS,
    create_cutting_job,
    create_printing_job,
    create_stitching_job,
    update_cutting_job,
    update_stage_job,
    update_stage_status,
)

router = APIRouter()

_STAGE_OUT = {
    "cutting": CuttingJobOut,
    "printing": PrintingJobOut,
    "stitching": StitchingJobOut,
}


def _error(e: ValueError) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if str(e).endswith("not found")
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(e))


def _check_stage_access(stage: str, user: User) -> None:
    if stage not in STAGE_MODELS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown production stage: {stage}")
    if f"{stage}:write" not in permissions_for(user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing permissions: {stage}:write",
        )


# ─── Cutting ─────────────────────────────────────────────────────────────────


@router.post("/cutting", response_model=CuttingJobOut, status_code=status.HTTP_201_CREATED)
def post_cutting_job(
    payload: CuttingJobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("cutting:write")),
) -> CuttingJob:
    try:
        return create_cutting_job(
            db,
            job_card_id=payload.job_card_id,
            roll_width=payload.roll_width,
            components=[c.model_dump() for c in payload.components],
            consumption_meters=payload.consumption_meters,
            worker_name=payload.worker_name,
            is_internal=payload.is_internal,
            provided_quantity=payload.provided_quantity,
            user_id=current_user.id,
        )
    except ValueError as e:
        db.rollback()
        raise _error(e)


@router.patch("/cutting/{job_id}", response_model=CuttingJobOut)
def patch_cutting_job(
    job_id: UUID,
    payload: CuttingJobUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("cutting:write")),
) -> CuttingJob:
    changes = payload.model_dump(exclude_unset=True, exclude={"components"})
    components = (
        [c.model_dump() for c in payload.components]
        if payload.components is not None
        else None
    )
    try:
        return update_cutting_job(
            db, job_id, changes=changes, components=components, user_id=current_user.id
        )
    except ValueError as e:
        db.rollback()
        raise _error(e)


# ─── Printing / stitching ────────────────────────────────────────────────────


@router.post("/printing", response_model=PrintingJobOut, status_code=status.HTTP_201_CREATED)
def post_printing_job(
    payload: PrintingJobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("printing:write")),
) -> PrintingJob:
    try:
        return create_printing_job(
            db,
            job_card_id=payload.job_card_id,
            fields=payload.model_dump(exclude={"job_card_id"}),
            user_id=current_user.id,
        )
    except ValueError as e:
        raise _error(e)


@router.post("/stitching", response_model=StitchingJobOut, status_code=status.HTTP_201_CREATED)
def post_stitching_job(
    payload: StitchingJobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("stitching:write")),
) -> StitchingJob:
    try:
        return create_stitching_job(
            db,
            job_card_id=payload.job_card_id,
            fields=payload.model_dump(exclude={"job_card_id"}),
            user_id=current_user.id,
        )
    except ValueError as e:
        raise _error(e)


@router.patch("/{stage}/{job_id}")
def patch_stage_job(
    stage: str,
    job_id: UUID,
    payload: StageJobUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    _check_stage_access(stage, current_user)
    try:
        job = update_stage_job(
            db,
            stage,
            job_id,
            changes=payload.model_dump(exclude_unset=True),
            user_id=current_user.id,
        )
    except ValueError as e:
        raise _error(e)
    return _STAGE_OUT[stage].model_validate(job)


# ─── Stage status ────────────────────────────────────────────────────────────


@router.patch("/{stage}/{job_id}/status")
def patch_stage_status(
    stage: str,
    job_id: UUID,
    payload: StageStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    _check_stage_access(stage, current_user)
    try:
        job = update_stage_status(db, stage, job_id, payload.status, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)
    return _STAGE_OUT[stage].model_validate(job)
