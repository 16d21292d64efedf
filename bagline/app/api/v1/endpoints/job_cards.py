from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.models.production import JobCard
from bagline.app.models.user import User
from bagline.app.schemas.order import BulkDeleteRequest, BulkDeleteResult
from bagline.app.schemas.production import (
    DeletionCheckOut,
    JobCardCreate,
    JobCardOut,
    ReversalOut,
)
from bagline.app.services.job_cards import (
    ReversalResult,
    bulk_delete_job_cards,
    create_job_card,
    delete_job_card,
    get_job_card,
    validate_job_card_deletion,
)

router = APIRouter()


def _error(e: ValueError) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if str(e) in ("Job card not found", "Order not found")
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(e))


def _reversal_out(result: ReversalResult) -> ReversalOut:
    return ReversalOut(
        success=result.success,
        reverted=[asdict(r) for r in result.reverted],
        errors=result.errors,
    )


@router.get("", response_model=list[JobCardOut])
def list_job_cards(
    order_id: UUID | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("jobcard:read")),
) -> list[JobCard]:
    query = db.query(JobCard)
    if order_id is not None:
        query = query.filter(JobCard.order_id == order_id)
    return query.order_by(JobCard.created_at.desc()).all()


@router.post("", response_model=JobCardOut, status_code=status.HTTP_201_CREATED)
def post_job_card(
    payload: JobCardCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("jobcard:write")),
) -> JobCard:
    try:
        return create_job_card(
            db,
            order_id=payload.order_id,
            job_name=payload.job_name,
            notes=payload.notes,
            user_id=current_user.id,
        )
    except ValueError as e:
        raise _error(e)


@router.post("/bulk-delete", response_model=BulkDeleteResult)
def post_bulk_delete(
    payload: BulkDeleteRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("jobcard:delete")),
) -> BulkDeleteResult:
    try:
        results = bulk_delete_job_cards(db, payload.ids, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)
    return BulkDeleteResult(deleted=len(results))


@router.get("/{job_card_id}", response_model=JobCardOut)
def read_job_card(
    job_card_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("jobcard:read")),
) -> JobCard:
    try:
        return get_job_card(db, job_card_id)
    except ValueError as e:
        raise _error(e)


@router.get("/{job_card_id}/deletion-check", response_model=DeletionCheckOut)
def read_deletion_check(
    job_card_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("jobcard:read")),
) -> DeletionCheckOut:
    try:
        warnings = validate_job_card_deletion(db, job_card_id)
    except ValueError as e:
        raise _error(e)
    return DeletionCheckOut(job_card_id=job_card_id, warnings=warnings)


@router.delete("/{job_card_id}", response_model=ReversalOut)
def remove_job_card(
    job_card_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("jobcard:delete")),
) -> ReversalOut:
    try:
        result = delete_job_card(db, job_card_id, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)
    return _reversal_out(result)
