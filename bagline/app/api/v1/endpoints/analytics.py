from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.models.user import User
from bagline.app.schemas.billing import StageName
from bagline.app.services.analytics import (
    inventory_valuation,
    material_consumption_report,
    partner_performance,
    refill_needs,
    sales_summary,
    wastage_report,
)

router = APIRouter()


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ─── Production ──────────────────────────────────────────────────────────────


@router.get("/wastage")
def wastage(
    job_type: StageName | None = Query(None),
    worker: str | None = Query(None),
    order: str | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("analytics:read")),
) -> dict[str, object]:
    try:
        return wastage_report(
            db, job_type=job_type, worker=worker, order=order, start=from_date, end=to_date
        )
    except ValueError as e:
        raise _bad_request(e)


@router.get("/partner-performance")
def partners(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("analytics:read")),
) -> list[dict[str, object]]:
    return partner_performance(db)


# ─── Materials ───────────────────────────────────────────────────────────────


@router.get("/material-consumption")
def material_consumption(
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("analytics:read")),
) -> dict[str, object]:
    try:
        return material_consumption_report(db, start=from_date, end=to_date)
    except ValueError as e:
        raise _bad_request(e)


@router.get("/inventory-value")
def inventory_value(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("analytics:read")),
) -> dict[str, object]:
    return inventory_valuation(db)


@router.get("/refill-needs")
def refill(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("analytics:read")),
) -> list[dict[str, object]]:
    return refill_needs(db)


# ─── Sales ───────────────────────────────────────────────────────────────────


@router.get("/sales")
def sales(
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("analytics:read")),
) -> dict[str, object]:
    try:
        return sales_summary(db, start=from_date, end=to_date)
    except ValueError as e:
        raise _bad_request(e)
