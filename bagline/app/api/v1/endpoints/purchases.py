from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.models.supplier import Purchase, PurchaseStatus, Supplier
from bagline.app.models.user import User
from bagline.app.schemas.supplier import (
    PurchaseCreate,
    PurchaseOut,
    PurchaseStatusUpdate,
    SupplierCreate,
    SupplierOut,
)
from bagline.app.services.purchases import (
    complete_purchase,
    create_purchase,
    delete_purchase,
    get_purchase,
    update_purchase_status,
)

router = APIRouter()


def _error(e: ValueError) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if str(e) == "Purchase not found"
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(e))


# ─── Suppliers ───────────────────────────────────────────────────────────────


@router.get("/suppliers", response_model=list[SupplierOut])
def list_suppliers(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("purchase:read")),
) -> list[Supplier]:
    return db.query(Supplier).order_by(Supplier.name).all()


@router.post("/suppliers", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("purchase:write")),
) -> Supplier:
    supplier = Supplier(**payload.model_dump())
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


# ─── Purchases ───────────────────────────────────────────────────────────────


@router.get("", response_model=list[PurchaseOut])
def list_purchases(
    status_filter: PurchaseStatus | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("purchase:read")),
) -> list[Purchase]:
    query = db.query(Purchase)
    if status_filter is not None:
        query = query.filter(Purchase.status == status_filter)
    return query.order_by(Purchase.purchase_date.desc()).all()


@router.post("", response_model=PurchaseOut, status_code=status.HTTP_201_CREATED)
def post_purchase(
    payload: PurchaseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("purchase:write")),
) -> Purchase:
    try:
        return create_purchase(
            db,
            items=[i.model_dump() for i in payload.items],
            purchase_date=payload.purchase_date,
            supplier_id=payload.supplier_id,
            purchase_number=payload.purchase_number,
            transport_charge=payload.transport_charge,
            notes=payload.notes,
            user_id=current_user.id,
        )
    except ValueError as e:
        raise _error(e)


@router.get("/{purchase_id}", response_model=PurchaseOut)
def read_purchase(
    purchase_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("purchase:read")),
) -> Purchase:
    try:
        return get_purchase(db, purchase_id)
    except ValueError as e:
        raise _error(e)


@router.post("/{purchase_id}/complete", response_model=PurchaseOut)
def post_complete(
    purchase_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("purchase:write")),
) -> Purchase:
    try:
        return complete_purchase(db, purchase_id, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)


@router.patch("/{purchase_id}/status", response_model=PurchaseOut)
def patch_status(
    purchase_id: UUID,
    payload: PurchaseStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("purchase:write")),
) -> Purchase:
    try:
        return update_purchase_status(db, purchase_id, payload.status, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_purchase(
    purchase_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("purchase:write")),
) -> None:
    try:
        delete_purchase(db, purchase_id, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)
