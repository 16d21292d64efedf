from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.models.inventory import InventoryItem, ReferenceType, TransactionType
from bagline.app.models.user import User
from bagline.app.schemas.inventory import (
    ClearHistoryRequest,
    ClearHistoryResult,
    HardDeletePreview,
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    StockAdjustmentCreate,
    TransactionHistoryStats,
    TransactionLogOut,
)
from bagline.app.services.inventory import (
    adjust_stock,
    clear_transaction_history,
    create_inventory_item,
    get_inventory_item,
    list_transaction_logs,
    transaction_history_stats,
    update_inventory_item,
)
from bagline.app.services.procedures import (
    hard_delete_inventory_with_consumption_preserve,
    preview_inventory_hard_deletion,
)

router = APIRouter()


def _not_found(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ─── Transaction history ─────────────────────────────────────────────────────


@router.get("/transactions", response_model=list[TransactionLogOut])
def get_transactions(
    material_id: UUID | None = None,
    reference_type: ReferenceType | None = None,
    reference_id: UUID | None = None,
    transaction_type: TransactionType | None = None,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("inventory:read")),
):
    return list_transaction_logs(
        db,
        material_id=material_id,
        reference_type=reference_type,
        reference_id=reference_id,
        transaction_type=transaction_type,
        limit=limit,
    )


@router.get("/transactions/stats", response_model=TransactionHistoryStats)
def get_transaction_stats(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_permission("inventory:history")),
):
    return transaction_history_stats(db)


@router.delete("/transactions", response_model=ClearHistoryResult)
def delete_transactions(
    payload: ClearHistoryRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("inventory:history")),
) -> ClearHistoryResult:
    try:
        deleted = clear_transaction_history(
            db,
            confirmation=payload.confirmation,
            start=payload.start,
            end=payload.end,
            material_id=payload.material_id,
            log_ids=payload.log_ids,
            user_id=current_user.id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ClearHistoryResult(deleted_transaction_logs=deleted)


# ─── Materials ───────────────────────────────────────────────────────────────


@router.get("", response_model=list[InventoryItemOut])
def list_items(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("inventory:read")),
) -> list[InventoryItem]:
    return db.query(InventoryItem).order_by(InventoryItem.material_name).all()


@router.post("", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: InventoryItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("inventory:write")),
) -> InventoryItem:
    fields = payload.model_dump(exclude={"opening_quantity"})
    return create_inventory_item(
        db,
        fields=fields,
        opening_quantity=payload.opening_quantity,
        user_id=current_user.id,
    )


@router.get("/{item_id}", response_model=InventoryItemOut)
def get_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("inventory:read")),
) -> InventoryItem:
    try:
        return get_inventory_item(db, item_id)
    except ValueError as e:
        raise _not_found(e)


@router.patch("/{item_id}", response_model=InventoryItemOut)
def update_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("inventory:write")),
) -> InventoryItem:
    try:
        return update_inventory_item(
            db,
            item_id,
            changes=payload.model_dump(exclude_unset=True),
            user_id=current_user.id,
        )
    except ValueError as e:
        raise _not_found(e)


@router.post("/{item_id}/adjust", response_model=TransactionLogOut)
def post_adjustment(
    item_id: UUID,
    payload: StockAdjustmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("inventory:write")),
):
    try:
        return adjust_stock(
            db, item_id, delta=payload.delta, notes=payload.notes, user_id=current_user.id
        )
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{item_id}/hard-delete-preview", response_model=HardDeletePreview)
def get_hard_delete_preview(
    item_id: UUID,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_permission("inventory:delete")),
):
    try:
        return preview_inventory_hard_deletion(db, item_id)
    except ValueError as e:
        raise _not_found(e)


@router.delete("/{item_id}", response_model=HardDeletePreview)
def hard_delete_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("inventory:delete")),
):
    try:
        summary = hard_delete_inventory_with_consumption_preserve(
            db, item_id, user_id=current_user.id
        )
    except ValueError as e:
        db.rollback()
        raise _not_found(e)
    db.commit()
    return summary
