from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from bagline.app.models.inventory import ReferenceType, TransactionType


class InventoryItemCreate(BaseModel):
    material_name: str = Field(..., min_length=1, max_length=255)
    unit: str = Field(..., min_length=1, max_length=50)
    alternate_unit: str | None = None
    conversion_rate: Decimal | None = None
    color: str | None = None
    gsm: str | None = None
    roll_width: Decimal | None = None
    purchase_rate: Decimal | None = None
    selling_price: Decimal | None = None
    reorder_level: Decimal = Decimal("0")
    opening_quantity: Decimal = Decimal("0")

    @field_validator("purchase_rate", "selling_price")
    @classmethod
    def price_non_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("Price must be non-negative")
        return v

    @field_validator("opening_quantity")
    @classmethod
    def opening_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Opening quantity must be non-negative")
        return v


class InventoryItemUpdate(BaseModel):
    material_name: str | None = None
    unit: str | None = None
    alternate_unit: str | None = None
    conversion_rate: Decimal | None = None
    color: str | None = None
    gsm: str | None = None
    roll_width: Decimal | None = None
    purchase_rate: Decimal | None = None
    selling_price: Decimal | None = None
    reorder_level: Decimal | None = None
    # NOTE: quantity is intentionally excluded; stock moves only through
    # purchases, job cards and adjustments so every change is logged.


class InventoryItemOut(BaseModel):
    id: UUID
    material_name: str
    unit: str
    alternate_unit: str | None
    conversion_rate: Decimal | None
    color: str | None
    gsm: str | None
    roll_width: Decimal | None
    purchase_rate: Decimal | None
    selling_price: Decimal | None
    reorder_level: Decimal
    quantity: Decimal

    class Config:
        from_attributes = True


class StockAdjustmentCreate(BaseModel):
    delta: Decimal
    notes: str | None = None

    @field_validator("delta")
    @classmethod
    def delta_not_zero(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("Adjustment must not be zero")
        return v


class TransactionLogOut(BaseModel):
    id: UUID
    material_id: UUID | None
    transaction_type: TransactionType
    quantity: Decimal
    previous_quantity: Decimal
    new_quantity: Decimal
    reference_type: ReferenceType | None
    reference_id: UUID | None
    reference_number: str | None
    notes: str | None
    metadata: dict[str, Any] = Field(validation_alias="metadata_")
    transaction_date: datetime

    class Config:
        from_attributes = True


class TransactionHistoryStats(BaseModel):
    total_transaction_logs: int
    oldest_log_date: datetime | None
    newest_log_date: datetime | None
    materials_with_transactions: int
    by_type: dict[str, int]


class ClearHistoryRequest(BaseModel):
    confirmation: str
    start: datetime | None = None
    end: datetime | None = None
    material_id: UUID | None = None
    log_ids: list[UUID] | None = None


class ClearHistoryResult(BaseModel):
    deleted_transaction_logs: int


class HardDeletePreview(BaseModel):
    inventory_id: UUID
    material_name: str
    quantity: Decimal
    purchase_items: int
    order_components: int
    transaction_logs: int
