from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from bagline.app.models.order import ComponentType, OrderStatus


class OrderComponentCreate(BaseModel):
    component_type: ComponentType
    custom_name: str | None = None
    material_id: UUID | None = None
    color: str | None = None
    gsm: str | None = None
    size: str | None = None
    length: Decimal | None = None
    width: Decimal | None = None
    roll_width: Decimal | None = None
    formula: str | None = None
    is_manual_consumption: bool = False
    # for manual components: the per-bag figure, scaled by the order quantity
    consumption: Decimal | None = None
    material_rate: Decimal | None = None

    @field_validator("consumption", "length", "width", "roll_width", "material_rate")
    @classmethod
    def non_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("Value must be non-negative")
        return v


class OrderComponentOut(BaseModel):
    id: UUID
    component_type: ComponentType
    custom_name: str | None
    material_id: UUID | None
    color: str | None
    gsm: str | None
    size: str | None
    length: Decimal | None
    width: Decimal | None
    roll_width: Decimal | None
    formula: str | None
    is_manual_consumption: bool
    base_consumption: Decimal | None
    consumption: Decimal | None
    material_rate: Decimal | None

    class Config:
        from_attributes = True


class OrderCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    quantity: int
    order_number: str | None = None
    order_date: date | None = None
    delivery_date: date | None = None
    bag_length: Decimal = Decimal("0")
    bag_width: Decimal = Decimal("0")
    rate: Decimal | None = None
    special_instructions: str | None = None
    components: list[OrderComponentCreate] = []

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v


class OrderQuantityUpdate(BaseModel):
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v


class OrderOut(BaseModel):
    id: UUID
    order_number: str
    company_name: str
    quantity: int
    bag_length: Decimal
    bag_width: Decimal
    rate: Decimal | None
    order_date: date
    delivery_date: date | None
    status: OrderStatus
    special_instructions: str | None
    created_at: datetime | None
    components: list[OrderComponentOut]

    class Config:
        from_attributes = True


class OrderCostOut(BaseModel):
    order_id: UUID
    material_cost: Decimal
    production_cost: Decimal
    total_cost: Decimal
    cost_per_bag: Decimal
    selling_price: Decimal


class BulkDeleteRequest(BaseModel):
    ids: list[UUID]

    @field_validator("ids")
    @classmethod
    def not_empty(cls, v: list[UUID]) -> list[UUID]:
        if not v:
            raise ValueError("At least one id is required")
        return v


class BulkDeleteResult(BaseModel):
    deleted: int


# ─── Dispatch ─────────────────────────────────────────────────────────────────


class DispatchCreate(BaseModel):
    order_id: UUID
    recipient_name: str
    delivery_address: str
    delivery_date: date
    tracking_number: str | None = None
    quality_checked: bool = False
    quantity_checked: bool = False
    notes: str | None = None


class DispatchOut(BaseModel):
    id: UUID
    order_id: UUID
    recipient_name: str
    delivery_address: str
    delivery_date: date
    tracking_number: str | None
    quality_checked: bool
    quantity_checked: bool
    notes: str | None

    class Config:
        from_attributes = True
