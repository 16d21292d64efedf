from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator

from bagline.app.models.supplier import PurchaseStatus


# ─── Supplier ─────────────────────────────────────────────────────────────────


class SupplierCreate(BaseModel):
    name: str
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    gst_number: str | None = None
    address: str | None = None


class SupplierOut(BaseModel):
    id: UUID
    name: str
    contact_person: str | None
    email: str | None
    phone: str | None
    gst_number: str | None
    address: str | None

    class Config:
        from_attributes = True


# ─── Purchase ─────────────────────────────────────────────────────────────────


class PurchaseItemCreate(BaseModel):
    material_id: UUID
    quantity: Decimal
    unit_price: Decimal
    alt_quantity: Decimal | None = None
    alt_unit_price: Decimal | None = None
    gst_rate: Decimal = Decimal("0")
    actual_meter: Decimal = Decimal("0")

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v

    @field_validator("unit_price", "alt_unit_price", "alt_quantity", "actual_meter")
    @classmethod
    def non_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("Value must be non-negative")
        return v

    @field_validator("gst_rate")
    @classmethod
    def gst_in_range(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 100:
            raise ValueError("GST rate must be between 0 and 100")
        return v


class PurchaseItemOut(BaseModel):
    id: UUID
    material_id: UUID | None
    quantity: Decimal
    unit_price: Decimal
    alt_quantity: Decimal | None
    alt_unit_price: Decimal | None
    gst_rate: Decimal
    actual_meter: Decimal
    base_amount: Decimal
    gst_amount: Decimal
    transport_share: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class PurchaseCreate(BaseModel):
    supplier_id: UUID | None = None
    purchase_number: str | None = None
    purchase_date: date | None = None
    transport_charge: Decimal = Decimal("0")
    notes: str | None = None
    items: list[PurchaseItemCreate]

    @field_validator("items")
    @classmethod
    def at_least_one_item(cls, v: list[PurchaseItemCreate]) -> list[PurchaseItemCreate]:
        if len(v) == 0:
            raise ValueError("Purchase must have at least one item")
        return v

    @field_validator("transport_charge")
    @classmethod
    def transport_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Transport charge must be non-negative")
        return v


class PurchaseStatusUpdate(BaseModel):
    status: PurchaseStatus


class PurchaseOut(BaseModel):
    id: UUID
    purchase_number: str
    supplier_id: UUID | None
    purchase_date: date
    status: PurchaseStatus
    transport_charge: Decimal
    subtotal: Decimal
    gst_total: Decimal
    total_amount: Decimal
    notes: str | None
    completed_at: datetime | None
    items: list[PurchaseItemOut]

    class Config:
        from_attributes = True
