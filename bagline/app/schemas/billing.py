from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, field_validator

from bagline.app.models.billing import VendorBillStatus

StageName = Literal["cutting", "printing", "stitching"]


def _non_negative(v: Decimal | None) -> Decimal | None:
    if v is not None and v < 0:
        raise ValueError("Value must be non-negative")
    return v


def _gst_in_range(v: Decimal) -> Decimal:
    if v < 0 or v > 100:
        raise ValueError("GST percentage must be between 0 and 100")
    return v


# ─── Vendors ──────────────────────────────────────────────────────────────────


class VendorCreate(BaseModel):
    name: str
    contact_person: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    service_type: StageName | None = None
    gst_number: str | None = None


class VendorOut(BaseModel):
    id: UUID
    name: str
    contact_person: str | None
    phone: str | None
    email: str | None
    address: str | None
    service_type: str | None
    gst_number: str | None

    class Config:
        from_attributes = True


# ─── Vendor bills ─────────────────────────────────────────────────────────────


class VendorBillCreate(BaseModel):
    vendor_id: UUID
    job_type: StageName
    job_id: UUID
    quantity: Decimal | None = None
    rate: Decimal | None = None
    gst_percentage: Decimal = Decimal("18")
    other_expenses: Decimal = Decimal("0")
    product_name: str | None = None
    bill_number: str | None = None
    bill_date: date | None = None
    notes: str | None = None

    @field_validator("quantity", "rate", "other_expenses")
    @classmethod
    def amounts_non_negative(cls, v: Decimal | None) -> Decimal | None:
        return _non_negative(v)

    @field_validator("gst_percentage")
    @classmethod
    def gst_in_range(cls, v: Decimal) -> Decimal:
        return _gst_in_range(v)


class VendorBillStatusUpdate(BaseModel):
    status: VendorBillStatus


class VendorBillOut(BaseModel):
    id: UUID
    bill_number: str
    vendor_id: UUID
    job_type: str
    job_id: UUID
    job_card_id: UUID | None
    order_id: UUID | None
    order_number: str | None
    company_name: str | None
    product_name: str
    quantity: Decimal
    rate: Decimal
    subtotal: Decimal
    gst_percentage: Decimal
    gst_amount: Decimal
    other_expenses: Decimal
    total_amount: Decimal
    status: VendorBillStatus
    bill_date: date
    paid_at: datetime | None
    notes: str | None

    class Config:
        from_attributes = True


# ─── Sales invoices ───────────────────────────────────────────────────────────


class SalesInvoiceCreate(BaseModel):
    order_id: UUID
    quantity: Decimal | None = None
    rate: Decimal | None = None
    product_name: str | None = None
    gst_percentage: Decimal = Decimal("18")
    transport_included: bool = True
    transport_charge: Decimal = Decimal("0")
    other_expenses: Decimal = Decimal("0")
    invoice_number: str | None = None
    invoice_date: date | None = None
    notes: str | None = None

    @field_validator("quantity", "rate", "transport_charge", "other_expenses")
    @classmethod
    def amounts_non_negative(cls, v: Decimal | None) -> Decimal | None:
        return _non_negative(v)

    @field_validator("gst_percentage")
    @classmethod
    def gst_in_range(cls, v: Decimal) -> Decimal:
        return _gst_in_range(v)


class SalesInvoiceOut(BaseModel):
    id: UUID
    invoice_number: str
    order_id: UUID | None
    order_number: str | None
    company_name: str
    product_name: str
    quantity: Decimal
    rate: Decimal
    transport_included: bool
    transport_charge: Decimal
    gst_percentage: Decimal
    subtotal: Decimal
    gst_amount: Decimal
    other_expenses: Decimal
    total_amount: Decimal
    invoice_date: date
    notes: str | None

    class Config:
        from_attributes = True
