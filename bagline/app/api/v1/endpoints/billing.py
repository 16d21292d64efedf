from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bagline.app.api.permission_deps import require_permission
from bagline.app.core.database import get_db
from bagline.app.models.billing import SalesInvoice, Vendor, VendorBill, VendorBillStatus
from bagline.app.models.user import User
from bagline.app.schemas.billing import (
    SalesInvoiceCreate,
    SalesInvoiceOut,
    StageName,
    VendorBillCreate,
    VendorBillOut,
    VendorBillStatusUpdate,
    VendorCreate,
    VendorOut,
)
from bagline.app.services.billing import (
    create_sales_invoice,
    create_vendor,
    create_vendor_bill,
    get_sales_invoice,
    get_vendor_bill,
    list_billable_jobs,
    list_sales_invoices,
    list_vendor_bills,
    list_vendors,
    update_vendor_bill_status,
)

router = APIRouter()


def _error(e: ValueError) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if str(e).endswith("not found")
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(e))


# ─── Vendors ─────────────────────────────────────────────────────────────────


@router.get("/vendors", response_model=list[VendorOut])
def read_vendors(
    service_type: StageName | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("billing:read")),
) -> list[Vendor]:
    return list_vendors(db, service_type)


@router.post("/vendors", response_model=VendorOut, status_code=status.HTTP_201_CREATED)
def post_vendor(
    payload: VendorCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("billing:write")),
) -> Vendor:
    return create_vendor(db, fields=payload.model_dump(), user_id=current_user.id)


# ─── Vendor bills ────────────────────────────────────────────────────────────


@router.get("/vendor-bills/billable-jobs")
def read_billable_jobs(
    job_type: StageName | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("billing:read")),
) -> list[dict[str, Any]]:
    return list_billable_jobs(db, job_type)


@router.get("/vendor-bills", response_model=list[VendorBillOut])
def read_vendor_bills(
    vendor_id: UUID | None = None,
    status_filter: VendorBillStatus | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("billing:read")),
) -> list[VendorBill]:
    return list_vendor_bills(db, vendor_id=vendor_id, status=status_filter)


@router.post("/vendor-bills", response_model=VendorBillOut, status_code=status.HTTP_201_CREATED)
def post_vendor_bill(
    payload: VendorBillCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("billing:write")),
) -> VendorBill:
    try:
        return create_vendor_bill(db, **payload.model_dump(), user_id=current_user.id)
    except ValueError as e:
        raise _error(e)


@router.get("/vendor-bills/{bill_id}", response_model=VendorBillOut)
def read_vendor_bill(
    bill_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("billing:read")),
) -> VendorBill:
    try:
        return get_vendor_bill(db, bill_id)
    except ValueError as e:
        raise _error(e)


@router.patch("/vendor-bills/{bill_id}/status", response_model=VendorBillOut)
def patch_vendor_bill_status(
    bill_id: UUID,
    payload: VendorBillStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("billing:write")),
) -> VendorBill:
    try:
        return update_vendor_bill_status(db, bill_id, payload.status, user_id=current_user.id)
    except ValueError as e:
        raise _error(e)


# ─── Sales invoices ──────────────────────────────────────────────────────────


@router.get("/sales-invoices", response_model=list[SalesInvoiceOut])
def read_sales_invoices(
    order_id: UUID | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("billing:read")),
) -> list[SalesInvoice]:
    return list_sales_invoices(db, order_id)


@router.post("/sales-invoices", response_model=SalesInvoiceOut, status_code=status.HTTP_201_CREATED)
def post_sales_invoice(
    payload: SalesInvoiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("billing:write")),
) -> SalesInvoice:
    try:
        return create_sales_invoice(db, **payload.model_dump(), user_id=current_user.id)
    except ValueError as e:
        raise _error(e)


@router.get("/sales-invoices/{invoice_id}", response_model=SalesInvoiceOut)
def read_sales_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("billing:read")),
) -> SalesInvoice:
    try:
        return get_sales_invoice(db, invoice_id)
    except ValueError as e:
        raise _error(e)
