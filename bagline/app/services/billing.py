"""Vendor bills for outsourced stage work and sales invoices for dispatched orders.

A stage job is billable once it was done outside (``is_internal`` false), is
completed and has its received pieces recorded. A job carries at most one
live bill: a second one is refused until the first is cancelled.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bagline.app.models.billing import SalesInvoice, Vendor, VendorBill, VendorBillStatus
from bagline.app.models.order import Order, OrderStatus
from bagline.app.models.production import CuttingJob, JobStatus, PrintingJob, StitchingJob
from bagline.app.services.audit import log_action
from bagline.app.services.formulas import ZERO, calculate_bill_amounts, to_decimal
from bagline.app.services.numbering import next_document_number
from bagline.app.services.production import STAGE_MODELS

logger = logging.getLogger(__name__)

VENDOR_BILL_PREFIX = "VB"
SALES_INVOICE_PREFIX = "INV"
DEFAULT_GST_PERCENTAGE = Decimal("18")
DEFAULT_SERVICE_NAME = "Service Work"

_INVOICEABLE = (OrderStatus.DISPATCHED, OrderStatus.COMPLETED)


# ── Vendors ─────────────────────────────────────────────────────────────────


def create_vendor(db: Session, *, fields: dict[str, Any], user_id: UUID | None = None) -> Vendor:
    try:
        vendor = Vendor(**fields)
        db.add(vendor)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="VENDOR_CREATED",
            resource_type="vendors",
            resource_id=str(vendor.id),
            changes={"name": vendor.name, "service_type": vendor.service_type},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(vendor)
    return vendor


def list_vendors(db: Session, service_type: str | None = None) -> list[Vendor]:
    query = db.query(Vendor)
    if service_type:
        query = query.filter(Vendor.service_type == service_type)
    return query.order_by(Vendor.name).all()


# ── Billable stage jobs ─────────────────────────────────────────────────────


def _get_stage_job(
    db: Session, job_type: str, job_id: UUID
) -> CuttingJob | PrintingJob | StitchingJob:
    model = STAGE_MODELS.get(job_type)
    if model is None:
        raise ValueError(f"Unknown production stage: {job_type}")
    job = db.query(model).filter(model.id == job_id).first()
    if not job:
        raise ValueError(f"{job_type.capitalize()} job not found")
    return job


def stage_job_rate(job: CuttingJob | PrintingJob | StitchingJob) -> Decimal | None:
    """Per-piece rate of a stage job; a cutting job is paid per component cut."""
    if isinstance(job, CuttingJob):
        rates = [c.rate for c in job.components if c.rate is not None]
        return sum((to_decimal(r) for r in rates), ZERO) if rates else None
    return job.rate


def _is_billable(job: CuttingJob | PrintingJob | StitchingJob) -> bool:
    return (
        not job.is_internal
        and job.status == JobStatus.COMPLETED
        and job.received_quantity is not None
    )


def _live_bill(db: Session, job_type: str, job_id: UUID) -> VendorBill | None:
    return (
        db.query(VendorBill)
        .filter(
            VendorBill.job_type == job_type,
            VendorBill.job_id == job_id,
            VendorBill.status != VendorBillStatus.CANCELLED,
        )
        .first()
    )


def list_billable_jobs(db: Session, job_type: str | None = None) -> list[dict[str, Any]]:
    """External, completed stage jobs with received pieces and no live bill."""
    if job_type is not None and job_type not in STAGE_MODELS:
        raise ValueError(f"Unknown production stage: {job_type}")

    billed = {
        (t, i)
        for t, i in db.query(VendorBill.job_type, VendorBill.job_id).filter(
            VendorBill.status != VendorBillStatus.CANCELLED
        )
    }
    rows = []
    for stage, model in STAGE_MODELS.items():
        if job_type is not None and stage != job_type:
            continue
        jobs = (
            db.query(model)
            .filter(
                model.is_internal.is_(False),
                model.status == JobStatus.COMPLETED,
                model.received_quantity.isnot(None),
            )
            .all()
        )
        for job in jobs:
            if (stage, job.id) in billed:
                continue
            job_card = job.job_card
            rate = stage_job_rate(job)
            rows.append({
                "job_type": stage,
                "job_id": str(job.id),
                "job_card_id": str(job_card.id),
                "job_number": job_card.job_number,
                "order_number": job_card.order.order_number,
                "company_name": job_card.order.company_name,
                "worker_name": job.worker_name,
                "received_quantity": job.received_quantity,
                "rate": str(rate) if rate is not None else None,
            })
    return rows


# ── Vendor bills ────────────────────────────────────────────────────────────


def get_vendor_bill(db: Session, bill_id: UUID) -> VendorBill:
    bill = db.query(VendorBill).filter(VendorBill.id == bill_id).first()
    if not bill:
        raise ValueError("Vendor bill not found")
    return bill


def create_vendor_bill(
    db: Session,
    *,
    vendor_id: UUID,
    job_type: str,
    job_id: UUID,
    quantity: Decimal | None = None,
    rate: Decimal | None = None,
    gst_percentage: Decimal = DEFAULT_GST_PERCENTAGE,
    other_expenses: Decimal = ZERO,
    product_name: str | None = None,
    bill_number: str | None = None,
    bill_date: date | None = None,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> VendorBill:
    """Bill a vendor for one completed external stage job.

    Quantity defaults to the job's received pieces and rate to the job's
    rate, so the bill matches what came back from the vendor.
    """
    try:
        vendor = db.query(Vendor).filter(Vendor.id == vendor_id).first()
        if not vendor:
            raise ValueError("Vendor not found")

        job = _get_stage_job(db, job_type, job_id)
        if job.is_internal:
            raise ValueError(f"{job_type.capitalize()} job was done in-house and cannot be billed")
        if job.status != JobStatus.COMPLETED:
            raise ValueError(f"{job_type.capitalize()} job is not completed yet")
        if _live_bill(db, job_type, job_id):
            raise ValueError(f"{job_type.capitalize()} job is already billed")

        quantity = to_decimal(job.received_quantity if quantity is None else quantity)
        if quantity <= 0:
            raise ValueError("Bill quantity must be greater than zero")
        if rate is None:
            rate = stage_job_rate(job)
            if rate is None:
                raise ValueError(f"{job_type.capitalize()} job has no rate; pass one explicitly")

        if bill_number is None:
            bill_number = next_document_number(db, VendorBill.bill_number, VENDOR_BILL_PREFIX)
        elif db.query(VendorBill).filter(VendorBill.bill_number == bill_number).first():
            raise ValueError(f"Bill number {bill_number} already exists")

        amounts = calculate_bill_amounts(
            quantity=quantity,
            rate=rate,
            gst_percentage=gst_percentage,
            other_expenses=other_expenses,
        )
        job_card = job.job_card
        bill = VendorBill(
            bill_number=bill_number,
            vendor_id=vendor.id,
            job_type=job_type,
            job_id=job.id,
            job_card_id=job_card.id,
            order_id=job_card.order_id,
            order_number=job_card.order.order_number,
            company_name=job_card.order.company_name,
            product_name=product_name or DEFAULT_SERVICE_NAME,
            quantity=quantity,
            rate=to_decimal(rate),
            subtotal=amounts.subtotal,
            gst_percentage=to_decimal(gst_percentage),
            gst_amount=amounts.gst_amount,
            other_expenses=to_decimal(other_expenses),
            total_amount=amounts.total_amount,
            status=VendorBillStatus.PENDING,
            bill_date=bill_date or date.today(),
            notes=notes,
            created_by=user_id,
        )
        db.add(bill)
        try:
            db.flush()
        except IntegrityError:
            raise ValueError(f"Bill number {bill_number} already exists") from None

        log_action(
            db,
            user_id=user_id,
            action="VENDOR_BILL_CREATED",
            resource_type="vendor_bills",
            resource_id=str(bill.id),
            changes={
                "bill_number": bill.bill_number,
                "vendor": vendor.name,
                "job_type": job_type,
                "job_id": str(job_id),
                "total_amount": str(bill.total_amount),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bill)
    logger.info("Vendor bill %s raised for %s job %s", bill.bill_number, job_type, job_id)
    return bill


def list_vendor_bills(
    db: Session,
    *,
    vendor_id: UUID | None = None,
    status: VendorBillStatus | None = None,
) -> list[VendorBill]:
    query = db.query(VendorBill)
    if vendor_id is not None:
        query = query.filter(VendorBill.vendor_id == vendor_id)
    if status is not None:
        query = query.filter(VendorBill.status == status)
    return query.order_by(VendorBill.bill_date.desc(), VendorBill.bill_number.desc()).all()


def update_vendor_bill_status(
    db: Session,
    bill_id: UUID,
    new_status: VendorBillStatus,
    user_id: UUID | None = None,
) -> VendorBill:
    """Mark a bill paid, back to pending, or cancelled. Cancelled is final."""
    try:
        bill = get_vendor_bill(db, bill_id)
        old_status = bill.status
        if old_status == new_status:
            return bill
        if old_status == VendorBillStatus.CANCELLED:
            raise ValueError(f"Vendor bill {bill.bill_number} is cancelled")

        bill.status = new_status
        bill.paid_at = datetime.now(timezone.utc) if new_status == VendorBillStatus.PAID else None

        log_action(
            db,
            user_id=user_id,
            action="VENDOR_BILL_STATUS_CHANGED",
            resource_type="vendor_bills",
            resource_id=str(bill.id),
            changes={"old": old_status.value, "new": new_status.value},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bill)
    return bill


# ── Sales invoices ──────────────────────────────────────────────────────────


def create_sales_invoice(
    db: Session,
    *,
    order_id: UUID,
    quantity: Decimal | None = None,
    rate: Decimal | None = None,
    product_name: str | None = None,
    gst_percentage: Decimal = DEFAULT_GST_PERCENTAGE,
    transport_included: bool = True,
    transport_charge: Decimal = ZERO,
    other_expenses: Decimal = ZERO,
    invoice_number: str | None = None,
    invoice_date: date | None = None,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> SalesInvoice:
    """Invoice a dispatched order. Quantity and rate default to the order's."""
    try:
        order = db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise ValueError("Order not found")
        if order.status not in _INVOICEABLE:
            raise ValueError(
                f"Order {order.order_number} is {order.status.value}; "
                "only dispatched or completed orders can be invoiced"
            )
        if db.query(SalesInvoice.id).filter(SalesInvoice.order_id == order.id).first():
            raise ValueError(f"Order {order.order_number} is already invoiced")

        quantity = to_decimal(order.quantity if quantity is None else quantity)
        if quantity <= 0:
            raise ValueError("Invoice quantity must be greater than zero")
        if rate is None:
            rate = order.rate
            if rate is None:
                raise ValueError(f"Order {order.order_number} has no rate; pass one explicitly")

        if invoice_number is None:
            invoice_number = next_document_number(
                db, SalesInvoice.invoice_number, SALES_INVOICE_PREFIX
            )
        elif db.query(SalesInvoice).filter(SalesInvoice.invoice_number == invoice_number).first():
            raise ValueError(f"Invoice number {invoice_number} already exists")

        amounts = calculate_bill_amounts(
            quantity=quantity,
            rate=rate,
            gst_percentage=gst_percentage,
            other_expenses=other_expenses,
            transport_charge=transport_charge,
            transport_included=transport_included,
        )
        invoice = SalesInvoice(
            invoice_number=invoice_number,
            order_id=order.id,
            order_number=order.order_number,
            company_name=order.company_name,
            product_name=product_name or f"Order {order.order_number}",
            quantity=quantity,
            rate=to_decimal(rate),
            transport_included=transport_included,
            transport_charge=amounts.transport_charge,
            gst_percentage=to_decimal(gst_percentage),
            subtotal=amounts.subtotal,
            gst_amount=amounts.gst_amount,
            other_expenses=to_decimal(other_expenses),
            total_amount=amounts.total_amount,
            invoice_date=invoice_date or date.today(),
            notes=notes,
            created_by=user_id,
        )
        db.add(invoice)
        try:
            db.flush()
        except IntegrityError:
            raise ValueError(f"Invoice number {invoice_number} already exists") from None

        log_action(
            db,
            user_id=user_id,
            action="SALES_INVOICE_CREATED",
            resource_type="sales_invoices",
            resource_id=str(invoice.id),
            changes={
                "invoice_number": invoice.invoice_number,
                "order_number": order.order_number,
                "total_amount": str(invoice.total_amount),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(invoice)
    logger.info("Sales invoice %s raised for order %s", invoice.invoice_number, invoice.order_number)
    return invoice


def list_sales_invoices(db: Session, order_id: UUID | None = None) -> list[SalesInvoice]:
    query = db.query(SalesInvoice)
    if order_id is not None:
        query = query.filter(SalesInvoice.order_id == order_id)
    return query.order_by(
        SalesInvoice.invoice_date.desc(), SalesInvoice.invoice_number.desc()
    ).all()


def get_sales_invoice(db: Session, invoice_id: UUID) -> SalesInvoice:
    invoice = db.query(SalesInvoice).filter(SalesInvoice.id == invoice_id).first()
    if not invoice:
        raise ValueError("Sales invoice not found")
    return invoice
