"""Read-only production reports: stage wastage, material consumption and stock value.

Every report returns plain dicts with ``Decimal`` amounts rendered as
strings, ready to be sent as JSON.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.orm import Session

from bagline.app.models.billing import SalesInvoice
from bagline.app.models.inventory import InventoryItem, InventoryTransactionLog, TransactionType
from bagline.app.models.production import CuttingJob, JobStatus, PrintingJob, StitchingJob
from bagline.app.services.billing import stage_job_rate
from bagline.app.services.formulas import ZERO, quantize, to_decimal
from bagline.app.services.production import STAGE_MODELS

TOP_N = 5
TWO_PLACES = Decimal("0.01")


# ── Helpers ──────────────────────────────────────────────────────────────────


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return (part / whole * Decimal("100")).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _in_range(value: Any, start: date | None, end: date | None) -> bool:
    if start is None and end is None:
        return True
    if value is None:
        return False
    day = value.date() if hasattr(value, "date") else value
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def _check_range(start: date | None, end: date | None) -> None:
    if start and end and start > end:
        raise ValueError("Start date must be before end date")


def _stringify(row: dict[str, Any]) -> dict[str, Any]:
    return {k: str(v) if isinstance(v, Decimal) else v for k, v in row.items()}


# ── Stage wastage ───────────────────────────────────────────────────────────


def _wastage_row(stage: str, job: CuttingJob | PrintingJob | StitchingJob) -> dict[str, Any]:
    order = job.job_card.order
    provided = to_decimal(
        job.provided_quantity if job.provided_quantity is not None else order.quantity
    )
    received = to_decimal(job.received_quantity)
    wastage = max(provided - received, ZERO)
    row = {
        "job_type": stage,
        "job_id": str(job.id),
        "job_number": job.job_card.job_number,
        "order_id": str(order.id),
        "order_number": order.order_number,
        "company_name": order.company_name,
        "worker_name": job.worker_name,
        "is_internal": job.is_internal,
        "provided_quantity": provided,
        "received_quantity": received,
        "wastage_quantity": wastage,
        "wastage_percentage": percentage(wastage, provided),
        "created_at": job.created_at.isoformat() if job.created_at else None,
    }
    if isinstance(job, CuttingJob):
        row["material_waste"] = quantize(
            sum((to_decimal(c.waste_quantity) for c in job.components), ZERO)
        )
    return row


def _group(rows: list[dict[str, Any]], key: str) -> dict[Any, dict[str, Any]]:
    groups: dict[Any, dict[str, Any]] = defaultdict(
        lambda: {"provided": ZERO, "wastage": ZERO, "jobs": 0}
    )
    for row in rows:
        g = groups[row[key]]
        g["provided"] += row["provided_quantity"]
        g["wastage"] += row["wastage_quantity"]
        g["jobs"] += 1
        g.setdefault("sample", row)
    return groups


def wastage_report(
    db: Session,
    *,
    job_type: str | None = None,
    worker: str | None = None,
    order: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> dict[str, Any]:
    """Pieces lost between what each stage was given and what came back.

    Only jobs with a recorded received quantity are counted. Provided pieces
    default to the order quantity when the job does not record its own.
    ``worker`` matches part of the worker name and ``order`` part of the
    order number or company name, both case-insensitively.
    """
    if job_type is not None and job_type not in STAGE_MODELS:
        raise ValueError(f"Unknown production stage: {job_type}")
    _check_range(start, end)

    rows = []
    for stage, model in STAGE_MODELS.items():
        if job_type is not None and stage != job_type:
            continue
        for job in db.query(model).filter(model.received_quantity.isnot(None)).all():
            if not _in_range(job.created_at, start, end):
                continue
            row = _wastage_row(stage, job)
            if worker and worker.lower() not in (row["worker_name"] or "").lower():
                continue
            if order and not any(
                order.lower() in (row[f] or "").lower() for f in ("order_number", "company_name")
            ):
                continue
            rows.append(row)

    total_provided = sum((r["provided_quantity"] for r in rows), ZERO)
    total_wastage = sum((r["wastage_quantity"] for r in rows), ZERO)

    by_type = {
        stage: {
            "wastage_quantity": str(g["wastage"]),
            "wastage_percentage": str(percentage(g["wastage"], g["provided"])),
            "jobs_count": g["jobs"],
        }
        for stage, g in _group(rows, "job_type").items()
    }
    worst_workers = sorted(
        (
            {
                "worker_name": name,
                "wastage_percentage": percentage(g["wastage"], g["provided"]),
                "jobs_count": g["jobs"],
            }
            for name, g in _group(rows, "worker_name").items()
        ),
        key=lambda w: w["wastage_percentage"],
        reverse=True,
    )[:TOP_N]
    worst_orders = sorted(
        (
            {
                "order_number": g["sample"]["order_number"],
                "company_name": g["sample"]["company_name"],
                "wastage_quantity": g["wastage"],
                "wastage_percentage": percentage(g["wastage"], g["provided"]),
            }
            for g in _group(rows, "order_id").values()
        ),
        key=lambda o: o["wastage_percentage"],
        reverse=True,
    )[:TOP_N]

    return {
        "jobs": [_stringify(r) for r in rows],
        "summary": {
            "total_provided_quantity": str(total_provided),
            "total_wastage_quantity": str(total_wastage),
            "total_wastage_percentage": str(percentage(total_wastage, total_provided)),
            "total_jobs": len(rows),
            "by_type": by_type,
            "worst_workers": [_stringify(w) for w in worst_workers],
            "worst_orders": [_stringify(o) for o in worst_orders],
        },
    }


def partner_performance(db: Session) -> list[dict[str, Any]]:
    """Per external worker: jobs done, pieces given and returned, cost of returned pieces."""
    partners: dict[tuple[str, str], dict[str, Any]] = {}
    for stage, model in STAGE_MODELS.items():
        for job in db.query(model).filter(model.is_internal.is_(False)).all():
            name = job.worker_name or "Unknown"
            p = partners.setdefault(
                (name, stage),
                {
                    "worker_name": name,
                    "job_type": stage,
                    "total_jobs": 0,
                    "completed_jobs": 0,
                    "provided_quantity": ZERO,
                    "received_quantity": ZERO,
                    "total_cost": ZERO,
                },
            )
            p["total_jobs"] += 1
            if job.status == JobStatus.COMPLETED:
                p["completed_jobs"] += 1
            p["provided_quantity"] += to_decimal(job.provided_quantity)
            p["received_quantity"] += to_decimal(job.received_quantity)
            p["total_cost"] += to_decimal(job.received_quantity) * to_decimal(stage_job_rate(job))

    return [
        _stringify(p)
        for _, p in sorted(partners.items(), key=lambda kv: (kv[0][1], kv[0][0]))
    ]


# ── Material consumption ────────────────────────────────────────────────────


def material_consumption_report(
    db: Session, *, start: date | None = None, end: date | None = None
) -> dict[str, Any]:
    """Net material drawn by job cards, per material.

    Consumption logs count positive, job-card reversals are netted off. A
    deleted material is still reported under the name stored in its logs.
    """
    _check_range(start, end)
    logs = (
        db.query(InventoryTransactionLog)
        .filter(
            InventoryTransactionLog.transaction_type.in_(
                [TransactionType.CONSUMPTION, TransactionType.JOB_CARD_REVERSAL]
            )
        )
        .all()
    )

    per_order: dict[tuple[str, str], Decimal] = defaultdict(lambda: ZERO)
    names: dict[str, tuple[str, str | None]] = {}
    for log in logs:
        if not _in_range(log.transaction_date, start, end):
            continue
        meta = log.metadata_ or {}
        key = str(log.material_id) if log.material_id else f"deleted:{meta.get('material_name')}"
        names.setdefault(key, (meta.get("material_name", "Unknown"), meta.get("unit")))
        # consumption rows carry a negative quantity, reversals a positive one
        per_order[(key, meta.get("order_id") or "")] -= to_decimal(log.quantity)

    materials: dict[str, dict[str, Any]] = {}
    for (key, order_id), amount in per_order.items():
        name, unit = names[key]
        m = materials.setdefault(
            key,
            {
                "material_id": None if key.startswith("deleted:") else key,
                "material_name": name,
                "unit": unit,
                "total_consumption": ZERO,
                "orders_count": 0,
            },
        )
        m["total_consumption"] += amount
        if amount > 0 and order_id:
            m["orders_count"] += 1

    items = []
    for m in sorted(materials.values(), key=lambda m: m["total_consumption"], reverse=True):
        if m["total_consumption"] <= 0:
            continue
        m["average_per_order"] = (
            quantize(m["total_consumption"] / m["orders_count"]) if m["orders_count"] else ZERO
        )
        items.append(_stringify(m))

    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "materials": items,
        "total_materials": len(items),
    }


# ── Stock value ─────────────────────────────────────────────────────────────


def inventory_valuation(db: Session) -> dict[str, Any]:
    """Point-in-time stock value at each material's latest purchase rate."""
    items = []
    total_value = ZERO
    for item in db.query(InventoryItem).order_by(InventoryItem.material_name).all():
        value = quantize(to_decimal(item.quantity) * to_decimal(item.purchase_rate))
        items.append({
            "material_id": str(item.id),
            "material_name": item.material_name,
            "unit": item.unit,
            "quantity": str(item.quantity),
            "purchase_rate": str(item.purchase_rate) if item.purchase_rate is not None else None,
            "total_value": str(value),
        })
        total_value += value

    return {
        "as_of_date": date.today().isoformat(),
        "items": items,
        "total_items": len(items),
        "total_value": str(total_value),
    }


def refill_needs(db: Session) -> list[dict[str, Any]]:
    """Materials at or below their reorder level, most short first."""
    rows = []
    for item in db.query(InventoryItem).all():
        level = to_decimal(item.reorder_level)
        quantity = to_decimal(item.quantity)
        if level <= 0 or quantity > level:
            continue
        rows.append({
            "material_id": str(item.id),
            "material_name": item.material_name,
            "unit": item.unit,
            "quantity": quantity,
            "reorder_level": level,
            "shortfall": level - quantity,
        })
    rows.sort(key=lambda r: r["shortfall"], reverse=True)
    return [_stringify(r) for r in rows]


# ── Sales ───────────────────────────────────────────────────────────────────


def sales_summary(
    db: Session, *, start: date | None = None, end: date | None = None
) -> dict[str, Any]:
    _check_range(start, end)
    invoices = [
        i for i in db.query(SalesInvoice).all() if _in_range(i.invoice_date, start, end)
    ]
    by_company: dict[str, dict[str, Any]] = {}
    for inv in invoices:
        c = by_company.setdefault(
            inv.company_name,
            {"company_name": inv.company_name, "invoices": 0, "total_amount": ZERO},
        )
        c["invoices"] += 1
        c["total_amount"] += to_decimal(inv.total_amount)

    return {
        "invoices": len(invoices),
        "subtotal": str(sum((to_decimal(i.subtotal) for i in invoices), ZERO)),
        "gst_amount": str(sum((to_decimal(i.gst_amount) for i in invoices), ZERO)),
        "total_amount": str(sum((to_decimal(i.total_amount) for i in invoices), ZERO)),
        "by_company": [
            _stringify(c)
            for c in sorted(by_company.values(), key=lambda c: c["total_amount"], reverse=True)
        ],
    }
