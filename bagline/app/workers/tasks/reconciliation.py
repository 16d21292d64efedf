"""Inventory reconciliation: quantity vs. the transaction log."""

from __future__ import annotations

import logging

from bagline.app.workers.celery_app import celery

logger = logging.getLogger(__name__)


@celery.task(name="bagline.app.workers.tasks.reconciliation.reconcile_inventory")
def reconcile_inventory() -> dict:
    """Report every material whose quantity drifted from its latest log row."""
    from bagline.app.core.database import SessionLocal
    from bagline.app.services.inventory import find_inventory_drift

    db = SessionLocal()
    try:
        drift = find_inventory_drift(db)
        for row in drift:
            logger.warning(
                "Inventory drift for %s (%s): quantity=%s, last log says %s",
                row["material_name"],
                row["material_id"],
                row["quantity"],
                row["logged_quantity"],
            )
        return {"drifted": len(drift), "drift": drift}
    finally:
        db.close()
