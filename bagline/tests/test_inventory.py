"""Tests for stock movements, transaction history and reconciliation."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bagline.app.models.audit import AuditLog
from bagline.app.models.inventory import (
    InventoryItem,
    InventoryTransactionLog,
    ReferenceType,
    TransactionType,
)
from bagline.app.services.inventory import (
    CLEAR_HISTORY_CONFIRMATION,
    adjust_stock,
    apply_inventory_change,
    clear_transaction_history,
    create_inventory_item,
    find_inventory_drift,
    transaction_history_stats,
    update_inventory_item,
)


def _logs(db: Session, material_id) -> list[InventoryTransactionLog]:
    return (
        db.query(InventoryTransactionLog)
        .filter(InventoryTransactionLog.material_id == material_id)
        .order_by(InventoryTransactionLog.transaction_date)
        .all()
    )


class TestApplyInventoryChange:
    def test_records_before_and_after(self, db: Session, fabric: InventoryItem) -> None:
        entry = apply_inventory_change(
            db,
            material_id=fabric.id,
            delta=Decimal("-12.5"),
            transaction_type=TransactionType.CONSUMPTION,
            reference_type=ReferenceType.MANUAL,
            metadata={"component_type": "part"},
        )
        db.commit()

        assert entry.previous_quantity == Decimal("100")
        assert entry.new_quantity == Decimal("87.5")
        assert entry.quantity == Decimal("-12.5")
        assert entry.metadata_["material_name"] == "Non-woven 90 GSM Red"
        assert entry.metadata_["unit"] == "meter"
        assert entry.metadata_["component_type"] == "part"
        db.refresh(fabric)
        assert fabric.quantity == Decimal("87.5")

    def test_refuses_to_go_negative(self, db: Session, fabric: InventoryItem) -> None:
        with pytest.raises(ValueError, match="Insufficient stock for Non-woven 90 GSM Red"):
            apply_inventory_change(
                db,
                material_id=fabric.id,
                delta=Decimal("-100.01"),
                transaction_type=TransactionType.CONSUMPTION,
            )
        db.rollback()

        db.refresh(fabric)
        assert fabric.quantity == Decimal("100")
        assert len(_logs(db, fabric.id)) == 1  # the opening stock only

    def test_can_reach_exactly_zero(self, db: Session, fabric: InventoryItem) -> None:
        entry = apply_inventory_change(
            db,
            material_id=fabric.id,
            delta=Decimal("-100"),
            transaction_type=TransactionType.CONSUMPTION,
        )
        assert entry.new_quantity == Decimal("0")

    def test_unknown_material(self, db: Session) -> None:
        with pytest.raises(ValueError, match="Inventory item not found"):
            apply_inventory_change(
                db,
                material_id=uuid4(),
                delta=Decimal("1"),
                transaction_type=TransactionType.ADJUSTMENT,
            )


class TestInventoryItems:
    def test_opening_stock_is_logged(self, db: Session, fabric: InventoryItem) -> None:
        logs = _logs(db, fabric.id)
        assert fabric.quantity == Decimal("100")
        assert len(logs) == 1
        assert logs[0].transaction_type == TransactionType.ADJUSTMENT
        assert logs[0].previous_quantity == Decimal("0")
        assert logs[0].new_quantity == Decimal("100")

    def test_no_opening_stock_no_log(self, db: Session) -> None:
        item = create_inventory_item(db, fields={"material_name": "Zip", "unit": "piece"})
        assert item.quantity == Decimal("0")
        assert _logs(db, item.id) == []

    def test_failed_create_is_rolled_back(self, db: Session, fabric: InventoryItem) -> None:
        with pytest.raises(IntegrityError):
            create_inventory_item(db, fields={"unit": "piece"}, opening_quantity=Decimal("5"))

        item = create_inventory_item(db, fields={"material_name": "Zip", "unit": "piece"})
        assert db.query(InventoryItem).count() == 2
        assert item.material_name == "Zip"

    def test_update_fields(self, db: Session, fabric: InventoryItem) -> None:
        updated = update_inventory_item(
            db, fabric.id, changes={"color": "Blue", "purchase_rate": Decimal("13")}
        )
        assert updated.color == "Blue"
        assert updated.purchase_rate == Decimal("13")
        assert db.query(AuditLog).filter(AuditLog.action == "INVENTORY_UPDATED").count() == 1

    def test_quantity_cannot_be_edited(self, db: Session, fabric: InventoryItem) -> None:
        with pytest.raises(ValueError, match="stock adjustment"):
            update_inventory_item(db, fabric.id, changes={"quantity": Decimal("5")})


class TestAdjustStock:
    def test_negative_adjustment(self, db: Session, fabric: InventoryItem) -> None:
        entry = adjust_stock(db, fabric.id, delta=Decimal("-4"), notes="Damaged roll end")
        assert entry.transaction_type == TransactionType.ADJUSTMENT
        assert entry.reference_type == ReferenceType.MANUAL
        assert entry.notes == "Damaged roll end"
        db.refresh(fabric)
        assert fabric.quantity == Decimal("96")

    def test_adjustment_is_audited(self, db: Session, fabric: InventoryItem) -> None:
        adjust_stock(db, fabric.id, delta=Decimal("-4"))
        row = db.query(AuditLog).filter(AuditLog.action == "STOCK_ADJUSTMENT").one()
        assert row.record_id == str(fabric.id)
        assert Decimal(row.new_values["delta"]) == Decimal("-4")

    def test_zero_rejected(self, db: Session, fabric: InventoryItem) -> None:
        with pytest.raises(ValueError, match="must not be zero"):
            adjust_stock(db, fabric.id, delta=Decimal("0"))


class TestTransactionHistory:
    def test_stats(
        self, db: Session, fabric: InventoryItem, handle_tape: InventoryItem
    ) -> None:
        adjust_stock(db, fabric.id, delta=Decimal("-1"))
        stats = transaction_history_stats(db)
        assert stats["total_transaction_logs"] == 3
        assert stats["materials_with_transactions"] == 2
        assert stats["by_type"] == {"adjustment": 3}
        assert stats["oldest_log_date"] is not None
        assert stats["oldest_log_date"] <= stats["newest_log_date"]

    def test_stats_on_empty_history(self, db: Session) -> None:
        stats = transaction_history_stats(db)
        assert stats["total_transaction_logs"] == 0
        assert stats["oldest_log_date"] is None
        assert stats["by_type"] == {}

    def test_clear_requires_confirmation(self, db: Session, fabric: InventoryItem) -> None:
        with pytest.raises(ValueError, match="Confirmation"):
            clear_transaction_history(db, confirmation="yes please")
        assert len(_logs(db, fabric.id)) == 1

    def test_clear_one_material_keeps_quantities(
        self, db: Session, fabric: InventoryItem, handle_tape: InventoryItem
    ) -> None:
        deleted = clear_transaction_history(
            db, confirmation=CLEAR_HISTORY_CONFIRMATION, material_id=fabric.id
        )
        assert deleted == 1
        assert _logs(db, fabric.id) == []
        assert len(_logs(db, handle_tape.id)) == 1
        db.refresh(fabric)
        assert fabric.quantity == Decimal("100")

    def test_clear_by_log_ids(
        self, db: Session, fabric: InventoryItem
    ) -> None:
        entry = adjust_stock(db, fabric.id, delta=Decimal("5"))
        deleted = clear_transaction_history(
            db, confirmation=CLEAR_HISTORY_CONFIRMATION, log_ids=[entry.id]
        )
        assert deleted == 1
        assert len(_logs(db, fabric.id)) == 1

    def test_clear_everything(
        self, db: Session, fabric: InventoryItem, handle_tape: InventoryItem
    ) -> None:
        assert clear_transaction_history(db, confirmation=CLEAR_HISTORY_CONFIRMATION) == 2
        assert db.query(InventoryTransactionLog).count() == 0


class TestDrift:
    def test_consistent_stock_has_no_drift(
        self, db: Session, fabric: InventoryItem, handle_tape: InventoryItem
    ) -> None:
        adjust_stock(db, fabric.id, delta=Decimal("-7"))
        assert find_inventory_drift(db) == []

    def test_direct_edit_is_reported(self, db: Session, fabric: InventoryItem) -> None:
        # simulate a write that bypassed apply_inventory_change
        db.query(InventoryItem).filter(InventoryItem.id == fabric.id).update(
            {InventoryItem.quantity: Decimal("90")}, synchronize_session=False
        )
        db.commit()

        drift = find_inventory_drift(db)
        assert len(drift) == 1
        assert drift[0]["material_id"] == str(fabric.id)
        assert Decimal(drift[0]["difference"]) == Decimal("-10")
        assert Decimal(drift[0]["logged_quantity"]) == Decimal("100")

    def test_material_without_history_is_skipped(self, db: Session, fabric: InventoryItem) -> None:
        clear_transaction_history(db, confirmation=CLEAR_HISTORY_CONFIRMATION)
        assert find_inventory_drift(db) == []
