"""Tests for order creation, rescaling, costing and deletion."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from bagline.app.models.inventory import (
    InventoryItem,
    InventoryTransactionLog,
    TransactionType,
)
from bagline.app.models.order import ComponentType, Order, OrderComponent
from bagline.app.models.production import JobCard
from bagline.app.services import orders as orders_service
from bagline.app.services.job_cards import create_job_card
from bagline.app.services.orders import (
    bulk_delete_orders,
    create_order,
    delete_order,
    generate_order_number,
    order_cost,
    update_order_quantity,
)


def _order_exists(db: Session, order_id) -> bool:
    return db.query(Order).filter(Order.id == order_id).count() == 1


def _reversal_count(db: Session) -> int:
    return (
        db.query(InventoryTransactionLog)
        .filter(InventoryTransactionLog.transaction_type == TransactionType.JOB_CARD_REVERSAL)
        .count()
    )


class TestCreateOrder:
    def test_number_format(self) -> None:
        assert generate_order_number(12, year=2026) == "ORD-2026-0012"

    def test_manual_component_is_scaled_once(
        self, make_order: Callable[..., Order], fabric: InventoryItem
    ) -> None:
        order = make_order(
            [
                {
                    "component_type": ComponentType.PART,
                    "material_id": fabric.id,
                    "formula": "manual",
                    "consumption": Decimal("600"),
                }
            ],
            quantity=3,
        )
        component = order.components[0]
        assert component.base_consumption == Decimal("600")
        assert component.consumption == Decimal("1800")

    def test_calculated_component_from_dimensions(
        self, make_order: Callable[..., Order], fabric: InventoryItem
    ) -> None:
        order = make_order(
            [
                {
                    "component_type": ComponentType.BORDER,
                    "material_id": fabric.id,
                    "length": Decimal("39.37"),
                    "width": Decimal("10"),
                    "roll_width": Decimal("10"),
                }
            ],
            quantity=4,
        )
        assert order.components[0].consumption == Decimal("4")

    def test_material_rate_defaults_to_purchase_rate(
        self, two_part_order: Order
    ) -> None:
        rates = {c.component_type: c.material_rate for c in two_part_order.components}
        assert rates[ComponentType.PART] == Decimal("12.5")
        assert rates[ComponentType.HANDLE] == Decimal("2")

    def test_sequential_numbers(self, make_order: Callable[..., Order]) -> None:
        first = make_order([])
        second = make_order([])
        assert first.order_number.endswith("-0001")
        assert second.order_number.endswith("-0002")

    def test_number_after_deleting_an_earlier_order(
        self, db: Session, make_order: Callable[..., Order]
    ) -> None:
        first = make_order([], company_name="A")
        second = make_order([], company_name="B")
        delete_order(db, first.id)

        third = make_order([], company_name="C")
        assert third.order_number.endswith("-0003")
        assert third.order_number != second.order_number

    def test_number_follows_highest_hand_entered_number(
        self, make_order: Callable[..., Order]
    ) -> None:
        year = date.today().year
        make_order([], order_number=f"ORD-{year}-0041")
        make_order([], order_number=f"ORD-{year}-RUSH")
        assert make_order([]).order_number == f"ORD-{year}-0042"

    def test_number_collision_is_a_value_error(
        self,
        db: Session,
        make_order: Callable[..., Order],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        taken = make_order([]).order_number
        monkeypatch.setattr(orders_service, "next_document_number", lambda *a, **k: taken)

        with pytest.raises(ValueError, match=f"Order number {taken} already exists"):
            make_order([])

        # the failed insert was rolled back and the session still works
        monkeypatch.undo()
        assert make_order([]).order_number.endswith("-0002")
        assert db.query(Order).count() == 2

    def test_custom_component_needs_a_name(
        self, db: Session, make_order: Callable[..., Order]
    ) -> None:
        with pytest.raises(ValueError, match="Custom components need a name"):
            make_order(
                [{"component_type": ComponentType.CUSTOM, "formula": "manual", "consumption": 1}]
            )
        assert db.query(Order).count() == 0

    def test_unknown_material(self, make_order: Callable[..., Order]) -> None:
        with pytest.raises(ValueError, match="Material not found"):
            make_order([{"component_type": ComponentType.PART, "material_id": uuid4()}])

    def test_zero_quantity(self, db: Session) -> None:
        with pytest.raises(ValueError, match="greater than zero"):
            create_order(db, company_name="Acme", quantity=0, components=[])


class TestUpdateQuantity:
    def test_rescales_from_base(
        self, db: Session, make_order: Callable[..., Order], fabric: InventoryItem
    ) -> None:
        order = make_order(
            [
                {
                    "component_type": ComponentType.PART,
                    "material_id": fabric.id,
                    "formula": "manual",
                    "consumption": Decimal("600"),
                },
                {
                    "component_type": ComponentType.BORDER,
                    "material_id": fabric.id,
                    "length": Decimal("39.37"),
                    "width": Decimal("10"),
                    "roll_width": Decimal("10"),
                },
            ],
            quantity=3,
        )

        updated = update_order_quantity(db, order.id, 6)

        by_type = {c.component_type: c for c in updated.components}
        assert updated.quantity == 6
        assert by_type[ComponentType.PART].consumption == Decimal("3600")
        assert by_type[ComponentType.PART].base_consumption == Decimal("600")
        assert by_type[ComponentType.BORDER].consumption == Decimal("6")

    def test_does_not_move_stock(
        self, db: Session, two_part_order: Order, fabric: InventoryItem
    ) -> None:
        create_job_card(db, order_id=two_part_order.id, job_name="Run")
        update_order_quantity(db, two_part_order.id, 4)
        db.refresh(fabric)
        assert fabric.quantity == Decimal("85")

    def test_missing_order(self, db: Session) -> None:
        with pytest.raises(ValueError, match="Order not found"):
            update_order_quantity(db, uuid4(), 2)


class TestOrderCost:
    def test_cost_and_price(self, db: Session, two_part_order: Order) -> None:
        cost = order_cost(
            db,
            two_part_order.id,
            cutting_charge=Decimal("2"),
            margin_percent=Decimal("20"),
        )
        # 15 m x 12.5 + 5 m x 2
        assert cost["material_cost"] == Decimal("197.5")
        assert cost["production_cost"] == Decimal("2")
        assert cost["total_cost"] == Decimal("199.5")
        assert cost["cost_per_bag"] == Decimal("199.5")
        assert cost["selling_price"] == Decimal("239.4")


class TestDeleteOrder:
    def test_restores_all_job_cards(
        self,
        db: Session,
        two_part_order: Order,
        fabric: InventoryItem,
        handle_tape: InventoryItem,
    ) -> None:
        order_id = two_part_order.id
        create_job_card(db, order_id=order_id, job_name="Run 1")
        create_job_card(db, order_id=order_id, job_name="Run 2")

        reversals = delete_order(db, order_id)

        assert len(reversals) == 2
        assert all(r.success for r in reversals.values())
        assert not _order_exists(db, order_id)
        assert db.query(JobCard).count() == 0
        assert db.query(OrderComponent).count() == 0
        db.refresh(fabric)
        db.refresh(handle_tape)
        assert fabric.quantity == Decimal("100")
        assert handle_tape.quantity == Decimal("50")
        assert _reversal_count(db) == 4

    def test_order_without_job_cards(self, db: Session, two_part_order: Order) -> None:
        order_id = two_part_order.id
        assert delete_order(db, order_id) == {}
        assert not _order_exists(db, order_id)

    def test_missing_order(self, db: Session) -> None:
        with pytest.raises(ValueError, match="Order not found"):
            delete_order(db, uuid4())

    def test_failed_cascade_rolls_back_the_reversal(
        self,
        db: Session,
        monkeypatch: pytest.MonkeyPatch,
        two_part_order: Order,
        fabric: InventoryItem,
    ) -> None:
        order_id = two_part_order.id
        create_job_card(db, order_id=order_id, job_name="Run")

        def _broken(db: Session, order_id) -> bool:
            raise RuntimeError("cascade failed")

        monkeypatch.setattr("bagline.app.services.orders.delete_order_completely", _broken)

        with pytest.raises(RuntimeError, match="cascade failed"):
            delete_order(db, order_id)

        assert _order_exists(db, order_id)
        assert db.query(JobCard).count() == 1
        assert _reversal_count(db) == 0
        db.refresh(fabric)
        assert fabric.quantity == Decimal("85")

    def test_order_surviving_deletion_rolls_back(
        self,
        db: Session,
        monkeypatch: pytest.MonkeyPatch,
        two_part_order: Order,
        fabric: InventoryItem,
    ) -> None:
        order_id = two_part_order.id
        create_job_card(db, order_id=order_id, job_name="Run")
        monkeypatch.setattr(
            "bagline.app.services.orders.delete_order_completely", lambda db, order_id: True
        )

        with pytest.raises(RuntimeError, match="still exists"):
            delete_order(db, order_id)

        assert _order_exists(db, order_id)
        assert _reversal_count(db) == 0
        db.refresh(fabric)
        assert fabric.quantity == Decimal("85")


class TestBulkDeleteOrders:
    def test_duplicates_are_collapsed(
        self,
        db: Session,
        make_order: Callable[..., Order],
        fabric: InventoryItem,
    ) -> None:
        component = {
            "component_type": ComponentType.PART,
            "material_id": fabric.id,
            "formula": "manual",
            "consumption": Decimal("10"),
        }
        first = make_order([component])
        second = make_order([component])
        first_id, second_id = first.id, second.id
        create_job_card(db, order_id=first_id, job_name="Run")
        create_job_card(db, order_id=second_id, job_name="Run")

        deleted = bulk_delete_orders(db, [first_id, second_id, first_id])

        assert deleted == 2
        assert db.query(Order).count() == 0
        db.refresh(fabric)
        assert fabric.quantity == Decimal("100")

    def test_one_missing_order_keeps_the_rest(
        self, db: Session, two_part_order: Order, fabric: InventoryItem
    ) -> None:
        order_id = two_part_order.id
        create_job_card(db, order_id=order_id, job_name="Run")

        with pytest.raises(ValueError, match="Order not found"):
            bulk_delete_orders(db, [order_id, uuid4()])

        assert _order_exists(db, order_id)
        db.refresh(fabric)
        assert fabric.quantity == Decimal("85")
