"""Tests for multi-table maintenance procedures and role changes."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from bagline import create_admin
from bagline.app.models.audit import AuditLog
from bagline.app.models.inventory import InventoryItem, InventoryTransactionLog
from bagline.app.models.order import Order, OrderComponent
from bagline.app.models.supplier import PurchaseItem
from bagline.app.models.user import User, UserRole
from bagline.app.services.procedures import (
    delete_job_card_rows,
    delete_order_completely,
    hard_delete_inventory_with_consumption_preserve,
    preview_inventory_hard_deletion,
    update_user_role,
)
from bagline.app.services.purchases import create_purchase
from bagline.app.services.user_management import authenticate, set_user_active
from bagline.create_admin import ensure_admin
from bagline.tests.conftest import _make_user


@pytest.fixture()
def fabric_in_use(db: Session, fabric: InventoryItem, two_part_order: Order) -> InventoryItem:
    """Fabric referenced by a purchase line, an order component and its opening log."""
    create_purchase(
        db,
        items=[{"material_id": fabric.id, "quantity": Decimal("5"), "unit_price": Decimal("12")}],
    )
    return fabric


class TestInventoryHardDelete:
    def test_preview_counts_references(self, db: Session, fabric_in_use: InventoryItem) -> None:
        preview = preview_inventory_hard_deletion(db, fabric_in_use.id)
        assert preview["material_name"] == "Non-woven 90 GSM Red"
        assert preview["purchase_items"] == 1
        assert preview["order_components"] == 1
        assert preview["transaction_logs"] == 1

    def test_preview_missing(self, db: Session) -> None:
        with pytest.raises(ValueError, match="Inventory item not found"):
            preview_inventory_hard_deletion(db, uuid4())

    def test_history_survives_the_material(
        self, db: Session, fabric_in_use: InventoryItem
    ) -> None:
        material_id = fabric_in_use.id

        hard_delete_inventory_with_consumption_preserve(db, material_id)
        db.commit()

        assert db.query(InventoryItem).filter(InventoryItem.id == material_id).count() == 0
        logs = db.query(InventoryTransactionLog).all()
        assert len(logs) == 2  # fabric opening stock and tape opening stock
        detached = [log for log in logs if log.material_id is None]
        assert len(detached) == 1
        assert detached[0].metadata_["material_name"] == "Non-woven 90 GSM Red"
        assert detached[0].metadata_["deleted_material_id"] == str(material_id)
        assert db.query(PurchaseItem).filter(PurchaseItem.material_id.is_(None)).count() == 1
        assert db.query(OrderComponent).filter(OrderComponent.material_id.is_(None)).count() == 1
        assert (
            db.query(AuditLog).filter(AuditLog.action == "INVENTORY_HARD_DELETED").count() == 1
        )


class TestOrderProcedures:
    def test_missing_order_returns_false(self, db: Session) -> None:
        assert delete_order_completely(db, uuid4()) is False

    def test_removes_order_and_components(self, db: Session, two_part_order: Order) -> None:
        order_id = two_part_order.id
        assert delete_order_completely(db, order_id) is True
        db.commit()
        assert db.query(Order).filter(Order.id == order_id).count() == 0
        assert db.query(OrderComponent).count() == 0

    def test_no_job_cards_is_a_no_op(self, db: Session) -> None:
        assert delete_job_card_rows(db, []) == 0


class TestUpdateUserRole:
    def test_admin_changes_role(self, db: Session, admin_user: User, staff_user: User) -> None:
        user = update_user_role(
            db, target_user_id=staff_user.id, new_role=UserRole.PRINTER, admin_id=admin_user.id
        )
        db.commit()
        assert user.role == UserRole.PRINTER
        assert db.query(AuditLog).filter(AuditLog.action == "USER_ROLE_CHANGED").count() == 1

    def test_only_admins(self, db: Session, admin_user: User, staff_user: User) -> None:
        with pytest.raises(PermissionError):
            update_user_role(
                db, target_user_id=admin_user.id, new_role=UserRole.STAFF, admin_id=staff_user.id
            )

    def test_unknown_user(self, db: Session, admin_user: User) -> None:
        with pytest.raises(ValueError, match="User not found"):
            update_user_role(
                db, target_user_id=uuid4(), new_role=UserRole.STAFF, admin_id=admin_user.id
            )

    def test_last_admin_stays_admin(self, db: Session, admin_user: User) -> None:
        with pytest.raises(ValueError, match="last active admin"):
            update_user_role(
                db, target_user_id=admin_user.id, new_role=UserRole.STAFF, admin_id=admin_user.id
            )

    def test_admin_can_step_down_when_another_remains(
        self, db: Session, admin_user: User
    ) -> None:
        _make_user(db, "second_admin", UserRole.ADMIN)
        user = update_user_role(
            db, target_user_id=admin_user.id, new_role=UserRole.STAFF, admin_id=admin_user.id
        )
        assert user.role == UserRole.STAFF


class TestBootstrapAdmin:
    def test_creates_admin(self, db: Session) -> None:
        user, created = ensure_admin(db, "owner", "long-enough")
        assert created is True
        assert user.role == UserRole.ADMIN
        assert authenticate(db, "OWNER", "long-enough") is not None
        assert db.query(AuditLog).filter(AuditLog.action == "ADMIN_BOOTSTRAPPED").count() == 1

    def test_resets_existing_user(self, db: Session, staff_user: User) -> None:
        staff_user.is_active = False
        db.commit()

        user, created = ensure_admin(db, "Test_Staff", "a-new-password")
        assert created is False
        assert user.id == staff_user.id
        assert user.role == UserRole.ADMIN
        assert user.is_active is True
        assert authenticate(db, "test_staff", "password123") is None
        assert authenticate(db, "test_staff", "a-new-password") is not None

    def test_short_password(self, db: Session) -> None:
        with pytest.raises(ValueError, match="at least 8"):
            ensure_admin(db, "owner", "short")
        assert db.query(User).count() == 0

    def test_command_line(
        self, monkeypatch: pytest.MonkeyPatch, session_factory, db: Session
    ) -> None:
        monkeypatch.setattr(create_admin, "SessionLocal", session_factory)
        monkeypatch.setattr(create_admin, "configure_logging", lambda: None)
        monkeypatch.setattr(create_admin.getpass, "getpass", lambda prompt: "long-enough")

        assert create_admin.main(["--username", "floor_lead"]) == 0
        assert db.query(User).filter(User.username == "floor_lead").one().role == UserRole.ADMIN

        monkeypatch.setattr(create_admin.getpass, "getpass", lambda prompt: "x")
        assert create_admin.main([]) == 1


class TestUserActivation:
    def test_deactivate_and_reactivate(
        self, db: Session, admin_user: User, staff_user: User
    ) -> None:
        user = set_user_active(
            db, target_user_id=staff_user.id, is_active=False, admin_id=admin_user.id
        )
        db.commit()
        assert user.is_active is False

        set_user_active(db, target_user_id=staff_user.id, is_active=True, admin_id=admin_user.id)
        db.commit()
        actions = [a for (a,) in db.query(AuditLog.action).filter(AuditLog.table_name == "users")]
        assert sorted(actions) == ["USER_ACTIVATED", "USER_DEACTIVATED"]

    def test_unchanged_state_is_not_logged(
        self, db: Session, admin_user: User, staff_user: User
    ) -> None:
        set_user_active(db, target_user_id=staff_user.id, is_active=True, admin_id=admin_user.id)
        assert db.query(AuditLog).count() == 0

    def test_cannot_deactivate_self(self, db: Session, admin_user: User) -> None:
        _make_user(db, "second_admin", UserRole.ADMIN)
        with pytest.raises(ValueError, match="your own account"):
            set_user_active(
                db, target_user_id=admin_user.id, is_active=False, admin_id=admin_user.id
            )

    def test_last_admin_stays_active(
        self, db: Session, admin_user: User, staff_user: User
    ) -> None:
        with pytest.raises(ValueError, match="last active admin"):
            set_user_active(
                db, target_user_id=admin_user.id, is_active=False, admin_id=staff_user.id
            )

    def test_unknown_user(self, db: Session, admin_user: User) -> None:
        with pytest.raises(ValueError, match="User not found"):
            set_user_active(db, target_user_id=uuid4(), is_active=False, admin_id=admin_user.id)
