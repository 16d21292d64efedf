"""HTTP-level tests: auth, permissions and the main production flows."""

from __future__ import annotations

from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from bagline.app.models.inventory import InventoryItem
from bagline.app.models.order import ComponentType, Order
from bagline.app.models.user import User
from bagline.app.services.inventory import CLEAR_HISTORY_CONFIRMATION
from bagline.app.services.job_cards import create_job_card
from bagline.app.services.production import create_cutting_job, create_stitching_job
from bagline.tests.conftest import auth

API = "/api/v1"


# ─── Auth ────────────────────────────────────────────────────────────────────


class TestAuth:
    def test_login(self, client: TestClient, admin_user: User) -> None:
        resp = client.post(
            f"{API}/auth/login/access-token",
            data={"username": "test_admin", "password": "password123"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["role"] == "admin"
        me = client.get(f"{API}/users/me", headers=auth(body["access_token"]))
        assert me.status_code == 200
        assert me.json()["username"] == "test_admin"

    def test_wrong_password(self, client: TestClient, admin_user: User) -> None:
        resp = client.post(
            f"{API}/auth/login/access-token",
            data={"username": "test_admin", "password": "nope"},
        )
        assert resp.status_code == 401

    def test_no_token(self, client: TestClient) -> None:
        assert client.get(f"{API}/users/me").status_code == 401

    def test_garbage_token(self, client: TestClient) -> None:
        resp = client.get(f"{API}/users/me", headers=auth("not-a-jwt"))
        assert resp.status_code == 401

    def test_stage_role_permissions(self, client: TestClient, cutting_token: str) -> None:
        resp = client.get(f"{API}/users/me", headers=auth(cutting_token))
        assert resp.json()["permissions"] == ["cutting:write", "jobcard:read"]

    def test_stage_role_cannot_see_orders(self, client: TestClient, cutting_token: str) -> None:
        resp = client.get(f"{API}/orders", headers=auth(cutting_token))
        assert resp.status_code == 403
        assert "order:read" in resp.json()["detail"]


class TestUserApi:
    def test_deactivated_user_is_locked_out(
        self, client: TestClient, admin_token: str, staff_user: User, staff_token: str
    ) -> None:
        resp = client.patch(
            f"{API}/users/{staff_user.id}/active",
            json={"is_active": False},
            headers=auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False

        assert client.get(f"{API}/users/me", headers=auth(staff_token)).status_code == 403
        resp = client.post(
            f"{API}/auth/login/access-token",
            data={"username": "test_staff", "password": "password123"},
        )
        assert resp.status_code == 403

    def test_admin_cannot_lock_self_out(
        self, client: TestClient, admin_token: str, admin_user: User
    ) -> None:
        resp = client.patch(
            f"{API}/users/{admin_user.id}/active",
            json={"is_active": False},
            headers=auth(admin_token),
        )
        assert resp.status_code == 400

    def test_staff_cannot_manage_users(
        self, client: TestClient, staff_token: str, staff_user: User
    ) -> None:
        resp = client.patch(
            f"{API}/users/{staff_user.id}/active",
            json={"is_active": False},
            headers=auth(staff_token),
        )
        assert resp.status_code == 403


# ─── Inventory ───────────────────────────────────────────────────────────────


class TestInventoryApi:
    def test_create_and_adjust(self, client: TestClient, staff_token: str) -> None:
        resp = client.post(
            f"{API}/inventory",
            json={"material_name": "Zip 8in", "unit": "piece", "opening_quantity": "40"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 201
        item_id = resp.json()["id"]
        assert Decimal(resp.json()["quantity"]) == Decimal("40")

        resp = client.post(
            f"{API}/inventory/{item_id}/adjust",
            json={"delta": "-15", "notes": "Counted short"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 200
        assert Decimal(resp.json()["new_quantity"]) == Decimal("25")
        assert resp.json()["metadata"]["material_name"] == "Zip 8in"

        resp = client.post(
            f"{API}/inventory/{item_id}/adjust",
            json={"delta": "-30"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 400
        assert "Insufficient stock" in resp.json()["detail"]

        logs = client.get(
            f"{API}/inventory/transactions",
            params={"material_id": item_id},
            headers=auth(staff_token),
        )
        assert len(logs.json()) == 2

    def test_missing_item(self, client: TestClient, staff_token: str) -> None:
        resp = client.get(
            f"{API}/inventory/00000000-0000-0000-0000-000000000000", headers=auth(staff_token)
        )
        assert resp.status_code == 404

    def test_clearing_history_needs_admin(
        self,
        client: TestClient,
        staff_token: str,
        admin_token: str,
        fabric: InventoryItem,
    ) -> None:
        payload = {"confirmation": CLEAR_HISTORY_CONFIRMATION}
        resp = client.request(
            "DELETE", f"{API}/inventory/transactions", json=payload, headers=auth(staff_token)
        )
        assert resp.status_code == 403

        resp = client.request(
            "DELETE",
            f"{API}/inventory/transactions",
            json={"confirmation": "delete"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 400

        resp = client.request(
            "DELETE", f"{API}/inventory/transactions", json=payload, headers=auth(admin_token)
        )
        assert resp.status_code == 200
        assert resp.json() == {"deleted_transaction_logs": 1}


# ─── Purchases ───────────────────────────────────────────────────────────────


class TestPurchaseApi:
    def test_purchase_flow(
        self, client: TestClient, staff_token: str, fabric: InventoryItem
    ) -> None:
        resp = client.post(
            f"{API}/purchases",
            json={
                "transport_charge": "5",
                "items": [
                    {"material_id": str(fabric.id), "quantity": "10", "unit_price": "13"}
                ],
            },
            headers=auth(staff_token),
        )
        assert resp.status_code == 201
        purchase = resp.json()
        assert purchase["status"] == "pending"
        assert Decimal(purchase["total_amount"]) == Decimal("135")

        resp = client.post(
            f"{API}/purchases/{purchase['id']}/complete", headers=auth(staff_token)
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        item = client.get(f"{API}/inventory/{fabric.id}", headers=auth(staff_token)).json()
        assert Decimal(item["quantity"]) == Decimal("110")

        resp = client.post(
            f"{API}/purchases/{purchase['id']}/complete", headers=auth(staff_token)
        )
        assert resp.status_code == 400

        resp = client.delete(f"{API}/purchases/{purchase['id']}", headers=auth(staff_token))
        assert resp.status_code == 204
        item = client.get(f"{API}/inventory/{fabric.id}", headers=auth(staff_token)).json()
        assert Decimal(item["quantity"]) == Decimal("100")


# ─── Orders and job cards ────────────────────────────────────────────────────


class TestOrderApi:
    def test_create_order(
        self, client: TestClient, staff_token: str, fabric: InventoryItem
    ) -> None:
        resp = client.post(
            f"{API}/orders",
            json={
                "company_name": "Green Mart",
                "quantity": 3,
                "components": [
                    {
                        "component_type": "part",
                        "material_id": str(fabric.id),
                        "formula": "manual",
                        "consumption": "600",
                    }
                ],
            },
            headers=auth(staff_token),
        )
        assert resp.status_code == 201
        component = resp.json()["components"][0]
        assert Decimal(component["consumption"]) == Decimal("1800")
        assert Decimal(component["material_rate"]) == Decimal("12.5")

    def test_cost(self, client: TestClient, staff_token: str, two_part_order: Order) -> None:
        resp = client.get(
            f"{API}/orders/{two_part_order.id}/cost",
            params={"stitching_charge": "1.5", "margin_percent": "0"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert Decimal(body["material_cost"]) == Decimal("197.5")
        assert Decimal(body["total_cost"]) == Decimal("199")
        assert Decimal(body["selling_price"]) == Decimal("199")

    def test_delete_order_restores_stock(
        self,
        client: TestClient,
        db: Session,
        staff_token: str,
        two_part_order: Order,
        fabric: InventoryItem,
    ) -> None:
        order_id = two_part_order.id
        create_job_card(db, order_id=order_id, job_name="Run")

        resp = client.delete(f"{API}/orders/{order_id}", headers=auth(staff_token))
        assert resp.status_code == 204
        item = client.get(f"{API}/inventory/{fabric.id}", headers=auth(staff_token)).json()
        assert Decimal(item["quantity"]) == Decimal("100")

        resp = client.delete(f"{API}/orders/{order_id}", headers=auth(staff_token))
        assert resp.status_code == 404


class TestJobCardApi:
    def test_create_then_delete(
        self,
        client: TestClient,
        staff_token: str,
        two_part_order: Order,
        handle_tape: InventoryItem,
    ) -> None:
        resp = client.post(
            f"{API}/job-cards",
            json={"order_id": str(two_part_order.id), "job_name": "Morning shift"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 201
        job_card = resp.json()
        assert job_card["job_number"] == f"JOB-{two_part_order.order_number}"

        check = client.get(
            f"{API}/job-cards/{job_card['id']}/deletion-check", headers=auth(staff_token)
        )
        assert check.json()["warnings"] == []

        resp = client.delete(f"{API}/job-cards/{job_card['id']}", headers=auth(staff_token))
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["errors"] == []
        restored = {r["component_type"]: Decimal(r["restored"]) for r in body["reverted"]}
        assert restored == {"part": Decimal("15"), "handle": Decimal("5")}

        item = client.get(f"{API}/inventory/{handle_tape.id}", headers=auth(staff_token)).json()
        assert Decimal(item["quantity"]) == Decimal("50")

    def test_short_stock_is_a_bad_request(
        self,
        client: TestClient,
        staff_token: str,
        make_order,
        fabric: InventoryItem,
    ) -> None:
        order = make_order(
            [
                {
                    "component_type": ComponentType.PART,
                    "material_id": fabric.id,
                    "formula": "manual",
                    "consumption": Decimal("500"),
                }
            ]
        )
        resp = client.post(
            f"{API}/job-cards",
            json={"order_id": str(order.id), "job_name": "Too much"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 400
        assert "Insufficient stock" in resp.json()["detail"]

    def test_stage_operator_cannot_delete(
        self, client: TestClient, cutting_token: str, db: Session, two_part_order: Order
    ) -> None:
        job_card = create_job_card(db, order_id=two_part_order.id, job_name="Run")
        resp = client.delete(f"{API}/job-cards/{job_card.id}", headers=auth(cutting_token))
        assert resp.status_code == 403


# ─── Production stages ───────────────────────────────────────────────────────


class TestStageStatusApi:
    def test_operator_moves_own_stage_only(
        self,
        client: TestClient,
        db: Session,
        cutting_token: str,
        two_part_order: Order,
    ) -> None:
        job_card = create_job_card(db, order_id=two_part_order.id, job_name="Run")
        cutting = create_cutting_job(
            db, job_card_id=job_card.id, roll_width=Decimal("40"), components=[]
        )

        resp = client.patch(
            f"{API}/production/cutting/{cutting.id}/status",
            json={"status": "in_progress"},
            headers=auth(cutting_token),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "in_progress"

        resp = client.patch(
            f"{API}/production/printing/{cutting.id}/status",
            json={"status": "in_progress"},
            headers=auth(cutting_token),
        )
        assert resp.status_code == 403

        resp = client.patch(
            f"{API}/production/packing/{cutting.id}/status",
            json={"status": "in_progress"},
            headers=auth(cutting_token),
        )
        assert resp.status_code == 404

    def test_dispatch(self, client: TestClient, staff_token: str, two_part_order: Order) -> None:
        resp = client.post(
            f"{API}/dispatches",
            json={
                "order_id": str(two_part_order.id),
                "recipient_name": "Green Mart",
                "delivery_address": "4 Mill Lane",
                "delivery_date": "2026-05-01",
            },
            headers=auth(staff_token),
        )
        assert resp.status_code == 201
        order = client.get(f"{API}/orders/{two_part_order.id}", headers=auth(staff_token))
        assert order.json()["status"] == "dispatched"


# ─── Billing and analytics ───────────────────────────────────────────────────


class TestBillingApi:
    def test_vendor_bill_flow(
        self, client: TestClient, db: Session, staff_token: str, two_part_order: Order
    ) -> None:
        resp = client.post(
            f"{API}/billing/vendors",
            json={"name": "Sharma Stitching Works", "service_type": "stitching"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 201
        vendor_id = resp.json()["id"]

        job_card = create_job_card(db, order_id=two_part_order.id, job_name="Run")
        job = create_stitching_job(
            db,
            job_card_id=job_card.id,
            fields={"part_quantity": 2000, "rate": Decimal("1.50"), "is_internal": False},
        )
        resp = client.patch(
            f"{API}/production/stitching/{job.id}",
            json={"provided_quantity": 2000, "received_quantity": 1900},
            headers=auth(staff_token),
        )
        assert resp.status_code == 200
        assert resp.json()["received_quantity"] == 1900
        client.patch(
            f"{API}/production/stitching/{job.id}/status",
            json={"status": "completed"},
            headers=auth(staff_token),
        )

        billable = client.get(f"{API}/billing/vendor-bills/billable-jobs", headers=auth(staff_token))
        assert [j["job_id"] for j in billable.json()] == [str(job.id)]

        resp = client.post(
            f"{API}/billing/vendor-bills",
            json={"vendor_id": vendor_id, "job_type": "stitching", "job_id": str(job.id)},
            headers=auth(staff_token),
        )
        assert resp.status_code == 201
        bill = resp.json()
        assert Decimal(bill["total_amount"]) == Decimal("3363")
        assert bill["status"] == "pending"

        resp = client.patch(
            f"{API}/billing/vendor-bills/{bill['id']}/status",
            json={"status": "paid"},
            headers=auth(staff_token),
        )
        assert resp.status_code == 200
        assert resp.json()["paid_at"] is not None

        resp = client.post(
            f"{API}/billing/vendor-bills",
            json={"vendor_id": vendor_id, "job_type": "stitching", "job_id": str(job.id)},
            headers=auth(staff_token),
        )
        assert resp.status_code == 400

    def test_invoice_needs_dispatched_order(
        self, client: TestClient, staff_token: str, two_part_order: Order
    ) -> None:
        resp = client.post(
            f"{API}/billing/sales-invoices",
            json={"order_id": str(two_part_order.id)},
            headers=auth(staff_token),
        )
        assert resp.status_code == 400
        assert "dispatched" in resp.json()["detail"]

    def test_missing_bill(self, client: TestClient, staff_token: str) -> None:
        resp = client.get(
            f"{API}/billing/vendor-bills/00000000-0000-0000-0000-000000000000",
            headers=auth(staff_token),
        )
        assert resp.status_code == 404

    def test_operators_cannot_bill(self, client: TestClient, cutting_token: str) -> None:
        resp = client.get(f"{API}/billing/vendor-bills", headers=auth(cutting_token))
        assert resp.status_code == 403


class TestAnalyticsApi:
    def test_admin_only(self, client: TestClient, staff_token: str, admin_token: str) -> None:
        resp = client.get(f"{API}/analytics/wastage", headers=auth(staff_token))
        assert resp.status_code == 403

        resp = client.get(f"{API}/analytics/wastage", headers=auth(admin_token))
        assert resp.status_code == 200
        assert resp.json()["summary"]["total_jobs"] == 0

    def test_reversed_range(self, client: TestClient, admin_token: str) -> None:
        resp = client.get(
            f"{API}/analytics/material-consumption",
            params={"from_date": "2026-02-01", "to_date": "2026-01-01"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 400

    def test_stock_reports(
        self, client: TestClient, admin_token: str, fabric: InventoryItem
    ) -> None:
        resp = client.get(f"{API}/analytics/inventory-value", headers=auth(admin_token))
        assert Decimal(resp.json()["total_value"]) == Decimal("1250")
        resp = client.get(f"{API}/analytics/refill-needs", headers=auth(admin_token))
        assert resp.json() == []
