"""Add vendors, vendor bills, sales invoices and stage piece counts.

Revision ID: 1b2c3d4e5f6a
Revises: 0a1b2c3d4e5f
Create Date: 2026-10-19 16:00:00.000000+00:00
"""

from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "1b2c3d4e5f6a"
down_revision: Union[str, None] = "0a1b2c3d4e5f"
branch_labels: Union[str, None] = None
depends_on: Union[str, None] = None


def _money() -> sa.Numeric:
    return sa.Numeric(precision=20, scale=4)


def upgrade() -> None:
    # vendorbillstatus is a new type, created by create_table
    op.create_table(
        "vendors",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("service_type", sa.String(50), nullable=True),
        sa.Column("gst_number", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "vendor_bills",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("bill_number", sa.String(100), unique=True, nullable=False),
        sa.Column("vendor_id", sa.Uuid(), sa.ForeignKey("vendors.id"), nullable=False),
        sa.Column("job_type", sa.String(20), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column(
            "job_card_id", sa.Uuid(), sa.ForeignKey("job_cards.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("order_id", sa.Uuid(), sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("order_number", sa.String(100), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", _money(), nullable=False),
        sa.Column("rate", _money(), nullable=False),
        sa.Column("subtotal", _money(), nullable=False),
        sa.Column("gst_percentage", sa.Numeric(precision=7, scale=4), nullable=False),
        sa.Column("gst_amount", _money(), nullable=False),
        sa.Column("other_expenses", _money(), nullable=False),
        sa.Column("total_amount", _money(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "paid", "cancelled", name="vendorbillstatus"),
            nullable=False,
        ),
        sa.Column("bill_date", sa.Date(), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_vendor_bills_vendor", "vendor_bills", ["vendor_id"])
    op.create_index("ix_vendor_bills_job", "vendor_bills", ["job_type", "job_id"])
    op.create_index("ix_vendor_bills_status", "vendor_bills", ["status"])

    op.create_table(
        "sales_invoices",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("invoice_number", sa.String(100), unique=True, nullable=False),
        sa.Column("order_id", sa.Uuid(), sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("order_number", sa.String(100), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", _money(), nullable=False),
        sa.Column("rate", _money(), nullable=False),
        sa.Column("transport_included", sa.Boolean(), nullable=False),
        sa.Column("transport_charge", _money(), nullable=False),
        sa.Column("gst_percentage", sa.Numeric(precision=7, scale=4), nullable=False),
        sa.Column("subtotal", _money(), nullable=False),
        sa.Column("gst_amount", _money(), nullable=False),
        sa.Column("other_expenses", _money(), nullable=False),
        sa.Column("total_amount", _money(), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_sales_invoices_order", "sales_invoices", ["order_id"])

    op.add_column("cutting_jobs", sa.Column("provided_quantity", sa.Integer(), nullable=True))
    for table in ("printing_jobs", "stitching_jobs"):
        op.add_column(table, sa.Column("provided_quantity", sa.Integer(), nullable=True))
        op.add_column(table, sa.Column("received_quantity", sa.Integer(), nullable=True))


def downgrade() -> None:
    for table in ("stitching_jobs", "printing_jobs"):
        op.drop_column(table, "received_quantity")
        op.drop_column(table, "provided_quantity")
    op.drop_column("cutting_jobs", "provided_quantity")

    op.drop_index("ix_sales_invoices_order", table_name="sales_invoices")
    op.drop_table("sales_invoices")
    op.drop_index("ix_vendor_bills_status", table_name="vendor_bills")
    op.drop_index("ix_vendor_bills_job", table_name="vendor_bills")
    op.drop_index("ix_vendor_bills_vendor", table_name="vendor_bills")
    op.drop_table("vendor_bills")
    op.drop_table("vendors")

    op.execute("DROP TYPE IF EXISTS vendorbillstatus")
