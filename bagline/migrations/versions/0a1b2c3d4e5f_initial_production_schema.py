"""initial_production_schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    'userrole': ('admin', 'staff', 'printer', 'cutting', 'stitching'),
    'transactiontype': (
        'purchase', 'purchase-reversal', 'consumption', 'job-card-reversal', 'adjustment',
    ),
    'referencetype': ('Purchase', 'JobCard', 'Order', 'Manual'),
    'purchasestatus': ('pending', 'completed', 'cancelled'),
    'orderstatus': (
        'pending', 'in_production', 'cutting', 'printing', 'stitching',
        'ready_for_dispatch', 'completed', 'cancelled', 'dispatched',
    ),
    'componenttype': ('part', 'border', 'handle', 'chain', 'runner', 'custom'),
    'jobstatus': ('pending', 'in_progress', 'completed'),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created once up front; columns only reference them.
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _money() -> sa.Numeric:
    return sa.Numeric(precision=20, scale=4)


def _created_at() -> sa.Column:
    return sa.Column(
        'created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True
    )


def upgrade() -> None:
    """Create users, inventory, purchases, orders and production tables."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=150), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', _enum('userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('table_name', sa.String(length=100), nullable=False),
        sa.Column('record_id', sa.String(length=255), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('changed_by', sa.Uuid(), nullable=True),
        sa.Column('new_values', postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_table_record', 'audit_logs', ['table_name', 'record_id'])
    op.create_index('ix_audit_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_action', 'audit_logs', ['action'])

    op.create_table(
        'inventory',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('material_name', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=50), nullable=False),
        sa.Column('alternate_unit', sa.String(length=50), nullable=True),
        sa.Column('conversion_rate', _money(), nullable=True),
        sa.Column('color', sa.String(length=100), nullable=True),
        sa.Column('gsm', sa.String(length=50), nullable=True),
        sa.Column('roll_width', _money(), nullable=True),
        sa.Column('purchase_rate', _money(), nullable=True),
        sa.Column('selling_price', _money(), nullable=True),
        sa.Column('reorder_level', _money(), nullable=False),
        sa.Column('quantity', _money(), nullable=False),
        _created_at(),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True
        ),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_material_name', 'inventory', ['material_name'])

    op.create_table(
        'inventory_transaction_log',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('material_id', sa.Uuid(), nullable=True),
        sa.Column('transaction_type', _enum('transactiontype'), nullable=False),
        sa.Column('quantity', _money(), nullable=False),
        sa.Column('previous_quantity', _money(), nullable=False),
        sa.Column('new_quantity', _money(), nullable=False),
        sa.Column('reference_type', _enum('referencetype'), nullable=True),
        sa.Column('reference_id', sa.Uuid(), nullable=True),
        sa.Column('reference_number', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column(
            'transaction_date',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(['material_id'], ['inventory.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inv_log_material', 'inventory_transaction_log', ['material_id'])
    op.create_index(
        'ix_inv_log_reference', 'inventory_transaction_log', ['reference_type', 'reference_id']
    )
    op.create_index(
        'ix_inv_log_transaction_date', 'inventory_transaction_log', ['transaction_date']
    )

    op.create_table(
        'suppliers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('gst_number', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'purchases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('purchase_number', sa.String(length=100), nullable=False),
        sa.Column('supplier_id', sa.Uuid(), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('status', _enum('purchasestatus'), nullable=False),
        sa.Column('transport_charge', _money(), nullable=False),
        sa.Column('subtotal', _money(), nullable=False),
        sa.Column('gst_total', _money(), nullable=False),
        sa.Column('total_amount', _money(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('purchase_number'),
    )
    op.create_index('ix_purchases_supplier', 'purchases', ['supplier_id'])
    op.create_index('ix_purchases_status', 'purchases', ['status'])

    op.create_table(
        'purchase_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('purchase_id', sa.Uuid(), nullable=False),
        sa.Column('material_id', sa.Uuid(), nullable=True),
        sa.Column('quantity', _money(), nullable=False),
        sa.Column('unit_price', _money(), nullable=False),
        sa.Column('alt_quantity', _money(), nullable=True),
        sa.Column('alt_unit_price', _money(), nullable=True),
        sa.Column('gst_rate', sa.Numeric(precision=7, scale=4), nullable=False),
        sa.Column('actual_meter', _money(), nullable=False),
        sa.Column('base_amount', _money(), nullable=False),
        sa.Column('gst_amount', _money(), nullable=False),
        sa.Column('transport_share', _money(), nullable=False),
        sa.Column('line_total', _money(), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['inventory.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchase_items_purchase', 'purchase_items', ['purchase_id'])
    op.create_index('ix_purchase_items_material', 'purchase_items', ['material_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(length=100), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('bag_length', _money(), nullable=False),
        sa.Column('bag_width', _money(), nullable=False),
        sa.Column('rate', _money(), nullable=True),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('status', _enum('orderstatus'), nullable=False),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        _created_at(),
        sa.CheckConstraint('quantity > 0', name='ck_order_quantity_positive'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number'),
    )
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_order_date', 'orders', ['order_date'])

    op.create_table(
        'order_components',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('component_type', _enum('componenttype'), nullable=False),
        sa.Column('custom_name', sa.String(length=255), nullable=True),
        sa.Column('material_id', sa.Uuid(), nullable=True),
        sa.Column('color', sa.String(length=100), nullable=True),
        sa.Column('gsm', sa.String(length=50), nullable=True),
        sa.Column('size', sa.String(length=100), nullable=True),
        sa.Column('length', _money(), nullable=True),
        sa.Column('width', _money(), nullable=True),
        sa.Column('roll_width', _money(), nullable=True),
        sa.Column('formula', sa.String(length=50), nullable=True),
        sa.Column('is_manual_consumption', sa.Boolean(), nullable=False),
        sa.Column('base_consumption', _money(), nullable=True),
        sa.Column('consumption', _money(), nullable=True),
        sa.Column('material_rate', _money(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['inventory.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_components_order', 'order_components', ['order_id'])
    op.create_index('ix_order_components_material', 'order_components', ['material_id'])

    op.create_table(
        'order_dispatches',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('recipient_name', sa.String(length=255), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('quality_checked', sa.Boolean(), nullable=False),
        sa.Column('quantity_checked', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dispatches_order', 'order_dispatches', ['order_id'])

    op.create_table(
        'job_cards',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('job_number', sa.String(length=100), nullable=False),
        sa.Column('job_name', sa.String(length=255), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('status', _enum('jobstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('job_number'),
    )
    op.create_index('ix_job_cards_order', 'job_cards', ['order_id'])

    op.create_table(
        'cutting_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('job_card_id', sa.Uuid(), nullable=False),
        sa.Column('roll_width', _money(), nullable=False),
        sa.Column('consumption_meters', _money(), nullable=True),
        sa.Column('worker_name', sa.String(length=255), nullable=True),
        sa.Column('is_internal', sa.Boolean(), nullable=False),
        sa.Column('received_quantity', sa.Integer(), nullable=True),
        sa.Column('status', _enum('jobstatus'), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['job_card_id'], ['job_cards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cutting_jobs_job_card', 'cutting_jobs', ['job_card_id'])

    op.create_table(
        'cutting_components',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cutting_job_id', sa.Uuid(), nullable=False),
        sa.Column('component_id', sa.Uuid(), nullable=False),
        sa.Column('width', _money(), nullable=True),
        sa.Column('height', _money(), nullable=True),
        sa.Column('counter', _money(), nullable=True),
        sa.Column('rewinding', _money(), nullable=True),
        sa.Column('rate', _money(), nullable=True),
        sa.Column('waste_quantity', _money(), nullable=True),
        sa.Column('status', _enum('jobstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['cutting_job_id'], ['cutting_jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['component_id'], ['order_components.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cutting_components_job', 'cutting_components', ['cutting_job_id'])

    op.create_table(
        'printing_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('job_card_id', sa.Uuid(), nullable=False),
        sa.Column('pulling', sa.String(length=100), nullable=True),
        sa.Column('gsm', sa.String(length=50), nullable=True),
        sa.Column('sheet_length', _money(), nullable=True),
        sa.Column('sheet_width', _money(), nullable=True),
        sa.Column('rate', _money(), nullable=True),
        sa.Column('worker_name', sa.String(length=255), nullable=True),
        sa.Column('is_internal', sa.Boolean(), nullable=False),
        sa.Column('expected_completion_date', sa.Date(), nullable=True),
        sa.Column('status', _enum('jobstatus'), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['job_card_id'], ['job_cards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_printing_jobs_job_card', 'printing_jobs', ['job_card_id'])

    op.create_table(
        'stitching_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('job_card_id', sa.Uuid(), nullable=False),
        sa.Column('part_quantity', sa.Integer(), nullable=True),
        sa.Column('border_quantity', sa.Integer(), nullable=True),
        sa.Column('handle_quantity', sa.Integer(), nullable=True),
        sa.Column('chain_quantity', sa.Integer(), nullable=True),
        sa.Column('runner_quantity', sa.Integer(), nullable=True),
        sa.Column('piping_quantity', sa.Integer(), nullable=True),
        sa.Column('total_quantity', sa.Integer(), nullable=True),
        sa.Column('rate', _money(), nullable=True),
        sa.Column('worker_name', sa.String(length=255), nullable=True),
        sa.Column('is_internal', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', _enum('jobstatus'), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['job_card_id'], ['job_cards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stitching_jobs_job_card', 'stitching_jobs', ['job_card_id'])


def downgrade() -> None:
    """Drop every table and enum type created above."""
    for table in (
        'stitching_jobs',
        'printing_jobs',
        'cutting_components',
        'cutting_jobs',
        'job_cards',
        'order_dispatches',
        'order_components',
        'orders',
        'purchase_items',
        'purchases',
        'suppliers',
        'inventory_transaction_log',
        'inventory',
        'audit_logs',
        'users',
    ):
        op.drop_table(table)
    for name in ENUMS:
        op.execute(f"DROP TYPE IF EXISTS {name}")
