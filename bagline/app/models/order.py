from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bagline.app.core.database import Base
from bagline.app.models.inventory import InventoryItem, _enum_values


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    CUTTING = "cutting"
    PRINTING = "printing"
    STITCHING = "stitching"
    READY_FOR_DISPATCH = "ready_for_dispatch"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPATCHED = "dispatched"


class ComponentType(str, enum.Enum):
    PART = "part"
    BORDER = "border"
    HANDLE = "handle"
    CHAIN = "chain"
    RUNNER = "runner"
    CUSTOM = "custom"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    bag_length: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    bag_width: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    rate: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    components: Mapped[list[OrderComponent]] = relationship(
        back_populates="order", order_by="OrderComponent.component_type"
    )
    dispatches: Mapped[list[OrderDispatch]] = relationship(back_populates="order")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_quantity_positive"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_order_date", "order_date"),
    )


class OrderComponent(Base):
    """A material requirement of an order.

    ``base_consumption`` is the figure the user typed. For manual components
    ``consumption`` is ``base_consumption * order.quantity``; for calculated
    components the two are equal.
    """

    __tablename__ = "order_components"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    component_type: Mapped[ComponentType] = mapped_column(
        Enum(ComponentType, values_callable=_enum_values), nullable=False
    )
    custom_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    material_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("inventory.id", ondelete="SET NULL"), nullable=True
    )
    color: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gsm: Mapped[str | None] = mapped_column(String(50), nullable=True)
    size: Mapped[str | None] = mapped_column(String(100), nullable=True)
    length: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    width: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    roll_width: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    formula: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_manual_consumption: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    base_consumption: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    consumption: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    material_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )

    order: Mapped[Order] = relationship(back_populates="components")
    material: Mapped[InventoryItem | None] = relationship()

    __table_args__ = (
        Index("ix_order_components_order", "order_id"),
        Index("ix_order_components_material", "material_id"),
    )


class OrderDispatch(Base):
    __tablename__ = "order_dispatches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    tracking_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    quality_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    quantity_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    order: Mapped[Order] = relationship(back_populates="dispatches")

    __table_args__ = (Index("ix_dispatches_order", "order_id"),)
