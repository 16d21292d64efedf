from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bagline.app.core.database import Base
from bagline.app.models.audit import JSONType


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class TransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    PURCHASE_REVERSAL = "purchase-reversal"
    CONSUMPTION = "consumption"
    JOB_CARD_REVERSAL = "job-card-reversal"
    ADJUSTMENT = "adjustment"


class ReferenceType(str, enum.Enum):
    PURCHASE = "Purchase"
    JOB_CARD = "JobCard"
    ORDER = "Order"
    MANUAL = "Manual"


class InventoryItem(Base):
    """A stocked material (fabric roll, handle tape, thread...).

    ``quantity`` is only ever changed through
    ``services.inventory.apply_inventory_change`` so that every change has a
    matching :class:`InventoryTransactionLog` row.
    """

    __tablename__ = "inventory"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    material_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    alternate_unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    conversion_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    color: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gsm: Mapped[str | None] = mapped_column(String(50), nullable=True)
    roll_width: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    purchase_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    selling_price: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    reorder_level: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        Index("ix_inventory_material_name", "material_name"),
    )


class InventoryTransactionLog(Base):
    """Append-only record of one signed change to an inventory quantity."""

    __tablename__ = "inventory_transaction_log"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    material_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("inventory.id", ondelete="SET NULL"), nullable=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, values_callable=_enum_values), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    previous_quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    new_quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    reference_type: Mapped[ReferenceType | None] = mapped_column(
        Enum(ReferenceType, values_callable=_enum_values), nullable=True
    )
    reference_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    material: Mapped[InventoryItem | None] = relationship()

    __table_args__ = (
        Index("ix_inv_log_material", "material_id"),
        Index("ix_inv_log_reference", "reference_type", "reference_id"),
        Index("ix_inv_log_transaction_date", "transaction_date"),
    )
