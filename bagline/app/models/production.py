from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
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
from bagline.app.models.inventory import _enum_values
from bagline.app.models.order import Order, OrderComponent


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def _job_status_column() -> Mapped[JobStatus]:
    return mapped_column(
        Enum(JobStatus, values_callable=_enum_values),
        nullable=False,
        default=JobStatus.PENDING,
    )


class JobCard(Base):
    __tablename__ = "job_cards"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    job_name: Mapped[str] = mapped_column(String(255), nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[JobStatus] = _job_status_column()
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    order: Mapped[Order] = relationship()
    cutting_jobs: Mapped[list[CuttingJob]] = relationship(back_populates="job_card")
    printing_jobs: Mapped[list[PrintingJob]] = relationship(back_populates="job_card")
    stitching_jobs: Mapped[list[StitchingJob]] = relationship(back_populates="job_card")

    __table_args__ = (Index("ix_job_cards_order", "order_id"),)


class CuttingJob(Base):
    __tablename__ = "cutting_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("job_cards.id", ondelete="CASCADE"), nullable=False
    )
    roll_width: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    consumption_meters: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    worker_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    provided_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    received_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[JobStatus] = _job_status_column()
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    job_card: Mapped[JobCard] = relationship(back_populates="cutting_jobs")
    components: Mapped[list[CuttingComponent]] = relationship(
        back_populates="cutting_job", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_cutting_jobs_job_card", "job_card_id"),)


class CuttingComponent(Base):
    __tablename__ = "cutting_components"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cutting_job_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cutting_jobs.id", ondelete="CASCADE"), nullable=False
    )
    component_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("order_components.id", ondelete="CASCADE"), nullable=False
    )
    width: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    height: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    counter: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    rewinding: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    waste_quantity: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    status: Mapped[JobStatus] = _job_status_column()
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    cutting_job: Mapped[CuttingJob] = relationship(back_populates="components")
    component: Mapped[OrderComponent] = relationship()

    __table_args__ = (Index("ix_cutting_components_job", "cutting_job_id"),)


class PrintingJob(Base):
    __tablename__ = "printing_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("job_cards.id", ondelete="CASCADE"), nullable=False
    )
    pulling: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gsm: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sheet_length: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    sheet_width: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    rate: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    worker_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expected_completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    provided_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    received_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[JobStatus] = _job_status_column()
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    job_card: Mapped[JobCard] = relationship(back_populates="printing_jobs")

    __table_args__ = (Index("ix_printing_jobs_job_card", "job_card_id"),)


class StitchingJob(Base):
    __tablename__ = "stitching_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("job_cards.id", ondelete="CASCADE"), nullable=False
    )
    part_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    border_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    handle_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    chain_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    runner_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    piping_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    worker_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    provided_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    received_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[JobStatus] = _job_status_column()
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    job_card: Mapped[JobCard] = relationship(back_populates="stitching_jobs")

    __table_args__ = (Index("ix_stitching_jobs_job_card", "job_card_id"),)
