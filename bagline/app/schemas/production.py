from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator

from bagline.app.models.production import JobStatus


# ─── Job cards ────────────────────────────────────────────────────────────────


class JobCardCreate(BaseModel):
    order_id: UUID
    job_name: str
    notes: str | None = None


class JobCardOut(BaseModel):
    id: UUID
    job_number: str
    job_name: str
    order_id: UUID
    status: JobStatus
    notes: str | None
    created_at: datetime | None

    class Config:
        from_attributes = True


class DeletionCheckOut(BaseModel):
    job_card_id: UUID
    can_delete: bool = True
    warnings: list[str]


class RevertedMaterialOut(BaseModel):
    material_id: UUID
    material_name: str
    component_id: UUID
    component_type: str
    previous: Decimal
    new: Decimal
    restored: Decimal
    unit: str
    from_log: bool

    class Config:
        from_attributes = True


class ReversalOut(BaseModel):
    success: bool
    reverted: list[RevertedMaterialOut]
    errors: list[str]

    class Config:
        from_attributes = True


# ─── Cutting ──────────────────────────────────────────────────────────────────


class CuttingComponentIn(BaseModel):
    component_id: UUID
    width: Decimal | None = None
    height: Decimal | None = None
    counter: Decimal | None = None
    rewinding: Decimal | None = None
    rate: Decimal | None = None
    waste_quantity: Decimal | None = None
    status: JobStatus = JobStatus.PENDING
    notes: str | None = None


class CuttingComponentOut(CuttingComponentIn):
    id: UUID

    class Config:
        from_attributes = True


class CuttingJobCreate(BaseModel):
    job_card_id: UUID
    roll_width: Decimal
    consumption_meters: Decimal | None = None
    worker_name: str | None = None
    is_internal: bool = True
    provided_quantity: int | None = None
    components: list[CuttingComponentIn] = []

    @field_validator("roll_width")
    @classmethod
    def roll_width_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Roll width must be greater than zero")
        return v


class CuttingJobUpdate(BaseModel):
    roll_width: Decimal | None = None
    consumption_meters: Decimal | None = None
    worker_name: str | None = None
    is_internal: bool | None = None
    provided_quantity: int | None = None
    received_quantity: int | None = None
    components: list[CuttingComponentIn] | None = None


class CuttingJobOut(BaseModel):
    id: UUID
    job_card_id: UUID
    roll_width: Decimal
    consumption_meters: Decimal | None
    worker_name: str | None
    is_internal: bool
    provided_quantity: int | None
    received_quantity: int | None
    status: JobStatus
    components: list[CuttingComponentOut]

    class Config:
        from_attributes = True


# ─── Printing / stitching ─────────────────────────────────────────────────────


class PrintingJobCreate(BaseModel):
    job_card_id: UUID
    pulling: str | None = None
    gsm: str | None = None
    sheet_length: Decimal | None = None
    sheet_width: Decimal | None = None
    rate: Decimal | None = None
    worker_name: str | None = None
    is_internal: bool = True
    expected_completion_date: date | None = None
    provided_quantity: int | None = None
    received_quantity: int | None = None


class PrintingJobOut(BaseModel):
    id: UUID
    job_card_id: UUID
    pulling: str | None
    gsm: str | None
    sheet_length: Decimal | None
    sheet_width: Decimal | None
    rate: Decimal | None
    worker_name: str | None
    is_internal: bool
    expected_completion_date: date | None
    provided_quantity: int | None
    received_quantity: int | None
    status: JobStatus

    class Config:
        from_attributes = True


class StitchingJobCreate(BaseModel):
    job_card_id: UUID
    part_quantity: int | None = None
    border_quantity: int | None = None
    handle_quantity: int | None = None
    chain_quantity: int | None = None
    runner_quantity: int | None = None
    piping_quantity: int | None = None
    total_quantity: int | None = None
    rate: Decimal | None = None
    worker_name: str | None = None
    is_internal: bool = True
    provided_quantity: int | None = None
    received_quantity: int | None = None
    notes: str | None = None


class StitchingJobOut(BaseModel):
    id: UUID
    job_card_id: UUID
    part_quantity: int | None
    border_quantity: int | None
    handle_quantity: int | None
    chain_quantity: int | None
    runner_quantity: int | None
    piping_quantity: int | None
    total_quantity: int | None
    rate: Decimal | None
    worker_name: str | None
    is_internal: bool
    provided_quantity: int | None
    received_quantity: int | None
    notes: str | None
    status: JobStatus

    class Config:
        from_attributes = True


class StageStatusUpdate(BaseModel):
    status: JobStatus


class StageJobUpdate(BaseModel):
    """Editable fields of a printing or stitching job."""

    pulling: str | None = None
    gsm: str | None = None
    sheet_length: Decimal | None = None
    sheet_width: Decimal | None = None
    expected_completion_date: date | None = None
    part_quantity: int | None = None
    border_quantity: int | None = None
    handle_quantity: int | None = None
    chain_quantity: int | None = None
    runner_quantity: int | None = None
    piping_quantity: int | None = None
    total_quantity: int | None = None
    rate: Decimal | None = None
    worker_name: str | None = None
    is_internal: bool | None = None
    provided_quantity: int | None = None
    received_quantity: int | None = None
    notes: str | None = None
