"""ProvisioningJob model: a polled, asynchronous publish operation."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class JobStatus(StrEnum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobType(StrEnum):
    CREATE = "CREATE"
    REPUBLISH = "REPUBLISH"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
ACTIVE_JOB_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.RUNNING})


class ProvisioningJob(TimestampMixin, SQLModel, table=True):
    __tablename__ = "provisioning_jobs"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    type: JobType = Field(default=JobType.CREATE)
    status: JobStatus = Field(default=JobStatus.QUEUED)

    # Only the worker advances these
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = Field(default="QUEUED", max_length=50)
    steps_total: int = Field(nullable=False, ge=1, le=10)
    steps_completed: int = Field(default=0, ge=0)

    error_message: str | None = Field(default=None, max_length=2000)

    # Step artifacts and, once COMPLETED, {"result": {...}}
    external_refs: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class JobResult(SQLModel):
    tenant_url: str
    admin_url: str


class JobRead(SQLModel):
    """Polling view. ``result`` only when COMPLETED, ``error_message`` only when FAILED."""
    job_id: uuid.UUID
    tenant_id: uuid.UUID
    type: JobType
    status: JobStatus
    progress: int
    current_step: str
    steps_total: int
    steps_completed: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: JobResult | None = None
    error_message: str | None = None
