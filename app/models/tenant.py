"""Tenant model: one directory website, isolated by domain."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class TenantStatus(StrEnum):
    DRAFT = "DRAFT"
    PREVIEW = "PREVIEW"
    PUBLISHED = "PUBLISHED"
    UPDATING = "UPDATING"
    FAILED = "FAILED"


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=100, nullable=False)
    # Globally unique, URL-safe; compared case-insensitively on create/update
    domain: str = Field(max_length=63, unique=True, nullable=False, index=True)
    description: str = Field(default="", max_length=500)
    status: TenantStatus = Field(default=TenantStatus.DRAFT)
    published_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class TenantCreate(SQLModel):
    name: str | None = None
    domain: str | None = None
    description: str = Field(default="", max_length=500)


class TenantUpdate(SQLModel):
    name: str | None = None
    domain: str | None = None
    description: str | None = Field(default=None, max_length=500)


class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    domain: str
    description: str
    status: TenantStatus
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None
