"""TenantBranding model: visual identity attached to a tenant (0..1)."""

import uuid

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class TenantBranding(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenant_branding"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, unique=True, index=True)

    logo_url: str | None = Field(default=None, max_length=2048)
    primary_color: str = Field(max_length=7, nullable=False)
    secondary_color: str = Field(max_length=7, nullable=False)
    accent_color: str = Field(max_length=7, nullable=False)
    font_family: str = Field(max_length=50, nullable=False)
    font_url: str | None = Field(default=None, max_length=2048)

    # Derived theme document consumed by the site generator
    theme_json: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))


# ── Pydantic schemas ─────────────────────────────────────────

class BrandingRead(SQLModel):
    logo_url: str | None = None
    primary_color: str
    secondary_color: str
    accent_color: str
    font_family: str
    font_url: str | None = None
