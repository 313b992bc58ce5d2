"""Listing model: a business entry in a tenant's directory."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Text, UniqueConstraint
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class Listing(TimestampMixin, SQLModel, table=True):
    __tablename__ = "listings"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_listings_tenant_slug"),)

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    category_id: uuid.UUID = Field(foreign_key="categories.id", nullable=False, index=True)

    title: str = Field(max_length=200, nullable=False)
    slug: str = Field(max_length=255, nullable=False)
    description: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    featured: bool = Field(default=False)

    # Extra import columns, JSON object
    data: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))

    # Lower-cased projection used by the search index
    search_text: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))


# ── Pydantic schemas ─────────────────────────────────────────

class ListingUpdate(SQLModel):
    title: str | None = None
    description: str | None = None
    data: dict[str, Any] | None = None


class ListingRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    category_id: uuid.UUID
    title: str
    slug: str
    description: str
    featured: bool
    data: dict[str, Any]
    updated_at: datetime
