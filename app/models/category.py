"""Category model: hierarchical grouping of listings within a tenant."""

import uuid

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid

MAX_CATEGORY_DEPTH = 5


class Category(TimestampMixin, SQLModel, table=True):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_categories_tenant_slug"),)

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    parent_id: uuid.UUID | None = Field(
        default=None, foreign_key="categories.id", nullable=True, index=True,
    )

    name: str = Field(max_length=255, nullable=False)
    slug: str = Field(max_length=255, nullable=False)
    description: str = Field(default="", max_length=1000)
    icon: str = Field(default="", max_length=255)
    sort_order: int = Field(default=0)
    is_active: bool = Field(default=True)


# ── Pydantic schemas ─────────────────────────────────────────

class CategoryRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    parent_id: uuid.UUID | None = None
    name: str
    slug: str
    description: str
    icon: str
    sort_order: int
