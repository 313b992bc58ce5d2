"""UploadedFile model: files accepted for a tenant and kept in blob storage."""

import uuid
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class UploadKind(StrEnum):
    CATEGORIES = "categories"
    LISTINGS = "listings"
    LOGO = "logo"


# Kinds counted as site media in previews
MEDIA_KINDS = frozenset({UploadKind.LOGO})


class UploadedFile(TimestampMixin, SQLModel, table=True):
    __tablename__ = "uploaded_files"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    kind: UploadKind = Field(nullable=False)
    filename: str = Field(max_length=255, nullable=False)
    storage_uri: str = Field(max_length=2048, nullable=False)
    file_size: int = Field(default=0)
    mime_type: str = Field(default="application/octet-stream", max_length=100)
    records_count: int = Field(default=0)
