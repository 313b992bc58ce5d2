"""User model: end users who claim listings, and admins who review claims."""

import uuid
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class UserRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    # Stored lower-cased
    email: str = Field(max_length=320, nullable=False, unique=True, index=True)
    password_hash: str = Field(nullable=False)
    first_name: str = Field(max_length=50, nullable=False)
    last_name: str = Field(max_length=50, nullable=False)
    business_name: str | None = Field(default=None, max_length=100)
    business_role: str | None = Field(default=None, max_length=50)
    role: UserRole = Field(default=UserRole.USER)
    email_verified: bool = Field(default=False)
    is_active: bool = Field(default=True)


# ── Pydantic schemas ─────────────────────────────────────────

class UserRead(SQLModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    business_name: str | None = None
    business_role: str | None = None
    role: UserRole
    email_verified: bool
