"""WizardSession model: tracks an operator's progress through the setup wizard."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class WizardStep(StrEnum):
    BASIC_INFO = "BASIC_INFO"
    BRANDING = "BRANDING"
    CATEGORIES = "CATEGORIES"
    LISTINGS = "LISTINGS"
    PREVIEW = "PREVIEW"
    PUBLISH = "PUBLISH"


class WizardSession(TimestampMixin, SQLModel, table=True):
    __tablename__ = "wizard_sessions"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    current_step: WizardStep = Field(default=WizardStep.BRANDING)
    # Per-step data keyed by lower-cased step name, JSON object
    data: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))
    expires_at: datetime = Field(nullable=False)


# ── Pydantic schemas ─────────────────────────────────────────

class WizardStepUpdate(SQLModel):
    step: WizardStep
    data: dict = Field(default_factory=dict)


class WizardSessionRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    current_step: WizardStep
    data: dict
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
