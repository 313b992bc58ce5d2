"""Shared base fields for all models."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def load_json(raw: str | None, default: Any = None) -> Any:
    """Decode a JSON text column, tolerating NULL / empty values."""
    if not raw:
        return {} if default is None else default
    return json.loads(raw)


def dump_json(value: Any) -> str:
    return json.dumps(value, default=str)


class TimestampMixin(SQLModel):
    """Created / updated timestamps injected into every table."""

    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
