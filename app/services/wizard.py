"""Wizard sessions: where an operator is in the tenant setup flow."""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import ConflictError, NotFoundError
from app.models.base import dump_json, load_json, utcnow
from app.models.tenant import Tenant, TenantStatus
from app.models.wizard_session import WizardSession, WizardSessionRead, WizardStep
from app.services.tenant_state import next_step, transition_tenant

logger = logging.getLogger(__name__)

STEP_ORDER = list(WizardStep)


def session_to_read(ws: WizardSession) -> WizardSessionRead:
    return WizardSessionRead(
        id=ws.id,
        tenant_id=ws.tenant_id,
        current_step=ws.current_step,
        data=load_json(ws.data),
        created_at=ws.created_at,
        updated_at=ws.updated_at,
        expires_at=ws.expires_at,
    )


def new_session(tenant: Tenant) -> WizardSession:
    """A session for a freshly created tenant, positioned on BRANDING."""
    now = utcnow()
    return WizardSession(
        tenant_id=tenant.id,
        current_step=next_step("create"),
        data=dump_json({
            "basic_info": {
                "name": tenant.name,
                "domain": tenant.domain,
                "description": tenant.description,
            },
        }),
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(hours=get_settings().wizard_session_hours),
    )


async def get_wizard_session(session: AsyncSession, session_id: uuid.UUID) -> WizardSession:
    ws = await session.get(WizardSession, session_id)
    if ws is None:
        raise NotFoundError("Wizard session")
    if ws.expires_at < utcnow():
        raise ConflictError("Wizard session has expired")
    return ws


def _apply(ws: WizardSession, step: WizardStep, data: dict[str, Any] | None, *, advance_only: bool) -> None:
    if not advance_only or STEP_ORDER.index(step) > STEP_ORDER.index(WizardStep(ws.current_step)):
        ws.current_step = step
    if data:
        merged = load_json(ws.data)
        merged.setdefault(step.value.lower(), {}).update(data)
        ws.data = dump_json(merged)
    ws.updated_at = utcnow()


async def update_step(
    session: AsyncSession, ws: WizardSession, step: WizardStep, data: dict[str, Any],
) -> WizardSession:
    """Jump to ``step`` (forwards or back) and store its data."""
    _apply(ws, step, data, advance_only=False)
    session.add(ws)
    await session.commit()
    await session.refresh(ws)
    return ws


async def record_progress(
    session: AsyncSession, tenant_id: uuid.UUID, step: WizardStep, data: dict[str, Any] | None = None,
) -> None:
    """Advance the tenant's live session to ``step``. The caller commits."""
    stmt = (
        select(WizardSession)
        .where(WizardSession.tenant_id == tenant_id, WizardSession.expires_at >= utcnow())
        .order_by(WizardSession.created_at.desc())  # type: ignore[attr-defined]
    )
    ws = (await session.execute(stmt)).scalars().first()
    if ws is None:
        return
    _apply(ws, step, data, advance_only=True)
    session.add(ws)


async def complete_wizard(session: AsyncSession, ws: WizardSession) -> tuple[Tenant, WizardSession]:
    """Finish setup: the tenant leaves DRAFT for PREVIEW and the session points at PUBLISH."""
    tenant = await session.get(Tenant, ws.tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant")
    if tenant.status == TenantStatus.DRAFT:
        transition_tenant(tenant, TenantStatus.PREVIEW)
        session.add(tenant)
    elif tenant.status != TenantStatus.PREVIEW:
        raise ConflictError(f"Wizard already completed: tenant is {tenant.status}")

    _apply(ws, next_step("complete"), {"completed_at": utcnow().isoformat()}, advance_only=False)
    session.add(ws)
    await session.commit()
    await session.refresh(tenant)
    await session.refresh(ws)
    logger.info("Wizard %s completed for tenant %s", ws.id, tenant.id)
    return tenant, ws
