"""Wizard session endpoints."""

import uuid

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.deps import Session
from app.models.tenant import TenantRead
from app.models.wizard_session import WizardSessionRead, WizardStepUpdate
from app.services import wizard

router = APIRouter(prefix="/wizard", tags=["wizard"])


class WizardCompleteResponse(BaseModel):
    session: WizardSessionRead
    tenant: TenantRead
    next_step: str


@router.get("/{session_id}", response_model=WizardSessionRead)
async def get_wizard_session(session_id: uuid.UUID, session: Session) -> WizardSessionRead:
    ws = await wizard.get_wizard_session(session, session_id)
    return wizard.session_to_read(ws)


@router.put("/{session_id}/step", response_model=WizardSessionRead)
async def update_wizard_step(
    session_id: uuid.UUID, body: WizardStepUpdate, session: Session,
) -> WizardSessionRead:
    """Move to a step (forwards or back) and store the data entered on it."""
    ws = await wizard.get_wizard_session(session, session_id)
    ws = await wizard.update_step(session, ws, body.step, body.data)
    return wizard.session_to_read(ws)


@router.post("/{session_id}/complete", response_model=WizardCompleteResponse)
async def complete_wizard(session_id: uuid.UUID, session: Session) -> WizardCompleteResponse:
    """Finish setup; the tenant moves to PREVIEW and is ready to publish."""
    ws = await wizard.get_wizard_session(session, session_id)
    tenant, ws = await wizard.complete_wizard(session, ws)
    return WizardCompleteResponse(
        session=wizard.session_to_read(ws),
        tenant=TenantRead.model_validate(tenant),
        next_step=ws.current_step,
    )
