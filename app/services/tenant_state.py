"""Tenant lifecycle transitions and wizard next-step hints."""

from __future__ import annotations

import logging

from app.core.errors import ConflictError
from app.models.base import utcnow
from app.models.tenant import Tenant, TenantStatus
from app.models.wizard_session import WizardStep

logger = logging.getLogger(__name__)

# Legal status moves. FAILED is reachable from every in-progress state and
# only a re-publish (UPDATING) leaves it.
TENANT_TRANSITIONS: dict[TenantStatus, frozenset[TenantStatus]] = {
    TenantStatus.DRAFT: frozenset({TenantStatus.PREVIEW, TenantStatus.UPDATING, TenantStatus.FAILED}),
    TenantStatus.PREVIEW: frozenset({TenantStatus.UPDATING, TenantStatus.FAILED}),
    TenantStatus.UPDATING: frozenset({TenantStatus.PUBLISHED, TenantStatus.FAILED}),
    TenantStatus.PUBLISHED: frozenset({TenantStatus.UPDATING}),
    TenantStatus.FAILED: frozenset({TenantStatus.UPDATING}),
}

# Step the operator should visit after each wizard operation
NEXT_STEP_AFTER: dict[str, WizardStep] = {
    "create": WizardStep.BRANDING,
    "branding": WizardStep.CATEGORIES,
    "categories": WizardStep.LISTINGS,
    "listings": WizardStep.PREVIEW,
    "complete": WizardStep.PUBLISH,
}


def can_transition(current: TenantStatus, target: TenantStatus) -> bool:
    return target in TENANT_TRANSITIONS.get(current, frozenset())


def transition_tenant(tenant: Tenant, target: TenantStatus) -> Tenant:
    """Move ``tenant`` to ``target`` or raise ``ConflictError``."""
    current = TenantStatus(tenant.status)
    if not can_transition(current, target):
        raise ConflictError(f"Cannot move tenant from {current} to {target}")
    tenant.status = target
    tenant.updated_at = utcnow()
    if target == TenantStatus.PUBLISHED:
        tenant.published_at = tenant.updated_at
    logger.info("Tenant %s status %s -> %s", tenant.id, current, target)
    return tenant


def next_step(operation: str) -> WizardStep:
    return NEXT_STEP_AFTER[operation]
