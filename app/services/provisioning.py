"""Provisioning pipeline: turns a tenant's content into a published site.

A publish request creates a ProvisioningJob; the ``provision_tenant`` worker
task then runs ``PROVISIONING_STEPS`` in order. Each step returns artifacts
that are merged into the job's ``external_refs``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import ConflictError, NotFoundError
from app.models.base import dump_json, load_json, utcnow
from app.models.category import Category
from app.models.listing import Listing
from app.models.provisioning_job import (
    ACTIVE_JOB_STATUSES,
    JobRead,
    JobResult,
    JobStatus,
    JobType,
    ProvisioningJob,
)
from app.models.tenant import Tenant, TenantStatus
from app.services.importer import listing_search_text
from app.services.tenant_state import can_transition, transition_tenant

logger = logging.getLogger(__name__)

PROVISIONING_STEPS = (
    "VALIDATE_TENANT",
    "GENERATE_STATIC_SITE",
    "DEPLOY_TO_CDN",
    "SETUP_SEARCH_INDEX",
    "CONFIGURE_DOMAIN",
    "COMPLETED",
)

# Steps that do work; "COMPLETED" is set only by complete_job
WORK_STEPS = PROVISIONING_STEPS[:-1]

# Rough wall-clock estimate returned to the publishing client
ESTIMATED_DURATION = "2-5 minutes"


class ProvisioningError(Exception):
    """A step could not complete; the message is shown to the client."""


def site_urls(domain: str) -> dict[str, str]:
    base = f"https://{domain}.{get_settings().site_base_domain}"
    return {"tenant_url": base, "admin_url": f"{base}/admin"}


def preview_url(domain: str) -> str:
    return f"https://{domain}.{get_settings().site_base_domain}/preview"


def progress_for(steps_completed: int, steps_total: int) -> int:
    if steps_total <= 0:
        return 0
    return min(100, round(steps_completed * 100 / steps_total))


def job_to_read(job: ProvisioningJob) -> JobRead:
    """Polling view of a job; ``result`` and ``error_message`` only in their terminal states."""
    refs = load_json(job.external_refs)
    result = None
    if job.status == JobStatus.COMPLETED and refs.get("result"):
        result = JobResult(**refs["result"])
    return JobRead(
        job_id=job.id,
        tenant_id=job.tenant_id,
        type=job.type,
        status=job.status,
        progress=job.progress,
        current_step=job.current_step,
        steps_total=job.steps_total,
        steps_completed=job.steps_completed,
        started_at=job.started_at,
        completed_at=job.completed_at,
        result=result,
        error_message=job.error_message if job.status == JobStatus.FAILED else None,
    )


async def active_job(session: AsyncSession, tenant_id: uuid.UUID) -> ProvisioningJob | None:
    stmt = (
        select(ProvisioningJob)
        .where(
            ProvisioningJob.tenant_id == tenant_id,
            ProvisioningJob.status.in_(ACTIVE_JOB_STATUSES),  # type: ignore[attr-defined]
        )
        .order_by(ProvisioningJob.created_at.desc())  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def start_publish(session: AsyncSession, tenant: Tenant) -> ProvisioningJob:
    """Create a QUEUED job and move the tenant to UPDATING.

    Raises ``ConflictError`` if the tenant is already being published.
    """
    if tenant.status == TenantStatus.UPDATING or await active_job(session, tenant.id):
        raise ConflictError("Tenant is already being published")

    job_type = JobType.REPUBLISH if tenant.published_at else JobType.CREATE
    transition_tenant(tenant, TenantStatus.UPDATING)
    job = ProvisioningJob(
        tenant_id=tenant.id,
        type=job_type,
        steps_total=len(PROVISIONING_STEPS),
    )
    session.add(tenant)
    session.add(job)
    await session.commit()
    await session.refresh(job)
    logger.info("Publish requested for tenant %s (job %s, %s)", tenant.id, job.id, job_type)
    return job


async def get_job(session: AsyncSession, tenant_id: uuid.UUID, job_id: uuid.UUID) -> ProvisioningJob:
    stmt = select(ProvisioningJob).where(
        ProvisioningJob.id == job_id,
        ProvisioningJob.tenant_id == tenant_id,
    )
    result = await session.execute(stmt)
    job = result.scalar_one_or_none()
    if job is None:
        raise NotFoundError("Job")
    return job


async def mark_job_failed(
    session: AsyncSession, job: ProvisioningJob, tenant: Tenant | None, message: str,
) -> None:
    """Terminal failure: record the error and flip the tenant to FAILED."""
    now = utcnow()
    job.status = JobStatus.FAILED
    job.error_message = (message or "Provisioning failed")[:2000]
    job.completed_at = now
    job.updated_at = now
    session.add(job)
    if tenant is not None and can_transition(TenantStatus(tenant.status), TenantStatus.FAILED):
        transition_tenant(tenant, TenantStatus.FAILED)
        session.add(tenant)
    await session.commit()


async def complete_job(session: AsyncSession, job: ProvisioningJob, tenant: Tenant) -> None:
    now = utcnow()
    refs = load_json(job.external_refs)
    refs["result"] = site_urls(tenant.domain)
    job.external_refs = dump_json(refs)
    job.status = JobStatus.COMPLETED
    job.progress = 100
    job.steps_completed = job.steps_total
    job.current_step = "COMPLETED"
    job.completed_at = now
    job.updated_at = now
    transition_tenant(tenant, TenantStatus.PUBLISHED)
    session.add(job)
    session.add(tenant)
    await session.commit()


# ── Steps ────────────────────────────────────────────────────

async def run_step(
    step: str, session: AsyncSession, tenant: Tenant, job: ProvisioningJob,
) -> dict[str, Any]:
    """Execute one provisioning step and return its artifacts."""
    if step == "VALIDATE_TENANT":
        return await _validate_tenant(session, tenant)
    if step == "GENERATE_STATIC_SITE":
        return await _generate_static_site(session, tenant)
    if step == "DEPLOY_TO_CDN":
        return _deploy_to_cdn(tenant, job)
    if step == "SETUP_SEARCH_INDEX":
        return await _setup_search_index(session, tenant)
    if step == "CONFIGURE_DOMAIN":
        return _configure_domain(tenant)
    raise ProvisioningError(f"Unknown provisioning step {step}")


async def _count(session: AsyncSession, model: Any, tenant_id: uuid.UUID) -> int:
    stmt = select(func.count()).select_from(model).where(model.tenant_id == tenant_id)
    return (await session.execute(stmt)).scalar_one()


async def _validate_tenant(session: AsyncSession, tenant: Tenant) -> dict[str, Any]:
    if not tenant.name or not tenant.domain:
        raise ProvisioningError("Tenant name and domain are required")
    categories = await _count(session, Category, tenant.id)
    if categories == 0:
        raise ProvisioningError("Tenant has no categories to publish")
    listings = await _count(session, Listing, tenant.id)
    return {"validation": {"categories": categories, "listings": listings}}


async def _generate_static_site(session: AsyncSession, tenant: Tenant) -> dict[str, Any]:
    categories = await _count(session, Category, tenant.id)
    listings = await _count(session, Listing, tenant.id)
    # Home and search pages plus one page per category and listing
    return {
        "site": {
            "build_id": uuid.uuid4().hex,
            "pages": 2 + categories + listings,
        },
    }


def _deploy_to_cdn(tenant: Tenant, job: ProvisioningJob) -> dict[str, Any]:
    build_id = load_json(job.external_refs).get("site", {}).get("build_id")
    return {
        "deployment": {
            "id": f"dpl_{uuid.uuid4().hex[:16]}",
            "build_id": build_id,
            "url": site_urls(tenant.domain)["tenant_url"],
        },
    }


async def _setup_search_index(session: AsyncSession, tenant: Tenant) -> dict[str, Any]:
    """Recompute every listing's search projection."""
    names = dict(
        (await session.execute(
            select(Category.id, Category.name).where(Category.tenant_id == tenant.id)
        )).all()
    )
    result = await session.execute(select(Listing).where(Listing.tenant_id == tenant.id))
    listings = list(result.scalars().all())
    for listing in listings:
        listing.search_text = listing_search_text(listing, names.get(listing.category_id, ""))
        session.add(listing)
    return {"search_index": {"name": f"tenant-{tenant.domain}", "documents": len(listings)}}


def _configure_domain(tenant: Tenant) -> dict[str, Any]:
    return {
        "domain": {
            "hostname": f"{tenant.domain}.{get_settings().site_base_domain}",
            "ssl": True,
        },
    }
