"""Provisioning worker task: advances a ProvisioningJob to a terminal state."""

from __future__ import annotations

import asyncio
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import async_session_factory
from app.models.base import dump_json, load_json, utcnow
from app.models.provisioning_job import TERMINAL_JOB_STATUSES, JobStatus, ProvisioningJob
from app.models.tenant import Tenant
from app.services.provisioning import (
    WORK_STEPS,
    complete_job,
    mark_job_failed,
    progress_for,
    run_step,
)

logger = logging.getLogger(__name__)


async def provision_tenant(ctx: dict, job_id: str, tenant_id: str) -> dict:
    """ARQ task: run every provisioning step for a queued job.

    The task is the only writer of the job's progress fields, so successive
    polls see ``progress`` and ``steps_completed`` only grow.

    Returns:
        dict with the final job status.
    """
    delay = get_settings().provisioning_step_delay

    async with async_session_factory() as session:
        try:
            job = await _get_job(session, job_id, tenant_id)
            if job is None:
                logger.error("Job %s not found for tenant %s", job_id, tenant_id)
                return {"error": "job_not_found"}
            if job.status in TERMINAL_JOB_STATUSES:
                logger.warning("Job %s already %s, skipping", job_id, job.status)
                return {"status": job.status}

            tenant = await session.get(Tenant, uuid.UUID(tenant_id))
            if tenant is None:
                logger.error("Tenant %s vanished before job %s ran", tenant_id, job_id)
                await mark_job_failed(session, job, None, "Tenant not found")
                return {"status": JobStatus.FAILED}

            job.status = JobStatus.RUNNING
            job.started_at = utcnow()
            job.updated_at = job.started_at
            session.add(job)
            await session.commit()

            for index, step in enumerate(WORK_STEPS, start=1):
                job.current_step = step
                session.add(job)
                await session.commit()
                logger.info("Job %s step %d/%d: %s", job_id, index, job.steps_total, step)

                artifacts = await run_step(step, session, tenant, job)
                if delay > 0:
                    await asyncio.sleep(delay)

                refs = load_json(job.external_refs)
                refs.update(artifacts)
                job.external_refs = dump_json(refs)
                job.steps_completed = max(job.steps_completed, index)
                job.progress = max(job.progress, progress_for(index, job.steps_total))
                job.updated_at = utcnow()
                session.add(job)
                await session.commit()

            # progress reaches 100 only in the same commit as status=COMPLETED
            await complete_job(session, job, tenant)
            logger.info("Job %s completed: tenant %s published", job_id, tenant_id)
            return {"status": JobStatus.COMPLETED}

        except Exception as exc:
            logger.exception("Provisioning failed for job %s", job_id)
            await session.rollback()
            try:
                job = await _get_job(session, job_id, tenant_id)
                tenant = await session.get(Tenant, uuid.UUID(tenant_id), populate_existing=True)
                if job is not None:
                    await mark_job_failed(session, job, tenant, str(exc) or type(exc).__name__)
            except Exception:
                logger.exception("Failed to mark job %s as failed", job_id)
            return {"status": JobStatus.FAILED, "error": str(exc)}


async def _get_job(session: AsyncSession, job_id: str, tenant_id: str) -> ProvisioningJob | None:
    stmt = (
        select(ProvisioningJob)
        .where(
            ProvisioningJob.id == uuid.UUID(job_id),
            ProvisioningJob.tenant_id == uuid.UUID(tenant_id),
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
