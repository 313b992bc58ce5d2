"""Tenant setup endpoints: the wizard's create / brand / upload / preview / publish flow."""

import logging
import uuid
from datetime import datetime

from arq.connections import ArqRedis, create_pool
from fastapi import APIRouter, File, Form, Query, Response, UploadFile, status
from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.api.deps import Session
from app.core.config import get_settings
from app.core.errors import ConflictError, ServiceUnavailableError, ValidationError
from app.core.storage import get_object_store
from app.core.validation import validate_upload_filename, validate_upload_type
from app.models.provisioning_job import JobRead, JobStatus, ProvisioningJob
from app.models.tenant import TenantCreate, TenantRead, TenantStatus, TenantUpdate
from app.models.tenant_branding import BrandingRead
from app.models.uploaded_file import UploadKind
from app.models.wizard_session import WizardStep
from app.services import tenants as tenant_service
from app.services import wizard
from app.services.importer import import_categories, import_listings
from app.services.provisioning import (
    ESTIMATED_DURATION,
    get_job,
    job_to_read,
    mark_job_failed,
    start_publish,
)
from app.services.tenant_state import next_step
from app.workers.main import _redis_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])


# ── Schemas ──────────────────────────────────────────────────

class TenantCreated(BaseModel):
    id: uuid.UUID
    name: str
    domain: str
    description: str
    status: TenantStatus
    session_id: uuid.UUID
    next_step: WizardStep
    created_at: datetime


class BrandingResponse(BaseModel):
    branding: BrandingRead
    theme: dict
    next_step: WizardStep


class UploadResponse(BaseModel):
    file_id: uuid.UUID
    type: str
    filename: str
    records_count: int
    validation_status: str = "VALID"
    next_step: WizardStep


class PreviewStatistics(BaseModel):
    categories_count: int
    listings_count: int
    media_files_count: int
    total_pages: int


class PreviewCategory(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str
    parent_id: uuid.UUID | None = None
    listings_count: int


class Readiness(BaseModel):
    issues: list[str]
    warnings: list[str]


class PreviewResponse(BaseModel):
    tenant_id: uuid.UUID
    name: str
    domain: str
    status: TenantStatus
    preview_url: str
    admin_url: str
    statistics: PreviewStatistics
    branding: BrandingRead | None = None
    categories: list[PreviewCategory]
    readiness: Readiness


class PublishResponse(BaseModel):
    job_id: uuid.UUID
    tenant_id: uuid.UUID
    status: JobStatus
    message: str
    estimated_duration: str


# ── Helpers ──────────────────────────────────────────────────

async def _enqueue_provisioning(job_id: uuid.UUID, tenant_id: uuid.UUID) -> None:
    """Enqueue the ARQ provisioning task."""
    redis: ArqRedis = await create_pool(_redis_settings())
    try:
        await redis.enqueue_job(
            "provision_tenant",
            job_id=str(job_id),
            tenant_id=str(tenant_id),
        )
    finally:
        await redis.aclose()


async def _read_upload(file: UploadFile, max_size: int) -> bytes:
    content = await file.read()
    if not content:
        raise ValidationError("Uploaded file is empty", field="file")
    if len(content) > max_size:
        raise ValidationError(
            f"File too large: maximum file size is {max_size // (1024 * 1024)}MB", field="file",
        )
    return content


# ── Routes ───────────────────────────────────────────────────

@router.post("", response_model=TenantCreated, status_code=status.HTTP_201_CREATED)
async def create_tenant(body: TenantCreate, session: Session) -> TenantCreated:
    """Start the wizard: create a DRAFT tenant and its wizard session."""
    tenant, ws = await tenant_service.create_tenant(session, body)
    return TenantCreated(
        id=tenant.id,
        name=tenant.name,
        domain=tenant.domain,
        description=tenant.description,
        status=tenant.status,
        session_id=ws.id,
        next_step=ws.current_step,
        created_at=tenant.created_at,
    )


@router.get("/{tenant_id}", response_model=TenantRead)
async def get_tenant(tenant_id: uuid.UUID, session: Session) -> TenantRead:
    tenant = await tenant_service.get_tenant(session, tenant_id)
    return TenantRead.model_validate(tenant)


@router.patch("/{tenant_id}", response_model=TenantRead)
async def update_tenant(tenant_id: uuid.UUID, body: TenantUpdate, session: Session) -> TenantRead:
    tenant = await tenant_service.get_tenant(session, tenant_id)
    tenant = await tenant_service.update_tenant(session, tenant, body)
    return TenantRead.model_validate(tenant)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(tenant_id: uuid.UUID, session: Session) -> Response:
    """Delete a tenant with its categories, listings, jobs, branding and sessions."""
    tenant = await tenant_service.get_tenant(session, tenant_id)
    await tenant_service.delete_tenant(session, tenant)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{tenant_id}/branding", response_model=BrandingResponse)
async def set_branding(
    tenant_id: uuid.UUID,
    session: Session,
    primary_color: str | None = Form(None),
    secondary_color: str | None = Form(None),
    accent_color: str | None = Form(None),
    font_family: str | None = Form(None),
    font_url: str | None = Form(None),
    logo: UploadFile | None = File(None),
) -> BrandingResponse:
    """Attach colors, font and an optional logo. Does not change the tenant's status."""
    tenant = await tenant_service.get_tenant(session, tenant_id)
    logo_file = None
    if logo is not None and logo.filename:
        content = await _read_upload(logo, get_settings().max_upload_size)
        logo_file = (logo.filename, logo.content_type, content)

    branding = await tenant_service.set_branding(
        session,
        tenant,
        primary_color=primary_color,
        secondary_color=secondary_color,
        accent_color=accent_color,
        font_family=font_family,
        font_url=font_url,
        logo=logo_file,
    )
    return BrandingResponse(
        branding=BrandingRead.model_validate(branding),
        theme=tenant_service.build_theme(branding),
        next_step=next_step("branding"),
    )


@router.post("/{tenant_id}/upload", response_model=UploadResponse)
async def upload_file(
    tenant_id: uuid.UUID,
    session: Session,
    type: str | None = Query(None),
    file: UploadFile | None = File(None),
) -> UploadResponse:
    """Import categories (JSON) or listings (CSV).

    The whole file is validated before anything is written; any problem
    rejects it with 422 and the tenant is left untouched.
    """
    upload_type = validate_upload_type(type)
    if file is None or not file.filename:
        raise ValidationError("No file uploaded", field="file")
    validate_upload_filename(file.filename, upload_type)
    tenant = await tenant_service.get_tenant(session, tenant_id)
    content = await _read_upload(file, get_settings().max_upload_size)

    if upload_type == "categories":
        records = await import_categories(session, tenant.id, content)
        kind, mime, hint = UploadKind.CATEGORIES, "application/json", next_step("categories")
    else:
        records = await import_listings(session, tenant.id, content)
        kind, mime, hint = UploadKind.LISTINGS, "text/csv", next_step("listings")

    upload = tenant_service.store_upload(
        tenant.id, kind, file.filename, content, mime, records_count=len(records),
    )
    stored_uri = upload.storage_uri
    session.add(upload)
    try:
        await wizard.record_progress(
            session, tenant.id, hint, {upload_type: {"file_id": str(upload.id), "records_count": len(records)}},
        )
        await session.commit()
    except IntegrityError as exc:
        # A concurrent import claimed one of the same slugs
        await session.rollback()
        get_object_store().delete(stored_uri)
        logger.warning("Rejected %s upload for tenant %s: slug conflict", upload_type, tenant_id)
        raise ConflictError("Upload conflicts with a concurrent import, please retry") from exc
    logger.info("Accepted %s upload for tenant %s: %d records", upload_type, tenant.id, len(records))

    return UploadResponse(
        file_id=upload.id,
        type=upload_type,
        filename=file.filename,
        records_count=len(records),
        next_step=hint,
    )


@router.get("/{tenant_id}/preview", response_model=PreviewResponse)
async def get_preview(tenant_id: uuid.UUID, session: Session) -> PreviewResponse:
    tenant = await tenant_service.get_tenant(session, tenant_id)
    preview = await tenant_service.build_preview(session, tenant)
    branding = preview.pop("branding")
    return PreviewResponse(
        **preview,
        branding=BrandingRead.model_validate(branding) if branding else None,
    )


@router.post(
    "/{tenant_id}/publish",
    response_model=PublishResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def publish_tenant(tenant_id: uuid.UUID, session: Session) -> PublishResponse:
    """Queue a provisioning job; poll ``GET /tenants/{id}/jobs/{job_id}`` for progress."""
    tenant = await tenant_service.get_tenant(session, tenant_id)
    job = await start_publish(session, tenant)

    try:
        await _enqueue_provisioning(job.id, tenant.id)
    except (OSError, RedisError) as exc:
        logger.error("Could not enqueue provisioning job %s: %s", job.id, exc)
        await mark_job_failed(session, job, tenant, "Provisioning queue unavailable")
        raise ServiceUnavailableError("Provisioning queue unavailable, please retry") from exc

    return PublishResponse(
        job_id=job.id,
        tenant_id=tenant.id,
        status=job.status,
        message="Tenant publishing started",
        estimated_duration=ESTIMATED_DURATION,
    )


@router.get(
    "/{tenant_id}/jobs",
    response_model=list[JobRead],
    response_model_exclude_none=True,
)
async def list_jobs(tenant_id: uuid.UUID, session: Session) -> list[JobRead]:
    """All provisioning jobs for a tenant, newest first."""
    await tenant_service.get_tenant(session, tenant_id)
    stmt = (
        select(ProvisioningJob)
        .where(ProvisioningJob.tenant_id == tenant_id)
        .order_by(ProvisioningJob.created_at.desc())  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    return [job_to_read(j) for j in result.scalars().all()]


@router.get(
    "/{tenant_id}/jobs/{job_id}",
    response_model=JobRead,
    response_model_exclude_none=True,
)
async def get_job_status(tenant_id: uuid.UUID, job_id: uuid.UUID, session: Session) -> JobRead:
    await tenant_service.get_tenant(session, tenant_id)
    job = await get_job(session, tenant_id, job_id)
    return job_to_read(job)
