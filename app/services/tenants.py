"""Tenant setup operations: create, edit, branding, uploads, preview, delete."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import Any

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import ConflictError, NotFoundError
from app.core.storage import get_object_store
from app.core.validation import (
    validate_domain,
    validate_font_family,
    validate_hex_color,
    validate_tenant_name,
)
from app.models.base import dump_json, utcnow
from app.models.category import Category
from app.models.listing import Listing
from app.models.listing_claim import ClaimVerification, ListingClaim
from app.models.provisioning_job import ProvisioningJob
from app.models.tenant import Tenant, TenantCreate, TenantStatus, TenantUpdate
from app.models.tenant_branding import TenantBranding
from app.models.uploaded_file import MEDIA_KINDS, UploadedFile, UploadKind
from app.models.wizard_session import WizardSession, WizardStep
from app.services import wizard
from app.services.files import check_logo_file
from app.services.provisioning import active_job, preview_url, site_urls

logger = logging.getLogger(__name__)


async def get_tenant(session: AsyncSession, tenant_id: uuid.UUID) -> Tenant:
    tenant = await session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant")
    return tenant


async def _ensure_domain_free(
    session: AsyncSession, domain: str, exclude_id: uuid.UUID | None = None,
) -> None:
    stmt = select(Tenant.id).where(func.lower(Tenant.domain) == domain.lower())
    if exclude_id is not None:
        stmt = stmt.where(Tenant.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        raise ConflictError(f"A tenant with domain '{domain}' already exists")


async def create_tenant(session: AsyncSession, body: TenantCreate) -> tuple[Tenant, WizardSession]:
    """Create a DRAFT tenant and the wizard session that guides its setup."""
    name = validate_tenant_name(body.name)
    domain = validate_domain(body.domain)
    await _ensure_domain_free(session, domain)

    tenant = Tenant(name=name, domain=domain, description=body.description.strip())
    ws = wizard.new_session(tenant)
    session.add(tenant)
    session.add(ws)
    try:
        await session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent create of the same domain
        await session.rollback()
        raise ConflictError(f"A tenant with domain '{domain}' already exists") from exc
    await session.refresh(tenant)
    await session.refresh(ws)
    logger.info("Tenant %s created for domain %s", tenant.id, domain)
    return tenant, ws


async def update_tenant(session: AsyncSession, tenant: Tenant, body: TenantUpdate) -> Tenant:
    if body.name is not None:
        tenant.name = validate_tenant_name(body.name)
    if body.description is not None:
        tenant.description = body.description.strip()
    if body.domain is not None and body.domain != tenant.domain:
        domain = validate_domain(body.domain)
        if tenant.status == TenantStatus.UPDATING:
            raise ConflictError("Domain cannot change while the tenant is being published")
        await _ensure_domain_free(session, domain, exclude_id=tenant.id)
        tenant.domain = domain
    tenant.updated_at = utcnow()
    session.add(tenant)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(f"A tenant with domain '{body.domain}' already exists") from exc
    await session.refresh(tenant)
    return tenant


async def delete_tenant(session: AsyncSession, tenant: Tenant) -> None:
    """Remove the tenant and everything it owns, stored files included."""
    if tenant.status == TenantStatus.UPDATING or await active_job(session, tenant.id):
        raise ConflictError("Tenant cannot be deleted while it is being published")

    tenant_id = tenant.id
    uploads = (await session.execute(
        select(UploadedFile.storage_uri).where(UploadedFile.tenant_id == tenant_id)
    )).scalars().all()

    listing_ids = select(Listing.id).where(Listing.tenant_id == tenant_id)
    claim_ids = select(ListingClaim.id).where(ListingClaim.listing_id.in_(listing_ids))  # type: ignore[attr-defined]
    evidence = (await session.execute(
        select(ClaimVerification.evidence_url).where(
            ClaimVerification.claim_id.in_(claim_ids),  # type: ignore[attr-defined]
            ClaimVerification.evidence_url != "",
        )
    )).scalars().all()
    await session.execute(delete(ClaimVerification).where(ClaimVerification.claim_id.in_(claim_ids)))  # type: ignore[attr-defined]
    await session.execute(delete(ListingClaim).where(ListingClaim.listing_id.in_(listing_ids)))  # type: ignore[attr-defined]
    for model in (Listing, Category, ProvisioningJob, TenantBranding, WizardSession, UploadedFile):
        await session.execute(delete(model).where(model.tenant_id == tenant_id))
    await session.delete(tenant)
    await session.commit()

    store = get_object_store()
    stored = [*uploads, *evidence]
    for uri in stored:
        store.delete(uri)
    logger.info("Tenant %s deleted (%d stored files removed)", tenant_id, len(stored))


# ── Branding ─────────────────────────────────────────────────

def build_theme(branding: TenantBranding) -> dict[str, Any]:
    """Theme document consumed by the site generator."""
    font = branding.font_family
    stack = "system-ui, sans-serif" if font in {"Inter", "Roboto", "Arial", "Helvetica", "custom"} else "serif"
    return {
        "colors": {
            "primary": branding.primary_color,
            "secondary": branding.secondary_color,
            "accent": branding.accent_color,
        },
        "typography": {
            "font_family": f"'{font}', {stack}" if font != "custom" else stack,
            "font_url": branding.font_url,
        },
        "logo_url": branding.logo_url,
    }


async def get_branding(session: AsyncSession, tenant_id: uuid.UUID) -> TenantBranding | None:
    stmt = select(TenantBranding).where(TenantBranding.tenant_id == tenant_id)
    return (await session.execute(stmt)).scalar_one_or_none()


async def set_branding(
    session: AsyncSession,
    tenant: Tenant,
    *,
    primary_color: str | None,
    secondary_color: str | None,
    accent_color: str | None,
    font_family: str | None,
    font_url: str | None = None,
    logo: tuple[str, str | None, bytes] | None = None,
) -> TenantBranding:
    """Attach or replace branding. The tenant's status does not change."""
    values = {
        "primary_color": validate_hex_color(primary_color, "primary_color"),
        "secondary_color": validate_hex_color(secondary_color, "secondary_color"),
        "accent_color": validate_hex_color(accent_color, "accent_color"),
        "font_family": validate_font_family(font_family),
        "font_url": font_url or None,
    }

    branding = await get_branding(session, tenant.id)
    if branding is None:
        branding = TenantBranding(tenant_id=tenant.id, **values)
    else:
        for key, value in values.items():
            setattr(branding, key, value)
        branding.updated_at = utcnow()

    if logo is not None:
        filename, content_type, content = logo
        mime = check_logo_file(content_type, content, get_settings().max_upload_size)
        upload = store_upload(tenant.id, UploadKind.LOGO, filename, content, mime)
        session.add(upload)
        branding.logo_url = upload.storage_uri

    branding.theme_json = dump_json(build_theme(branding))
    session.add(branding)
    await wizard.record_progress(session, tenant.id, WizardStep.CATEGORIES, {"branding": values})
    await session.commit()
    await session.refresh(branding)
    return branding


# ── Uploads ──────────────────────────────────────────────────

def store_upload(
    tenant_id: uuid.UUID,
    kind: UploadKind,
    filename: str,
    content: bytes,
    mime_type: str,
    records_count: int = 0,
) -> UploadedFile:
    """Write ``content`` to blob storage and describe it. The caller adds and commits."""
    uri = get_object_store().put_upload(
        owner=str(tenant_id), kind=kind.value, filename=filename, data=content,
    )
    return UploadedFile(
        tenant_id=tenant_id,
        kind=kind,
        filename=filename,
        storage_uri=uri,
        file_size=len(content),
        mime_type=mime_type,
        records_count=records_count,
    )


# ── Preview ──────────────────────────────────────────────────

def readiness(
    tenant: Tenant, listings_per_category: list[int], has_branding: bool,
) -> dict[str, list[str]]:
    issues: list[str] = []
    warnings: list[str] = []
    if not tenant.name:
        issues.append("Tenant name is required")
    if not tenant.domain:
        issues.append("Tenant domain is required")
    if not listings_per_category:
        issues.append("At least one category is required")
    if not has_branding:
        warnings.append("No branding configured - using default styles")
    if any(n == 0 for n in listings_per_category):
        warnings.append("Some categories have no listings")
    if sum(listings_per_category) < 3:
        warnings.append("Consider adding more listings for a better preview")
    return {"issues": issues, "warnings": warnings}


async def build_preview(session: AsyncSession, tenant: Tenant) -> dict[str, Any]:
    """Counts, URLs, branding and readiness for the preview step."""
    cat_result = await session.execute(
        select(Category)
        .where(Category.tenant_id == tenant.id)
        .order_by(Category.sort_order, Category.name)
    )
    categories = list(cat_result.scalars().all())
    listing_counts = Counter(dict((await session.execute(
        select(Listing.category_id, func.count())
        .where(Listing.tenant_id == tenant.id)
        .group_by(Listing.category_id)
    )).all()))
    media_count = (await session.execute(
        select(func.count()).select_from(UploadedFile).where(
            UploadedFile.tenant_id == tenant.id,
            UploadedFile.kind.in_(MEDIA_KINDS),  # type: ignore[attr-defined]
        )
    )).scalar_one()
    branding = await get_branding(session, tenant.id)

    listings_total = sum(listing_counts.values())
    per_category = [listing_counts.get(c.id, 0) for c in categories]
    return {
        "tenant_id": tenant.id,
        "name": tenant.name,
        "domain": tenant.domain,
        "status": tenant.status,
        "preview_url": preview_url(tenant.domain),
        "admin_url": site_urls(tenant.domain)["admin_url"],
        "statistics": {
            "categories_count": len(categories),
            "listings_count": listings_total,
            "media_files_count": media_count,
            # Home and search, one per category and listing
            "total_pages": 2 + len(categories) + listings_total,
        },
        "branding": branding,
        "categories": [
            {
                "id": c.id,
                "name": c.name,
                "slug": c.slug,
                "description": c.description,
                "parent_id": c.parent_id,
                "listings_count": listing_counts.get(c.id, 0),
            }
            for c in categories
        ],
        "readiness": readiness(tenant, per_category, branding is not None),
    }
