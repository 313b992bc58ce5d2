"""Listing claims: submission, evidence, review and ownership checks."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.core.security import decrypt_value, encrypt_value
from app.core.storage import get_object_store
from app.models.base import dump_json, load_json, utcnow
from app.models.category import Category
from app.models.listing import Listing, ListingUpdate
from app.models.listing_claim import (
    ACTIVE_CLAIM_STATUSES,
    OWNER_CLAIM_STATUSES,
    ClaimMethod,
    ClaimRead,
    ClaimStatus,
    ClaimVerification,
    ListingClaim,
    VerificationRead,
    VerificationType,
)
from app.models.tenant import Tenant
from app.services.claim_state import is_expired, transition_claim, validate_verification_data
from app.services.files import check_evidence_file
from app.services.importer import listing_search_text

logger = logging.getLogger(__name__)

# Statuses an admin may set through review
REVIEW_TARGETS = frozenset({ClaimStatus.APPROVED, ClaimStatus.REJECTED, ClaimStatus.VERIFIED})
# Verification types that only make sense with an attached document
FILE_VERIFICATION_TYPES = frozenset({VerificationType.BUSINESS_DOCUMENT, VerificationType.UTILITY_BILL})


def decrypt_verification_data(claim: ListingClaim) -> dict[str, Any]:
    return json.loads(decrypt_value(claim.verification_data))


def claim_to_read(claim: ListingClaim, verifications: list[ClaimVerification] | None = None) -> ClaimRead:
    return ClaimRead(
        id=claim.id,
        listing_id=claim.listing_id,
        user_id=claim.user_id,
        claim_method=claim.claim_method,
        verification_data=decrypt_verification_data(claim),
        status=claim.status,
        submitted_at=claim.submitted_at,
        expires_at=claim.expires_at,
        reviewed_at=claim.reviewed_at,
        reviewer_notes=claim.reviewer_notes,
        verifications=[VerificationRead.model_validate(v) for v in verifications or []],
    )


# ── Expiry ───────────────────────────────────────────────────

async def expire_stale_claims(
    session: AsyncSession,
    *,
    listing_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
) -> int:
    """Move overdue PENDING claims to EXPIRED and return how many moved."""
    stmt = select(ListingClaim).where(
        ListingClaim.status == ClaimStatus.PENDING,
        ListingClaim.expires_at < utcnow(),
    )
    if listing_id is not None:
        stmt = stmt.where(ListingClaim.listing_id == listing_id)
    if user_id is not None:
        stmt = stmt.where(ListingClaim.user_id == user_id)
    result = await session.execute(stmt)
    stale = list(result.scalars().all())
    for claim in stale:
        transition_claim(claim, ClaimStatus.EXPIRED)
        session.add(claim)
    if stale:
        await session.commit()
    return len(stale)


async def _refresh_expiry(session: AsyncSession, claim: ListingClaim) -> ListingClaim:
    if is_expired(claim):
        transition_claim(claim, ClaimStatus.EXPIRED)
        session.add(claim)
        await session.commit()
    return claim


# ── Submission ───────────────────────────────────────────────

async def create_claim(
    session: AsyncSession,
    listing_id: uuid.UUID,
    user_id: uuid.UUID,
    method: ClaimMethod,
    verification_data: dict[str, Any],
) -> ListingClaim:
    """Open a PENDING claim; one active claim per (listing, user)."""
    if await session.get(Listing, listing_id) is None:
        raise NotFoundError("Listing")
    cleaned = validate_verification_data(method, verification_data)

    await expire_stale_claims(session, listing_id=listing_id, user_id=user_id)
    stmt = select(ListingClaim.id).where(
        ListingClaim.listing_id == listing_id,
        ListingClaim.user_id == user_id,
        ListingClaim.status.in_(ACTIVE_CLAIM_STATUSES),  # type: ignore[attr-defined]
    )
    if (await session.execute(stmt)).first() is not None:
        raise ConflictError("You already have an active claim for this listing")

    now = utcnow()
    claim = ListingClaim(
        listing_id=listing_id,
        user_id=user_id,
        claim_method=method,
        verification_data=encrypt_value(dump_json(cleaned)),
        submitted_at=now,
        expires_at=now + timedelta(days=get_settings().claim_expiry_days),
    )
    session.add(claim)
    await session.commit()
    await session.refresh(claim)
    logger.info("Claim %s opened on listing %s by user %s (%s)", claim.id, listing_id, user_id, method)
    return claim


async def get_claim(
    session: AsyncSession, claim_id: uuid.UUID, user_id: uuid.UUID, *, is_admin: bool = False,
) -> ListingClaim:
    """Fetch a claim visible to the caller, expiring it first if overdue."""
    claim = await session.get(ListingClaim, claim_id)
    if claim is None or (claim.user_id != user_id and not is_admin):
        raise NotFoundError("Claim")
    return await _refresh_expiry(session, claim)


async def claim_verifications(session: AsyncSession, claim_id: uuid.UUID) -> list[ClaimVerification]:
    stmt = (
        select(ClaimVerification)
        .where(ClaimVerification.claim_id == claim_id)
        .order_by(ClaimVerification.submitted_at.asc())  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def submit_verification(
    session: AsyncSession,
    claim: ListingClaim,
    user_id: uuid.UUID,
    verification_type: VerificationType,
    evidence_data: dict[str, Any],
    evidence_file: tuple[str, str | None, bytes] | None = None,
) -> ClaimVerification:
    """Attach evidence to an open claim.

    ``evidence_file`` is ``(filename, content_type, content)``.
    """
    if claim.user_id != user_id:
        raise ForbiddenError("You can only submit verification for your own claims")
    if ClaimStatus(claim.status) not in ACTIVE_CLAIM_STATUSES:
        raise ConflictError(f"Claim is {claim.status} and no longer accepts verification")
    if verification_type in FILE_VERIFICATION_TYPES and evidence_file is None:
        raise ValidationError(
            f"An evidence file is required for {verification_type}", field="evidence_file",
        )

    evidence_url = ""
    data = dict(evidence_data)
    if evidence_file is not None:
        filename, content_type, content = evidence_file
        meta = check_evidence_file(content_type, content, get_settings().max_evidence_size)
        evidence_url = get_object_store().put_upload(
            owner=f"claims/{claim.id}", kind="evidence", filename=filename, data=content,
        )
        data["file"] = {"filename": filename, **meta}

    verification = ClaimVerification(
        claim_id=claim.id,
        verification_type=verification_type,
        evidence_url=evidence_url,
        evidence_data=dump_json(data),
    )
    session.add(verification)
    await session.commit()
    await session.refresh(verification)
    logger.info("Verification %s (%s) submitted for claim %s", verification.id, verification_type, claim.id)
    return verification


# ── Review (admin) ───────────────────────────────────────────

async def review_claim(
    session: AsyncSession, claim: ListingClaim, status: ClaimStatus, reviewer_notes: str | None,
) -> ListingClaim:
    if status not in REVIEW_TARGETS:
        raise ValidationError(
            "Review status must be one of APPROVED, REJECTED, VERIFIED", field="status",
        )
    if ClaimStatus(claim.status) == ClaimStatus.EXPIRED:
        raise ConflictError("Claim has expired")
    transition_claim(claim, status, reviewer_notes)
    session.add(claim)
    await session.commit()
    await session.refresh(claim)
    logger.info("Claim %s reviewed: %s", claim.id, status)
    return claim


async def confirm_verification(
    session: AsyncSession, verification_id: uuid.UUID,
) -> tuple[ClaimVerification, ListingClaim]:
    """Mark evidence as verified; a claim whose evidence is all verified becomes VERIFIED."""
    verification = await session.get(ClaimVerification, verification_id)
    if verification is None:
        raise NotFoundError("Verification")
    claim = await session.get(ListingClaim, verification.claim_id)
    if claim is None:
        raise NotFoundError("Claim")
    await _refresh_expiry(session, claim)
    if ClaimStatus(claim.status) not in ACTIVE_CLAIM_STATUSES:
        raise ConflictError(f"Claim is {claim.status} and can no longer be verified")

    now = utcnow()
    verification.verified = True
    verification.verified_at = now
    verification.updated_at = now
    session.add(verification)
    await session.flush()

    siblings = await claim_verifications(session, claim.id)
    if all(v.verified for v in siblings):
        transition_claim(claim, ClaimStatus.VERIFIED)
        session.add(claim)
        logger.info("Claim %s verified", claim.id)
    await session.commit()
    await session.refresh(verification)
    await session.refresh(claim)
    return verification, claim


async def pending_claims(session: AsyncSession, page: int, limit: int) -> tuple[list[ListingClaim], int]:
    """PENDING, not yet expired, oldest first."""
    await expire_stale_claims(session)
    where = (ListingClaim.status == ClaimStatus.PENDING,)
    total = (await session.execute(
        select(func.count()).select_from(ListingClaim).where(*where)
    )).scalar_one()
    stmt = (
        select(ListingClaim)
        .where(*where)
        .order_by(ListingClaim.submitted_at.asc())  # type: ignore[attr-defined]
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def listing_claims(session: AsyncSession, listing_id: uuid.UUID) -> list[ListingClaim]:
    if await session.get(Listing, listing_id) is None:
        raise NotFoundError("Listing")
    await expire_stale_claims(session, listing_id=listing_id)
    stmt = (
        select(ListingClaim)
        .where(ListingClaim.listing_id == listing_id)
        .order_by(ListingClaim.submitted_at.desc())  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


# ── Ownership ────────────────────────────────────────────────

async def update_listing(
    session: AsyncSession, listing_id: uuid.UUID, user_id: uuid.UUID, patch: ListingUpdate,
) -> Listing:
    """Apply ``patch`` if the caller holds an APPROVED or VERIFIED claim."""
    listing = await session.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError("Listing")

    stmt = select(ListingClaim.id).where(
        ListingClaim.listing_id == listing_id,
        ListingClaim.user_id == user_id,
        ListingClaim.status.in_(OWNER_CLAIM_STATUSES),  # type: ignore[attr-defined]
    )
    if (await session.execute(stmt)).first() is None:
        raise ForbiddenError("You do not have permission to update this listing")

    if patch.title is not None:
        title = patch.title.strip()
        if not 5 <= len(title) <= 200:
            raise ValidationError("Title must be between 5 and 200 characters", field="title")
        listing.title = title
    if patch.description is not None:
        listing.description = patch.description.strip()
    if patch.data is not None:
        data = load_json(listing.data)
        data.update(patch.data)
        listing.data = dump_json(data)

    category = await session.get(Category, listing.category_id)
    listing.search_text = listing_search_text(listing, category.name if category else "")
    listing.updated_at = utcnow()
    session.add(listing)
    await session.commit()
    await session.refresh(listing)
    logger.info("Listing %s updated by owner %s", listing_id, user_id)
    return listing


# ── Claimant views ───────────────────────────────────────────

async def list_user_claims(
    session: AsyncSession,
    user_id: uuid.UUID,
    status: ClaimStatus | None,
    page: int,
    limit: int,
) -> tuple[list[tuple[ListingClaim, Listing, Tenant]], int]:
    """A user's claims joined with listing and tenant, newest first."""
    await expire_stale_claims(session, user_id=user_id)
    where = [ListingClaim.user_id == user_id]
    if status is not None:
        where.append(ListingClaim.status == status)

    total = (await session.execute(
        select(func.count()).select_from(ListingClaim).where(*where)
    )).scalar_one()
    stmt = (
        select(ListingClaim, Listing, Tenant)
        .join(Listing, Listing.id == ListingClaim.listing_id)
        .join(Tenant, Tenant.id == Listing.tenant_id)
        .where(*where)
        .order_by(ListingClaim.submitted_at.desc())  # type: ignore[attr-defined]
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [tuple(row) for row in result.all()], total


async def user_claim_stats(session: AsyncSession, user_id: uuid.UUID) -> dict[str, int]:
    await expire_stale_claims(session, user_id=user_id)
    stmt = (
        select(ListingClaim.status, func.count())
        .where(ListingClaim.user_id == user_id)
        .group_by(ListingClaim.status)
    )
    counts = {str(status): n for status, n in (await session.execute(stmt)).all()}
    stats = {s.value.lower(): counts.get(s.value, 0) for s in ClaimStatus}
    stats["total"] = sum(counts.values())
    return stats
