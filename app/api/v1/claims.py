"""Claim endpoints: claimant views, evidence submission, admin review."""

import json
import uuid

from fastapi import APIRouter, File, Form, Query, UploadFile
from pydantic import BaseModel

from app.api.deps import AdminAuth, Auth, Session
from app.core.errors import ValidationError
from app.models.listing_claim import (
    ClaimRead,
    ClaimReview,
    ClaimStatus,
    VerificationRead,
    VerificationSubmitted,
    VerificationType,
)
from app.services import claims as claim_service

router = APIRouter(prefix="/claims", tags=["claims"])


class PendingClaimsResponse(BaseModel):
    claims: list[ClaimRead]
    total: int
    page: int
    limit: int


class VerificationConfirmed(BaseModel):
    verification: VerificationRead
    claim_status: ClaimStatus


def _parse_evidence_data(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("evidence_data must be a JSON object", field="evidence_data") from exc
    if not isinstance(data, dict):
        raise ValidationError("evidence_data must be a JSON object", field="evidence_data")
    return data


# Declared before /{claim_id} so "pending" is not parsed as an id
@router.get("/pending", response_model=PendingClaimsResponse)
async def get_pending_claims(
    auth: AdminAuth,
    session: Session,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PendingClaimsResponse:
    """Claims awaiting review, oldest first (admin)."""
    claims, total = await claim_service.pending_claims(session, page, limit)
    return PendingClaimsResponse(
        claims=[claim_service.claim_to_read(c) for c in claims],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{claim_id}", response_model=ClaimRead)
async def get_claim(claim_id: uuid.UUID, auth: Auth, session: Session) -> ClaimRead:
    """A claim with its verifications; visible to its claimant and admins."""
    claim = await claim_service.get_claim(session, claim_id, auth.user_id, is_admin=auth.is_admin)
    verifications = await claim_service.claim_verifications(session, claim.id)
    return claim_service.claim_to_read(claim, verifications)


@router.post("/{claim_id}/verify", response_model=VerificationSubmitted)
async def submit_verification(
    claim_id: uuid.UUID,
    auth: Auth,
    session: Session,
    verification_type: str | None = Form(None),
    evidence_data: str | None = Form(None),
    evidence_file: UploadFile | None = File(None),
) -> VerificationSubmitted:
    """Attach evidence (optionally a PDF/JPEG/PNG document) to an open claim."""
    if not verification_type:
        raise ValidationError("Missing required field: verification_type", field="verification_type")
    try:
        vtype = VerificationType(verification_type)
    except ValueError as exc:
        raise ValidationError("Invalid verification_type", field="verification_type") from exc
    data = _parse_evidence_data(evidence_data)

    claim = await claim_service.get_claim(session, claim_id, auth.user_id)
    upload = None
    if evidence_file is not None and evidence_file.filename:
        upload = (evidence_file.filename, evidence_file.content_type, await evidence_file.read())

    verification = await claim_service.submit_verification(
        session, claim, auth.user_id, vtype, data, upload,
    )
    return VerificationSubmitted(
        verification_id=verification.id,
        status=claim.status,
        message="Verification submitted and awaiting review",
    )


@router.patch("/{claim_id}/review", response_model=ClaimRead)
async def review_claim(
    claim_id: uuid.UUID, body: ClaimReview, auth: AdminAuth, session: Session,
) -> ClaimRead:
    """Approve, reject (notes required) or verify a claim (admin)."""
    claim = await claim_service.get_claim(session, claim_id, auth.user_id, is_admin=True)
    claim = await claim_service.review_claim(session, claim, body.status, body.reviewer_notes)
    verifications = await claim_service.claim_verifications(session, claim.id)
    return claim_service.claim_to_read(claim, verifications)


@router.post("/verifications/{verification_id}/confirm", response_model=VerificationConfirmed)
async def confirm_verification(
    verification_id: uuid.UUID, auth: AdminAuth, session: Session,
) -> VerificationConfirmed:
    """Mark evidence as checked (admin); fully verified claims become VERIFIED."""
    verification, claim = await claim_service.confirm_verification(session, verification_id)
    return VerificationConfirmed(
        verification=VerificationRead.model_validate(verification),
        claim_status=claim.status,
    )
