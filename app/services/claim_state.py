"""Claim lifecycle transitions and method-specific payload rules."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.core.errors import ConflictError, ValidationError
from app.core.validation import normalize_phone, validate_email
from app.models.base import utcnow
from app.models.listing_claim import ClaimMethod, ClaimStatus, ListingClaim

CLAIM_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.PENDING: frozenset({
        ClaimStatus.APPROVED, ClaimStatus.VERIFIED, ClaimStatus.REJECTED, ClaimStatus.EXPIRED,
    }),
    ClaimStatus.APPROVED: frozenset({ClaimStatus.VERIFIED, ClaimStatus.REJECTED}),
    ClaimStatus.VERIFIED: frozenset(),
    ClaimStatus.REJECTED: frozenset(),
    ClaimStatus.EXPIRED: frozenset(),
}

NEXT_STEPS: dict[ClaimMethod, list[str]] = {
    ClaimMethod.EMAIL_VERIFICATION: [
        "Please check your email for verification instructions",
        "Complete verification within 7 days",
        "Contact support if you need assistance",
    ],
    ClaimMethod.PHONE_VERIFICATION: [
        "Expect a verification call or text message at the number provided",
        "Complete verification within 7 days",
        "Contact support if you need assistance",
    ],
    ClaimMethod.DOCUMENT_UPLOAD: [
        "Upload your business document as evidence for this claim",
        "Complete verification within 7 days",
        "Contact support if you need assistance",
    ],
}


def transition_claim(
    claim: ListingClaim,
    target: ClaimStatus,
    reviewer_notes: str | None = None,
) -> ListingClaim:
    """Move ``claim`` to ``target``, stamping ``reviewed_at``."""
    current = ClaimStatus(claim.status)
    if target not in CLAIM_TRANSITIONS[current]:
        raise ConflictError(f"Cannot move claim from {current} to {target}")
    if target == ClaimStatus.REJECTED and not (reviewer_notes and reviewer_notes.strip()):
        raise ValidationError(
            "Reviewer notes are required when rejecting a claim", field="reviewer_notes",
        )
    now = utcnow()
    claim.status = target
    claim.updated_at = now
    if target != ClaimStatus.EXPIRED:
        claim.reviewed_at = now
    if reviewer_notes is not None:
        claim.reviewer_notes = reviewer_notes
    return claim


def is_expired(claim: ListingClaim, now: datetime | None = None) -> bool:
    """A PENDING claim past its deadline is due for expiry."""
    now = now or utcnow()
    return ClaimStatus(claim.status) == ClaimStatus.PENDING and claim.expires_at < now


def validate_verification_data(method: ClaimMethod, data: dict[str, Any]) -> dict[str, Any]:
    """Check the payload a claim method needs and return a normalised copy."""
    if not isinstance(data, dict):
        raise ValidationError("verification_data must be an object", field="verification_data")
    cleaned = dict(data)
    if method == ClaimMethod.EMAIL_VERIFICATION:
        cleaned["email"] = validate_email(data.get("email"), field="email").lower()
    elif method == ClaimMethod.PHONE_VERIFICATION:
        cleaned["phone_number"] = normalize_phone(data.get("phone_number"))
    elif method == ClaimMethod.DOCUMENT_UPLOAD:
        document_type = data.get("document_type")
        if not isinstance(document_type, str) or not document_type.strip():
            raise ValidationError(
                "Document type is required for document upload", field="document_type",
            )
        cleaned["document_type"] = document_type.strip()
    return cleaned
