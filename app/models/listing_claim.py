"""ListingClaim / ClaimVerification models: ownership claims on listings."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin, new_uuid, utcnow


class ClaimMethod(StrEnum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PHONE_VERIFICATION = "PHONE_VERIFICATION"
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"


class ClaimStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class VerificationType(StrEnum):
    EMAIL_DOMAIN = "EMAIL_DOMAIN"
    PHONE_NUMBER = "PHONE_NUMBER"
    BUSINESS_DOCUMENT = "BUSINESS_DOCUMENT"
    UTILITY_BILL = "UTILITY_BILL"


# Counts toward the one-active-claim-per-(listing, user) rule
ACTIVE_CLAIM_STATUSES = frozenset({ClaimStatus.PENDING, ClaimStatus.APPROVED})
# Grants edit rights on the listing
OWNER_CLAIM_STATUSES = frozenset({ClaimStatus.APPROVED, ClaimStatus.VERIFIED})


class ListingClaim(TimestampMixin, SQLModel, table=True):
    __tablename__ = "listing_claims"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    listing_id: uuid.UUID = Field(foreign_key="listings.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)

    claim_method: ClaimMethod = Field(nullable=False)
    # Fernet-encrypted JSON (contact details are PII)
    verification_data: str = Field(sa_column=Column(Text, nullable=False))

    status: ClaimStatus = Field(default=ClaimStatus.PENDING, index=True)
    submitted_at: datetime = Field(default_factory=utcnow, nullable=False)
    expires_at: datetime = Field(nullable=False)
    reviewed_at: datetime | None = Field(default=None)
    reviewer_notes: str | None = Field(default=None, max_length=2000)


class ClaimVerification(TimestampMixin, SQLModel, table=True):
    __tablename__ = "claim_verifications"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    claim_id: uuid.UUID = Field(foreign_key="listing_claims.id", nullable=False, index=True)

    verification_type: VerificationType = Field(nullable=False)
    evidence_url: str = Field(default="", max_length=2048)
    evidence_data: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))
    verified: bool = Field(default=False)
    verified_at: datetime | None = Field(default=None)
    submitted_at: datetime = Field(default_factory=utcnow, nullable=False)


# ── Pydantic schemas ─────────────────────────────────────────

class ClaimCreate(SQLModel):
    claim_method: ClaimMethod
    verification_data: dict


class ClaimCreated(SQLModel):
    claim_id: uuid.UUID
    status: ClaimStatus
    expires_at: datetime
    next_steps: list[str]


class ClaimReview(SQLModel):
    status: ClaimStatus
    reviewer_notes: str | None = Field(default=None, max_length=2000)


class VerificationRead(SQLModel):
    id: uuid.UUID
    verification_type: VerificationType
    evidence_url: str
    verified: bool
    verified_at: datetime | None = None
    submitted_at: datetime


class VerificationSubmitted(SQLModel):
    verification_id: uuid.UUID
    status: ClaimStatus
    message: str


class ClaimRead(SQLModel):
    id: uuid.UUID
    listing_id: uuid.UUID
    user_id: uuid.UUID
    claim_method: ClaimMethod
    verification_data: dict
    status: ClaimStatus
    submitted_at: datetime
    expires_at: datetime
    reviewed_at: datetime | None = None
    reviewer_notes: str | None = None
    verifications: list[VerificationRead] = []


class ListingSummary(SQLModel):
    id: uuid.UUID
    title: str
    slug: str


class TenantSummary(SQLModel):
    id: uuid.UUID
    name: str
    domain: str


class UserClaimRead(SQLModel):
    """A claim as shown in the claimant's own claim list."""
    id: uuid.UUID
    claim_method: ClaimMethod
    status: ClaimStatus
    submitted_at: datetime
    expires_at: datetime
    reviewed_at: datetime | None = None
    listing: ListingSummary
    tenant: TenantSummary
