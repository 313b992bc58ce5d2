"""Current-user endpoints: the claimant's own claims."""

import math

from fastapi import APIRouter, Query
from pydantic import BaseModel

from app.api.deps import Auth, Session
from app.core.errors import ValidationError
from app.models.listing_claim import (
    ClaimStatus,
    ListingSummary,
    TenantSummary,
    UserClaimRead,
)
from app.services import claims as claim_service

router = APIRouter(prefix="/users", tags=["users"])


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class UserClaimsResponse(BaseModel):
    claims: list[UserClaimRead]
    pagination: Pagination


@router.get("/me/claims", response_model=UserClaimsResponse)
async def list_my_claims(
    auth: Auth,
    session: Session,
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> UserClaimsResponse:
    """The caller's claims with listing and tenant summaries, newest first."""
    status_filter = None
    if status:
        try:
            status_filter = ClaimStatus(status.upper())
        except ValueError as exc:
            raise ValidationError(
                f"Invalid status: must be one of {', '.join(s.value for s in ClaimStatus)}",
                field="status",
            ) from exc

    rows, total = await claim_service.list_user_claims(session, auth.user_id, status_filter, page, limit)
    total_pages = math.ceil(total / limit) if total else 0
    return UserClaimsResponse(
        claims=[
            UserClaimRead(
                id=claim.id,
                claim_method=claim.claim_method,
                status=claim.status,
                submitted_at=claim.submitted_at,
                expires_at=claim.expires_at,
                reviewed_at=claim.reviewed_at,
                listing=ListingSummary(id=listing.id, title=listing.title, slug=listing.slug),
                tenant=TenantSummary(id=tenant.id, name=tenant.name, domain=tenant.domain),
            )
            for claim, listing, tenant in rows
        ],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )


@router.get("/me/claims/stats")
async def my_claim_stats(auth: Auth, session: Session) -> dict[str, int]:
    """Claim counts per status for the caller."""
    return await claim_service.user_claim_stats(session, auth.user_id)
