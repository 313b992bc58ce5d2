"""Listing endpoints: public read, claim submission, owner edits."""

import uuid

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.api.deps import AdminAuth, Auth, Session
from app.core.errors import NotFoundError, ValidationError
from app.models.base import load_json
from app.models.listing import Listing, ListingRead, ListingUpdate
from app.models.listing_claim import ClaimCreated, ClaimMethod, ClaimRead
from app.services import claims as claim_service
from app.services.claim_state import NEXT_STEPS

router = APIRouter(prefix="/listings", tags=["listings"])


class ClaimRequest(BaseModel):
    claim_method: str | None = None
    verification_data: dict | None = None


def _to_read(listing: Listing) -> ListingRead:
    """Convert a Listing ORM instance to ListingRead schema."""
    return ListingRead(
        id=listing.id,
        tenant_id=listing.tenant_id,
        category_id=listing.category_id,
        title=listing.title,
        slug=listing.slug,
        description=listing.description,
        featured=listing.featured,
        data=load_json(listing.data),
        updated_at=listing.updated_at,
    )


@router.get("/{listing_id}", response_model=ListingRead)
async def get_listing(listing_id: uuid.UUID, session: Session) -> ListingRead:
    listing = await session.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError("Listing")
    return _to_read(listing)


@router.put("/{listing_id}", response_model=ListingRead)
async def update_listing(
    listing_id: uuid.UUID, body: ListingUpdate, auth: Auth, session: Session,
) -> ListingRead:
    """Edit a listing; requires the caller's APPROVED or VERIFIED claim on it."""
    listing = await claim_service.update_listing(session, listing_id, auth.user_id, body)
    return _to_read(listing)


@router.post("/{listing_id}/claim", response_model=ClaimCreated, status_code=status.HTTP_201_CREATED)
async def claim_listing(
    listing_id: uuid.UUID, body: ClaimRequest, auth: Auth, session: Session,
) -> ClaimCreated:
    """Open an ownership claim. One active claim per listing and user."""
    if not body.claim_method:
        raise ValidationError("Missing required field: claim_method", field="claim_method")
    if body.verification_data is None:
        raise ValidationError("Missing required field: verification_data", field="verification_data")
    try:
        method = ClaimMethod(body.claim_method)
    except ValueError as exc:
        raise ValidationError("Invalid claim_method", field="claim_method") from exc

    claim = await claim_service.create_claim(
        session, listing_id, auth.user_id, method, body.verification_data,
    )
    return ClaimCreated(
        claim_id=claim.id,
        status=claim.status,
        expires_at=claim.expires_at,
        next_steps=NEXT_STEPS[method],
    )


@router.get("/{listing_id}/claims", response_model=list[ClaimRead])
async def get_listing_claims(listing_id: uuid.UUID, auth: AdminAuth, session: Session) -> list[ClaimRead]:
    """All claims on a listing (admin)."""
    claims = await claim_service.listing_claims(session, listing_id)
    return [claim_service.claim_to_read(c) for c in claims]
