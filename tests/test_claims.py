"""Listing claims: submission, expiry, evidence, review and ownership."""

import json
import uuid
from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest
from httpx import AsyncClient
from pypdf import PdfWriter

from app.models.base import utcnow
from app.models.listing_claim import ListingClaim
from conftest import admin_headers, new_user, seeded_tenant, tenant_listing_ids


def _pdf_bytes() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buf = BytesIO()
    writer.write(buf)
    return buf.getvalue()


async def _claim(client: AsyncClient, listing_id, headers: dict, method: str = "EMAIL_VERIFICATION", data=None):
    return await client.post(
        f"/v1/listings/{listing_id}/claim",
        json={
            "claim_method": method,
            "verification_data": data if data is not None else {"email": "Owner@MariosPizza.com"},
        },
        headers=headers,
    )


async def _backdate(session, claim_id: str) -> None:
    claim = await session.get(ListingClaim, uuid.UUID(claim_id))
    claim.expires_at = utcnow() - timedelta(hours=1)
    session.add(claim)
    await session.commit()


@pytest.fixture
async def listing_ids(client: AsyncClient, session) -> list[uuid.UUID]:
    tenant = await seeded_tenant(client, f"claims-{uuid.uuid4().hex[:8]}")
    return await tenant_listing_ids(session, tenant["id"])


# ── Submission ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_claim(client: AsyncClient, listing_ids):
    user = await new_user(client)
    resp = await _claim(client, listing_ids[0], user["headers"])
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["status"] == "PENDING"
    assert data["next_steps"][0] == "Please check your email for verification instructions"

    expires = datetime.fromisoformat(data["expires_at"]).replace(tzinfo=None)
    remaining = expires - datetime.now(timezone.utc).replace(tzinfo=None)
    assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)


@pytest.mark.asyncio
async def test_claim_stores_normalised_data_encrypted(client: AsyncClient, session, listing_ids):
    user = await new_user(client)
    resp = await _claim(
        client, listing_ids[0], user["headers"],
        method="PHONE_VERIFICATION", data={"phone_number": "+1 (555) 010-0100"},
    )
    assert resp.status_code == 201, resp.text
    claim_id = resp.json()["claim_id"]

    row = await session.get(ListingClaim, uuid.UUID(claim_id))
    assert row.verification_data.startswith("gAAAAA")

    resp = await client.get(f"/v1/claims/{claim_id}", headers=user["headers"])
    assert resp.json()["verification_data"]["phone_number"] == "+15550100100"


@pytest.mark.asyncio
async def test_duplicate_active_claim_conflicts(client: AsyncClient, listing_ids):
    user = await new_user(client)
    assert (await _claim(client, listing_ids[0], user["headers"])).status_code == 201

    resp = await _claim(client, listing_ids[0], user["headers"])
    assert resp.status_code == 409
    assert resp.json() == {"error": "You already have an active claim for this listing"}

    # Another listing, or another user on the same listing, is fine
    assert (await _claim(client, listing_ids[1], user["headers"])).status_code == 201
    other = await new_user(client)
    assert (await _claim(client, listing_ids[0], other["headers"])).status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("method", "data", "fragment"),
    [
        ("CARRIER_PIGEON", {}, "claim_method"),
        ("EMAIL_VERIFICATION", {"email": "not-an-email"}, "email"),
        ("PHONE_VERIFICATION", {"phone_number": "12"}, "phone"),
        ("DOCUMENT_UPLOAD", {}, "document type"),
    ],
)
async def test_claim_payload_validation(client: AsyncClient, listing_ids, method, data, fragment):
    user = await new_user(client)
    resp = await _claim(client, listing_ids[0], user["headers"], method=method, data=data)
    assert resp.status_code == 400
    assert fragment in resp.json()["error"].lower()


@pytest.mark.asyncio
async def test_claim_requires_auth_and_listing(client: AsyncClient, listing_ids):
    resp = await client.post(
        f"/v1/listings/{listing_ids[0]}/claim",
        json={"claim_method": "EMAIL_VERIFICATION", "verification_data": {"email": "a@b.com"}},
    )
    assert resp.status_code == 401

    user = await new_user(client)
    resp = await _claim(client, uuid.uuid4(), user["headers"])
    assert resp.status_code == 404


# ── Expiry ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_expired_claim_frees_the_slot(client: AsyncClient, session, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]
    await _backdate(session, claim_id)

    resp = await client.get(f"/v1/claims/{claim_id}", headers=user["headers"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "EXPIRED"
    assert resp.json()["reviewed_at"] is None

    resp = await _claim(client, listing_ids[0], user["headers"])
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_expiry_sweep_worker(client: AsyncClient, session, test_session_factory, listing_ids):
    from unittest.mock import patch

    from app.workers.claims import expire_stale_claims

    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]
    await _backdate(session, claim_id)

    with patch("app.workers.claims.async_session_factory", test_session_factory):
        result = await expire_stale_claims({})
    assert result["expired"] >= 1

    async with test_session_factory() as check:
        claim = await check.get(ListingClaim, uuid.UUID(claim_id))
        assert claim.status == "EXPIRED"


# ── Visibility ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_claim_hidden_from_other_users(client: AsyncClient, listing_ids):
    owner = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], owner["headers"])).json()["claim_id"]

    stranger = await new_user(client)
    resp = await client.get(f"/v1/claims/{claim_id}", headers=stranger["headers"])
    assert resp.status_code == 404

    resp = await client.get(f"/v1/claims/{claim_id}", headers=await admin_headers(client))
    assert resp.status_code == 200


# ── Evidence ─────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_submit_pdf_evidence(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(
        client, listing_ids[0], user["headers"],
        method="DOCUMENT_UPLOAD", data={"document_type": "business_license"},
    )).json()["claim_id"]

    resp = await client.post(
        f"/v1/claims/{claim_id}/verify",
        data={
            "verification_type": "BUSINESS_DOCUMENT",
            "evidence_data": json.dumps({"issuer": "City of Springfield"}),
        },
        files={"evidence_file": ("license.pdf", _pdf_bytes(), "application/pdf")},
        headers=user["headers"],
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "PENDING"

    claim = (await client.get(f"/v1/claims/{claim_id}", headers=user["headers"])).json()
    assert len(claim["verifications"]) == 1
    verification = claim["verifications"][0]
    assert verification["verification_type"] == "BUSINESS_DOCUMENT"
    assert verification["evidence_url"]
    assert verification["verified"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("filename", "content", "content_type", "fragment"),
    [
        ("notes.txt", b"trust me", "text/plain", "invalid file type"),
        ("fake.pdf", b"%PDF-1.4\nthis is not really a pdf\n", "application/pdf", "could not be read"),
        ("photo.png", b"GIF89a not a png", "image/png", "does not match"),
    ],
)
async def test_bad_evidence_rejected(client: AsyncClient, listing_ids, filename, content, content_type, fragment):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]

    resp = await client.post(
        f"/v1/claims/{claim_id}/verify",
        data={"verification_type": "BUSINESS_DOCUMENT"},
        files={"evidence_file": (filename, content, content_type)},
        headers=user["headers"],
    )
    assert resp.status_code == 400
    assert fragment in resp.json()["error"].lower()


@pytest.mark.asyncio
async def test_document_verification_needs_file(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]

    resp = await client.post(
        f"/v1/claims/{claim_id}/verify",
        data={"verification_type": "UTILITY_BILL"},
        headers=user["headers"],
    )
    assert resp.status_code == 400
    assert "evidence file is required" in resp.json()["error"]


@pytest.mark.asyncio
async def test_evidence_data_must_be_json_object(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]

    resp = await client.post(
        f"/v1/claims/{claim_id}/verify",
        data={"verification_type": "EMAIL_DOMAIN", "evidence_data": "[1, 2]"},
        headers=user["headers"],
    )
    assert resp.status_code == 400


# ── Review ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_reject_requires_notes(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]
    admin = await admin_headers(client)

    resp = await client.patch(f"/v1/claims/{claim_id}/review", json={"status": "REJECTED"}, headers=admin)
    assert resp.status_code == 400

    resp = await client.patch(
        f"/v1/claims/{claim_id}/review",
        json={"status": "REJECTED", "reviewer_notes": "Email domain does not match the business"},
        headers=admin,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["status"] == "REJECTED"
    assert data["reviewed_at"] is not None
    assert data["reviewer_notes"] == "Email domain does not match the business"

    # Terminal
    resp = await client.patch(f"/v1/claims/{claim_id}/review", json={"status": "APPROVED"}, headers=admin)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_review_is_admin_only(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]

    resp = await client.patch(
        f"/v1/claims/{claim_id}/review", json={"status": "APPROVED"}, headers=user["headers"],
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_review_rejects_non_review_status(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]

    resp = await client.patch(
        f"/v1/claims/{claim_id}/review", json={"status": "EXPIRED"}, headers=await admin_headers(client),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_confirming_all_evidence_verifies_claim(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[0], user["headers"])).json()["claim_id"]
    resp = await client.post(
        f"/v1/claims/{claim_id}/verify",
        data={"verification_type": "EMAIL_DOMAIN", "evidence_data": json.dumps({"code": "123456"})},
        headers=user["headers"],
    )
    verification_id = resp.json()["verification_id"]

    resp = await client.post(
        f"/v1/claims/verifications/{verification_id}/confirm", headers=await admin_headers(client),
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["verification"]["verified"] is True
    assert data["claim_status"] == "VERIFIED"

    # A verified claim no longer takes evidence
    resp = await client.post(
        f"/v1/claims/{claim_id}/verify",
        data={"verification_type": "EMAIL_DOMAIN"},
        headers=user["headers"],
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_pending_and_listing_claims_for_admin(client: AsyncClient, listing_ids):
    user = await new_user(client)
    claim_id = (await _claim(client, listing_ids[2], user["headers"])).json()["claim_id"]
    admin = await admin_headers(client)

    resp = await client.get("/v1/claims/pending", params={"limit": 100}, headers=admin)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] >= 1
    assert all(c["status"] == "PENDING" for c in body["claims"])

    resp = await client.get(f"/v1/listings/{listing_ids[2]}/claims", headers=admin)
    assert resp.status_code == 200
    claims = resp.json()
    assert [c["id"] for c in claims] == [claim_id]
    assert claims[0]["verification_data"]["email"] == "owner@mariospizza.com"

    assert (await client.get("/v1/claims/pending", headers=user["headers"])).status_code == 403
    assert (await client.get(f"/v1/listings/{listing_ids[2]}/claims", headers=user["headers"])).status_code == 403


# ── Ownership ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_listing_edit_requires_approved_claim(client: AsyncClient, listing_ids):
    user = await new_user(client)
    listing_id = listing_ids[0]

    resp = await client.put(f"/v1/listings/{listing_id}", json={"title": "New Title"}, headers=user["headers"])
    assert resp.status_code == 403
    assert resp.json() == {"error": "You do not have permission to update this listing"}

    claim_id = (await _claim(client, listing_id, user["headers"])).json()["claim_id"]
    # Still PENDING
    resp = await client.put(f"/v1/listings/{listing_id}", json={"title": "New Title"}, headers=user["headers"])
    assert resp.status_code == 403

    resp = await client.patch(
        f"/v1/claims/{claim_id}/review", json={"status": "APPROVED"}, headers=await admin_headers(client),
    )
    assert resp.json()["status"] == "APPROVED"

    resp = await client.put(
        f"/v1/listings/{listing_id}",
        json={"title": "  Bean There Roasters  ", "data": {"website": "https://beanthere.example.com"}},
        headers=user["headers"],
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["title"] == "Bean There Roasters"
    assert data["data"]["website"] == "https://beanthere.example.com"

    resp = await client.put(f"/v1/listings/{listing_id}", json={"title": "Bad"}, headers=user["headers"])
    assert resp.status_code == 400

    # Public read reflects the edit
    resp = await client.get(f"/v1/listings/{listing_id}")
    assert resp.json()["title"] == "Bean There Roasters"
