"""Tenant create / read / update / delete and branding."""

import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.models.base import utcnow
from app.models.tenant import Tenant
from conftest import create_tenant, seeded_tenant


@pytest.mark.asyncio
async def test_create_tenant_returns_draft_with_next_step(client: AsyncClient):
    resp = await client.post("/v1/tenants", json={
        "name": "Local Restaurant Directory",
        "domain": "restaurants-downtown",
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["status"] == "DRAFT"
    assert data["next_step"] == "BRANDING"
    assert data["domain"] == "restaurants-downtown"
    assert data["session_id"]
    assert data["id"]


@pytest.mark.asyncio
async def test_timestamps_persist_as_naive_utc(client: AsyncClient, session):
    before = utcnow()
    data = await create_tenant(client, "naive-utc")

    tenant = await session.get(Tenant, uuid.UUID(data["id"]))
    assert tenant.created_at.tzinfo is None
    assert before - timedelta(seconds=1) <= tenant.created_at <= utcnow()


@pytest.mark.asyncio
async def test_duplicate_domain_conflicts(client: AsyncClient):
    payload = {"name": "First Directory", "domain": "dup-domain"}
    resp = await client.post("/v1/tenants", json=payload)
    assert resp.status_code == 201

    resp = await client.post("/v1/tenants", json=payload)
    assert resp.status_code == 409
    error = resp.json()["error"].lower()
    assert "domain" in error
    assert "exists" in error


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ({"domain": "no-name-here"}, "name"),
        ({"name": "ab", "domain": "short-name"}, "name"),
        ({"name": "  ab  ", "domain": "padded-name"}, "name"),
        ({"name": "Valid Name"}, "domain"),
        ({"name": "Valid Name", "domain": "Upper-Case"}, "domain"),
        ({"name": "Valid Name", "domain": "has spaces"}, "domain"),
        ({"name": "Valid Name", "domain": "-leading"}, "domain"),
        ({"name": "Valid Name", "domain": "ab"}, "domain"),
    ],
)
async def test_create_tenant_validation(client: AsyncClient, payload: dict, fragment: str):
    resp = await client.post("/v1/tenants", json=payload)
    assert resp.status_code == 400
    assert fragment in resp.json()["error"].lower()


@pytest.mark.asyncio
async def test_get_and_patch_tenant(client: AsyncClient):
    tenant = await create_tenant(client, "patch-me")

    resp = await client.get(f"/v1/tenants/{tenant['id']}")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Local Business Directory"

    resp = await client.patch(f"/v1/tenants/{tenant['id']}", json={
        "name": "Renamed Directory",
        "domain": "patched-domain",
    })
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["name"] == "Renamed Directory"
    assert data["domain"] == "patched-domain"
    assert data["status"] == "DRAFT"


@pytest.mark.asyncio
async def test_patch_to_taken_domain_conflicts(client: AsyncClient):
    await create_tenant(client, "taken-one")
    other = await create_tenant(client, "taken-two")
    resp = await client.patch(f"/v1/tenants/{other['id']}", json={"domain": "taken-one"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_malformed_tenant_id_is_400(client: AsyncClient):
    resp = await client.get("/v1/tenants/not-a-uuid")
    assert resp.status_code == 400
    assert "error" in resp.json()


@pytest.mark.asyncio
async def test_unknown_tenant_is_404(client: AsyncClient):
    resp = await client.get("/v1/tenants/00000000-0000-4000-8000-000000000000")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Tenant not found"}


@pytest.mark.asyncio
async def test_delete_tenant_cascades(client: AsyncClient):
    tenant = await seeded_tenant(client, "delete-me")

    resp = await client.delete(f"/v1/tenants/{tenant['id']}")
    assert resp.status_code == 204

    resp = await client.get(f"/v1/tenants/{tenant['id']}")
    assert resp.status_code == 404
    resp = await client.get(f"/v1/wizard/{tenant['session_id']}")
    assert resp.status_code == 404

    # The domain is free again
    resp = await client.post("/v1/tenants", json={"name": "Reborn", "domain": "delete-me"})
    assert resp.status_code == 201


# ── Branding ─────────────────────────────────────────────────

BRANDING = {
    "primary_color": "#3B82F6",
    "secondary_color": "#1E40AF",
    "accent_color": "#F59E0B",
    "font_family": "Inter",
}


@pytest.mark.asyncio
async def test_set_branding_keeps_status(client: AsyncClient):
    tenant = await create_tenant(client, "brand-ok")

    resp = await client.put(f"/v1/tenants/{tenant['id']}/branding", data=BRANDING)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["next_step"] == "CATEGORIES"
    assert data["branding"]["primary_color"] == "#3B82F6"
    assert data["theme"]["colors"]["accent"] == "#F59E0B"

    resp = await client.get(f"/v1/tenants/{tenant['id']}")
    assert resp.json()["status"] == "DRAFT"

    resp = await client.get(f"/v1/wizard/{tenant['session_id']}")
    assert resp.json()["current_step"] == "CATEGORIES"


@pytest.mark.asyncio
async def test_set_branding_with_logo(client: AsyncClient):
    tenant = await create_tenant(client, "brand-logo")
    png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

    resp = await client.put(
        f"/v1/tenants/{tenant['id']}/branding",
        data=BRANDING,
        files={"logo": ("logo.png", png, "image/png")},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["branding"]["logo_url"].startswith("file://")

    resp = await client.get(f"/v1/tenants/{tenant['id']}/preview")
    assert resp.json()["statistics"]["media_files_count"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("domain", "override", "fragment"),
    [
        ("brand-bad-primary", {"primary_color": "blue"}, "primary_color"),
        ("brand-bad-accent", {"accent_color": "#12345"}, "accent_color"),
        ("brand-bad-font", {"font_family": "Comic Sans"}, "font_family"),
    ],
)
async def test_branding_validation(client: AsyncClient, domain: str, override: dict, fragment: str):
    tenant = await create_tenant(client, domain)
    resp = await client.put(f"/v1/tenants/{tenant['id']}/branding", data={**BRANDING, **override})
    assert resp.status_code == 400
    assert fragment in resp.json()["error"]


@pytest.mark.asyncio
async def test_branding_rejects_fake_logo(client: AsyncClient):
    tenant = await create_tenant(client, "brand-fake-logo")
    resp = await client.put(
        f"/v1/tenants/{tenant['id']}/branding",
        data=BRANDING,
        files={"logo": ("logo.png", b"not really a png", "image/png")},
    )
    assert resp.status_code == 400
