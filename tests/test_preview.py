"""Preview endpoint tests."""

import pytest
from httpx import AsyncClient

from conftest import create_tenant, seeded_tenant


@pytest.mark.asyncio
async def test_preview_statistics(client: AsyncClient):
    tenant = await seeded_tenant(client, "preview-stats")

    resp = await client.get(f"/v1/tenants/{tenant['id']}/preview")
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["statistics"]["categories_count"] == 2
    assert data["statistics"]["listings_count"] == 3
    assert data["statistics"]["media_files_count"] == 0
    assert data["preview_url"] == "https://preview-stats.example.com/preview"
    assert data["admin_url"] == "https://preview-stats.example.com/admin"
    assert data["branding"] is None
    counts = {c["slug"]: c["listings_count"] for c in data["categories"]}
    assert counts == {"restaurants": 1, "coffee": 2}
    assert data["readiness"]["issues"] == []
    assert "No branding configured - using default styles" in data["readiness"]["warnings"]


@pytest.mark.asyncio
async def test_preview_of_empty_tenant_reports_issue(client: AsyncClient):
    tenant = await create_tenant(client, "preview-empty")

    resp = await client.get(f"/v1/tenants/{tenant['id']}/preview")
    assert resp.status_code == 200
    data = resp.json()
    assert data["statistics"]["categories_count"] == 0
    assert data["readiness"]["issues"] == ["At least one category is required"]


@pytest.mark.asyncio
async def test_preview_unknown_tenant(client: AsyncClient):
    resp = await client.get("/v1/tenants/00000000-0000-4000-8000-00000000abcd/preview")
    assert resp.status_code == 404
