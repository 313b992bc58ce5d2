"""Shared test fixtures: async SQLite in-memory DB + test client."""

import os
import tempfile
import uuid
from collections.abc import AsyncGenerator

from cryptography.fernet import Fernet

# Settings are read once, on first import of the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="dirsite-test-"))
os.environ.setdefault("PROVISIONING_STEP_DELAY", "0")
os.environ.setdefault("ADMIN_EMAILS", "admin@dirsite-ops.com,ops@dirsite-ops.com")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlmodel import SQLModel, select  # noqa: E402

# Import all models so metadata is populated
import app.models  # noqa: F401, E402
from app.core import throttle  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.listing import Listing  # noqa: E402

STRONG_PASSWORD = "Str0ng!Passw0rd"
ADMIN_EMAIL = "admin@dirsite-ops.com"


@pytest.fixture(scope="session")
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture(scope="session")
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture
async def client(test_session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client; every request gets its own DB session."""

    async def _override_session():
        async with test_session_factory() as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_session
    throttle.clear()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    throttle.clear()


# ── Shared helpers ───────────────────────────────────────────

async def register_user(client: AsyncClient, email: str, password: str = STRONG_PASSWORD) -> dict:
    """Register an account and return ``{"headers", "user"}``."""
    resp = await client.post("/v1/auth/register", json={
        "email": email,
        "password": password,
        "first_name": "Test",
        "last_name": "User",
        "agree_to_terms": True,
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return {
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
        "user": data["user"],
    }


async def create_tenant(client: AsyncClient, domain: str, name: str = "Local Business Directory") -> dict:
    resp = await client.post("/v1/tenants", json={"name": name, "domain": domain})
    assert resp.status_code == 201, resp.text
    return resp.json()


async def upload(client: AsyncClient, tenant_id: str, kind: str, filename: str, content: bytes):
    return await client.post(
        f"/v1/tenants/{tenant_id}/upload",
        params={"type": kind},
        files={"file": (filename, content, "application/octet-stream")},
    )


CATEGORIES_JSON = b"""[
  {"name": "Restaurants", "slug": "restaurants", "description": "Places to eat"},
  {"name": "Coffee Shops", "slug": "coffee", "parent": "restaurants"}
]"""

LISTINGS_CSV = (
    b"title,category,description,phone\n"
    b"Mario's Pizza,restaurants,Wood-fired pizza since 1982,555-0100\n"
    b"Bean There,coffee,Single origin espresso bar,555-0101\n"
    b"Bean There,Coffee Shops,Second location downtown,\n"
)


async def seeded_tenant(client: AsyncClient, domain: str) -> dict:
    """A tenant with two categories and three listings."""
    tenant = await create_tenant(client, domain)
    resp = await upload(client, tenant["id"], "categories", "categories.json", CATEGORIES_JSON)
    assert resp.status_code == 200, resp.text
    resp = await upload(client, tenant["id"], "listings", "listings.csv", LISTINGS_CSV)
    assert resp.status_code == 200, resp.text
    return tenant


async def new_user(client: AsyncClient, prefix: str = "user") -> dict:
    """Register a throwaway account with a unique email."""
    return await register_user(client, f"{prefix}-{uuid.uuid4().hex[:10]}@example.com")


async def admin_headers(client: AsyncClient) -> dict:
    """Auth headers for the shared admin account, registering it on first use."""
    resp = await client.post("/v1/auth/login", json={"email": ADMIN_EMAIL, "password": STRONG_PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return (await register_user(client, ADMIN_EMAIL))["headers"]


async def tenant_listing_ids(session: AsyncSession, tenant_id: str) -> list[uuid.UUID]:
    """Listing ids of a tenant, ordered by slug."""
    stmt = (
        select(Listing.id)
        .where(Listing.tenant_id == uuid.UUID(tenant_id))
        .order_by(Listing.slug)
    )
    return list((await session.execute(stmt)).scalars().all())
