"""V1 API router aggregation."""

from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.claims import router as claims_router
from app.api.v1.listings import router as listings_router
from app.api.v1.system import router as system_router
from app.api.v1.tenants import router as tenants_router
from app.api.v1.users import router as users_router
from app.api.v1.wizard import router as wizard_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(tenants_router)
v1_router.include_router(wizard_router)
v1_router.include_router(auth_router)
v1_router.include_router(listings_router)
v1_router.include_router(claims_router)
v1_router.include_router(users_router)
v1_router.include_router(system_router)
