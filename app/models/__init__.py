"""Import all models so SQLModel.metadata picks them up."""

from app.models.category import Category, CategoryRead
from app.models.listing import Listing, ListingRead, ListingUpdate
from app.models.listing_claim import (
    ClaimMethod,
    ClaimStatus,
    ClaimVerification,
    ListingClaim,
    VerificationType,
)
from app.models.provisioning_job import JobRead, JobStatus, JobType, ProvisioningJob
from app.models.tenant import Tenant, TenantCreate, TenantRead, TenantStatus, TenantUpdate
from app.models.tenant_branding import BrandingRead, TenantBranding
from app.models.uploaded_file import UploadedFile, UploadKind
from app.models.user import User, UserRead, UserRole
from app.models.wizard_session import WizardSession, WizardSessionRead, WizardStep

__all__ = [
    "BrandingRead",
    "Category",
    "CategoryRead",
    "ClaimMethod",
    "ClaimStatus",
    "ClaimVerification",
    "JobRead",
    "JobStatus",
    "JobType",
    "Listing",
    "ListingClaim",
    "ListingRead",
    "ListingUpdate",
    "ProvisioningJob",
    "Tenant",
    "TenantBranding",
    "TenantCreate",
    "TenantRead",
    "TenantStatus",
    "TenantUpdate",
    "UploadKind",
    "UploadedFile",
    "User",
    "UserRead",
    "UserRole",
    "VerificationType",
    "WizardSession",
    "WizardSessionRead",
    "WizardStep",
]
