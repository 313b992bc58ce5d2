"""initial directory schema

Revision ID: 3f1a9c2e7b40
Revises: 
Create Date: 2026-10-18 15:50:12.204871

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TENANT_STATUS = sa.Enum("DRAFT", "PREVIEW", "PUBLISHED", "UPDATING", "FAILED", name="tenantstatus")
WIZARD_STEP = sa.Enum(
    "BASIC_INFO", "BRANDING", "CATEGORIES", "LISTINGS", "PREVIEW", "PUBLISH", name="wizardstep",
)
JOB_STATUS = sa.Enum("QUEUED", "RUNNING", "COMPLETED", "FAILED", name="jobstatus")
JOB_TYPE = sa.Enum("CREATE", "REPUBLISH", name="jobtype")
UPLOAD_KIND = sa.Enum("CATEGORIES", "LISTINGS", "LOGO", name="uploadkind")
USER_ROLE = sa.Enum("USER", "ADMIN", name="userrole")
CLAIM_METHOD = sa.Enum("EMAIL_VERIFICATION", "PHONE_VERIFICATION", "DOCUMENT_UPLOAD", name="claimmethod")
CLAIM_STATUS = sa.Enum("PENDING", "APPROVED", "VERIFIED", "REJECTED", "EXPIRED", name="claimstatus")
VERIFICATION_TYPE = sa.Enum(
    "EMAIL_DOMAIN", "PHONE_NUMBER", "BUSINESS_DOCUMENT", "UTILITY_BILL", name="verificationtype",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "tenants",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("domain", sa.String(63), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("status", TENANT_STATUS, nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_tenants_domain", "tenants", ["domain"], unique=True)

    op.create_table(
        "users",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("business_name", sa.String(100), nullable=True),
        sa.Column("business_role", sa.String(50), nullable=True),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "tenant_branding",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("logo_url", sa.String(2048), nullable=True),
        sa.Column("primary_color", sa.String(7), nullable=False),
        sa.Column("secondary_color", sa.String(7), nullable=False),
        sa.Column("accent_color", sa.String(7), nullable=False),
        sa.Column("font_family", sa.String(50), nullable=False),
        sa.Column("font_url", sa.String(2048), nullable=True),
        sa.Column("theme_json", sa.Text(), nullable=False, server_default="{}"),
    )
    op.create_index("ix_tenant_branding_tenant_id", "tenant_branding", ["tenant_id"], unique=True)

    op.create_table(
        "categories",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("parent_id", sa.Uuid(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False),
        sa.Column("icon", sa.String(255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_categories_tenant_slug"),
    )
    op.create_index("ix_categories_tenant_id", "categories", ["tenant_id"])
    op.create_index("ix_categories_parent_id", "categories", ["parent_id"])

    op.create_table(
        "listings",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("category_id", sa.Uuid(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("data", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("search_text", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_listings_tenant_slug"),
    )
    op.create_index("ix_listings_tenant_id", "listings", ["tenant_id"])
    op.create_index("ix_listings_category_id", "listings", ["category_id"])

    op.create_table(
        "wizard_sessions",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("current_step", WIZARD_STEP, nullable=False),
        sa.Column("data", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_wizard_sessions_tenant_id", "wizard_sessions", ["tenant_id"])

    op.create_table(
        "uploaded_files",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("kind", UPLOAD_KIND, nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("storage_uri", sa.String(2048), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("records_count", sa.Integer(), nullable=False),
    )
    op.create_index("ix_uploaded_files_tenant_id", "uploaded_files", ["tenant_id"])

    op.create_table(
        "provisioning_jobs",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("type", JOB_TYPE, nullable=False),
        sa.Column("status", JOB_STATUS, nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("current_step", sa.String(50), nullable=False),
        sa.Column("steps_total", sa.Integer(), nullable=False),
        sa.Column("steps_completed", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.String(2000), nullable=True),
        sa.Column("external_refs", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_provisioning_jobs_tenant_id", "provisioning_jobs", ["tenant_id"])

    op.create_table(
        "listing_claims",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("listing_id", sa.Uuid(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("claim_method", CLAIM_METHOD, nullable=False),
        sa.Column("verification_data", sa.Text(), nullable=False),
        sa.Column("status", CLAIM_STATUS, nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("reviewer_notes", sa.String(2000), nullable=True),
    )
    op.create_index("ix_listing_claims_listing_id", "listing_claims", ["listing_id"])
    op.create_index("ix_listing_claims_user_id", "listing_claims", ["user_id"])
    op.create_index("ix_listing_claims_status", "listing_claims", ["status"])

    op.create_table(
        "claim_verifications",
        *_timestamps(),
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("claim_id", sa.Uuid(), sa.ForeignKey("listing_claims.id"), nullable=False),
        sa.Column("verification_type", VERIFICATION_TYPE, nullable=False),
        sa.Column("evidence_url", sa.String(2048), nullable=False),
        sa.Column("evidence_data", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_claim_verifications_claim_id", "claim_verifications", ["claim_id"])


def downgrade() -> None:
    for table in (
        "claim_verifications",
        "listing_claims",
        "provisioning_jobs",
        "uploaded_files",
        "wizard_sessions",
        "listings",
        "categories",
        "tenant_branding",
        "users",
        "tenants",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in (
        VERIFICATION_TYPE, CLAIM_STATUS, CLAIM_METHOD, USER_ROLE, UPLOAD_KIND,
        JOB_TYPE, JOB_STATUS, WIZARD_STEP, TENANT_STATUS,
    ):
        enum.drop(bind, checkfirst=True)
