"""Authentication endpoints: register, login, current user."""

import logging
from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.api.deps import Auth, Session
from app.core import throttle
from app.core.config import get_settings
from app.core.errors import ConflictError, NotFoundError, RateLimitError, UnauthorizedError, ValidationError
from app.core.security import create_jwt, hash_password, token_expiry, verify_password_or_dummy
from app.core.validation import validate_email, validate_password, validate_person_name
from app.models.user import User, UserRead, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

DUPLICATE_EMAIL = "An account with this email already exists"


# ── Schemas ──────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    business_name: str | None = None
    business_role: str | None = None
    agree_to_terms: bool = False


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserRead


def _issue_token(user: User) -> TokenResponse:
    expires_at = token_expiry()
    return TokenResponse(
        access_token=create_jwt(subject=str(user.id), role=user.role, expires_at=expires_at),
        expires_at=expires_at,
        user=UserRead.model_validate(user),
    )


async def _email_taken(session: AsyncSession, email: str) -> bool:
    existing = await session.execute(select(User.id).where(User.email == email))
    return existing.first() is not None


# ── Routes ───────────────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, session: Session) -> TokenResponse:
    """Create an account and return a JWT."""
    email = validate_email(body.email).lower()
    validate_password(body.password)
    first_name = validate_person_name(body.first_name, "first_name")
    last_name = validate_person_name(body.last_name, "last_name")
    if not body.agree_to_terms:
        raise ValidationError("You must agree to the terms of service", field="agree_to_terms")

    # Hash before the lookup so new and existing emails take the same time
    password_hash = hash_password(body.password)  # type: ignore[arg-type]

    if await _email_taken(session, email):
        raise ConflictError(DUPLICATE_EMAIL)

    role = UserRole.ADMIN if email in get_settings().admin_email_set() else UserRole.USER
    user = User(
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        business_name=(body.business_name or "").strip()[:100] or None,
        business_role=(body.business_role or "").strip()[:50] or None,
        role=role,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same email
        await session.rollback()
        raise ConflictError(DUPLICATE_EMAIL) from exc
    await session.refresh(user)
    logger.info("User %s registered (%s)", user.id, role)
    return _issue_token(user)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, session: Session) -> TokenResponse:
    """Authenticate with email + password, receive a JWT."""
    if not body.email or not body.password:
        raise ValidationError("Email and password are required", field="email")
    email = body.email.strip().lower()

    settings = get_settings()
    if throttle.is_blocked(email, settings.login_max_attempts, settings.login_window_seconds):
        logger.warning("Login throttled for %s", email)
        raise RateLimitError("Too many failed login attempts, please try again later")

    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not verify_password_or_dummy(body.password, user.password_hash if user else None):
        throttle.record_failure(email, settings.login_window_seconds)
        raise UnauthorizedError("Invalid email or password")
    if not user.is_active:  # type: ignore[union-attr]
        raise UnauthorizedError("Account is disabled")

    throttle.reset(email)
    return _issue_token(user)  # type: ignore[arg-type]


@router.get("/me", response_model=UserRead)
async def get_me(auth: Auth, session: Session) -> UserRead:
    """Return the current authenticated user."""
    user = await session.get(User, auth.user_id)
    if user is None:
        raise NotFoundError("User")
    return UserRead.model_validate(user)
