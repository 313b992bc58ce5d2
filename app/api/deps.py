"""FastAPI dependencies for authentication and DB sessions."""

import uuid
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.security import decode_jwt
from app.models.user import User, UserRole

bearer_scheme = HTTPBearer(auto_error=False)


class AuthContext:
    """Resolved identity carried through a request."""

    __slots__ = ("user_id", "user_role")

    def __init__(self, user_id: uuid.UUID, user_role: str) -> None:
        self.user_id = user_id
        self.user_role = user_role

    @property
    def is_admin(self) -> bool:
        return self.user_role == UserRole.ADMIN


def _resolve_jwt(token: str) -> AuthContext:
    """Decode a JWT and extract the user id and role."""
    try:
        payload = decode_jwt(token)
    except JWTError as exc:
        raise UnauthorizedError("Invalid or expired token") from exc

    try:
        return AuthContext(
            user_id=uuid.UUID(payload["sub"]),
            user_role=payload.get("role", UserRole.USER),
        )
    except (KeyError, ValueError, TypeError) as exc:
        raise UnauthorizedError("Malformed token payload") from exc


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AuthContext:
    """Resolve a bearer JWT to an AuthContext for an active user."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")
    auth = _resolve_jwt(credentials.credentials)

    user = await session.get(User, auth.user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("Account not found or disabled")
    # Role comes from the database so demotions apply immediately
    auth.user_role = user.role
    return auth


async def require_admin(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


# Typed shorthand for use in route signatures
Auth = Annotated[AuthContext, Depends(get_auth_context)]
AdminAuth = Annotated[AuthContext, Depends(require_admin)]
Session = Annotated[AsyncSession, Depends(get_session)]
