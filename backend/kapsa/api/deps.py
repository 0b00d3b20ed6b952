"""
FastAPI Dependencies for Authentication and Ownership.

Key patterns:
1. get_current_user: Verifies the identity provider's JWT, returns the User row
2. get_owned_or_404: Every lookup by id is also filtered by user_id at the SQL level
3. No global "current user" state - always pass user explicitly

Security model:
- JWT sent as "Authorization: Bearer <token>" (HS256, audience "authenticated")
- The user row must still exist; erasing the account revokes every token
- Not-owned and non-existent records both return 404, never 403
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kapsa.config import get_settings
from kapsa.db.models import User
from kapsa.db.session import get_db
from kapsa.errors import NotFound, Unauthenticated

settings = get_settings()


# =============================================================================
# JWT UTILITIES
# =============================================================================


def decode_access_token(token: str) -> UUID | None:
    """
    Decode and validate a JWT access token.

    Returns user_id if valid, None if the signature, expiry, audience or
    subject is wrong.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        return UUID(user_id_str)
    except (JWTError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the bearer token from the Authorization header."""
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise Unauthenticated("No authorization header" if not authorization else None)


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Validate the JWT and return the current authenticated user.

    Raises Unauthenticated (401) if:
    - Token is invalid, expired, or for another audience
    - User no longer exists in database
    """
    user_id = decode_access_token(token)
    if user_id is None:
        raise Unauthenticated()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise Unauthenticated()

    return user


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# QUERY HELPERS (enforce user scoping at query level)
# =============================================================================


async def get_owned_or_404(
    db: AsyncSession,
    model: type,
    resource_id: UUID,
    user_id: UUID,
    *,
    label: str = "Resource",
):
    """
    Fetch a user-owned row by id.

    Usage:
        course = await get_owned_or_404(db, Course, course_id, user.id, label="Course")

    Raises NotFound("<label> not found") whether the row is missing or
    belongs to someone else.
    """
    result = await db.execute(
        select(model).where(model.id == resource_id, model.user_id == user_id)
    )
    resource = result.scalar_one_or_none()

    if resource is None:
        raise NotFound(f"{label} not found")

    return resource
