"""
Authentication dependencies for FastAPI.

Bearer tokens are issued by the identity provider; this module verifies
them and checks the profile behind them on every request.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from transfer_backend.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from transfer_backend.app.core.jwt import decode_access_token
from transfer_backend.app.db.session import get_db
from transfer_backend.app.models.profile import Profile

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks:
    1. Validates JWT token signature and expiry
    2. Verifies the profile still exists and is active (real-time check)
    3. Takes the role from the profile, not the token, so role changes
       apply immediately

    Returns:
        Token payload with ``user_id``, ``sub`` and ``role``

    Raises:
        AuthenticationError: 401 if authentication fails
        InsufficientPermissionsError: 403 if the profile is inactive
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(select(Profile).where(Profile.id == user_id))
    profile = result.scalar_one_or_none()

    if not profile:
        raise AuthenticationError("User not found")

    if not profile.is_active:
        raise InsufficientPermissionsError("User account is inactive")

    return {**payload, "sub": profile.email, "role": profile.role.value}
