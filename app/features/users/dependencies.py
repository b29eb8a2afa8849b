"""
FastAPI dependencies for authentication and role-based gates.
"""
from typing import Annotated, Iterable, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import UnauthorizedError
from app.features.users.models import User
from app.features.users.auth import verify_jwt_token
from app.features.users.roles import Role
from app.utils import get_logger


log = get_logger(__name__)

# Missing credentials resolve to an anonymous actor; the gates decide what that means
security = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Optional[User]:
    """
    Resolve the current actor from the bearer token.

    Returns None when no token was sent or the token's user no longer exists.
    An invalid or expired token is rejected with 401.
    """
    if credentials is None:
        return None

    payload = verify_jwt_token(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    user: Annotated[Optional[User], Depends(get_optional_user)]
) -> User:
    """
    Require an authenticated user.

    Usage:
        @router.get("/me")
        async def get_me(user: User = Depends(get_current_user)):
            return user
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def ensure_role(actor: Optional[User], roles: Iterable[Role], message: str) -> User:
    """
    Role-membership policy: require an authenticated actor whose role is in roles.

    Independent of permission grants: holding a permission by
    direct grant does not satisfy a role gate.

    Raises:
        UnauthorizedError: actor missing or outside roles
    """
    allowed = frozenset(roles)
    if actor is None or actor.role not in allowed:
        log.warning(
            "Role gate %s denied for user %s",
            sorted(role.value for role in allowed),
            actor.id if actor is not None else "anonymous",
        )
        raise UnauthorizedError(message)
    return actor


def require_role(*roles: Role, message: str = "Unauthorized. Insufficient role permissions."):
    """
    FastAPI dependency to require membership in one of roles.

    Usage:
        @router.delete("/{user_id}")
        async def delete_user(
            user_id: int,
            admin: User = Depends(require_role(Role.ADMIN))
        ):
            # Only admins can access this endpoint
            ...
    """
    async def role_dependency(
        current_user: Annotated[Optional[User], Depends(get_optional_user)]
    ) -> User:
        return ensure_role(current_user, roles, message)

    return role_dependency


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
