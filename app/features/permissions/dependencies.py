"""
Permission checking utilities and dependencies for RBAC.

Implements:
- has_permission: the authorization predicate (direct grants, then role grants)
- ensure_permission: the named-permission policy used by admin actions
- require_permission: FastAPI dependency gating a route on a named permission
"""
from typing import Annotated, Optional
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import UnauthorizedError
from app.features.users.dependencies import get_optional_user
from app.features.users.models import User
from app.features.users.roles import Role
from app.features.permissions.models import Permission, permission_role, permission_user
from app.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Permission Checking Functions
# ============================================================================

async def has_direct_permission(db: AsyncSession, user_id: int, permission_name: str) -> bool:
    """Check for a permission_user row joining the user to a permission with this name."""
    stmt = (
        select(permission_user.c.id)
        .join(Permission, Permission.id == permission_user.c.permission_id)
        .where(
            permission_user.c.user_id == user_id,
            Permission.name == permission_name,
        )
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.first() is not None


async def has_role_permission(db: AsyncSession, role: Role, permission_name: str) -> bool:
    """Check for a permission_role row binding the role to a permission with this name."""
    stmt = (
        select(permission_role.c.id)
        .join(Permission, Permission.id == permission_role.c.permission_id)
        .where(
            permission_role.c.role == role,
            Permission.name == permission_name,
        )
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.first() is not None


async def has_permission(
    db: AsyncSession,
    user: Optional[User],
    permission_name: str,
) -> bool:
    """
    Check if user holds the named permission.

    Order:
    1. Direct user grant (permission_user)
    2. Grant to the user's role (permission_role)

    Short-circuits on the first match. Every call re-queries the database.
    A missing user has no permissions.

    Args:
        db: Database session
        user: Authenticated user, or None
        permission_name: Exact permission name (case-sensitive)

    Returns:
        True if user has permission, False otherwise
    """
    if user is None:
        return False

    if await has_direct_permission(db, user.id, permission_name):
        log.debug(f"User {user.id} granted '{permission_name}' directly")
        return True

    if await has_role_permission(db, user.role, permission_name):
        log.debug(f"User {user.id} granted '{permission_name}' via role {user.role.value}")
        return True

    log.debug(f"User {user.id} denied '{permission_name}'")
    return False


async def ensure_permission(
    db: AsyncSession,
    actor: Optional[User],
    permission_name: str,
    message: str = "Unauthorized. You lack permission to manage permissions.",
) -> User:
    """
    Named-permission policy: require an authenticated actor holding permission_name.

    Raises:
        UnauthorizedError: actor missing or lacks the permission
    """
    if actor is None or not await has_permission(db, actor, permission_name):
        log.warning(
            "Permission gate '%s' denied for user %s",
            permission_name,
            actor.id if actor is not None else "anonymous",
        )
        raise UnauthorizedError(message)
    return actor


# ============================================================================
# FastAPI Dependencies
# ============================================================================

def require_permission(
    permission_name: str,
    message: str = "Unauthorized. You lack permission to manage permissions.",
):
    """
    FastAPI dependency to require a specific named permission.

    Runs before request body validation, so an unauthorized caller always
    gets 403 regardless of what they sent.

    Usage:
        @router.post("")
        async def create_permission(
            current_user: User = Depends(require_permission("manage_permissions"))
        ):
            ...

    Returns:
        Dependency function that returns the current user if they have permission
    """
    async def permission_dependency(
        db: Annotated[AsyncSession, Depends(get_db)],
        current_user: Annotated[Optional[User], Depends(get_optional_user)],
    ) -> User:
        return await ensure_permission(db, current_user, permission_name, message)

    return permission_dependency
