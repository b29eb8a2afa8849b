"""
Permission store and binding operations.

Each operation is one unit of work: it validates, mutates and commits, or
raises and leaves the database untouched. Uniqueness is enforced by the
database indexes; constraint violations are translated into
ValidationError (permission names) or ConflictError (bindings).
"""
from typing import Optional
from sqlalchemy import select, insert, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.features.permissions.models import Permission, permission_role, permission_user
from app.features.users.models import User
from app.features.users.roles import Role, parse_role
from app.utils import get_logger


log = get_logger(__name__)

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 255


# ============================================================================
# Permission Store
# ============================================================================

async def create_permission(
    db: AsyncSession,
    name: str,
    description: Optional[str] = None,
) -> Permission:
    """
    Create a new permission.

    Raises:
        ValidationError: name empty, too long, or already taken; description too long
    """
    if not name:
        raise ValidationError("The name field is required.")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"The name may not be greater than {NAME_MAX_LENGTH} characters.")
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"The description may not be greater than {DESCRIPTION_MAX_LENGTH} characters."
        )

    permission = Permission(name=name, description=description)
    db.add(permission)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("The name has already been taken.")

    await db.refresh(permission)
    log.info(f"Created permission {permission.id} '{permission.name}'")
    return permission


async def list_permissions(db: AsyncSession) -> list[Permission]:
    """
    List all permissions ordered by id.

    Raises:
        NotFoundError: no permissions exist
    """
    result = await db.execute(select(Permission).order_by(Permission.id))
    permissions = list(result.scalars().all())
    if not permissions:
        raise NotFoundError("No permissions found.")
    return permissions


async def get_permission(db: AsyncSession, permission_id: int) -> Permission:
    permission = await db.get(Permission, permission_id)
    if permission is None:
        raise NotFoundError("Permission not found.")
    return permission


async def delete_permission(db: AsyncSession, permission_id: int) -> Permission:
    """
    Delete a permission together with all of its role and user bindings.

    The three deletes share one transaction: either all rows go or none do.
    """
    permission = await get_permission(db, permission_id)
    try:
        await db.execute(delete(permission_role).where(permission_role.c.permission_id == permission.id))
        await db.execute(delete(permission_user).where(permission_user.c.permission_id == permission.id))
        await db.delete(permission)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    log.info(f"Deleted permission {permission.id} '{permission.name}' and its bindings")
    return permission


# ============================================================================
# Role-Permission Bindings
# ============================================================================

async def assign_permission_to_role(
    db: AsyncSession,
    permission_id: int,
    role: str | Role,
) -> Permission:
    """
    Bind a permission to a role.

    Raises:
        ValidationError: role is not a member of the role enumeration
        NotFoundError: permission does not exist
        ConflictError: the binding already exists
    """
    role = parse_role(role)
    permission = await get_permission(db, permission_id)

    try:
        await db.execute(
            insert(permission_role).values(permission_id=permission.id, role=role)
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Permission is already assigned to this role.")

    log.info(f"Assigned permission '{permission.name}' to role '{role.value}'")
    return permission


async def revoke_permission_from_role(
    db: AsyncSession,
    permission_id: int,
    role: str | Role,
) -> Permission:
    """
    Remove the binding between a permission and a role.

    Raises:
        ValidationError: role is not a member of the role enumeration
        NotFoundError: permission does not exist, or is not bound to the role
    """
    role = parse_role(role)
    permission = await get_permission(db, permission_id)

    result = await db.execute(
        delete(permission_role).where(
            permission_role.c.permission_id == permission.id,
            permission_role.c.role == role,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Permission not assigned to this role.")
    await db.commit()

    log.info(f"Revoked permission '{permission.name}' from role '{role.value}'")
    return permission


async def list_role_permissions(db: AsyncSession, role: str | Role) -> list[Permission]:
    """Permissions bound to a role, ordered by id."""
    role = parse_role(role)
    result = await db.execute(
        select(Permission)
        .join(permission_role, permission_role.c.permission_id == Permission.id)
        .where(permission_role.c.role == role)
        .order_by(Permission.id)
    )
    return list(result.scalars().all())


# ============================================================================
# User-Permission Bindings
# ============================================================================

async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


async def grant_permission_to_user(
    db: AsyncSession,
    permission_id: int,
    user_id: int,
) -> tuple[Permission, User]:
    """
    Grant a permission directly to a user, independent of their role.

    Raises:
        NotFoundError: permission or user does not exist
        ConflictError: the user already holds the direct grant
    """
    permission = await get_permission(db, permission_id)
    user = await _get_user(db, user_id)

    try:
        await db.execute(
            insert(permission_user).values(permission_id=permission.id, user_id=user.id)
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Permission is already granted to this user.")

    log.info(f"Granted permission '{permission.name}' to user {user.id}")
    return permission, user


async def revoke_permission_from_user(
    db: AsyncSession,
    permission_id: int,
    user_id: int,
) -> tuple[Permission, User]:
    """
    Remove a direct grant.

    Raises:
        NotFoundError: permission or user does not exist, or no direct grant exists
    """
    permission = await get_permission(db, permission_id)
    user = await _get_user(db, user_id)

    result = await db.execute(
        delete(permission_user).where(
            permission_user.c.permission_id == permission.id,
            permission_user.c.user_id == user.id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Permission not granted to this user.")
    await db.commit()

    log.info(f"Revoked direct permission '{permission.name}' from user {user.id}")
    return permission, user
