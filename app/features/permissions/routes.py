"""
Permission management API routes.

Mounted under /api/admin/permissions. Every route is gated on the
manage_permissions permission before its input is validated.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db
from app.core.routing import GateFirstRoute
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.features.permissions import service
from app.features.permissions.schemas import (
    PermissionCreate,
    PermissionResponse,
    PermissionCreatedResponse,
    PermissionListResponse,
    RolePermissionAssignment,
    UserPermissionAssignment,
    MessageResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
)
from app.features.permissions.dependencies import has_permission, require_permission


router = APIRouter(route_class=GateFirstRoute)
check_router = APIRouter(route_class=GateFirstRoute)

require_manage_permissions = require_permission(config.MANAGE_PERMISSIONS)


# ============================================================================
# Permission Routes
# ============================================================================

@router.post("", response_model=PermissionCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission: PermissionCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """Create a new permission."""
    db_permission = await service.create_permission(db, permission.name, permission.description)
    return PermissionCreatedResponse(
        message="Permission created successfully.",
        permission=PermissionResponse.model_validate(db_permission),
    )


@router.get("", response_model=PermissionListResponse)
async def list_permissions(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """List all permissions. Responds 404 when there are none."""
    permissions = await service.list_permissions(db)
    return PermissionListResponse(
        message="Permissions retrieved successfully.",
        permissions=[PermissionResponse.model_validate(p) for p in permissions],
    )


@router.get("/roles/{role}", response_model=PermissionListResponse)
async def list_role_permissions(
    role: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """List the permissions bound to a role."""
    permissions = await service.list_role_permissions(db, role)
    return PermissionListResponse(
        message=f"Permissions for role '{role}' retrieved successfully.",
        permissions=[PermissionResponse.model_validate(p) for p in permissions],
    )


# ============================================================================
# Role Assignment Routes
# ============================================================================

@router.post("/assign", response_model=MessageResponse)
async def assign_permission_to_role(
    assignment: RolePermissionAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """Assign a permission to a role."""
    permission = await service.assign_permission_to_role(db, assignment.permission_id, assignment.role)
    return MessageResponse(
        message=f"Permission '{permission.name}' assigned to role '{assignment.role}' successfully."
    )


@router.delete("/revoke", response_model=MessageResponse)
async def revoke_permission_from_role(
    assignment: RolePermissionAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """Revoke a permission from a role."""
    permission = await service.revoke_permission_from_role(db, assignment.permission_id, assignment.role)
    return MessageResponse(
        message=f"Permission '{permission.name}' revoked from role '{assignment.role}' successfully."
    )


# ============================================================================
# Direct User Grant Routes
# ============================================================================

@router.post("/users/grant", response_model=MessageResponse)
async def grant_permission_to_user(
    assignment: UserPermissionAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """Grant a permission directly to a user."""
    permission, user = await service.grant_permission_to_user(db, assignment.permission_id, assignment.user_id)
    return MessageResponse(
        message=f"Permission '{permission.name}' granted to user '{user.email}' successfully."
    )


@router.delete("/users/revoke", response_model=MessageResponse)
async def revoke_permission_from_user(
    assignment: UserPermissionAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """Revoke a direct permission grant from a user."""
    permission, user = await service.revoke_permission_from_user(db, assignment.permission_id, assignment.user_id)
    return MessageResponse(
        message=f"Permission '{permission.name}' revoked from user '{user.email}' successfully."
    )


# Declared after /revoke so that path is not captured as a permission id
@router.delete("/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    permission_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_manage_permissions)],
):
    """Delete a permission and every role/user binding that references it."""
    permission = await service.delete_permission(db, permission_id)
    return MessageResponse(message=f"Permission '{permission.name}' deleted successfully.")


# ============================================================================
# Permission Check Routes
# ============================================================================

@check_router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check_request: PermissionCheckRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Check if the current user has a specific permission."""
    granted = await has_permission(db, current_user, check_request.name)
    return PermissionCheckResponse(permission=check_request.name, granted=granted)
