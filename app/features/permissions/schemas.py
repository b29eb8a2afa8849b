"""
Pydantic schemas for permission management.

Request and response models for permissions and their role/user bindings.
Role strings are accepted as plain strings and parsed into Role by the
service layer, after the authorization gate has run.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Permission Schemas
# ============================================================================

class PermissionCreate(BaseModel):
    """Schema for creating a new permission."""
    name: str = Field(..., min_length=1, max_length=255, description="Unique permission name", examples=["edit_users"])
    description: Optional[str] = Field(None, max_length=255, description="Permission description")


class PermissionResponse(BaseModel):
    """Schema for permission response."""
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PermissionCreatedResponse(BaseModel):
    message: str
    permission: PermissionResponse


class PermissionListResponse(BaseModel):
    message: str
    permissions: List[PermissionResponse]


# ============================================================================
# Assignment Schemas
# ============================================================================

class RolePermissionAssignment(BaseModel):
    """Schema for assigning a permission to, or revoking it from, a role."""
    permission_id: int = Field(..., description="Permission ID", examples=[1])
    role: str = Field(..., description="Role name", examples=["doctor"])


class UserPermissionAssignment(BaseModel):
    """Schema for granting a direct permission to, or revoking it from, a user."""
    permission_id: int = Field(..., description="Permission ID")
    user_id: int = Field(..., description="User ID")


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# Permission Check Schemas
# ============================================================================

class PermissionCheckRequest(BaseModel):
    """Schema for checking if the current user has a permission."""
    name: str = Field(..., min_length=1, max_length=255, description="Permission name")


class PermissionCheckResponse(BaseModel):
    permission: str
    granted: bool
