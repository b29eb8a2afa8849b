"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from app.features.users.roles import Role


class UserCreate(BaseModel):
    """Schema for adding a staff user (admin-only action)."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: str = Field(..., description="One of the operational roles", examples=["doctor"])


class UserResponse(BaseModel):
    """Projected user fields. Password and verification code are never included."""
    id: int
    name: str
    email: str
    role: Role
    hospital_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCreatedResponse(BaseModel):
    message: str
    user: UserResponse


class UserListResponse(BaseModel):
    message: str
    users: list[UserResponse]
