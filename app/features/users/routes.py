"""
User feature routes.

admin_router is mounted under /api/admin/users and is restricted to the
admin role. router carries the caller's own profile.
"""
from typing import Annotated
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db
from app.core.rate_limit import limiter
from app.core.routing import GateFirstRoute
from app.features.users import service
from app.features.users.models import User
from app.features.users.roles import Role
from app.features.users.schemas import UserCreate, UserResponse, UserCreatedResponse, UserListResponse
from app.features.users.dependencies import get_current_user, require_role
from app.features.users.verification import (
    VerificationCodeSender,
    dispatch_verification_code,
    get_code_sender,
)
from app.features.permissions.schemas import MessageResponse


router = APIRouter(tags=["users"])
admin_router = APIRouter(tags=["admin"], route_class=GateFirstRoute)


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user


# Admin-only routes
@admin_router.post("", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(config.ADD_USER_RATE_LIMIT)
async def add_user(
    request: Request,
    user_data: UserCreate,
    background_tasks: BackgroundTasks,
    admin: Annotated[User, Depends(require_role(Role.ADMIN, message="Unauthorized. Only admins can add users."))],
    db: Annotated[AsyncSession, Depends(get_db)],
    sender: Annotated[VerificationCodeSender, Depends(get_code_sender)],
):
    """Add a new user with an operational role and send them a verification code."""
    user = await service.add_user(
        db,
        name=user_data.name,
        email=user_data.email,
        password=user_data.password,
        role=user_data.role,
    )
    background_tasks.add_task(dispatch_verification_code, sender, user.email, user.otp)

    return UserCreatedResponse(
        message="User added successfully. OTP sent to the user's email.",
        user=UserResponse.model_validate(user),
    )


@admin_router.get("/{role}", response_model=UserListResponse)
async def list_users_by_role(
    role: str,
    admin: Annotated[User, Depends(require_role(Role.ADMIN, message="Unauthorized. Only admins can view users."))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List users holding an operational role. Responds 404 when there are none."""
    users = await service.list_users_by_role(db, role)
    return UserListResponse(
        message=f"Users with role '{role}' retrieved successfully.",
        users=[UserResponse.model_validate(u) for u in users],
    )


@admin_router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    admin: Annotated[User, Depends(require_role(Role.ADMIN, message="Unauthorized. Only admins can delete users."))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a user by id. Admins cannot delete themselves."""
    await service.delete_user(db, admin, user_id)
    return MessageResponse(message="User deleted successfully.")
