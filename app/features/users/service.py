"""
User management operations behind the admin-only endpoints.
"""
import time
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from app.features.permissions.models import permission_user
from app.features.users.auth import hash_password
from app.features.users.models import User
from app.features.users.roles import OPERATIONAL_ROLES, Role, parse_role
from app.features.users.verification import issue_verification_code
from app.utils import get_logger


log = get_logger(__name__)

PASSWORD_MIN_LENGTH = 6


def generate_hospital_id() -> str:
    """
    Time-based hospital identifier, "H" followed by unix seconds.

    Two users created within the same second share an id; nothing enforces
    uniqueness.
    """
    return f"H{int(time.time())}"


async def add_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: str | Role,
) -> User:
    """
    Create a staff user with one of the operational roles.

    The user row and its verification code are committed together.
    Admins are never created through this path.

    Raises:
        ValidationError: role not operational, short password, or email taken
    """
    role = parse_role(role, OPERATIONAL_ROLES)
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"The password must be at least {PASSWORD_MIN_LENGTH} characters.")

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.first() is not None:
        raise ValidationError("The email has already been taken.")

    user = User(
        name=name,
        email=email,
        password=hash_password(password),
        role=role,
        hospital_id=generate_hospital_id(),
    )
    issue_verification_code(user)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same email
        await db.rollback()
        raise ValidationError("The email has already been taken.")

    await db.refresh(user)
    log.info(f"Added user {user.id} with role '{role.value}'")
    return user


async def list_users_by_role(db: AsyncSession, role: str | Role) -> list[User]:
    """
    Users holding an operational role, ordered by id.

    Raises:
        ValidationError: role is admin or not a role at all
        NotFoundError: no users hold the role
    """
    role = parse_role(role, OPERATIONAL_ROLES, message="Invalid role specified.")

    result = await db.execute(select(User).where(User.role == role).order_by(User.id))
    users = list(result.scalars().all())
    if not users:
        raise NotFoundError("No users found for this role.")
    return users


async def delete_user(db: AsyncSession, actor: User, user_id: int) -> None:
    """
    Delete a user and their direct permission grants.

    Existence is checked before the self-delete rule.

    Raises:
        NotFoundError: user does not exist
        UnauthorizedError: actor is the target
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")

    if user.id == actor.id:
        raise UnauthorizedError("You cannot delete yourself.")

    try:
        await db.execute(delete(permission_user).where(permission_user.c.user_id == user.id))
        await db.delete(user)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    log.info(f"User {actor.id} deleted user {user_id}")
