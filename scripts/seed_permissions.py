"""
Seed script to populate default permissions and the first admin account.

Run this script after database initialization to create:
- Default permissions
- Default role-permission bindings
- An initial admin user (admins cannot be added through the API)

Usage:
    uv run python -m scripts.seed_permissions
    SEED_ADMIN_EMAIL=admin@hospital.local SEED_ADMIN_PASSWORD=secret uv run python -m scripts.seed_permissions
"""
import asyncio
import os
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db, init_db
from app.features.permissions.models import Permission
from app.features.permissions.service import assign_permission_to_role, list_role_permissions
from app.features.users.auth import hash_password
from app.features.users.models import User
from app.features.users.roles import Role
from app.features.users.service import generate_hospital_id
from app.utils import get_logger


log = get_logger(__name__)


DEFAULT_PERMISSIONS = [
    (config.MANAGE_PERMISSIONS, "Create permissions and bind them to roles or users"),
    ("view_patients", "View patient records"),
    ("edit_patients", "Update patient records"),
    ("view_billing", "View billing information"),
    ("process_billing", "Process billing transactions"),
    ("view_lab_results", "View laboratory results"),
    ("upload_lab_results", "Upload laboratory results"),
    ("view_imaging", "View imaging studies"),
    ("upload_imaging", "Upload imaging studies"),
    ("schedule_appointments", "Book and reschedule appointments"),
]


DEFAULT_ROLE_PERMISSIONS: dict[Role, list[str]] = {
    Role.ADMIN: [config.MANAGE_PERMISSIONS],
    Role.ACCOUNTANT: ["view_billing", "process_billing"],
    Role.DOCTOR: ["view_patients", "edit_patients", "view_lab_results", "view_imaging"],
    Role.NURSE: ["view_patients", "view_lab_results"],
    Role.PATHOLOGIST: ["view_patients", "view_lab_results", "upload_lab_results"],
    Role.RADIOLOGIST: ["view_patients", "view_imaging", "upload_imaging"],
    Role.RECEPTIONIST: ["schedule_appointments", "view_billing"],
}


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """
    Create default permissions.

    Returns:
        Dictionary mapping permission names to Permission objects
    """
    log.info("Creating default permissions...")
    permissions_map = {}

    for name, description in DEFAULT_PERMISSIONS:
        result = await db.execute(select(Permission).where(Permission.name == name))
        existing = result.scalars().first()

        if existing:
            log.debug(f"Permission '{name}' already exists, skipping")
            permissions_map[name] = existing
            continue

        permission = Permission(name=name, description=description)
        db.add(permission)
        permissions_map[name] = permission
        log.info(f"Created permission: {name}")

    await db.commit()

    # Refresh all permissions to get IDs
    for perm in permissions_map.values():
        await db.refresh(perm)

    log.info(f"Seeded {len(permissions_map)} permissions")
    return permissions_map


async def seed_role_permissions(db: AsyncSession, permissions_map: dict[str, Permission]):
    """
    Bind the default permissions to each role, skipping existing bindings.
    """
    log.info("Binding default permissions to roles...")

    for role, names in DEFAULT_ROLE_PERMISSIONS.items():
        already_bound = {p.name for p in await list_role_permissions(db, role)}
        for name in names:
            if name in already_bound:
                log.debug(f"Permission '{name}' already bound to role '{role.value}', skipping")
                continue
            if name not in permissions_map:
                log.warning(f"Permission '{name}' not found for role '{role.value}'")
                continue
            await assign_permission_to_role(db, permissions_map[name].id, role)

    log.info("Default role bindings created successfully")


async def seed_admin(db: AsyncSession, email: str, password: str, name: str = "Administrator") -> User:
    """Create the first admin user unless a user with this email exists."""
    result = await db.execute(select(User).where(User.email == email))
    existing = result.scalar_one_or_none()
    if existing:
        log.debug(f"User '{email}' already exists, skipping")
        return existing

    admin = User(
        name=name,
        email=email,
        password=hash_password(password),
        role=Role.ADMIN,
        hospital_id=generate_hospital_id(),
    )
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    log.info(f"Created admin user {admin.id} ({email})")
    return admin


async def main():
    """Main function to seed permissions, bindings and the admin account."""
    log.info("Starting permission seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    admin_email = os.getenv("SEED_ADMIN_EMAIL")
    admin_password = os.getenv("SEED_ADMIN_PASSWORD")

    # Get database session
    async for db in get_db():
        try:
            permissions_map = await seed_permissions(db)
            await seed_role_permissions(db, permissions_map)

            if admin_email and admin_password:
                await seed_admin(db, admin_email, admin_password)
            else:
                log.warning("SEED_ADMIN_EMAIL/SEED_ADMIN_PASSWORD not set, no admin user created")

            log.info("Permission seeding completed successfully!")

        except Exception as e:
            log.error(f"Error seeding permissions: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
