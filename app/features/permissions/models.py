"""
Permission model and the two binding tables.

- permissions: named permissions, unique by name
- permission_role: permission <-> role bindings, unique per (permission_id, role)
- permission_user: permission <-> user direct grants, unique per (permission_id, user_id)

Both binding tables cascade on permission delete.
"""
from sqlalchemy import String, ForeignKey, Table, Column, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, timestamp_columns
from app.features.users.models import role_column_type


# ============================================================================
# Association Tables
# ============================================================================

# Role-Permission relationship (role stored by value)
permission_role = Table(
    "permission_role",
    Base.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("role", role_column_type(), nullable=False, index=True),
    *timestamp_columns(),
    UniqueConstraint("permission_id", "role", name="uq_permission_role_permission_id_role"),
)

# User direct permissions (supplement role permissions)
permission_user = Table(
    "permission_user",
    Base.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    *timestamp_columns(),
    UniqueConstraint("permission_id", "user_id", name="uq_permission_user_permission_id_user_id"),
)


# ============================================================================
# Core Models
# ============================================================================

class Permission(Base, TimestampMixin):
    """
    Named permission, e.g. "manage_permissions" or "edit_users".

    Immutable once created. Granted to roles through permission_role and
    to individual users through permission_user.
    """
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, name={self.name!r})>"
