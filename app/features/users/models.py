"""
User model for hospital staff accounts.
"""
from datetime import datetime
from sqlalchemy import String, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin
from app.features.users.roles import Role


def role_column_type() -> SQLEnum:
    """Store roles by value ("doctor"), not by member name ("DOCTOR")."""
    return SQLEnum(
        Role,
        name="user_role",
        native_enum=False,
        length=32,
        values_callable=lambda enum_cls: [member.value for member in enum_cls],
        validate_strings=True,
    )


class User(Base, TimestampMixin):
    """
    User model representing hospital staff.

    Each user has exactly one role. Password and verification code fields are
    never serialized; response schemas project the public fields only.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    # bcrypt hash
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[Role] = mapped_column(role_column_type(), nullable=False, index=True)

    # "H" + unix seconds at creation; not unique-constrained
    hospital_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    # Pending verification code
    otp: Mapped[str | None] = mapped_column(String(8), nullable=True)
    otp_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, role={self.role.value})>"
