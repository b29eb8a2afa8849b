"""
The closed set of hospital roles.

Roles are not stored entities: every user carries exactly one member of this
enumeration and role-permission bindings reference it by value.
"""
import enum
from typing import Iterable

from app.core.exceptions import ValidationError


class Role(str, enum.Enum):
    ADMIN = "admin"
    ACCOUNTANT = "accountant"
    DOCTOR = "doctor"
    NURSE = "nurse"
    PATHOLOGIST = "pathologist"
    RADIOLOGIST = "radiologist"
    RECEPTIONIST = "receptionist"


# Roles that can be created, and listed, through the admin user endpoints
OPERATIONAL_ROLES: frozenset[Role] = frozenset(role for role in Role if role is not Role.ADMIN)


def parse_role(
    value: str | Role,
    allowed: Iterable[Role] = tuple(Role),
    message: str = "The selected role is invalid.",
) -> Role:
    """
    Convert a role string into a Role, restricted to `allowed`.

    Matching is exact and case-sensitive: "Doctor" is not "doctor".

    Raises:
        ValidationError: if the value is not one of the allowed roles
    """
    allowed = frozenset(allowed)
    if isinstance(value, Role):
        role = value
    else:
        try:
            role = Role(value)
        except ValueError:
            raise ValidationError(message)
    if role not in allowed:
        raise ValidationError(message)
    return role
