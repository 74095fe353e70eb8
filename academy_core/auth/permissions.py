"""User roles carried in access tokens.

Only the admin role changes behaviour in this core: admins bypass purchase
checks and may run lifecycle and reset operations.
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles issued by the auth service."""

    USER = "user"
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


def parse_role(value: str | None) -> UserRole:
    """Map a token claim to a role, treating unknown values as USER."""
    try:
        return UserRole(value)
    except ValueError:
        return UserRole.USER
