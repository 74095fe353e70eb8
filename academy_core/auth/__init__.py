"""Identity context for the core.

Tokens are minted by the platform's auth service; this package only decodes
them into a `UserContext` (user id, role, admin flag).
"""

from .dependencies import AdminUser, CurrentUser, get_current_user, require_admin
from .permissions import UserRole
from .schemas import UserContext


__all__ = [
    "AdminUser",
    "CurrentUser",
    "UserContext",
    "UserRole",
    "get_current_user",
    "require_admin",
]
