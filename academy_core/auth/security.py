"""Bearer token verification (python-jose).

Only access tokens are accepted. The `sub` claim must be a UUID; an unknown
or missing `role` claim falls back to `UserRole.USER`.
"""

from uuid import UUID

from jose import JWTError, jwt

from academy_core.config import get_settings

from .permissions import parse_role
from .schemas import UserContext


class InvalidTokenError(Exception):
    """Token failed verification; the message is safe to log, not to return."""


def read_identity(token: str) -> UserContext:
    """Verify `token` and return the caller it identifies.

    Raises:
        InvalidTokenError: bad signature, expired, refresh token or bad subject
    """
    settings = get_settings()
    try:
        claims = jwt.decode(
            token, settings.auth_secret_key, algorithms=[settings.auth_algorithm]
        )
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    token_type = claims.get("type", "access")
    if token_type != "access":
        raise InvalidTokenError(f"{token_type} token used as access token")

    try:
        user_id = UUID(str(claims["sub"]))
    except (KeyError, ValueError) as e:
        raise InvalidTokenError("subject is not a user id") from e

    return UserContext(user_id=user_id, role=parse_role(claims.get("role")))
