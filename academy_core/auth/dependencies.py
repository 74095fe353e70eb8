"""Identity dependencies for routers.

`CurrentUser` resolves any valid bearer token; `AdminUser` additionally
requires the admin role.
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, status

from academy_core.core.context import set_user_id

from .schemas import UserContext
from .security import InvalidTokenError, read_identity


logger = structlog.get_logger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def bearer_token(request: Request) -> str | None:
    """Token from `Authorization: Bearer <token>`, or None when absent/malformed."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    token: Annotated[str | None, Depends(bearer_token)],
) -> UserContext:
    if token is None:
        raise _unauthorized("Access token not provided")

    try:
        user = read_identity(token)
    except InvalidTokenError as e:
        logger.info("access_token_rejected", reason=str(e))
        raise _unauthorized("Invalid or expired token") from e

    set_user_id(user.user_id)
    return user


async def require_admin(
    user: Annotated[UserContext, Depends(get_current_user)],
) -> UserContext:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required"
        )
    return user


CurrentUser = Annotated[UserContext, Depends(get_current_user)]
AdminUser = Annotated[UserContext, Depends(require_admin)]
