"""Router access to the services installed on `app.state` at startup."""

from collections.abc import Callable
from typing import Any

from fastapi import HTTPException, Request, status


def from_app_state(attribute: str) -> Callable[[Request], Any]:
    """Dependency returning `app.state.<attribute>`.

    Answers 503 while the service graph is not installed (storage still
    unreachable at startup).
    """

    async def dependency(request: Request) -> Any:
        service = getattr(request.app.state, attribute, None)
        if service is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"{attribute.replace('_', ' ').capitalize()} not available",
            )
        return service

    dependency.__name__ = f"get_{attribute}"
    return dependency
