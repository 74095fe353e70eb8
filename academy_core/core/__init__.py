# Core infrastructure
from academy_core.core.context import (
    bind_resource,
    clear_context,
    get_context,
    get_request_id,
    set_request_id,
    set_user_id,
)
from academy_core.core.logging import configure_structlog, get_logger
from academy_core.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "bind_resource",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_request_id",
    "set_user_id",
]
