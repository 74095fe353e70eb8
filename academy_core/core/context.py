"""Per-request log context.

The request ID is bound by `RequestContextMiddleware`, the user ID by the
auth dependency, and the course/video being worked on by the progress and
video routes. The structlog processor in `academy_core.core.logging` merges
whatever is bound into every event, so a `progress_write_conflict` logged
deep inside the tracker still names the request, the student and the course.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
resource_var: ContextVar[dict[str, str]] = ContextVar("resource", default={})


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind the caller's request ID, or a fresh one when the header is missing."""
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def set_user_id(user_id: str | UUID | None) -> None:
    user_id_var.set(str(user_id) if user_id is not None else None)


def bind_resource(
    course_id: UUID | None = None,
    video_id: UUID | None = None,
) -> None:
    """Bind the course and/or video the current request operates on."""
    resource = dict(resource_var.get())
    if course_id is not None:
        resource["course_id"] = str(course_id)
    if video_id is not None:
        resource["video_id"] = str(video_id)
    resource_var.set(resource)


def get_context() -> dict[str, Any]:
    context: dict[str, Any] = dict(resource_var.get())
    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id
    user_id = user_id_var.get()
    if user_id:
        context["user_id"] = user_id
    return context


def clear_context() -> None:
    request_id_var.set("")
    user_id_var.set(None)
    resource_var.set({})
