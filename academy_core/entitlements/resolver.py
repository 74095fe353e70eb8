"""Per-video access decision.

`resolve` is total and side-effect free. Precedence, first match wins:

1. admin
2. purchased (enrollment exists, covers the video's version, course still
   accessible to enrolled students)
3. free preview
4. locked, reason `purchase_required`
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from academy_core.catalog.models import Video
from academy_core.enrollments.models import version_accessible


class LockReason(str, Enum):
    PURCHASE_REQUIRED = "purchase_required"


@dataclass(frozen=True)
class AccessContext:
    """Everything the decision needs about the caller and the course.

    Attributes:
        is_enrolled: An active or completed enrollment exists
        enrolled_version: Version the enrollment is pinned to
        course_accessible: Course is open to enrolled students right now
            (False once an archived course is past its grace period)
    """

    user_id: UUID
    course_id: UUID
    is_admin: bool = False
    is_enrolled: bool = False
    enrolled_version: int | None = None
    course_accessible: bool = True

    def has_purchased(self, video: Video) -> bool:
        if not (self.is_enrolled and self.course_accessible):
            return False
        if video.course_id != self.course_id:
            return False
        if self.enrolled_version is None:
            return True
        return version_accessible(self.enrolled_version, video.course_version)

    @property
    def is_course_unavailable(self) -> bool:
        """Enrolled, but the course closed (archived past grace)."""
        return self.is_enrolled and not self.course_accessible


@dataclass(frozen=True)
class AccessDecision:
    has_access: bool
    is_locked: bool
    lock_reason: LockReason | None = None


GRANTED = AccessDecision(has_access=True, is_locked=False)
LOCKED = AccessDecision(
    has_access=False, is_locked=True, lock_reason=LockReason.PURCHASE_REQUIRED
)


def resolve(video: Video, context: AccessContext) -> AccessDecision:
    if context.is_admin:
        return GRANTED
    if context.has_purchased(video):
        return GRANTED
    if video.is_free_preview:
        return GRANTED
    return LOCKED
