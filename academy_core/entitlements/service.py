"""Entitlement service.

Gathers the facts `resolver.resolve` needs (enrollment, pinned version,
archive state) and applies the decision to video listings and to single
video checks used by streaming and progress tracking.
"""

from dataclasses import dataclass
from uuid import UUID

from academy_core.archive.service import ArchiveLifecycleManager
from academy_core.auth.schemas import UserContext
from academy_core.catalog.models import Course, Video
from academy_core.catalog.service import CatalogService
from academy_core.core.exceptions import (
    CourseUnavailableError,
    ForbiddenError,
    VideoNotFoundError,
)
from academy_core.core.logging import get_logger
from academy_core.enrollments.service import EnrollmentLedger

from .resolver import AccessContext, AccessDecision, resolve


logger = get_logger(__name__)


@dataclass(frozen=True)
class VideoAccess:
    video: Video
    decision: AccessDecision


@dataclass(frozen=True)
class VideoListing:
    course: Course
    version: int
    videos: list[VideoAccess]
    user_has_purchased: bool
    course_accessible: bool


@dataclass(frozen=True)
class VideoAccessCheck:
    video: Video
    decision: AccessDecision
    context: AccessContext


class EntitlementService:
    """Applies access decisions to catalog content."""

    def __init__(
        self,
        catalog: CatalogService,
        ledger: EnrollmentLedger,
        archive: ArchiveLifecycleManager,
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.archive = archive

    async def build_context(self, user: UserContext, course: Course) -> AccessContext:
        enrollment = await self.ledger.get_enrollment(course.id, user.user_id)
        return AccessContext(
            user_id=user.user_id,
            course_id=course.id,
            is_admin=user.is_admin,
            is_enrolled=enrollment is not None,
            enrolled_version=enrollment.version_enrolled if enrollment else None,
            course_accessible=self.archive.is_accessible_to_enrolled(course),
        )

    async def list_videos(
        self,
        course_id: UUID,
        user: UserContext,
        version: int | None = None,
    ) -> VideoListing:
        """List a version's videos with per-video access flags.

        Without an explicit version, enrolled students see the version they
        bought; everyone else sees the course's current version.
        """
        course = await self.catalog.get_course(course_id)
        context = await self.build_context(user, course)

        if version is None:
            if context.is_enrolled and not context.is_admin:
                version = context.enrolled_version
            else:
                version = course.current_version
        await self.catalog.get_version(course_id, version)

        videos = await self.catalog.list_version_videos(course_id, version)
        return VideoListing(
            course=course,
            version=version,
            videos=[VideoAccess(video=v, decision=resolve(v, context)) for v in videos],
            user_has_purchased=context.is_enrolled,
            course_accessible=context.course_accessible,
        )

    async def check_video_access(
        self, video_id: UUID, user: UserContext
    ) -> VideoAccessCheck:
        """Access decision for one video.

        Raises:
            VideoNotFoundError: Unknown video, or a non-active video for a
                non-admin caller
        """
        video = await self.catalog.get_video(video_id)
        if not video.is_active and not user.is_admin:
            raise VideoNotFoundError

        course = await self.catalog.get_course(video.course_id)
        context = await self.build_context(user, course)
        return VideoAccessCheck(
            video=video, decision=resolve(video, context), context=context
        )

    async def require_video_access(
        self,
        user: UserContext,
        video_id: UUID,
        course_id: UUID | None = None,
    ) -> VideoAccessCheck:
        """Like `check_video_access`, raising when access is denied.

        Raises:
            VideoNotFoundError: Unknown video or video outside `course_id`
            CourseUnavailableError: Enrolled, but archived past grace period
            ForbiddenError: Purchase required
        """
        check = await self.check_video_access(video_id, user)
        if course_id is not None and check.video.course_id != course_id:
            raise VideoNotFoundError

        if not check.decision.has_access:
            logger.info(
                "video_access_denied",
                video_id=str(video_id),
                course_id=str(check.video.course_id),
                course_unavailable=check.context.is_course_unavailable,
            )
            if check.context.is_course_unavailable:
                raise CourseUnavailableError
            raise ForbiddenError

        return check
