"""Student progress service layer.

Business logic for:
- Progress reports from the player (entitlement check, then tracking)
- Manual completion and admin reset
- Resume position and next-video navigation
- Course and dashboard progress (delegated to CourseProgressAggregator)
"""

from dataclasses import dataclass
from uuid import UUID

from academy_core.auth.schemas import UserContext
from academy_core.catalog.models import Video
from academy_core.catalog.service import CatalogService
from academy_core.core.exceptions import VideoNotFoundError
from academy_core.core.logging import get_logger
from academy_core.enrollments.service import EnrollmentLedger
from academy_core.entitlements.resolver import AccessContext
from academy_core.entitlements.service import EntitlementService

from .aggregator import CourseProgress, CourseProgressAggregator, DashboardProgress
from .calculations import ensure_valid_progress
from .models import ProgressRecord
from .tracker import ProgressTracker, TrackResult


logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressUpdate:
    video: Video
    result: TrackResult
    course_progress: CourseProgress | None = None

    @property
    def skipped(self) -> bool:
        return self.result.skipped


@dataclass(frozen=True)
class VideoProgressView:
    video: Video
    record: ProgressRecord | None
    resume_position: float


class ProgressService:
    """Entry point for progress operations on behalf of a user."""

    def __init__(
        self,
        catalog: CatalogService,
        ledger: EnrollmentLedger,
        entitlements: EntitlementService,
        tracker: ProgressTracker,
        aggregator: CourseProgressAggregator,
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.entitlements = entitlements
        self.tracker = tracker
        self.aggregator = aggregator

    async def _video_in_course(self, course_id: UUID, video_id: UUID) -> Video:
        video = await self.catalog.get_video(video_id)
        if video.course_id != course_id:
            raise VideoNotFoundError
        return video

    async def _course_progress_after_write(
        self, user: UserContext, context: AccessContext
    ) -> CourseProgress | None:
        """Course roll-up after an accepted write.

        Reaching 100% moves the enrollment to completed.
        """
        if not (context.is_enrolled or user.is_admin):
            return None

        progress = await self.aggregator.get_course_progress(user, context.course_id)
        if progress.is_completed and context.is_enrolled:
            await self.ledger.mark_completed(context.course_id, user.user_id)
        return progress

    async def update_progress(
        self,
        user: UserContext,
        course_id: UUID,
        video_id: UUID,
        watched_duration: float,
        total_duration: float,
        position: float | None = None,
    ) -> ProgressUpdate:
        """Record a progress report from the player.

        Raises:
            ValidationError: Malformed durations
            VideoNotFoundError: Unknown video or video outside the course
            ForbiddenError: Video is locked for the user
            CourseUnavailableError: Course archived past its grace period
        """
        ensure_valid_progress(
            watched_duration, total_duration, self.tracker.overshoot_tolerance
        )
        check = await self.entitlements.require_video_access(user, video_id, course_id)

        result = await self.tracker.record_watch(
            user.user_id,
            course_id,
            video_id,
            watched_duration,
            total_duration,
            position,
        )
        if result.skipped:
            return ProgressUpdate(video=check.video, result=result)

        if check.context.is_enrolled:
            await self.ledger.touch(course_id, user.user_id)
        course_progress = await self._course_progress_after_write(user, check.context)

        return ProgressUpdate(
            video=check.video, result=result, course_progress=course_progress
        )

    async def mark_video_completed(
        self, user: UserContext, course_id: UUID, video_id: UUID
    ) -> ProgressUpdate:
        check = await self.entitlements.require_video_access(user, video_id, course_id)
        record = await self.tracker.mark_completed(
            user.user_id, course_id, video_id, float(check.video.duration)
        )

        course_progress = await self._course_progress_after_write(user, check.context)

        return ProgressUpdate(
            video=check.video,
            result=TrackResult(record=record, watched_percentage=record.watched_percentage),
            course_progress=course_progress,
        )

    async def reset_video_completion(
        self, user_id: UUID, course_id: UUID, video_id: UUID
    ) -> ProgressRecord:
        """Clear a student's completion of a video (admin operation)."""
        await self._video_in_course(course_id, video_id)
        return await self.tracker.reset(user_id, course_id, video_id)

    async def get_video_progress(
        self, user: UserContext, course_id: UUID, video_id: UUID
    ) -> VideoProgressView:
        video = await self._video_in_course(course_id, video_id)
        record = await self.tracker.get(user.user_id, course_id, video_id)
        return VideoProgressView(
            video=video,
            record=record,
            resume_position=record.last_position_seconds if record else 0.0,
        )

    async def get_resume_position(
        self, user: UserContext, course_id: UUID, video_id: UUID
    ) -> float:
        await self._video_in_course(course_id, video_id)
        return await self.tracker.get_resume_position(user.user_id, course_id, video_id)

    async def get_next_video(
        self, user: UserContext, course_id: UUID, video_id: UUID
    ) -> Video | None:
        """Next video by order in the user's version, None after the last one."""
        course = await self.catalog.get_course(course_id)
        enrollment = await self.ledger.get_enrollment(course_id, user.user_id)
        version = enrollment.version_enrolled if enrollment else course.current_version

        videos = await self.catalog.list_version_videos(course_id, version)
        ids = [v.id for v in videos]
        if video_id not in ids:
            raise VideoNotFoundError
        index = ids.index(video_id)
        return videos[index + 1] if index + 1 < len(videos) else None

    async def get_course_progress(
        self, user: UserContext, course_id: UUID
    ) -> CourseProgress:
        return await self.aggregator.get_course_progress(user, course_id)

    async def get_dashboard_progress(self, user: UserContext) -> DashboardProgress:
        return await self.aggregator.get_dashboard_progress(user)
