"""Course-level progress roll-up.

A course's progress is the share of its videos (in the version the student
is enrolled in) that are completed. Partial watching of an unfinished video
does not move the course percentage.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from academy_core.auth.schemas import UserContext
from academy_core.catalog.models import Course, Video
from academy_core.catalog.service import CatalogService
from academy_core.core.exceptions import CourseNotFoundError, ForbiddenError
from academy_core.core.logging import get_logger
from academy_core.enrollments.service import EnrollmentLedger

from .calculations import round_half_up
from .models import ProgressRecord
from .tracker import ProgressTracker


logger = get_logger(__name__)


@dataclass(frozen=True)
class VideoProgressEntry:
    video: Video
    record: ProgressRecord | None

    @property
    def watched_percentage(self) -> int:
        return self.record.watched_percentage if self.record else 0

    @property
    def completion_percentage(self) -> int:
        return self.record.completion_percentage if self.record else 0

    @property
    def is_completed(self) -> bool:
        return bool(self.record and self.record.is_completed)


@dataclass(frozen=True)
class CourseProgress:
    course: Course
    version: int
    videos: list[VideoProgressEntry]
    total_videos: int
    completed_videos: int
    percentage: int
    total_watched_duration: float
    course_total_duration: float
    last_watched_at: datetime | None
    last_watched_video_id: UUID | None

    @property
    def is_completed(self) -> bool:
        return self.percentage == 100


@dataclass(frozen=True)
class DashboardProgress:
    courses: list[CourseProgress]
    total_courses: int
    completed_courses: int
    total_progress: int


def course_percentage(completed_videos: int, total_videos: int) -> int:
    if total_videos == 0:
        return 0
    return round_half_up(completed_videos / total_videos * 100)


def summarize_course_progress(
    course: Course,
    version: int,
    videos: list[Video],
    records: list[ProgressRecord],
) -> CourseProgress:
    """Join a version's videos to the user's records (missing record = 0%)."""
    by_video = {r.video_id: r for r in records}
    entries = [
        VideoProgressEntry(video=v, record=by_video.get(v.id))
        for v in sorted(videos, key=lambda v: v.order)
    ]

    completed = sum(1 for e in entries if e.is_completed)
    watched = [e.record for e in entries if e.record is not None]
    latest = max(
        (r for r in watched if r.last_watched_at is not None),
        key=lambda r: r.last_watched_at,
        default=None,
    )

    return CourseProgress(
        course=course,
        version=version,
        videos=entries,
        total_videos=len(entries),
        completed_videos=completed,
        percentage=course_percentage(completed, len(entries)),
        total_watched_duration=sum(r.watched_duration for r in watched),
        course_total_duration=float(sum(v.duration for v in videos)),
        last_watched_at=latest.last_watched_at if latest else None,
        last_watched_video_id=latest.video_id if latest else None,
    )


class CourseProgressAggregator:
    """Course and dashboard progress for a user."""

    def __init__(
        self,
        catalog: CatalogService,
        ledger: EnrollmentLedger,
        tracker: ProgressTracker,
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.tracker = tracker

    async def get_course_progress(
        self, user: UserContext, course_id: UUID
    ) -> CourseProgress:
        """Progress over the user's enrolled version (admins: current version).

        Read-only; enrollment completion is recorded by `ProgressService`
        when a progress write brings the course to 100%.

        Raises:
            CourseNotFoundError: Unknown course
            ForbiddenError: User is not enrolled
        """
        course = await self.catalog.get_course(course_id)
        enrollment = await self.ledger.get_enrollment(course_id, user.user_id)
        if enrollment is None and not user.is_admin:
            raise ForbiddenError

        version = enrollment.version_enrolled if enrollment else course.current_version
        videos = await self.catalog.list_version_videos(course_id, version)
        records = await self.tracker.list_for_course(user.user_id, course_id)
        return summarize_course_progress(course, version, videos, records)

    async def get_dashboard_progress(self, user: UserContext) -> DashboardProgress:
        courses = []
        for enrollment in await self.ledger.list_user_enrollments(user.user_id):
            try:
                courses.append(
                    await self.get_course_progress(user, enrollment.course_id)
                )
            except CourseNotFoundError:
                logger.warning(
                    "dashboard_course_missing", course_id=str(enrollment.course_id)
                )

        total_progress = 0
        if courses:
            total_progress = round_half_up(
                sum(c.percentage for c in courses) / len(courses)
            )

        return DashboardProgress(
            courses=courses,
            total_courses=len(courses),
            completed_courses=sum(1 for c in courses if c.is_completed),
            total_progress=total_progress,
        )
