"""Pydantic schemas for progress tracking.

Request and response models for:
- Progress reports from the player
- Manual completion and admin reset
- Course and dashboard progress
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from academy_core.catalog.schemas import VideoResponse

from .aggregator import CourseProgress, DashboardProgress, VideoProgressEntry
from .models import ProgressRecord
from .service import ProgressUpdate, VideoProgressView


# ==============================================================================
# Video Progress Schemas
# ==============================================================================


class UpdateVideoProgressRequest(BaseModel):
    """Progress report sent by the player every few seconds.

    Durations are checked by the service so that malformed reports come back
    as `validation_error` rather than a schema error.
    """

    course_id: UUID
    video_id: UUID
    watched_duration: float = Field(..., description="Seconds watched")
    total_duration: float = Field(..., description="Video length in seconds")
    position: float | None = Field(
        None, description="Current playhead (default: watched_duration)"
    )


class VideoCompletionRequest(BaseModel):
    course_id: UUID
    video_id: UUID


class ResetVideoCompletionRequest(BaseModel):
    user_id: UUID
    course_id: UUID
    video_id: UUID


class VideoProgressResponse(BaseModel):
    """Progress of one video."""

    model_config = ConfigDict(from_attributes=True)

    video_id: UUID
    course_id: UUID
    watched_duration: float = 0.0
    total_duration: float = 0.0
    watched_percentage: int = 0
    completion_percentage: int = 0
    is_completed: bool = False
    last_position_seconds: float = 0.0
    first_watched_at: datetime | None = None
    last_watched_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: ProgressRecord) -> "VideoProgressResponse":
        """Create response from entity."""
        return cls.model_validate(entity)


# ==============================================================================
# Course Progress Schemas
# ==============================================================================


class VideoProgressSummary(BaseModel):
    """A video of the course with the user's progress on it."""

    video_id: UUID
    title: str
    order: int
    duration: int
    watched_percentage: int
    completion_percentage: int
    is_completed: bool
    last_position_seconds: float = 0.0

    @classmethod
    def from_entry(cls, entry: VideoProgressEntry) -> "VideoProgressSummary":
        return cls(
            video_id=entry.video.id,
            title=entry.video.title,
            order=entry.video.order,
            duration=entry.video.duration,
            watched_percentage=entry.watched_percentage,
            completion_percentage=entry.completion_percentage,
            is_completed=entry.is_completed,
            last_position_seconds=(
                entry.record.last_position_seconds if entry.record else 0.0
            ),
        )


class CourseProgressResponse(BaseModel):
    """Course progress over the user's enrolled version."""

    course_id: UUID
    title: str
    version: int
    total_videos: int
    completed_videos: int
    course_progress_percentage: int
    is_completed: bool
    total_watched_duration: float
    course_total_duration: float
    last_watched_at: datetime | None = None
    last_watched_video_id: UUID | None = None
    videos: list[VideoProgressSummary]

    @classmethod
    def from_progress(cls, progress: CourseProgress) -> "CourseProgressResponse":
        return cls(
            course_id=progress.course.id,
            title=progress.course.title,
            version=progress.version,
            total_videos=progress.total_videos,
            completed_videos=progress.completed_videos,
            course_progress_percentage=progress.percentage,
            is_completed=progress.is_completed,
            total_watched_duration=progress.total_watched_duration,
            course_total_duration=progress.course_total_duration,
            last_watched_at=progress.last_watched_at,
            last_watched_video_id=progress.last_watched_video_id,
            videos=[VideoProgressSummary.from_entry(e) for e in progress.videos],
        )


class ProgressUpdateResponse(BaseModel):
    """Result of a progress report.

    A throttled report has `skipped=true`, no `video_progress` and no
    `course_progress`; it is still a success.
    """

    skipped: bool = False
    watched_percentage: int
    video_progress: VideoProgressResponse | None = None
    course_progress: CourseProgressResponse | None = None

    @classmethod
    def from_update(cls, update: ProgressUpdate) -> "ProgressUpdateResponse":
        record = update.result.record
        return cls(
            skipped=update.skipped,
            watched_percentage=update.result.watched_percentage,
            video_progress=VideoProgressResponse.from_entity(record) if record else None,
            course_progress=(
                CourseProgressResponse.from_progress(update.course_progress)
                if update.course_progress
                else None
            ),
        )


class VideoProgressDetailResponse(BaseModel):
    video: VideoResponse
    progress: VideoProgressResponse | None = None
    resume_position: float = 0.0

    @classmethod
    def from_view(cls, view: VideoProgressView) -> "VideoProgressDetailResponse":
        return cls(
            video=VideoResponse.from_entity(view.video),
            progress=VideoProgressResponse.from_entity(view.record) if view.record else None,
            resume_position=view.resume_position,
        )


class NextVideoResponse(BaseModel):
    """Next video in the user's version, `video=None` after the last one."""

    video: VideoResponse | None = None
    is_last: bool


# ==============================================================================
# Dashboard Schemas
# ==============================================================================


class DashboardCourseSummary(BaseModel):
    course_id: UUID
    title: str
    progress: int
    completed_lessons: int
    total_lessons: int
    last_watched_at: datetime | None = None
    is_completed: bool


class DashboardProgressResponse(BaseModel):
    courses: list[DashboardCourseSummary]
    total_courses: int
    completed_courses: int
    total_progress: int

    @classmethod
    def from_dashboard(cls, dashboard: DashboardProgress) -> "DashboardProgressResponse":
        return cls(
            courses=[
                DashboardCourseSummary(
                    course_id=c.course.id,
                    title=c.course.title,
                    progress=c.percentage,
                    completed_lessons=c.completed_videos,
                    total_lessons=c.total_videos,
                    last_watched_at=c.last_watched_at,
                    is_completed=c.is_completed,
                )
                for c in dashboard.courses
            ],
            total_courses=dashboard.total_courses,
            completed_courses=dashboard.completed_courses,
            total_progress=dashboard.total_progress,
        )
