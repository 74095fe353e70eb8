"""Course catalog service.

Business logic for:
- Creating courses and publishing new content versions
- Resolving courses, versions and videos (raising on unknown ids)
- Adding videos to the latest version and keeping its statistics current
- Video moderation: free-preview flag, soft delete and restore
"""

from dataclasses import replace
from decimal import Decimal
from uuid import UUID

from academy_core.core.exceptions import (
    CourseNotFoundError,
    InvalidStateError,
    NotFoundError,
    VideoNotFoundError,
)
from academy_core.core.logging import get_logger

from .models import (
    Course,
    CourseStatus,
    CourseVersion,
    Video,
    VideoStatus,
    version_folder_path,
)
from .repository import CatalogRepository


logger = get_logger(__name__)


class CatalogService:
    """Service for course, version and video management."""

    def __init__(self, repository: CatalogRepository):
        self.repository = repository

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def create_course(
        self,
        title: str,
        description: str = "",
        price: Decimal = Decimal(0),
        max_enrollments: int | None = None,
        is_public: bool = True,
        thumbnail_url: str | None = None,
    ) -> Course:
        """Create a course together with its first content version."""
        course = Course(
            title=title,
            description=description,
            price=price,
            max_enrollments=max_enrollments,
            is_public=is_public,
        )
        if not await self.repository.insert_course(course):
            raise InvalidStateError(f"Course {course.id} already exists")

        await self.repository.insert_version(
            CourseVersion(
                course_id=course.id,
                version_number=1,
                title=course.title,
                description=course.description,
                price=course.price,
                thumbnail_url=thumbnail_url,
                storage_folder_path=version_folder_path(course.slug, 1),
                change_log="Initial version",
                is_public=course.is_public,
            )
        )

        logger.info("course_created", course_id=str(course.id), title=course.title)
        return course

    async def get_course(self, course_id: UUID) -> Course:
        course = await self.repository.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    # ==========================================================================
    # Versions
    # ==========================================================================

    async def create_new_version(
        self,
        course_id: UUID,
        change_log: str | None = None,
        title: str | None = None,
        description: str | None = None,
        price: Decimal | None = None,
        thumbnail_url: str | None = None,
    ) -> CourseVersion:
        """Publish a new content version and make it the one new enrollments receive.

        Existing enrollments stay pinned to the version they purchased. The
        version row is written before the course pointer moves; a row left
        behind by a publish that failed in between is taken over by the next
        publish instead of blocking it.

        Raises:
            CourseNotFoundError: Unknown course
            InvalidStateError: Course is archived, or another version was
                published concurrently
        """
        course = await self.get_course(course_id)
        if course.status == CourseStatus.ARCHIVED:
            raise InvalidStateError("Cannot publish a new version of an archived course")

        number = course.version + 1
        version = CourseVersion(
            course_id=course.id,
            version_number=number,
            title=title or course.title,
            description=description if description is not None else course.description,
            price=price if price is not None else course.price,
            thumbnail_url=thumbnail_url,
            storage_folder_path=version_folder_path(course.slug, number),
            change_log=change_log or f"Version {number}",
            is_public=course.is_public,
        )

        if not await self.repository.insert_version(version):
            version = await self._unpublished_version(course.id, number)

        if not await self.repository.compare_and_set_version(
            course.id, course.version, number
        ):
            raise InvalidStateError("Course version changed concurrently")

        logger.info(
            "course_version_created",
            course_id=str(course.id),
            version=number,
            previous_version=course.version,
        )
        return version

    async def _unpublished_version(self, course_id: UUID, number: int) -> CourseVersion:
        """Row `number` exists although the course still points below it."""
        existing = await self.repository.get_version(course_id, number)
        course = await self.get_course(course_id)
        if existing is None or course.version != number - 1:
            raise InvalidStateError(f"Version {number} was already published")

        logger.warning(
            "course_version_row_taken_over",
            course_id=str(course_id),
            version=number,
            change_log=existing.change_log,
        )
        return existing

    async def get_version(self, course_id: UUID, version_number: int) -> CourseVersion:
        version = await self.repository.get_version(course_id, version_number)
        if version is None:
            raise NotFoundError(f"Version {version_number} not found")
        return version

    async def list_versions(self, course_id: UUID) -> list[CourseVersion]:
        """All versions of a course, newest first."""
        await self.get_course(course_id)
        versions = await self.repository.list_versions(course_id)
        return sorted(versions, key=lambda v: v.version_number, reverse=True)

    async def update_version_statistics(
        self, course_id: UUID, version_number: int
    ) -> CourseVersion:
        """Recount videos and total duration of a version.

        `video_ids` is rewritten to the active videos in position order.
        """
        version = await self.get_version(course_id, version_number)
        videos = await self.list_version_videos(course_id, version_number)
        version = replace(
            version,
            total_videos=len(videos),
            total_duration=sum(v.duration for v in videos),
            video_ids=[v.id for v in videos],
        )
        await self.repository.update_version_state(version)
        return version

    # ==========================================================================
    # Videos
    # ==========================================================================

    async def add_video(
        self,
        course_id: UUID,
        title: str,
        duration: int,
        is_free_preview: bool = False,
        version_number: int | None = None,
    ) -> Video:
        """Append a video to the course's latest version.

        Earlier versions are frozen: students pinned to them must keep seeing
        the content they purchased.

        Raises:
            InvalidStateError: `version_number` is not the latest version, or
                that version is archived
        """
        course = await self.get_course(course_id)
        number = course.version
        if version_number is not None and version_number != number:
            raise InvalidStateError(
                f"Videos can only be added to the latest version (v{number})"
            )
        version = await self.get_version(course_id, number)
        if version.status == CourseStatus.ARCHIVED:
            raise InvalidStateError("Cannot add videos to an archived version")

        existing = await self.repository.list_version_videos(course_id, number)
        video = Video(
            course_id=course_id,
            course_version=number,
            title=title,
            order=max((v.order for v in existing), default=0) + 1,
            duration=duration,
            is_free_preview=is_free_preview,
        )
        await self.repository.insert_video(video)
        await self.update_version_statistics(course_id, number)

        logger.info(
            "video_added",
            course_id=str(course_id),
            version=number,
            video_id=str(video.id),
            order=video.order,
        )
        return video

    async def get_video(self, video_id: UUID) -> Video:
        video = await self.repository.get_video(video_id)
        if video is None:
            raise VideoNotFoundError
        return video

    async def list_version_videos(
        self, course_id: UUID, version_number: int
    ) -> list[Video]:
        """Active videos of a version, ordered by position."""
        videos = await self.repository.list_version_videos(course_id, version_number)
        return sorted(
            (v for v in videos if v.status == VideoStatus.ACTIVE),
            key=lambda v: v.order,
        )

    async def set_free_preview(self, video_id: UUID, is_free_preview: bool) -> Video:
        """Open a video to everyone, or lock it back behind the purchase."""
        video = await self.get_video(video_id)
        if video.is_free_preview == is_free_preview:
            return video

        video = replace(video, is_free_preview=is_free_preview)
        await self.repository.update_video(video)
        logger.info(
            "video_free_preview_changed",
            video_id=str(video_id),
            is_free_preview=is_free_preview,
        )
        return video

    async def archive_video(self, video_id: UUID) -> Video:
        """Soft-delete a video: hidden from listings, progress records kept.

        Raises:
            VideoNotFoundError: Unknown video
            InvalidStateError: Video is already archived
        """
        video = await self.get_video(video_id)
        if video.status == VideoStatus.ARCHIVED:
            raise InvalidStateError("Video is already archived")
        return await self._change_video_status(video, VideoStatus.ARCHIVED)

    async def restore_video(self, video_id: UUID) -> Video:
        """Bring an archived video back into its version's listing."""
        video = await self.get_video(video_id)
        if video.status != VideoStatus.ARCHIVED:
            raise InvalidStateError("Video is not archived")
        return await self._change_video_status(video, VideoStatus.ACTIVE)

    async def _change_video_status(self, video: Video, status: VideoStatus) -> Video:
        previous = video.status
        video = replace(video, status=status)
        await self.repository.update_video(video)
        await self.update_version_statistics(video.course_id, video.course_version)

        logger.info(
            "video_status_changed",
            video_id=str(video.id),
            course_id=str(video.course_id),
            version=video.course_version,
            previous_status=previous.value,
            status=status.value,
        )
        return video
