# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Catalog persistence.

Course rows are written through lightweight transactions wherever two
requests can race on the same value: the enrollment counter, the latest
version pointer and lifecycle status changes. Each conditional method
returns whether Cassandra applied the write; callers decide whether to
retry or fail.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from academy_core.core.logging import get_logger
from academy_core.utils.dates import utc_now

from .models import Course, CourseStatus, CourseVersion, Video


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


def was_applied(result) -> bool:
    """Whether a lightweight transaction (`IF ...`) took effect."""
    return bool(result.was_applied)


class CatalogRepository(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...

    async def insert_course(self, course: Course) -> bool: ...

    async def list_courses_by_status(self, status: CourseStatus) -> list[Course]: ...

    async def update_course_lifecycle(
        self, course: Course, expected_status: CourseStatus
    ) -> bool: ...

    async def compare_and_set_enrollment_count(
        self, course_id: UUID, expected: int, new: int
    ) -> bool: ...

    async def compare_and_set_version(
        self, course_id: UUID, expected_version: int, new_version: int
    ) -> bool: ...

    async def insert_version(self, version: CourseVersion) -> bool: ...

    async def get_version(
        self, course_id: UUID, version_number: int
    ) -> CourseVersion | None: ...

    async def list_versions(self, course_id: UUID) -> list[CourseVersion]: ...

    async def update_version_state(self, version: CourseVersion) -> None: ...

    async def insert_video(self, video: Video) -> None: ...

    async def update_video(self, video: Video) -> None: ...

    async def get_video(self, video_id: UUID) -> Video | None: ...

    async def list_version_videos(
        self, course_id: UUID, version_number: int
    ) -> list[Video]: ...


class CassandraCatalogRepository:
    """Cassandra-backed catalog storage."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Courses
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, slug, description, price, status, version, current_version,
             archived_at, archive_reason, archive_grace_period, max_enrollments,
             total_enrollments, is_public, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._update_lifecycle = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET status = ?, archived_at = ?, archive_reason = ?,
                archive_grace_period = ?, updated_at = ?
            WHERE id = ?
            IF status = ?
        """)

        self._cas_enrollments = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET total_enrollments = ?
            WHERE id = ?
            IF total_enrollments = ?
        """)

        self._cas_version = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET version = ?, current_version = ?, updated_at = ?
            WHERE id = ?
            IF version = ?
        """)

        # Status lookup
        self._insert_status_entry = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_status (status, course_id)
            VALUES (?, ?)
        """)

        self._delete_status_entry = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_status
            WHERE status = ? AND course_id = ?
        """)

        self._list_status_entries = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_status WHERE status = ?
        """)

        # Versions
        self._insert_version = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_versions
            (course_id, version_number, title, description, price, thumbnail_url,
             video_ids, storage_folder_path, status, change_log, archived_at,
             archive_reason, archive_storage_path, total_videos, total_duration,
             is_public, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_version = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_versions
            WHERE course_id = ? AND version_number = ?
        """)

        self._list_versions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_versions WHERE course_id = ?
        """)

        self._update_version_state = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_versions
            SET status = ?, archived_at = ?, archive_reason = ?,
                archive_storage_path = ?, total_videos = ?, total_duration = ?,
                video_ids = ?
            WHERE course_id = ? AND version_number = ?
        """)

        self._append_version_video = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_versions
            SET video_ids = video_ids + ?
            WHERE course_id = ? AND version_number = ?
        """)

        # Videos
        self._insert_video = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.videos
            (id, course_id, course_version, title, position, duration,
             is_free_preview, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_video_by_version = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.videos_by_version
            (course_id, course_version, position, video_id, title, duration,
             is_free_preview, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_video = self.session.prepare(f"""
            UPDATE {self.keyspace}.videos
            SET status = ?, is_free_preview = ?
            WHERE id = ?
        """)

        self._update_video_by_version = self.session.prepare(f"""
            UPDATE {self.keyspace}.videos_by_version
            SET status = ?, is_free_preview = ?
            WHERE course_id = ? AND course_version = ? AND position = ? AND video_id = ?
        """)

        self._get_video = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.videos WHERE id = ?
        """)

        self._list_version_videos = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.videos_by_version
            WHERE course_id = ? AND course_version = ?
        """)

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def insert_course(self, course: Course) -> bool:
        result = await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.slug,
                course.description,
                course.price,
                course.status.value,
                course.version,
                course.current_version,
                course.archived_at,
                course.archive_reason,
                course.archive_grace_period,
                course.max_enrollments,
                course.total_enrollments,
                course.is_public,
                course.created_at,
                course.updated_at,
            ],
        )
        applied = was_applied(result)
        if applied:
            await self.session.aexecute(
                self._insert_status_entry, [course.status.value, course.id]
            )
        return applied

    async def list_courses_by_status(self, status: CourseStatus) -> list[Course]:
        result = await self.session.aexecute(self._list_status_entries, [status.value])
        courses = []
        for row in result:
            course = await self.get_course(row.course_id)
            # Lookup rows can briefly lag a status change
            if course is not None and course.status == status:
                courses.append(course)
        return courses

    async def update_course_lifecycle(
        self, course: Course, expected_status: CourseStatus
    ) -> bool:
        """Write status and archive fields if the stored status is still `expected_status`."""
        result = await self.session.aexecute(
            self._update_lifecycle,
            [
                course.status.value,
                course.archived_at,
                course.archive_reason,
                course.archive_grace_period,
                course.updated_at,
                course.id,
                expected_status.value,
            ],
        )
        if not was_applied(result):
            return False

        if course.status != expected_status:
            await self.session.aexecute(
                self._delete_status_entry, [expected_status.value, course.id]
            )
            await self.session.aexecute(
                self._insert_status_entry, [course.status.value, course.id]
            )
        return True

    async def compare_and_set_enrollment_count(
        self, course_id: UUID, expected: int, new: int
    ) -> bool:
        result = await self.session.aexecute(
            self._cas_enrollments, [new, course_id, expected]
        )
        return was_applied(result)

    async def compare_and_set_version(
        self, course_id: UUID, expected_version: int, new_version: int
    ) -> bool:
        result = await self.session.aexecute(
            self._cas_version,
            [new_version, new_version, utc_now(), course_id, expected_version],
        )
        return was_applied(result)

    # ==========================================================================
    # Versions
    # ==========================================================================

    async def insert_version(self, version: CourseVersion) -> bool:
        result = await self.session.aexecute(
            self._insert_version,
            [
                version.course_id,
                version.version_number,
                version.title,
                version.description,
                version.price,
                version.thumbnail_url,
                version.video_ids,
                version.storage_folder_path,
                version.status.value,
                version.change_log,
                version.archived_at,
                version.archive_reason,
                version.archive_storage_path,
                version.total_videos,
                version.total_duration,
                version.is_public,
                version.created_at,
            ],
        )
        return was_applied(result)

    async def get_version(
        self, course_id: UUID, version_number: int
    ) -> CourseVersion | None:
        result = await self.session.aexecute(
            self._get_version, [course_id, version_number]
        )
        row = result.one()
        return CourseVersion.from_row(row) if row else None

    async def list_versions(self, course_id: UUID) -> list[CourseVersion]:
        """Versions of a course, newest first."""
        result = await self.session.aexecute(self._list_versions, [course_id])
        return [CourseVersion.from_row(row) for row in result]

    async def update_version_state(self, version: CourseVersion) -> None:
        """Persist status, archive fields, statistics and the video id list."""
        await self.session.aexecute(
            self._update_version_state,
            [
                version.status.value,
                version.archived_at,
                version.archive_reason,
                version.archive_storage_path,
                version.total_videos,
                version.total_duration,
                version.video_ids,
                version.course_id,
                version.version_number,
            ],
        )

    # ==========================================================================
    # Videos
    # ==========================================================================

    async def insert_video(self, video: Video) -> None:
        await self.session.aexecute(
            self._insert_video,
            [
                video.id,
                video.course_id,
                video.course_version,
                video.title,
                video.order,
                video.duration,
                video.is_free_preview,
                video.status.value,
                video.created_at,
            ],
        )
        await self.session.aexecute(
            self._insert_video_by_version,
            [
                video.course_id,
                video.course_version,
                video.order,
                video.id,
                video.title,
                video.duration,
                video.is_free_preview,
                video.status.value,
                video.created_at,
            ],
        )
        await self.session.aexecute(
            self._append_version_video,
            [[video.id], video.course_id, video.course_version],
        )

    async def update_video(self, video: Video) -> None:
        """Write status and free-preview flag to both video tables."""
        await self.session.aexecute(
            self._update_video, [video.status.value, video.is_free_preview, video.id]
        )
        await self.session.aexecute(
            self._update_video_by_version,
            [
                video.status.value,
                video.is_free_preview,
                video.course_id,
                video.course_version,
                video.order,
                video.id,
            ],
        )

    async def get_video(self, video_id: UUID) -> Video | None:
        result = await self.session.aexecute(self._get_video, [video_id])
        row = result.one()
        return Video.from_row(row) if row else None

    async def list_version_videos(
        self, course_id: UUID, version_number: int
    ) -> list[Video]:
        """Videos of one version in display order."""
        result = await self.session.aexecute(
            self._list_version_videos, [course_id, version_number]
        )
        return [Video.from_row(row) for row in result]
