"""Archive lifecycle service.

Applies the transitions from `archive.lifecycle` to stored courses. Status
changes are written conditionally on the status that was read, so two admins
archiving the same course cannot both succeed.
"""

from collections import Counter
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from academy_core.catalog.models import Course, CourseStatus
from academy_core.catalog.repository import CatalogRepository
from academy_core.core.exceptions import CourseNotFoundError, InvalidStateError
from academy_core.core.logging import get_logger
from academy_core.utils.dates import utc_now

from . import lifecycle


logger = get_logger(__name__)

AUTO_ARCHIVE_REASON = "Automatic archive: inactive for {months}+ months"


class ArchiveLifecycleManager:
    """Course status transitions and grace-period bookkeeping."""

    def __init__(
        self,
        repository: CatalogRepository,
        default_grace_months: int = 6,
        inactive_months: int = 6,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.default_grace_months = default_grace_months
        self.inactive_months = inactive_months
        self.clock = clock

    async def _load(self, course_id: UUID) -> Course:
        course = await self.repository.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def _commit(self, before: Course, after: Course) -> Course:
        if not await self.repository.update_course_lifecycle(after, before.status):
            raise InvalidStateError("Course status changed concurrently")
        return after

    def is_accessible_to_enrolled(
        self, course: Course, now: datetime | None = None
    ) -> bool:
        return lifecycle.is_accessible_to_enrolled(course, now or self.clock())

    async def archive(
        self,
        course_id: UUID,
        reason: str | None = None,
        grace_period_months: int | None = None,
    ) -> Course:
        """Archive a course and every one of its versions.

        Raises:
            CourseNotFoundError: Unknown course
            InvalidStateError: Course is already archived
        """
        months = (
            self.default_grace_months
            if grace_period_months is None
            else grace_period_months
        )
        course = await self._load(course_id)
        return await self._archive_snapshot(course, reason, months, self.clock())

    async def _archive_snapshot(
        self,
        course: Course,
        reason: str | None,
        grace_period_months: int,
        now: datetime,
    ) -> Course:
        """Archive `course` as read; fails if its stored status has moved since."""
        archived = await self._commit(
            course, lifecycle.archive_course(course, now, reason, grace_period_months)
        )

        versions = await self.repository.list_versions(course.id)
        for version in versions:
            updated = lifecycle.archive_version(version, now, reason)
            if updated is not version:
                await self.repository.update_version_state(updated)

        logger.info(
            "course_archived",
            course_id=str(course.id),
            reason=reason,
            grace_period_ends_at=archived.archive_grace_period.isoformat(),
            versions_archived=len(versions),
        )
        return archived

    async def unarchive(self, course_id: UUID) -> Course:
        """Restore an archived course (and its versions) to active."""
        course = await self._load(course_id)
        restored = await self._commit(
            course, lifecycle.unarchive_course(course, self.clock())
        )

        for version in await self.repository.list_versions(course_id):
            updated = lifecycle.restore_version(version)
            if updated is not version:
                await self.repository.update_version_state(updated)

        logger.info("course_unarchived", course_id=str(course_id))
        return restored

    async def deactivate(self, course_id: UUID) -> Course:
        course = await self._load(course_id)
        updated = await self._commit(
            course, lifecycle.deactivate_course(course, self.clock())
        )
        logger.info("course_deactivated", course_id=str(course_id))
        return updated

    async def activate(self, course_id: UUID) -> Course:
        course = await self._load(course_id)
        updated = await self._commit(
            course, lifecycle.activate_course(course, self.clock())
        )
        logger.info("course_activated", course_id=str(course_id))
        return updated

    async def archive_inactive_courses(
        self, now: datetime | None = None
    ) -> list[Course]:
        """Archive every course left inactive for more than `inactive_months`.

        The write is conditional on the course still being inactive, so a
        course reactivated while the sweep runs is skipped.
        """
        now = now or self.clock()
        inactive = await self.repository.list_courses_by_status(CourseStatus.INACTIVE)
        reason = AUTO_ARCHIVE_REASON.format(months=self.inactive_months)

        archived = []
        for course in inactive:
            if not lifecycle.is_stale_inactive(course, now, self.inactive_months):
                continue
            try:
                archived.append(
                    await self._archive_snapshot(
                        course, reason, self.default_grace_months, now
                    )
                )
            except InvalidStateError as e:
                logger.warning(
                    "auto_archive_skipped", course_id=str(course.id), error=str(e)
                )

        logger.info(
            "inactive_courses_archived",
            archived=len(archived),
            inactive=len(inactive),
        )
        return archived

    async def list_archived_past_grace_period(
        self, now: datetime | None = None
    ) -> list[Course]:
        """Archived courses whose grace period has ended."""
        now = now or self.clock()
        archived = await self.repository.list_courses_by_status(CourseStatus.ARCHIVED)
        return [c for c in archived if lifecycle.is_past_grace_period(c, now)]

    async def get_archive_stats(self) -> dict[str, dict[str, int]]:
        """Count courses and versions per status."""
        course_counts: Counter[str] = Counter()
        version_counts: Counter[str] = Counter()

        for status in CourseStatus:
            courses = await self.repository.list_courses_by_status(status)
            course_counts[status.value] += len(courses)
            for course in courses:
                for version in await self.repository.list_versions(course.id):
                    version_counts[version.status.value] += 1

        return {
            "courses": {s.value: course_counts[s.value] for s in CourseStatus},
            "versions": {s.value: version_counts[s.value] for s in CourseStatus},
        }
