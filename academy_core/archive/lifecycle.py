"""Course lifecycle transitions as pure functions.

State machine::

    active <-> inactive
    active <-> archived   (archived -> active only through unarchive)
    inactive -> archived  (manual, or the sweep of long-inactive courses)

Transitions return new `Course` / `CourseVersion` values and raise
`InvalidStateError` for anything outside the machine. Nothing here touches
storage or the clock; callers pass `now` in.
"""

from dataclasses import replace
from datetime import datetime

from academy_core.catalog.models import ArchiveInfo, Course, CourseStatus, CourseVersion
from academy_core.core.exceptions import InvalidStateError
from academy_core.utils.dates import add_months


def grace_period_end(archived_at: datetime, grace_period_months: int) -> datetime:
    """Instant after which archived content closes to enrolled students."""
    if grace_period_months < 0:
        msg = "Grace period cannot be negative"
        raise ValueError(msg)
    return add_months(archived_at, grace_period_months)


def is_accessible_to_enrolled(course: Course, now: datetime) -> bool:
    """Whether students already enrolled may still open the course.

    Active and inactive courses stay open to existing students; an archived
    course stays open until its grace period ends (exclusive).
    """
    if course.status != CourseStatus.ARCHIVED:
        return True
    return now < course.archive.grace_period_ends_at


def is_past_grace_period(course: Course, now: datetime) -> bool:
    return course.status == CourseStatus.ARCHIVED and not is_accessible_to_enrolled(
        course, now
    )


def is_stale_inactive(course: Course, now: datetime, inactive_months: int) -> bool:
    """Inactive and unchanged for more than `inactive_months` calendar months."""
    if course.status != CourseStatus.INACTIVE:
        return False
    last_change = course.updated_at or course.created_at
    return last_change < add_months(now, -inactive_months)


def archive_course(
    course: Course,
    now: datetime,
    reason: str | None = None,
    grace_period_months: int = 6,
) -> Course:
    if course.status == CourseStatus.ARCHIVED:
        raise InvalidStateError("Course is already archived")
    return replace(
        course,
        status=CourseStatus.ARCHIVED,
        archive=ArchiveInfo(
            archived_at=now,
            grace_period_ends_at=grace_period_end(now, grace_period_months),
            reason=reason,
        ),
        updated_at=now,
    )


def unarchive_course(course: Course, now: datetime) -> Course:
    if course.status != CourseStatus.ARCHIVED:
        raise InvalidStateError("Course is not archived")
    return replace(course, status=CourseStatus.ACTIVE, archive=None, updated_at=now)


def deactivate_course(course: Course, now: datetime) -> Course:
    if course.status != CourseStatus.ACTIVE:
        raise InvalidStateError(
            f"Only active courses can be deactivated (status: {course.status.value})"
        )
    return replace(course, status=CourseStatus.INACTIVE, updated_at=now)


def activate_course(course: Course, now: datetime) -> Course:
    if course.status == CourseStatus.ARCHIVED:
        raise InvalidStateError("Archived courses must be unarchived explicitly")
    if course.status == CourseStatus.ACTIVE:
        raise InvalidStateError("Course is already active")
    return replace(course, status=CourseStatus.ACTIVE, updated_at=now)


def archive_version(
    version: CourseVersion,
    now: datetime,
    reason: str | None = None,
) -> CourseVersion:
    """Archive a version, moving its content under `archived-courses/`.

    Already archived versions are returned unchanged so that a course-level
    archive can be retried.
    """
    if version.status == CourseStatus.ARCHIVED:
        return version
    return replace(
        version,
        status=CourseStatus.ARCHIVED,
        archived_at=now,
        archive_reason=reason,
        archive_storage_path=version.default_archive_path,
    )


def restore_version(version: CourseVersion) -> CourseVersion:
    if version.status != CourseStatus.ARCHIVED:
        return version
    return replace(
        version,
        status=CourseStatus.ACTIVE,
        archived_at=None,
        archive_reason=None,
        archive_storage_path=None,
    )
