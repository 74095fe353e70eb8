"""Enrollment ledger.

Business logic for:
- Enrolling students, pinned to the course's current version
- Enforcing the enrollment cap through a compare-and-set counter
- Recording purchase confirmations idempotently
- Cancelling and completing enrollments
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from academy_core.catalog.models import Course, CourseStatus
from academy_core.catalog.repository import CatalogRepository
from academy_core.core.exceptions import (
    CapacityError,
    CourseNotFoundError,
    DuplicateEnrollmentError,
    EnrollmentNotFoundError,
    InvalidStateError,
    NotAvailableError,
)
from academy_core.core.logging import get_logger
from academy_core.utils.dates import utc_now

from .models import EnrollmentRecord, EnrollmentStatus
from .repository import EnrollmentRepository


logger = get_logger(__name__)


class EnrollmentLedger:
    """Per-course enrollment records and the enrollment counter."""

    def __init__(
        self,
        repository: EnrollmentRepository,
        catalog_repository: CatalogRepository,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.catalog_repository = catalog_repository
        self.max_attempts = max_attempts
        self.clock = clock

    async def _load_course(self, course_id: UUID) -> Course:
        course = await self.catalog_repository.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    # ==========================================================================
    # Enrollment Counter
    # ==========================================================================

    async def _reserve_seat(self, course: Course) -> None:
        """Increment `total_enrollments`, honouring the cap."""
        for _ in range(self.max_attempts):
            if course.has_reached_max_enrollments:
                raise CapacityError
            if await self.catalog_repository.compare_and_set_enrollment_count(
                course.id, course.total_enrollments, course.total_enrollments + 1
            ):
                return
            course = await self._load_course(course.id)
            if course.status != CourseStatus.ACTIVE:
                raise NotAvailableError

        raise InvalidStateError("Enrollment counter is busy, retry the request")

    async def _release_seat(self, course_id: UUID) -> None:
        for _ in range(self.max_attempts):
            course = await self._load_course(course_id)
            if course.total_enrollments <= 0:
                return
            if await self.catalog_repository.compare_and_set_enrollment_count(
                course_id, course.total_enrollments, course.total_enrollments - 1
            ):
                return

        logger.warning("enrollment_counter_release_failed", course_id=str(course_id))

    # ==========================================================================
    # Enrollment
    # ==========================================================================

    async def enroll(self, course_id: UUID, user_id: UUID) -> EnrollmentRecord:
        """Enroll a user in the course's current version.

        Raises:
            CourseNotFoundError: Unknown course
            NotAvailableError: Course is not active
            CapacityError: Enrollment cap reached
            DuplicateEnrollmentError: User already holds an active enrollment
        """
        course = await self._load_course(course_id)
        if course.status != CourseStatus.ACTIVE:
            raise NotAvailableError
        if course.has_reached_max_enrollments:
            raise CapacityError

        existing = await self.repository.get(course_id, user_id)
        if existing is not None and existing.is_active:
            raise DuplicateEnrollmentError

        await self._reserve_seat(course)

        record = EnrollmentRecord(
            course_id=course_id,
            user_id=user_id,
            version_enrolled=course.current_version,
            enrolled_at=self.clock(),
        )
        if existing is None:
            stored = await self.repository.insert_if_absent(record)
        else:
            stored = await self.repository.replace_if_status(record, existing.status)

        if not stored:
            # Lost the race against a concurrent enrollment of the same user
            await self._release_seat(course_id)
            raise DuplicateEnrollmentError

        logger.info(
            "student_enrolled",
            course_id=str(course_id),
            user_id=str(user_id),
            version_enrolled=record.version_enrolled,
        )
        return record

    async def record_purchase(self, course_id: UUID, user_id: UUID) -> EnrollmentRecord:
        """Apply a purchase confirmation. Safe to call again for the same purchase."""
        existing = await self.get_enrollment(course_id, user_id)
        if existing is not None:
            logger.info(
                "purchase_already_recorded",
                course_id=str(course_id),
                user_id=str(user_id),
            )
            return existing

        try:
            return await self.enroll(course_id, user_id)
        except DuplicateEnrollmentError:
            record = await self.get_enrollment(course_id, user_id)
            if record is None:
                raise
            return record

    async def get_enrollment(
        self, course_id: UUID, user_id: UUID
    ) -> EnrollmentRecord | None:
        """The user's active (or completed) enrollment, None if absent or cancelled."""
        record = await self.repository.get(course_id, user_id)
        if record is None or not record.is_active:
            return None
        return record

    async def has_access_to_version(
        self, course_id: UUID, user_id: UUID, version: int
    ) -> bool:
        record = await self.get_enrollment(course_id, user_id)
        return record is not None and record.can_access_version(version)

    async def list_user_enrollments(
        self, user_id: UUID, include_cancelled: bool = False
    ) -> list[EnrollmentRecord]:
        records = await self.repository.list_by_user(user_id)
        if not include_cancelled:
            records = [r for r in records if r.is_active]
        return sorted(records, key=lambda r: r.enrolled_at, reverse=True)

    async def touch(self, course_id: UUID, user_id: UUID) -> None:
        """Record that the student opened the course."""
        await self.repository.touch(course_id, user_id, self.clock())

    async def cancel_enrollment(
        self, course_id: UUID, user_id: UUID
    ) -> EnrollmentRecord:
        record = await self.get_enrollment(course_id, user_id)
        if record is None:
            raise EnrollmentNotFoundError

        cancelled = replace(record, status=EnrollmentStatus.CANCELLED)
        if not await self.repository.replace_if_status(cancelled, record.status):
            raise InvalidStateError("Enrollment changed concurrently")
        await self._release_seat(course_id)

        logger.info(
            "enrollment_cancelled", course_id=str(course_id), user_id=str(user_id)
        )
        return cancelled

    async def mark_completed(
        self, course_id: UUID, user_id: UUID
    ) -> EnrollmentRecord:
        """Move an active enrollment to completed. No-op when already completed."""
        record = await self.get_enrollment(course_id, user_id)
        if record is None:
            raise EnrollmentNotFoundError
        if record.status == EnrollmentStatus.COMPLETED:
            return record

        completed = replace(
            record, status=EnrollmentStatus.COMPLETED, completed_at=self.clock()
        )
        if not await self.repository.replace_if_status(completed, record.status):
            current = await self.get_enrollment(course_id, user_id)
            if current is None:
                raise EnrollmentNotFoundError
            return current

        logger.info(
            "enrollment_completed", course_id=str(course_id), user_id=str(user_id)
        )
        return completed
