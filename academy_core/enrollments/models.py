"""Enrollment records and Cassandra schema.

One row per (course, user). Re-enrolling after a cancellation reuses the row,
so "at most one active enrollment per user and course" is a property of the
primary key plus conditional writes on `status`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from academy_core.utils.dates import ensure_utc_aware, utc_now


class EnrollmentStatus(str, Enum):
    """Enrollment status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_enrollments (
    course_id UUID,
    user_id UUID,
    version_enrolled INT,
    status TEXT,
    enrolled_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    completed_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

# Lookup table: a user's enrollments (dashboard)
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    version_enrolled INT,
    status TEXT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

ENROLLMENT_TABLES_CQL = [
    COURSE_ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


def version_accessible(version_enrolled: int, version: int) -> bool:
    """A student may open the version they bought or any earlier one."""
    return version_enrolled >= version


@dataclass
class EnrollmentRecord:
    """A user's enrollment in a course, pinned to the version purchased."""

    course_id: UUID
    user_id: UUID
    version_enrolled: int
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    enrolled_at: datetime = field(default_factory=utc_now)
    last_accessed_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = EnrollmentStatus(self.status)
        if self.version_enrolled < 1:
            msg = "version_enrolled must be >= 1"
            raise ValueError(msg)

    @property
    def is_active(self) -> bool:
        """Active or completed (a completed student keeps access)."""
        return self.status != EnrollmentStatus.CANCELLED

    def can_access_version(self, version: int) -> bool:
        return self.is_active and version_accessible(self.version_enrolled, version)

    @classmethod
    def from_row(cls, row: Any) -> "EnrollmentRecord":
        """Create EnrollmentRecord from a `course_enrollments` row."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            version_enrolled=row.version_enrolled or 1,
            status=EnrollmentStatus(row.status),
            enrolled_at=ensure_utc_aware(row.enrolled_at) or utc_now(),
            last_accessed_at=ensure_utc_aware(row.last_accessed_at),
            completed_at=ensure_utc_aware(row.completed_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "user_id": self.user_id,
            "version_enrolled": self.version_enrolled,
            "status": self.status.value,
            "enrolled_at": self.enrolled_at,
            "last_accessed_at": self.last_accessed_at,
            "completed_at": self.completed_at,
        }

    def __repr__(self) -> str:
        return (
            f"<EnrollmentRecord user={self.user_id} course={self.course_id} "
            f"v{self.version_enrolled} ({self.status.value})>"
        )
