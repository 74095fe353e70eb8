"""Catalog entities and Cassandra schema.

- Courses: one row per course, carrying lifecycle status and the version
  pointers (`version` = latest published, `current_version` = what new
  enrollments receive)
- Course versions: immutable content snapshots, one row per (course, number)
- Videos: stamped with the version they were uploaded into, with a
  per-version ordered lookup table for listing
"""

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from academy_core.utils.dates import ensure_utc_aware, utc_now


class CourseStatus(str, Enum):
    """Lifecycle status shared by courses and course versions."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class VideoStatus(str, Enum):
    """Video availability status."""

    ACTIVE = "active"
    PROCESSING = "processing"
    ERROR = "error"
    ARCHIVED = "archived"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    description TEXT,
    price DECIMAL,
    status TEXT,
    version INT,
    current_version INT,
    archived_at TIMESTAMP,
    archive_reason TEXT,
    archive_grace_period TIMESTAMP,
    max_enrollments INT,
    total_enrollments INT,
    is_public BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lookup for lifecycle queries (expired archives, archive stats)
COURSES_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_status (
    status TEXT,
    course_id UUID,
    PRIMARY KEY (status, course_id)
)
"""

COURSE_VERSION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_versions (
    course_id UUID,
    version_number INT,
    title TEXT,
    description TEXT,
    price DECIMAL,
    thumbnail_url TEXT,
    video_ids LIST<UUID>,
    storage_folder_path TEXT,
    status TEXT,
    change_log TEXT,
    archived_at TIMESTAMP,
    archive_reason TEXT,
    archive_storage_path TEXT,
    total_videos INT,
    total_duration INT,
    is_public BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, version_number)
) WITH CLUSTERING ORDER BY (version_number DESC)
"""

VIDEO_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.videos (
    id UUID PRIMARY KEY,
    course_id UUID,
    course_version INT,
    title TEXT,
    position INT,
    duration INT,
    is_free_preview BOOLEAN,
    status TEXT,
    created_at TIMESTAMP
)
"""

# Ordered listing of a version's videos
VIDEOS_BY_VERSION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.videos_by_version (
    course_id UUID,
    course_version INT,
    position INT,
    video_id UUID,
    title TEXT,
    duration INT,
    is_free_preview BOOLEAN,
    status TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((course_id, course_version), position, video_id)
) WITH CLUSTERING ORDER BY (position ASC, video_id ASC)
"""

CATALOG_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSES_BY_STATUS_TABLE_CQL,
    COURSE_VERSION_TABLE_CQL,
    VIDEO_TABLE_CQL,
    VIDEOS_BY_VERSION_TABLE_CQL,
]


# ==============================================================================
# Helper Functions
# ==============================================================================


def generate_slug(title: str) -> str:
    """Generate URL-friendly slug from title."""
    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s_]+", "-", slug).strip("-")


def version_folder_path(slug: str, version_number: int) -> str:
    """Storage folder for a version's content, e.g. `courses/intro-to-video/v2`."""
    return f"courses/{slug}/v{version_number}"


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass(frozen=True)
class ArchiveInfo:
    """Archive metadata, present exactly when a course is archived.

    Attributes:
        archived_at: When the course was archived
        grace_period_ends_at: Instant after which enrolled students lose access
        reason: Free-text reason recorded by the admin
    """

    archived_at: datetime
    grace_period_ends_at: datetime
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.grace_period_ends_at < self.archived_at:
            msg = "Grace period cannot end before the archive date"
            raise ValueError(msg)


@dataclass
class Course:
    """Course entity.

    `archive` is None unless `status` is ARCHIVED; construction fails for any
    other combination, so an archived course without an archive date (or an
    active course with a grace period) cannot exist.
    """

    title: str
    description: str = ""
    price: Decimal = Decimal(0)
    id: UUID = field(default_factory=uuid4)
    slug: str = ""
    status: CourseStatus = CourseStatus.ACTIVE
    version: int = 1
    current_version: int = 1
    archive: ArchiveInfo | None = None
    max_enrollments: int | None = None
    total_enrollments: int = 0
    is_public: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.title = self.title.strip()
        self.slug = self.slug or generate_slug(self.title)
        self.status = CourseStatus(self.status)
        if self.current_version < 1 or self.current_version > self.version:
            msg = (
                f"current_version {self.current_version} must be within "
                f"1..{self.version}"
            )
            raise ValueError(msg)
        if (self.status == CourseStatus.ARCHIVED) != (self.archive is not None):
            msg = "Archive info must be set if and only if the course is archived"
            raise ValueError(msg)

    @property
    def archived_at(self) -> datetime | None:
        return self.archive.archived_at if self.archive else None

    @property
    def archive_grace_period(self) -> datetime | None:
        return self.archive.grace_period_ends_at if self.archive else None

    @property
    def archive_reason(self) -> str | None:
        return self.archive.reason if self.archive else None

    @property
    def has_reached_max_enrollments(self) -> bool:
        if not self.max_enrollments:
            return False
        return self.total_enrollments >= self.max_enrollments

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        archive = None
        if row.status == CourseStatus.ARCHIVED.value:
            archived_at = ensure_utc_aware(row.archived_at) or utc_now()
            archive = ArchiveInfo(
                archived_at=archived_at,
                grace_period_ends_at=ensure_utc_aware(row.archive_grace_period)
                or archived_at,
                reason=row.archive_reason,
            )

        return cls(
            id=row.id,
            title=row.title or "",
            slug=row.slug or "",
            description=row.description or "",
            price=row.price if row.price is not None else Decimal(0),
            status=CourseStatus(row.status),
            version=row.version or 1,
            current_version=row.current_version or 1,
            archive=archive,
            max_enrollments=row.max_enrollments,
            total_enrollments=row.total_enrollments or 0,
            is_public=row.is_public if row.is_public is not None else True,
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
            updated_at=ensure_utc_aware(row.updated_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "price": self.price,
            "status": self.status.value,
            "version": self.version,
            "current_version": self.current_version,
            "archived_at": self.archived_at,
            "archive_reason": self.archive_reason,
            "archive_grace_period": self.archive_grace_period,
            "max_enrollments": self.max_enrollments,
            "total_enrollments": self.total_enrollments,
            "is_public": self.is_public,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.title} v{self.current_version}/{self.version} ({self.status.value})>"


@dataclass
class CourseVersion:
    """Content snapshot of a course at one version number.

    Content fields are never rewritten once the version exists; a change of
    content produces a new version. Only status and statistics move.
    """

    course_id: UUID
    version_number: int
    title: str
    description: str = ""
    price: Decimal = Decimal(0)
    thumbnail_url: str | None = None
    video_ids: list[UUID] = field(default_factory=list)
    storage_folder_path: str = ""
    status: CourseStatus = CourseStatus.ACTIVE
    change_log: str | None = None
    archived_at: datetime | None = None
    archive_reason: str | None = None
    archive_storage_path: str | None = None
    total_videos: int = 0
    total_duration: int = 0
    is_public: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.status = CourseStatus(self.status)
        if (self.status == CourseStatus.ARCHIVED) != (self.archived_at is not None):
            msg = "archived_at must be set if and only if the version is archived"
            raise ValueError(msg)

    @property
    def is_accessible(self) -> bool:
        return self.status == CourseStatus.ACTIVE and self.is_public

    @property
    def default_archive_path(self) -> str:
        return f"archived-courses/{self.storage_folder_path}"

    @classmethod
    def from_row(cls, row: Any) -> "CourseVersion":
        """Create CourseVersion instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            version_number=row.version_number,
            title=row.title or "",
            description=row.description or "",
            price=row.price if row.price is not None else Decimal(0),
            thumbnail_url=row.thumbnail_url,
            video_ids=list(row.video_ids or []),
            storage_folder_path=row.storage_folder_path or "",
            status=CourseStatus(row.status),
            change_log=row.change_log,
            archived_at=ensure_utc_aware(row.archived_at),
            archive_reason=row.archive_reason,
            archive_storage_path=row.archive_storage_path,
            total_videos=row.total_videos or 0,
            total_duration=row.total_duration or 0,
            is_public=row.is_public if row.is_public is not None else True,
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )

    def __repr__(self) -> str:
        return f"<CourseVersion course={self.course_id} v{self.version_number} ({self.status.value})>"


@dataclass
class Video:
    """Video entity, stamped with the course version it was uploaded into.

    Attributes:
        order: 1-based position within its version
        duration: Length in seconds
    """

    course_id: UUID
    course_version: int
    title: str
    order: int
    duration: int = 0
    is_free_preview: bool = False
    status: VideoStatus = VideoStatus.ACTIVE
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.status = VideoStatus(self.status)
        if self.order < 1:
            msg = "Video order is 1-based"
            raise ValueError(msg)

    @property
    def is_active(self) -> bool:
        return self.status == VideoStatus.ACTIVE

    @classmethod
    def from_row(cls, row: Any) -> "Video":
        """Create Video from a `videos` or `videos_by_version` row."""
        return cls(
            id=getattr(row, "id", None) or row.video_id,
            course_id=row.course_id,
            course_version=row.course_version,
            title=row.title or "",
            order=row.position,
            duration=row.duration or 0,
            is_free_preview=bool(row.is_free_preview),
            status=VideoStatus(row.status),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "course_id": self.course_id,
            "course_version": self.course_version,
            "title": self.title,
            "order": self.order,
            "duration": self.duration,
            "is_free_preview": self.is_free_preview,
            "status": self.status.value,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Video {self.title} v{self.course_version} #{self.order}>"
