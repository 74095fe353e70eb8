"""Database models for video progress tracking.

One row per (user, video), partitioned by (user, course) so a whole course's
progress is a single-partition read. `watched_duration` is a high-water mark:
writes that would lower it are rejected by the conditional update.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from academy_core.utils.dates import ensure_utc_aware, utc_now


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

VIDEO_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.video_progress (
    user_id UUID,
    course_id UUID,
    video_id UUID,
    watched_duration DOUBLE,
    total_duration DOUBLE,
    watched_percentage INT,
    completion_percentage INT,
    is_completed BOOLEAN,
    last_position_seconds DOUBLE,
    watch_count INT,
    first_watched_at TIMESTAMP,
    last_watched_at TIMESTAMP,
    completed_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), video_id)
)
"""

PROGRESS_TABLES_CQL = [
    VIDEO_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class ProgressRecord:
    """Watch progress of one user on one video.

    Attributes:
        watched_duration: Furthest point watched (seconds, clamped to total)
        watched_percentage: round(watched / total * 100)
        completion_percentage: 100 once completed, else watched_percentage
        last_position_seconds: Latest reported playhead, used for resume
        watch_count: Number of persisted progress writes
    """

    user_id: UUID
    course_id: UUID
    video_id: UUID
    watched_duration: float = 0.0
    total_duration: float = 0.0
    watched_percentage: int = 0
    completion_percentage: int = 0
    is_completed: bool = False
    last_position_seconds: float = 0.0
    watch_count: int = 0
    first_watched_at: datetime | None = None
    last_watched_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.is_completed and self.completion_percentage != 100:
            msg = "A completed video must report 100% completion"
            raise ValueError(msg)

    @classmethod
    def from_row(cls, row: Any) -> "ProgressRecord":
        """Create ProgressRecord from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            video_id=row.video_id,
            watched_duration=row.watched_duration or 0.0,
            total_duration=row.total_duration or 0.0,
            watched_percentage=row.watched_percentage or 0,
            completion_percentage=row.completion_percentage or 0,
            is_completed=bool(row.is_completed),
            last_position_seconds=row.last_position_seconds or 0.0,
            watch_count=row.watch_count or 0,
            first_watched_at=ensure_utc_aware(row.first_watched_at),
            last_watched_at=ensure_utc_aware(row.last_watched_at) or utc_now(),
            completed_at=ensure_utc_aware(row.completed_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "video_id": self.video_id,
            "watched_duration": self.watched_duration,
            "total_duration": self.total_duration,
            "watched_percentage": self.watched_percentage,
            "completion_percentage": self.completion_percentage,
            "is_completed": self.is_completed,
            "last_position_seconds": self.last_position_seconds,
            "watch_count": self.watch_count,
            "first_watched_at": self.first_watched_at,
            "last_watched_at": self.last_watched_at,
            "completed_at": self.completed_at,
        }

    def __repr__(self) -> str:
        return (
            f"<ProgressRecord user={self.user_id} video={self.video_id} "
            f"{self.completion_percentage}%>"
        )
