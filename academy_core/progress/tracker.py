"""Per-video progress tracking.

ProgressTracker owns the write path for ProgressRecords: validation,
throttling, and the compare-and-set loop that lets concurrent reports for the
same video converge on the highest watched duration. Entitlement checks
happen before it is called (see `ProgressService`).
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from academy_core.core.exceptions import InvalidStateError, NotFoundError
from academy_core.core.logging import get_logger
from academy_core.utils.dates import utc_now

from .calculations import (
    COMPLETION_THRESHOLD,
    OVERSHOOT_TOLERANCE,
    apply_manual_completion,
    apply_watch_event,
    calculate_percentage,
    determine_completion,
    ensure_valid_progress,
    reset_completion,
)
from .models import ProgressRecord
from .repository import ProgressRepository
from .throttle import ProgressThrottle


logger = get_logger(__name__)


@dataclass(frozen=True)
class TrackResult:
    """Outcome of a progress report.

    `record` is the stored record after the write, or None when the report
    was throttled; `watched_percentage` is always the value computed for the
    report itself.
    """

    record: ProgressRecord | None
    watched_percentage: int
    skipped: bool = False


class ProgressTracker:
    """Concurrency-safe, throttled progress writes."""

    def __init__(
        self,
        repository: ProgressRepository,
        throttle: ProgressThrottle,
        completion_threshold: int = COMPLETION_THRESHOLD,
        overshoot_tolerance: float = OVERSHOOT_TOLERANCE,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.throttle = throttle
        self.completion_threshold = completion_threshold
        self.overshoot_tolerance = overshoot_tolerance
        self.max_attempts = max_attempts
        self.clock = clock

    async def record_watch(
        self,
        user_id: UUID,
        course_id: UUID,
        video_id: UUID,
        watched_duration: float,
        total_duration: float,
        position: float | None = None,
    ) -> TrackResult:
        """Validate, throttle and persist a watch report.

        Args:
            watched_duration: Seconds watched as reported by the player
            total_duration: Video length in seconds
            position: Current playhead (defaults to watched_duration)

        Raises:
            ValidationError: Negative, zero-length or overshooting report
        """
        ensure_valid_progress(watched_duration, total_duration, self.overshoot_tolerance)
        if position is None:
            position = watched_duration

        percentage = calculate_percentage(
            min(watched_duration, total_duration), total_duration
        )

        # A report that completes the video is always persisted
        existing = None
        bypass = False
        if determine_completion(percentage, self.completion_threshold).is_completed:
            existing = await self.repository.get(user_id, course_id, video_id)
            bypass = existing is None or not existing.is_completed

        if bypass:
            await self.throttle.mark(user_id, video_id)
        elif not await self.throttle.try_acquire(user_id, video_id):
            await self.throttle.remember_playhead(user_id, video_id, watched_duration)
            logger.debug(
                "progress_update_skipped",
                video_id=str(video_id),
                watched_percentage=percentage,
            )
            return TrackResult(record=None, watched_percentage=percentage, skipped=True)

        pending = await self.throttle.pop_playhead(user_id, video_id)
        if pending is not None:
            watched_duration = max(watched_duration, pending)

        try:
            record = await self._write(
                user_id,
                course_id,
                video_id,
                watched_duration,
                total_duration,
                position,
                existing,
            )
        except Exception:
            await self.throttle.release(user_id, video_id)
            raise

        return TrackResult(record=record, watched_percentage=percentage)

    async def _write(
        self,
        user_id: UUID,
        course_id: UUID,
        video_id: UUID,
        watched_duration: float,
        total_duration: float,
        position: float,
        existing: ProgressRecord | None,
    ) -> ProgressRecord:
        prefetched = existing is not None
        for attempt in range(1, self.max_attempts + 1):
            if not prefetched:
                existing = await self.repository.get(user_id, course_id, video_id)
            prefetched = False

            record, advanced = apply_watch_event(
                existing,
                user_id=user_id,
                course_id=course_id,
                video_id=video_id,
                watched_duration=watched_duration,
                total_duration=total_duration,
                position=position,
                now=self.clock(),
                threshold=self.completion_threshold,
            )

            if not advanced:
                if await self.repository.update_playhead(record):
                    return record
            elif await self.repository.save(record, expected=existing):
                self._log_write(existing, record)
                return record

            logger.debug(
                "progress_write_conflict", video_id=str(video_id), attempt=attempt
            )

        # Other writers kept advancing the record; theirs is at least as far
        stored = await self.repository.get(user_id, course_id, video_id)
        if stored is None:
            raise InvalidStateError("Progress could not be saved, retry the request")
        logger.warning(
            "progress_write_contention",
            video_id=str(video_id),
            attempts=self.max_attempts,
        )
        return stored

    def _log_write(self, previous: ProgressRecord | None, record: ProgressRecord) -> None:
        logger.info(
            "video_progress_updated",
            video_id=str(record.video_id),
            course_id=str(record.course_id),
            watched_percentage=record.watched_percentage,
            is_completed=record.is_completed,
        )
        if record.is_completed and (previous is None or not previous.is_completed):
            logger.info(
                "video_completed",
                video_id=str(record.video_id),
                course_id=str(record.course_id),
            )

    async def mark_completed(
        self,
        user_id: UUID,
        course_id: UUID,
        video_id: UUID,
        total_duration: float,
    ) -> ProgressRecord:
        """Complete a video without a watch report. Idempotent."""
        for _ in range(self.max_attempts):
            existing = await self.repository.get(user_id, course_id, video_id)
            if existing is not None and existing.is_completed:
                return existing

            record = apply_manual_completion(
                existing,
                user_id=user_id,
                course_id=course_id,
                video_id=video_id,
                total_duration=total_duration,
                now=self.clock(),
            )
            if await self.repository.save(record, expected=existing):
                self._log_write(existing, record)
                return record

        raise InvalidStateError("Progress could not be saved, retry the request")

    async def reset(
        self, user_id: UUID, course_id: UUID, video_id: UUID
    ) -> ProgressRecord:
        """Clear a video's progress and completion.

        Raises:
            NotFoundError: No progress recorded for the video
        """
        for _ in range(self.max_attempts):
            existing = await self.repository.get(user_id, course_id, video_id)
            if existing is None:
                raise NotFoundError("Progress not found")

            record = reset_completion(existing, self.clock())
            if await self.repository.overwrite(record, expected=existing):
                await self.throttle.release(user_id, video_id)
                await self.throttle.pop_playhead(user_id, video_id)
                logger.info(
                    "video_completion_reset",
                    video_id=str(video_id),
                    user_id=str(user_id),
                )
                return record

        raise InvalidStateError("Progress could not be reset, retry the request")

    async def get(
        self, user_id: UUID, course_id: UUID, video_id: UUID
    ) -> ProgressRecord | None:
        return await self.repository.get(user_id, course_id, video_id)

    async def get_resume_position(
        self, user_id: UUID, course_id: UUID, video_id: UUID
    ) -> float:
        """Where playback should resume (0 when never watched)."""
        record = await self.repository.get(user_id, course_id, video_id)
        return record.last_position_seconds if record else 0.0

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressRecord]:
        return await self.repository.list_for_course(user_id, course_id)
