"""Progress arithmetic and merge rules.

All functions are pure. Percentages use half-up rounding (2.5 -> 3), the
convention player clients use when they display the same numbers.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from academy_core.core.exceptions import ValidationError

from .models import ProgressRecord


COMPLETION_THRESHOLD = 90
OVERSHOOT_TOLERANCE = 0.10


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def validate_progress_data(
    watched_duration: float,
    total_duration: float,
    tolerance: float = OVERSHOOT_TOLERANCE,
) -> list[str]:
    """Return the list of problems with a progress report (empty when valid).

    Players report slightly past the end of a video, so a watched duration up
    to `total * (1 + tolerance)` is accepted and clamped later.
    """
    errors = []
    if not math.isfinite(watched_duration) or not math.isfinite(total_duration):
        return ["Durations must be finite numbers"]
    if watched_duration < 0:
        errors.append("Watched duration cannot be negative")
    if total_duration <= 0:
        errors.append("Total duration must be greater than 0")
    elif watched_duration > total_duration * (1 + tolerance):
        errors.append("Watched duration cannot exceed total duration")
    return errors


def ensure_valid_progress(
    watched_duration: float,
    total_duration: float,
    tolerance: float = OVERSHOOT_TOLERANCE,
) -> None:
    errors = validate_progress_data(watched_duration, total_duration, tolerance)
    if errors:
        raise ValidationError(errors=errors)


def calculate_percentage(watched_duration: float, total_duration: float) -> int:
    """Watched share of a video as an integer percentage in 0..100."""
    if total_duration <= 0:
        return 0
    percentage = round_half_up(watched_duration / total_duration * 100)
    return max(0, min(100, percentage))


@dataclass(frozen=True)
class Completion:
    is_completed: bool
    completion_percentage: int


def determine_completion(
    percentage: int, threshold: int = COMPLETION_THRESHOLD
) -> Completion:
    """Reaching the threshold completes the video and saturates it to 100%."""
    if percentage >= threshold:
        return Completion(is_completed=True, completion_percentage=100)
    return Completion(is_completed=False, completion_percentage=percentage)


def apply_watch_event(
    existing: ProgressRecord | None,
    *,
    user_id: UUID,
    course_id: UUID,
    video_id: UUID,
    watched_duration: float,
    total_duration: float,
    position: float,
    now: datetime,
    threshold: int = COMPLETION_THRESHOLD,
) -> tuple[ProgressRecord, bool]:
    """Merge a (validated) watch report into the stored record.

    Returns the new record and whether it advances the high-water mark. A
    report below the stored `watched_duration` only moves the resume
    playhead; completion is never cleared.
    """
    watched = min(watched_duration, total_duration)
    position = max(0.0, min(position, total_duration))
    percentage = calculate_percentage(watched, total_duration)
    completion = determine_completion(percentage, threshold)

    if existing is None:
        return (
            ProgressRecord(
                user_id=user_id,
                course_id=course_id,
                video_id=video_id,
                watched_duration=watched,
                total_duration=total_duration,
                watched_percentage=percentage,
                completion_percentage=completion.completion_percentage,
                is_completed=completion.is_completed,
                last_position_seconds=position,
                watch_count=1,
                first_watched_at=now,
                last_watched_at=now,
                completed_at=now if completion.is_completed else None,
            ),
            True,
        )

    if watched < existing.watched_duration:
        return (
            replace(existing, last_position_seconds=position, last_watched_at=now),
            False,
        )

    is_completed = existing.is_completed or completion.is_completed
    return (
        replace(
            existing,
            watched_duration=watched,
            total_duration=total_duration,
            watched_percentage=percentage,
            completion_percentage=100 if is_completed else completion.completion_percentage,
            is_completed=is_completed,
            last_position_seconds=position,
            watch_count=existing.watch_count + 1,
            last_watched_at=now,
            completed_at=existing.completed_at or (now if is_completed else None),
        ),
        True,
    )


def apply_manual_completion(
    existing: ProgressRecord | None,
    *,
    user_id: UUID,
    course_id: UUID,
    video_id: UUID,
    total_duration: float,
    now: datetime,
) -> ProgressRecord:
    """Mark a video completed without a watch report ("mark as watched")."""
    if existing is None:
        return ProgressRecord(
            user_id=user_id,
            course_id=course_id,
            video_id=video_id,
            watched_duration=total_duration,
            total_duration=total_duration,
            watched_percentage=100,
            completion_percentage=100,
            is_completed=True,
            last_position_seconds=0.0,
            watch_count=1,
            first_watched_at=now,
            last_watched_at=now,
            completed_at=now,
        )

    total = existing.total_duration or total_duration
    return replace(
        existing,
        watched_duration=max(existing.watched_duration, total),
        total_duration=total,
        watched_percentage=100,
        completion_percentage=100,
        is_completed=True,
        watch_count=existing.watch_count + 1,
        last_watched_at=now,
        completed_at=existing.completed_at or now,
    )


def reset_completion(record: ProgressRecord, now: datetime) -> ProgressRecord:
    """Clear progress so the video can be watched from scratch."""
    return replace(
        record,
        watched_duration=0.0,
        watched_percentage=0,
        completion_percentage=0,
        is_completed=False,
        last_position_seconds=0.0,
        last_watched_at=now,
        completed_at=None,
    )
