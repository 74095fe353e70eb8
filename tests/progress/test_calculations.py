"""Tests for progress arithmetic and merge rules."""

import math
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from academy_core.core.exceptions import ValidationError
from academy_core.progress.calculations import (
    apply_manual_completion,
    apply_watch_event,
    calculate_percentage,
    determine_completion,
    ensure_valid_progress,
    reset_completion,
    round_half_up,
    validate_progress_data,
)


NOW = datetime(2024, 3, 1, 10, 0, tzinfo=UTC)


@pytest.fixture
def ids() -> dict:
    return {"user_id": uuid4(), "course_id": uuid4(), "video_id": uuid4()}


def watch(existing, ids, watched, total=100.0, position=None, now=NOW, threshold=90):
    return apply_watch_event(
        existing,
        **ids,
        watched_duration=watched,
        total_duration=total,
        position=watched if position is None else position,
        now=now,
        threshold=threshold,
    )


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected",
        [(0.0, 0), (2.4, 2), (2.5, 3), (66.666, 67), (89.5, 90), (99.4, 99)],
    )
    def test_rounds_half_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected


class TestValidateProgressData:
    def test_valid_report(self) -> None:
        assert validate_progress_data(50, 100) == []

    def test_negative_watched_duration(self) -> None:
        errors = validate_progress_data(-1, 100)
        assert errors == ["Watched duration cannot be negative"]

    @pytest.mark.parametrize("total", [0, -10])
    def test_non_positive_total(self, total: float) -> None:
        assert "Total duration must be greater than 0" in validate_progress_data(0, total)

    def test_overshoot_within_tolerance_accepted(self) -> None:
        """Players may report up to 10% past the end."""
        assert validate_progress_data(105, 100) == []
        assert validate_progress_data(110, 100) == []

    def test_overshoot_beyond_tolerance_rejected(self) -> None:
        assert validate_progress_data(150, 100) == [
            "Watched duration cannot exceed total duration"
        ]

    @pytest.mark.parametrize("value", [math.nan, math.inf])
    def test_non_finite_rejected(self, value: float) -> None:
        assert validate_progress_data(value, 100)
        assert validate_progress_data(10, value)

    def test_ensure_valid_progress_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid_progress(150, 100)
        assert exc_info.value.code == "validation_error"
        assert exc_info.value.errors == ["Watched duration cannot exceed total duration"]


class TestCalculatePercentage:
    @pytest.mark.parametrize(
        "watched,total,expected",
        [(0, 100, 0), (45, 100, 45), (1, 3, 33), (2, 3, 67), (100, 100, 100)],
    )
    def test_percentages(self, watched: float, total: float, expected: int) -> None:
        assert calculate_percentage(watched, total) == expected

    def test_clamped_to_100(self) -> None:
        assert calculate_percentage(105, 100) == 100

    def test_zero_total_is_zero(self) -> None:
        assert calculate_percentage(10, 0) == 0


class TestDetermineCompletion:
    def test_threshold_completes_and_saturates(self) -> None:
        completion = determine_completion(90)
        assert completion.is_completed is True
        assert completion.completion_percentage == 100

    def test_below_threshold(self) -> None:
        completion = determine_completion(89)
        assert completion.is_completed is False
        assert completion.completion_percentage == 89

    def test_custom_threshold(self) -> None:
        assert determine_completion(80, threshold=80).is_completed is True


class TestApplyWatchEvent:
    def test_first_report_creates_record(self, ids: dict) -> None:
        record, advanced = watch(None, ids, 45)

        assert advanced is True
        assert record.watched_duration == 45
        assert record.watched_percentage == 45
        assert record.completion_percentage == 45
        assert record.is_completed is False
        assert record.watch_count == 1
        assert record.first_watched_at == NOW
        assert record.completed_at is None

    def test_overshoot_is_clamped_and_completes(self, ids: dict) -> None:
        record, _ = watch(None, ids, 105)

        assert record.watched_duration == 100
        assert record.watched_percentage == 100
        assert record.is_completed is True
        assert record.completed_at == NOW

    def test_reaching_threshold_completes(self, ids: dict) -> None:
        first, _ = watch(None, ids, 50)
        record, advanced = watch(first, ids, 90, now=NOW + timedelta(seconds=30))

        assert advanced is True
        assert record.is_completed is True
        assert record.completion_percentage == 100
        assert record.watched_percentage == 90
        assert record.watch_count == 2
        assert record.completed_at == NOW + timedelta(seconds=30)

    def test_lower_report_only_moves_playhead(self, ids: dict) -> None:
        first, _ = watch(None, ids, 60)
        later = NOW + timedelta(minutes=1)
        record, advanced = watch(first, ids, 20, now=later)

        assert advanced is False
        assert record.watched_duration == 60
        assert record.watched_percentage == 60
        assert record.last_position_seconds == 20
        assert record.last_watched_at == later
        assert record.watch_count == 1

    def test_completion_is_never_cleared(self, ids: dict) -> None:
        completed, _ = watch(None, ids, 95)
        record, advanced = watch(completed, ids, 10)

        assert advanced is False
        assert record.is_completed is True
        assert record.completion_percentage == 100
        assert record.completed_at == NOW

    def test_rewatch_after_completion_keeps_completed_at(self, ids: dict) -> None:
        completed, _ = watch(None, ids, 92)
        later = NOW + timedelta(days=1)
        record, advanced = watch(completed, ids, 100, now=later)

        assert advanced is True
        assert record.is_completed is True
        assert record.completed_at == NOW
        assert record.watched_duration == 100

    def test_position_clamped_to_video(self, ids: dict) -> None:
        record, _ = watch(None, ids, 30, position=500)
        assert record.last_position_seconds == 100


class TestManualCompletionAndReset:
    def test_manual_completion_without_record(self, ids: dict) -> None:
        record = apply_manual_completion(None, **ids, total_duration=300, now=NOW)

        assert record.is_completed is True
        assert record.watched_duration == 300
        assert record.watched_percentage == 100
        assert record.completed_at == NOW

    def test_manual_completion_keeps_history(self, ids: dict) -> None:
        first, _ = watch(None, ids, 40)
        record = apply_manual_completion(
            first, **ids, total_duration=100, now=NOW + timedelta(hours=1)
        )

        assert record.first_watched_at == NOW
        assert record.is_completed is True
        assert record.watch_count == 2

    def test_reset_clears_completion(self, ids: dict) -> None:
        completed, _ = watch(None, ids, 100)
        later = NOW + timedelta(days=2)
        record = reset_completion(completed, later)

        assert record.is_completed is False
        assert record.completion_percentage == 0
        assert record.watched_duration == 0
        assert record.completed_at is None
        assert record.first_watched_at == NOW
        assert record.last_watched_at == later
