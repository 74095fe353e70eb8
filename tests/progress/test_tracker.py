"""Tests for ProgressTracker (throttled, concurrency-safe writes)."""

import asyncio
from dataclasses import replace
from uuid import uuid4

import pytest

from academy_core.core.exceptions import NotFoundError, ValidationError
from academy_core.progress.models import ProgressRecord
from academy_core.progress.throttle import ProgressThrottle
from academy_core.progress.tracker import ProgressTracker


@pytest.fixture
def ids() -> tuple:
    return uuid4(), uuid4(), uuid4()


@pytest.fixture
def repository(services):
    return services.progress_repository


@pytest.fixture
def tracker(services) -> ProgressTracker:
    return services.tracker


class TestRecordWatch:
    @pytest.mark.asyncio
    async def test_first_report_is_persisted(self, tracker, repository, ids) -> None:
        result = await tracker.record_watch(*ids, 45, 100)

        assert result.skipped is False
        assert result.watched_percentage == 45
        assert result.record.watched_duration == 45
        assert await repository.get(*ids) == result.record

    @pytest.mark.asyncio
    async def test_invalid_report_rejected(self, tracker, repository, ids) -> None:
        with pytest.raises(ValidationError):
            await tracker.record_watch(*ids, 150, 100)
        assert repository.records == {}

    @pytest.mark.asyncio
    async def test_overshoot_within_tolerance_completes(self, tracker, ids) -> None:
        result = await tracker.record_watch(*ids, 105, 100)

        assert result.watched_percentage == 100
        assert result.record.is_completed is True
        assert result.record.watched_duration == 100

    @pytest.mark.asyncio
    async def test_report_inside_window_is_skipped(self, tracker, repository, ids) -> None:
        await tracker.record_watch(*ids, 10, 100)
        result = await tracker.record_watch(*ids, 20, 100)

        assert result.skipped is True
        assert result.record is None
        assert result.watched_percentage == 20
        assert (await repository.get(*ids)).watched_duration == 10

    @pytest.mark.asyncio
    async def test_skipped_reports_fold_into_next_write(
        self, services, tracker, repository, ids
    ) -> None:
        await tracker.record_watch(*ids, 10, 100)
        await tracker.record_watch(*ids, 30, 100)
        await tracker.record_watch(*ids, 25, 100)

        services.clock.advance(6)
        result = await tracker.record_watch(*ids, 28, 100)

        assert result.skipped is False
        assert result.record.watched_duration == 30
        assert (await repository.get(*ids)).watched_duration == 30

    @pytest.mark.asyncio
    async def test_completing_report_bypasses_window(
        self, tracker, repository, ids
    ) -> None:
        await tracker.record_watch(*ids, 50, 100)
        result = await tracker.record_watch(*ids, 95, 100)

        assert result.skipped is False
        assert result.record.is_completed is True
        assert (await repository.get(*ids)).is_completed is True

    @pytest.mark.asyncio
    async def test_completed_video_reports_are_throttled(self, tracker, ids) -> None:
        await tracker.record_watch(*ids, 100, 100)
        result = await tracker.record_watch(*ids, 100, 100)
        assert result.skipped is True

    @pytest.mark.asyncio
    async def test_lower_report_keeps_high_water_mark(
        self, services, tracker, repository, ids
    ) -> None:
        await tracker.record_watch(*ids, 70, 100)
        services.clock.advance(6)
        result = await tracker.record_watch(*ids, 20, 100)

        stored = await repository.get(*ids)
        assert result.record.watched_duration == 70
        assert stored.watched_duration == 70
        assert stored.last_position_seconds == 20

    @pytest.mark.asyncio
    async def test_failed_write_releases_window(self, services, ids) -> None:
        class FailingRepository:
            async def get(self, *args):
                return None

            async def save(self, record, expected):
                raise ConnectionError("cassandra down")

        throttle = ProgressThrottle(None, 5.0, clock=services.clock.monotonic)
        tracker = ProgressTracker(FailingRepository(), throttle)

        with pytest.raises(ConnectionError):
            await tracker.record_watch(*ids, 10, 100)
        assert await throttle.try_acquire(ids[0], ids[2]) is True


class TestConcurrentWrites:
    @pytest.mark.asyncio
    async def test_conflict_retries_from_fresh_read(
        self, tracker, repository, ids
    ) -> None:
        """A competing writer that lands first forces a re-read and merge."""
        user_id, course_id, video_id = ids

        async def competing_write() -> None:
            repository.records[ids] = ProgressRecord(
                user_id=user_id,
                course_id=course_id,
                video_id=video_id,
                watched_duration=80,
                total_duration=100,
                watched_percentage=80,
                completion_percentage=80,
                watch_count=1,
            )

        repository.before_write = competing_write
        result = await tracker.record_watch(*ids, 50, 100)

        stored = await repository.get(*ids)
        assert stored.watched_duration == 80
        assert stored.last_position_seconds == 50
        assert result.record.watched_duration == 80

    @pytest.mark.asyncio
    async def test_completion_from_other_writer_is_kept(
        self, services, tracker, repository, ids
    ) -> None:
        await tracker.record_watch(*ids, 40, 100)
        services.clock.advance(6)

        async def competing_completion() -> None:
            stored = repository.records[ids]
            repository.records[ids] = replace(
                stored,
                watched_duration=95,
                watched_percentage=95,
                completion_percentage=100,
                is_completed=True,
            )

        repository.before_write = competing_completion
        await tracker.record_watch(*ids, 60, 100)

        stored = await repository.get(*ids)
        assert stored.is_completed is True
        assert stored.watched_duration == 95

    @pytest.mark.asyncio
    async def test_parallel_reports_converge_on_maximum(self, services, ids) -> None:
        trackers = [
            ProgressTracker(
                services.progress_repository,
                ProgressThrottle(None, 5.0, clock=services.clock.monotonic),
                clock=services.clock.now,
            )
            for _ in range(4)
        ]

        await asyncio.gather(
            *(
                t.record_watch(*ids, watched, 100)
                for t, watched in zip(trackers, [30, 70, 50, 60], strict=True)
            )
        )

        stored = await services.progress_repository.get(*ids)
        assert stored.watched_duration == 70


class TestManualCompletionAndReset:
    @pytest.mark.asyncio
    async def test_mark_completed_is_idempotent(self, tracker, repository, ids) -> None:
        first = await tracker.mark_completed(*ids, 100)
        second = await tracker.mark_completed(*ids, 100)

        assert first.is_completed is True
        assert second == first
        assert repository.save_calls == 1

    @pytest.mark.asyncio
    async def test_reset_clears_completion_and_window(self, tracker, repository, ids) -> None:
        await tracker.record_watch(*ids, 100, 100)
        reset = await tracker.reset(*ids)

        assert reset.is_completed is False
        assert (await repository.get(*ids)).completion_percentage == 0

        result = await tracker.record_watch(*ids, 20, 100)
        assert result.skipped is False
        assert result.record.watched_duration == 20

    @pytest.mark.asyncio
    async def test_reset_without_progress(self, tracker, ids) -> None:
        with pytest.raises(NotFoundError):
            await tracker.reset(*ids)

    @pytest.mark.asyncio
    async def test_resume_position(self, tracker, ids) -> None:
        assert await tracker.get_resume_position(*ids) == 0.0
        await tracker.record_watch(*ids, 40, 100, position=35)
        assert await tracker.get_resume_position(*ids) == 35
