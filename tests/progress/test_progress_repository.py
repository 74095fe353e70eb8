"""Tests for CassandraProgressRepository conditional writes."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from academy_core.progress.models import ProgressRecord
from academy_core.progress.repository import CassandraProgressRepository


def lwt_result(applied: bool) -> Mock:
    result = Mock()
    result.was_applied = applied
    return result


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: Mock(query_string=query))
    # cassandra-asyncio-driver
    session.aexecute = AsyncMock(return_value=lwt_result(True))
    return session


@pytest.fixture
def repository(mock_session) -> CassandraProgressRepository:
    return CassandraProgressRepository(mock_session, "test_keyspace")


@pytest.fixture
def record() -> ProgressRecord:
    return ProgressRecord(
        user_id=uuid4(),
        course_id=uuid4(),
        video_id=uuid4(),
        watched_duration=60,
        total_duration=100,
        watched_percentage=60,
        completion_percentage=60,
        last_position_seconds=60,
        watch_count=2,
    )


class TestStatements:
    def test_statements_are_lightweight_transactions(self, repository) -> None:
        assert "IF NOT EXISTS" in repository._insert.query_string
        assert (
            "IF watched_duration <= ? AND is_completed = ?"
            in repository._advance.query_string
        )
        assert (
            "IF watched_duration = ? AND is_completed = ?"
            in repository._overwrite.query_string
        )
        assert "IF EXISTS" in repository._update_playhead.query_string
        assert "test_keyspace.video_progress" in repository._get.query_string


class TestSave:
    @pytest.mark.asyncio
    async def test_first_record_uses_insert(self, repository, mock_session, record) -> None:
        assert await repository.save(record, expected=None) is True

        statement, values = mock_session.aexecute.await_args.args
        assert statement is repository._insert
        assert values[:3] == [record.user_id, record.course_id, record.video_id]

    @pytest.mark.asyncio
    async def test_advance_conditions_on_read_values(
        self, repository, mock_session, record
    ) -> None:
        expected = ProgressRecord(
            user_id=record.user_id,
            course_id=record.course_id,
            video_id=record.video_id,
            watched_duration=30,
            total_duration=100,
        )

        await repository.save(record, expected=expected)

        statement, values = mock_session.aexecute.await_args.args
        assert statement is repository._advance
        assert values[-2:] == [60, False]

    @pytest.mark.asyncio
    async def test_rejected_write_returns_false(
        self, repository, mock_session, record
    ) -> None:
        mock_session.aexecute.return_value = lwt_result(False)
        assert await repository.save(record, expected=record) is False
        assert await repository.update_playhead(record) is False

    @pytest.mark.asyncio
    async def test_overwrite_conditions_on_exact_values(
        self, repository, mock_session, record
    ) -> None:
        await repository.overwrite(record, expected=record)

        statement, values = mock_session.aexecute.await_args.args
        assert statement is repository._overwrite
        assert values[-2:] == [60, False]


class TestReads:
    @pytest.mark.asyncio
    async def test_get_missing(self, repository, mock_session) -> None:
        result = Mock()
        result.one = Mock(return_value=None)
        mock_session.aexecute.return_value = result

        assert await repository.get(uuid4(), uuid4(), uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_maps_row(self, repository, mock_session, record) -> None:
        row = Mock(**record.to_dict())
        result = Mock()
        result.one = Mock(return_value=row)
        mock_session.aexecute.return_value = result

        loaded = await repository.get(record.user_id, record.course_id, record.video_id)

        assert loaded.video_id == record.video_id
        assert loaded.watched_duration == 60
        assert loaded.watch_count == 2
