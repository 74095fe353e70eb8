"""Tests for CassandraCatalogRepository video writes."""

from dataclasses import replace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from academy_core.catalog.models import CourseVersion, Video, VideoStatus
from academy_core.catalog.repository import CassandraCatalogRepository


@pytest.fixture
def mock_session():
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: Mock(query_string=query))
    session.aexecute = AsyncMock()
    return session


@pytest.fixture
def repository(mock_session) -> CassandraCatalogRepository:
    return CassandraCatalogRepository(mock_session, "test_keyspace")


@pytest.fixture
def video() -> Video:
    return Video(
        course_id=uuid4(), course_version=2, title="Lesson", order=3, duration=90
    )


class TestVideoUpdates:
    @pytest.mark.asyncio
    async def test_update_video_writes_both_tables(
        self, repository, mock_session, video
    ) -> None:
        archived = replace(video, status=VideoStatus.ARCHIVED, is_free_preview=True)

        await repository.update_video(archived)

        calls = mock_session.aexecute.await_args_list
        assert [c.args[0] for c in calls] == [
            repository._update_video,
            repository._update_video_by_version,
        ]
        assert calls[0].args[1] == ["archived", True, video.id]
        assert calls[1].args[1] == [
            "archived",
            True,
            video.course_id,
            2,
            3,
            video.id,
        ]

    @pytest.mark.asyncio
    async def test_version_state_rewrites_video_ids(
        self, repository, mock_session, video
    ) -> None:
        version = CourseVersion(
            course_id=video.course_id,
            version_number=2,
            title="Lesson",
            video_ids=[video.id],
            total_videos=1,
            total_duration=90,
        )

        await repository.update_version_state(version)

        statement, params = mock_session.aexecute.await_args.args
        assert "video_ids = ?" in statement.query_string
        assert params[-3:] == [[video.id], video.course_id, 2]
