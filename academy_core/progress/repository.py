# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Progress persistence.

Every write is a lightweight transaction:

- first watch: `INSERT ... IF NOT EXISTS`
- advancing write: `UPDATE ... IF watched_duration <= <incoming> AND
  is_completed = <as read>`, so a lower value can never overwrite a higher
  one and a completion written by another request is never lost
- playhead-only write: `UPDATE ... IF EXISTS`
- admin reset: `UPDATE ... IF watched_duration = <as read> AND
  is_completed = <as read>`
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from academy_core.catalog.repository import was_applied

from .models import ProgressRecord


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ProgressRepository(Protocol):
    async def get(
        self, user_id: UUID, course_id: UUID, video_id: UUID
    ) -> ProgressRecord | None: ...

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressRecord]: ...

    async def save(
        self, record: ProgressRecord, expected: ProgressRecord | None
    ) -> bool: ...

    async def update_playhead(self, record: ProgressRecord) -> bool: ...

    async def overwrite(
        self, record: ProgressRecord, expected: ProgressRecord
    ) -> bool: ...


class CassandraProgressRepository:
    """Cassandra-backed progress storage."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.video_progress
            WHERE user_id = ? AND course_id = ? AND video_id = ?
        """)

        self._list_for_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.video_progress
            WHERE user_id = ? AND course_id = ?
        """)

        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.video_progress
            (user_id, course_id, video_id, watched_duration, total_duration,
             watched_percentage, completion_percentage, is_completed,
             last_position_seconds, watch_count, first_watched_at,
             last_watched_at, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        update_columns = """
            SET watched_duration = ?, total_duration = ?, watched_percentage = ?,
                completion_percentage = ?, is_completed = ?,
                last_position_seconds = ?, watch_count = ?,
                last_watched_at = ?, completed_at = ?
            WHERE user_id = ? AND course_id = ? AND video_id = ?
        """

        self._advance = self.session.prepare(f"""
            UPDATE {self.keyspace}.video_progress
            {update_columns}
            IF watched_duration <= ? AND is_completed = ?
        """)

        self._overwrite = self.session.prepare(f"""
            UPDATE {self.keyspace}.video_progress
            {update_columns}
            IF watched_duration = ? AND is_completed = ?
        """)

        self._update_playhead = self.session.prepare(f"""
            UPDATE {self.keyspace}.video_progress
            SET last_position_seconds = ?, last_watched_at = ?
            WHERE user_id = ? AND course_id = ? AND video_id = ?
            IF EXISTS
        """)

    @staticmethod
    def _update_values(record: ProgressRecord) -> list:
        return [
            record.watched_duration,
            record.total_duration,
            record.watched_percentage,
            record.completion_percentage,
            record.is_completed,
            record.last_position_seconds,
            record.watch_count,
            record.last_watched_at,
            record.completed_at,
            record.user_id,
            record.course_id,
            record.video_id,
        ]

    async def get(
        self, user_id: UUID, course_id: UUID, video_id: UUID
    ) -> ProgressRecord | None:
        result = await self.session.aexecute(self._get, [user_id, course_id, video_id])
        row = result.one()
        return ProgressRecord.from_row(row) if row else None

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressRecord]:
        result = await self.session.aexecute(self._list_for_course, [user_id, course_id])
        return [ProgressRecord.from_row(row) for row in result]

    async def save(
        self, record: ProgressRecord, expected: ProgressRecord | None
    ) -> bool:
        """Insert the first record, or advance the stored one.

        `expected` is the record the new value was merged from (None when no
        record was found). Returns False when another writer got there first.
        """
        if expected is None:
            result = await self.session.aexecute(
                self._insert,
                [
                    record.user_id,
                    record.course_id,
                    record.video_id,
                    record.watched_duration,
                    record.total_duration,
                    record.watched_percentage,
                    record.completion_percentage,
                    record.is_completed,
                    record.last_position_seconds,
                    record.watch_count,
                    record.first_watched_at,
                    record.last_watched_at,
                    record.completed_at,
                ],
            )
            return was_applied(result)

        result = await self.session.aexecute(
            self._advance,
            [
                *self._update_values(record),
                record.watched_duration,
                expected.is_completed,
            ],
        )
        return was_applied(result)

    async def update_playhead(self, record: ProgressRecord) -> bool:
        result = await self.session.aexecute(
            self._update_playhead,
            [
                record.last_position_seconds,
                record.last_watched_at,
                record.user_id,
                record.course_id,
                record.video_id,
            ],
        )
        return was_applied(result)

    async def overwrite(
        self, record: ProgressRecord, expected: ProgressRecord
    ) -> bool:
        """Replace the stored values if they are still exactly `expected`."""
        result = await self.session.aexecute(
            self._overwrite,
            [
                *self._update_values(record),
                expected.watched_duration,
                expected.is_completed,
            ],
        )
        return was_applied(result)
