# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Enrollment persistence.

`insert_if_absent` and `replace_if_status` are lightweight transactions; the
ledger relies on their return value to detect a concurrent enrollment.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from academy_core.catalog.repository import was_applied

from .models import EnrollmentRecord, EnrollmentStatus


if TYPE_CHECKING:
    from datetime import datetime

    from cassandra.cluster import Session


class EnrollmentRepository(Protocol):
    async def get(self, course_id: UUID, user_id: UUID) -> EnrollmentRecord | None: ...

    async def insert_if_absent(self, record: EnrollmentRecord) -> bool: ...

    async def replace_if_status(
        self, record: EnrollmentRecord, expected_status: EnrollmentStatus
    ) -> bool: ...

    async def touch(
        self, course_id: UUID, user_id: UUID, accessed_at: "datetime"
    ) -> None: ...

    async def list_by_user(self, user_id: UUID) -> list[EnrollmentRecord]: ...


class CassandraEnrollmentRepository:
    """Cassandra-backed enrollment storage."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_enrollments
            (course_id, user_id, version_enrolled, status, enrolled_at,
             last_accessed_at, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._replace = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_enrollments
            SET version_enrolled = ?, status = ?, enrolled_at = ?,
                last_accessed_at = ?, completed_at = ?
            WHERE course_id = ? AND user_id = ?
            IF status = ?
        """)

        self._touch = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_enrollments
            SET last_accessed_at = ?
            WHERE course_id = ? AND user_id = ?
        """)

        self._upsert_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, version_enrolled, status, enrolled_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ?
        """)

    async def _write_user_lookup(self, record: EnrollmentRecord) -> None:
        await self.session.aexecute(
            self._upsert_by_user,
            [
                record.user_id,
                record.course_id,
                record.version_enrolled,
                record.status.value,
                record.enrolled_at,
            ],
        )

    async def get(self, course_id: UUID, user_id: UUID) -> EnrollmentRecord | None:
        result = await self.session.aexecute(self._get, [course_id, user_id])
        row = result.one()
        return EnrollmentRecord.from_row(row) if row else None

    async def insert_if_absent(self, record: EnrollmentRecord) -> bool:
        result = await self.session.aexecute(
            self._insert,
            [
                record.course_id,
                record.user_id,
                record.version_enrolled,
                record.status.value,
                record.enrolled_at,
                record.last_accessed_at,
                record.completed_at,
            ],
        )
        if not was_applied(result):
            return False
        await self._write_user_lookup(record)
        return True

    async def replace_if_status(
        self, record: EnrollmentRecord, expected_status: EnrollmentStatus
    ) -> bool:
        result = await self.session.aexecute(
            self._replace,
            [
                record.version_enrolled,
                record.status.value,
                record.enrolled_at,
                record.last_accessed_at,
                record.completed_at,
                record.course_id,
                record.user_id,
                expected_status.value,
            ],
        )
        if not was_applied(result):
            return False
        await self._write_user_lookup(record)
        return True

    async def touch(
        self, course_id: UUID, user_id: UUID, accessed_at: "datetime"
    ) -> None:
        await self.session.aexecute(self._touch, [accessed_at, course_id, user_id])

    async def list_by_user(self, user_id: UUID) -> list[EnrollmentRecord]:
        result = await self.session.aexecute(self._list_by_user, [user_id])
        records = []
        for row in result:
            record = await self.get(row.course_id, user_id)
            if record is not None:
                records.append(record)
        return records
