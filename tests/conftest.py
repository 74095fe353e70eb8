"""Shared fixtures.

The in-memory repositories implement the same conditional-write contract as
the Cassandra ones (each conditional method returns whether it applied), so
services can be exercised without a database.
"""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Awaitable, Callable  # noqa: E402
from dataclasses import replace  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from academy_core.archive.service import ArchiveLifecycleManager  # noqa: E402
from academy_core.auth.permissions import UserRole  # noqa: E402
from academy_core.auth.schemas import UserContext  # noqa: E402
from academy_core.catalog.models import (  # noqa: E402
    Course,
    CourseVersion,
    Video,
)
from academy_core.catalog.service import CatalogService  # noqa: E402
from academy_core.config import get_settings  # noqa: E402
from academy_core.enrollments.models import EnrollmentRecord  # noqa: E402
from academy_core.enrollments.service import EnrollmentLedger  # noqa: E402
from academy_core.entitlements.service import EntitlementService  # noqa: E402
from academy_core.progress.aggregator import CourseProgressAggregator  # noqa: E402
from academy_core.progress.models import ProgressRecord  # noqa: E402
from academy_core.progress.service import ProgressService  # noqa: E402
from academy_core.progress.throttle import ProgressThrottle  # noqa: E402
from academy_core.progress.tracker import ProgressTracker  # noqa: E402


# ==============================================================================
# In-memory repositories
# ==============================================================================


class InMemoryCatalogRepository:
    def __init__(self) -> None:
        self.courses: dict[UUID, Course] = {}
        self.versions: dict[tuple[UUID, int], CourseVersion] = {}
        self.videos: dict[UUID, Video] = {}

    async def get_course(self, course_id):
        course = self.courses.get(course_id)
        return replace(course) if course else None

    async def insert_course(self, course):
        if course.id in self.courses:
            return False
        self.courses[course.id] = replace(course)
        return True

    async def list_courses_by_status(self, status):
        return [replace(c) for c in self.courses.values() if c.status == status]

    async def update_course_lifecycle(self, course, expected_status):
        stored = self.courses.get(course.id)
        if stored is None or stored.status != expected_status:
            return False
        self.courses[course.id] = replace(
            stored,
            status=course.status,
            archive=course.archive,
            updated_at=course.updated_at,
        )
        return True

    async def compare_and_set_enrollment_count(self, course_id, expected, new):
        stored = self.courses.get(course_id)
        if stored is None or stored.total_enrollments != expected:
            return False
        self.courses[course_id] = replace(stored, total_enrollments=new)
        return True

    async def compare_and_set_version(self, course_id, expected_version, new_version):
        stored = self.courses.get(course_id)
        if stored is None or stored.version != expected_version:
            return False
        self.courses[course_id] = replace(
            stored, version=new_version, current_version=new_version
        )
        return True

    async def insert_version(self, version):
        key = (version.course_id, version.version_number)
        if key in self.versions:
            return False
        self.versions[key] = replace(version, video_ids=list(version.video_ids))
        return True

    async def get_version(self, course_id, version_number):
        version = self.versions.get((course_id, version_number))
        return replace(version) if version else None

    async def list_versions(self, course_id):
        versions = [v for (cid, _), v in self.versions.items() if cid == course_id]
        return sorted(
            (replace(v) for v in versions),
            key=lambda v: v.version_number,
            reverse=True,
        )

    async def update_version_state(self, version):
        key = (version.course_id, version.version_number)
        stored = self.versions[key]
        self.versions[key] = replace(
            stored,
            status=version.status,
            archived_at=version.archived_at,
            archive_reason=version.archive_reason,
            archive_storage_path=version.archive_storage_path,
            total_videos=version.total_videos,
            total_duration=version.total_duration,
            video_ids=list(version.video_ids),
        )

    async def insert_video(self, video):
        self.videos[video.id] = replace(video)
        version = self.versions.get((video.course_id, video.course_version))
        if version is not None:
            version.video_ids.append(video.id)

    async def update_video(self, video):
        stored = self.videos[video.id]
        self.videos[video.id] = replace(
            stored, status=video.status, is_free_preview=video.is_free_preview
        )

    async def get_video(self, video_id):
        video = self.videos.get(video_id)
        return replace(video) if video else None

    async def list_version_videos(self, course_id, version_number):
        return sorted(
            (
                replace(v)
                for v in self.videos.values()
                if v.course_id == course_id and v.course_version == version_number
            ),
            key=lambda v: v.order,
        )


class InMemoryEnrollmentRepository:
    def __init__(self) -> None:
        self.records: dict[tuple[UUID, UUID], EnrollmentRecord] = {}

    async def get(self, course_id, user_id):
        record = self.records.get((course_id, user_id))
        return replace(record) if record else None

    async def insert_if_absent(self, record):
        key = (record.course_id, record.user_id)
        if key in self.records:
            return False
        self.records[key] = replace(record)
        return True

    async def replace_if_status(self, record, expected_status):
        key = (record.course_id, record.user_id)
        stored = self.records.get(key)
        if stored is None or stored.status != expected_status:
            return False
        self.records[key] = replace(record)
        return True

    async def touch(self, course_id, user_id, accessed_at):
        stored = self.records.get((course_id, user_id))
        if stored is not None:
            self.records[(course_id, user_id)] = replace(
                stored, last_accessed_at=accessed_at
            )

    async def list_by_user(self, user_id):
        return [replace(r) for (_, uid), r in self.records.items() if uid == user_id]


class InMemoryProgressRepository:
    """Progress store with an optional hook run before each conditional write.

    Tests use `before_write` to interleave a competing writer between the
    read and the write of the code under test.
    """

    def __init__(self) -> None:
        self.records: dict[tuple[UUID, UUID, UUID], ProgressRecord] = {}
        self.before_write: Callable[[], Awaitable[None]] | None = None
        self.save_calls = 0

    @staticmethod
    def _key(record):
        return (record.user_id, record.course_id, record.video_id)

    async def _run_hook(self):
        hook, self.before_write = self.before_write, None
        if hook is not None:
            await hook()

    async def get(self, user_id, course_id, video_id):
        record = self.records.get((user_id, course_id, video_id))
        return replace(record) if record else None

    async def list_for_course(self, user_id, course_id):
        return [
            replace(r)
            for (uid, cid, _), r in self.records.items()
            if uid == user_id and cid == course_id
        ]

    async def save(self, record, expected):
        await self._run_hook()
        self.save_calls += 1
        key = self._key(record)
        stored = self.records.get(key)
        if expected is None:
            if stored is not None:
                return False
        elif (
            stored is None
            or stored.watched_duration > record.watched_duration
            or stored.is_completed != expected.is_completed
        ):
            return False
        self.records[key] = replace(record)
        return True

    async def update_playhead(self, record):
        await self._run_hook()
        key = self._key(record)
        stored = self.records.get(key)
        if stored is None:
            return False
        self.records[key] = replace(
            stored,
            last_position_seconds=record.last_position_seconds,
            last_watched_at=record.last_watched_at,
        )
        return True

    async def overwrite(self, record, expected):
        await self._run_hook()
        key = self._key(record)
        stored = self.records.get(key)
        if (
            stored is None
            or stored.watched_duration != expected.watched_duration
            or stored.is_completed != expected.is_completed
        ):
            return False
        self.records[key] = replace(record)
        return True


# ==============================================================================
# Clocks
# ==============================================================================


class FakeClock:
    """Controllable wall clock (`now()`) and monotonic clock (`monotonic()`)."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
        self.elapsed = 0.0

    def now(self) -> datetime:
        return self.current

    def monotonic(self) -> float:
        return self.elapsed

    def advance(self, seconds: float = 0, **kwargs) -> None:
        delta = timedelta(seconds=seconds, **kwargs)
        self.current += delta
        self.elapsed += delta.total_seconds()


# ==============================================================================
# Service graph
# ==============================================================================


class Services:
    """Fully wired services over in-memory stores and a fake clock."""

    def __init__(self, clock: FakeClock, throttle_seconds: float = 5.0) -> None:
        self.clock = clock
        self.catalog_repository = InMemoryCatalogRepository()
        self.enrollment_repository = InMemoryEnrollmentRepository()
        self.progress_repository = InMemoryProgressRepository()

        self.catalog = CatalogService(self.catalog_repository)
        self.archive = ArchiveLifecycleManager(
            self.catalog_repository, default_grace_months=6, clock=clock.now
        )
        self.ledger = EnrollmentLedger(
            self.enrollment_repository, self.catalog_repository, clock=clock.now
        )
        self.entitlements = EntitlementService(self.catalog, self.ledger, self.archive)
        self.throttle = ProgressThrottle(None, throttle_seconds, clock=clock.monotonic)
        self.tracker = ProgressTracker(
            self.progress_repository, self.throttle, clock=clock.now
        )
        self.aggregator = CourseProgressAggregator(
            self.catalog, self.ledger, self.tracker
        )
        self.progress = ProgressService(
            self.catalog, self.ledger, self.entitlements, self.tracker, self.aggregator
        )

    async def create_course(
        self,
        video_count: int = 3,
        free_preview_orders: tuple[int, ...] = (),
        duration: int = 100,
        max_enrollments: int | None = None,
    ) -> tuple[Course, list[Video]]:
        course = await self.catalog.create_course(
            title="Pharmacology Basics",
            description="Intro course",
            price=Decimal("49.90"),
            max_enrollments=max_enrollments,
        )
        videos = [
            await self.catalog.add_video(
                course.id,
                title=f"Lesson {i}",
                duration=duration,
                is_free_preview=i in free_preview_orders,
            )
            for i in range(1, video_count + 1)
        ]
        return await self.catalog.get_course(course.id), videos


def make_user(role: UserRole = UserRole.USER) -> UserContext:
    return UserContext(user_id=uuid4(), role=role)


def make_token(user: UserContext) -> str:
    settings = get_settings()
    return jwt.encode(
        {
            "sub": str(user.user_id),
            "role": user.role.value,
            "type": "access",
            "exp": datetime.now(UTC) + timedelta(hours=1),
        },
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def build_auth_headers(user: UserContext) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def services(clock: FakeClock) -> Services:
    return Services(clock)


@pytest.fixture
def student() -> UserContext:
    return make_user()


@pytest.fixture
def admin() -> UserContext:
    return make_user(UserRole.ADMIN)


@pytest.fixture
def app():
    from academy_core.main import create_app, install_services

    application = create_app()
    install_services(
        application,
        catalog_repository=InMemoryCatalogRepository(),
        enrollment_repository=InMemoryEnrollmentRepository(),
        progress_repository=InMemoryProgressRepository(),
        redis_client=None,
        settings=get_settings(),
    )
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers():
    """Callable building an `Authorization` header for a user."""
    return build_auth_headers
