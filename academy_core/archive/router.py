"""Course lifecycle admin endpoints.

Provides routes for:
- Archiving and unarchiving courses
- Activating and deactivating courses
- Archive statistics and expired archives
- Sweeping long-inactive courses into the archive
"""

from uuid import UUID

from fastapi import APIRouter

from academy_core.auth.dependencies import AdminUser
from academy_core.catalog.schemas import CourseResponse

from .dependencies import ArchiveManagerDep
from .schemas import (
    ArchiveCourseRequest,
    ArchiveStatsResponse,
    AutoArchiveResponse,
    ExpiredArchivesResponse,
)


router = APIRouter(prefix="/v1/admin", tags=["admin-archive"])


@router.post(
    "/courses/{course_id}/archive",
    response_model=CourseResponse,
    summary="Archive course",
)
async def archive_course(
    course_id: UUID,
    data: ArchiveCourseRequest,
    manager: ArchiveManagerDep,
    _admin: AdminUser,
) -> CourseResponse:
    """Archive a course. Enrolled students keep access until the grace period ends."""
    course = await manager.archive(
        course_id,
        reason=data.reason,
        grace_period_months=data.grace_period_months,
    )
    return CourseResponse.from_entity(course)


@router.post(
    "/courses/{course_id}/unarchive",
    response_model=CourseResponse,
    summary="Unarchive course",
)
async def unarchive_course(
    course_id: UUID,
    manager: ArchiveManagerDep,
    _admin: AdminUser,
) -> CourseResponse:
    return CourseResponse.from_entity(await manager.unarchive(course_id))


@router.post(
    "/courses/{course_id}/deactivate",
    response_model=CourseResponse,
    summary="Deactivate course",
)
async def deactivate_course(
    course_id: UUID,
    manager: ArchiveManagerDep,
    _admin: AdminUser,
) -> CourseResponse:
    """Stop new enrollments; enrolled students keep access."""
    return CourseResponse.from_entity(await manager.deactivate(course_id))


@router.post(
    "/courses/{course_id}/activate",
    response_model=CourseResponse,
    summary="Activate course",
)
async def activate_course(
    course_id: UUID,
    manager: ArchiveManagerDep,
    _admin: AdminUser,
) -> CourseResponse:
    return CourseResponse.from_entity(await manager.activate(course_id))


@router.get(
    "/archive/stats",
    response_model=ArchiveStatsResponse,
    summary="Archive statistics",
)
async def archive_stats(
    manager: ArchiveManagerDep,
    _admin: AdminUser,
) -> ArchiveStatsResponse:
    return ArchiveStatsResponse(**await manager.get_archive_stats())


@router.get(
    "/archive/expired",
    response_model=ExpiredArchivesResponse,
    summary="Archives past grace period",
)
async def expired_archives(
    manager: ArchiveManagerDep,
    _admin: AdminUser,
) -> ExpiredArchivesResponse:
    courses = await manager.list_archived_past_grace_period()
    return ExpiredArchivesResponse(
        items=[CourseResponse.from_entity(c) for c in courses],
        total=len(courses),
    )


@router.post(
    "/archive/auto-archive",
    response_model=AutoArchiveResponse,
    summary="Archive long-inactive courses",
)
async def auto_archive(
    manager: ArchiveManagerDep,
    _admin: AdminUser,
) -> AutoArchiveResponse:
    """Archive courses inactive for longer than the configured period."""
    courses = await manager.archive_inactive_courses()
    return AutoArchiveResponse(
        archived=[CourseResponse.from_entity(c) for c in courses],
        archived_count=len(courses),
    )
