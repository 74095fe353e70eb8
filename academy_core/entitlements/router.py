"""Video listing and access endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from academy_core.auth.dependencies import CurrentUser
from academy_core.core.context import bind_resource

from .dependencies import EntitlementServiceDep
from .schemas import CourseVideosResponse, VideoAccessResponse


router = APIRouter(prefix="/v1", tags=["videos"])


@router.get(
    "/courses/{course_id}/videos",
    response_model=CourseVideosResponse,
    summary="List course videos with access flags",
)
async def list_course_videos(
    course_id: UUID,
    entitlements: EntitlementServiceDep,
    user: CurrentUser,
    version: int | None = Query(None, ge=1, description="Version (default: yours)"),
) -> CourseVideosResponse:
    bind_resource(course_id=course_id)
    listing = await entitlements.list_videos(course_id, user, version=version)
    return CourseVideosResponse.from_listing(listing)


@router.get(
    "/videos/{video_id}/access",
    response_model=VideoAccessResponse,
    summary="Check video access",
)
async def check_video_access(
    video_id: UUID,
    entitlements: EntitlementServiceDep,
    user: CurrentUser,
) -> VideoAccessResponse:
    """Access decision for one video. Locked videos are reported, not rejected."""
    bind_resource(video_id=video_id)
    check = await entitlements.check_video_access(video_id, user)
    return VideoAccessResponse.from_check(check)
