"""Student progress tracking API endpoints.

Provides routes for:
- Video progress reports (throttled server-side)
- Manual completion and admin reset
- Resume position and next video
- Course and dashboard progress
"""

from uuid import UUID

from fastapi import APIRouter

from academy_core.auth.dependencies import AdminUser, CurrentUser
from academy_core.catalog.schemas import VideoResponse
from academy_core.core.context import bind_resource

from .dependencies import ProgressServiceDep
from .schemas import (
    CourseProgressResponse,
    DashboardProgressResponse,
    NextVideoResponse,
    ProgressUpdateResponse,
    ResetVideoCompletionRequest,
    UpdateVideoProgressRequest,
    VideoCompletionRequest,
    VideoProgressDetailResponse,
    VideoProgressResponse,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])


# ==============================================================================
# Video Progress Endpoints
# ==============================================================================


@router.put(
    "/video",
    response_model=ProgressUpdateResponse,
    summary="Update video progress",
)
async def update_video_progress(
    data: UpdateVideoProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ProgressUpdateResponse:
    """Record a progress report.

    Reports closer together than the throttle window are acknowledged with
    `skipped=true`. Reaching 90% completes the video.
    """
    bind_resource(course_id=data.course_id, video_id=data.video_id)
    update = await progress_service.update_progress(
        user,
        course_id=data.course_id,
        video_id=data.video_id,
        watched_duration=data.watched_duration,
        total_duration=data.total_duration,
        position=data.position,
    )
    return ProgressUpdateResponse.from_update(update)


@router.post(
    "/video/complete",
    response_model=ProgressUpdateResponse,
    summary="Mark video as completed",
)
async def complete_video(
    data: VideoCompletionRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ProgressUpdateResponse:
    bind_resource(course_id=data.course_id, video_id=data.video_id)
    update = await progress_service.mark_video_completed(
        user, data.course_id, data.video_id
    )
    return ProgressUpdateResponse.from_update(update)


@router.post(
    "/video/reset",
    response_model=VideoProgressResponse,
    summary="Reset a student's video completion",
)
async def reset_video_completion(
    data: ResetVideoCompletionRequest,
    progress_service: ProgressServiceDep,
    _admin: AdminUser,
) -> VideoProgressResponse:
    bind_resource(course_id=data.course_id, video_id=data.video_id)
    record = await progress_service.reset_video_completion(
        data.user_id, data.course_id, data.video_id
    )
    return VideoProgressResponse.from_entity(record)


# ==============================================================================
# Progress Query Endpoints
# ==============================================================================


@router.get(
    "/dashboard",
    response_model=DashboardProgressResponse,
    summary="Progress across all enrolled courses",
)
async def dashboard_progress(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> DashboardProgressResponse:
    dashboard = await progress_service.get_dashboard_progress(user)
    return DashboardProgressResponse.from_dashboard(dashboard)


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Course progress",
)
async def course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    bind_resource(course_id=course_id)
    progress = await progress_service.get_course_progress(user, course_id)
    return CourseProgressResponse.from_progress(progress)


@router.get(
    "/courses/{course_id}/videos/{video_id}",
    response_model=VideoProgressDetailResponse,
    summary="Video progress and resume position",
)
async def video_progress(
    course_id: UUID,
    video_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> VideoProgressDetailResponse:
    bind_resource(course_id=course_id, video_id=video_id)
    view = await progress_service.get_video_progress(user, course_id, video_id)
    return VideoProgressDetailResponse.from_view(view)


@router.get(
    "/courses/{course_id}/videos/{video_id}/next",
    response_model=NextVideoResponse,
    summary="Next video",
)
async def next_video(
    course_id: UUID,
    video_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> NextVideoResponse:
    bind_resource(course_id=course_id, video_id=video_id)
    video = await progress_service.get_next_video(user, course_id, video_id)
    return NextVideoResponse(
        video=VideoResponse.from_entity(video) if video else None,
        is_last=video is None,
    )
