"""Course catalog admin endpoints.

Provides routes for:
- Course creation
- Publishing new content versions
- Registering videos into the latest version
- Video moderation (free preview flag, soft delete, restore)
"""

from uuid import UUID

from fastapi import APIRouter, status

from academy_core.auth.dependencies import AdminUser

from .dependencies import CatalogServiceDep
from .schemas import (
    AddVideoRequest,
    CourseResponse,
    CourseVersionListResponse,
    CourseVersionResponse,
    CreateCourseRequest,
    CreateVersionRequest,
    FreePreviewRequest,
    VideoResponse,
)


router = APIRouter(prefix="/v1/admin/courses", tags=["catalog"])
videos_router = APIRouter(prefix="/v1/admin/videos", tags=["catalog"])


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    catalog: CatalogServiceDep,
    _admin: AdminUser,
) -> CourseResponse:
    course = await catalog.create_course(
        title=data.title,
        description=data.description,
        price=data.price,
        max_enrollments=data.max_enrollments,
        is_public=data.is_public,
        thumbnail_url=data.thumbnail_url,
    )
    return CourseResponse.from_entity(course)


@router.get(
    "/{course_id}/versions",
    response_model=CourseVersionListResponse,
    summary="List course versions",
)
async def list_versions(
    course_id: UUID,
    catalog: CatalogServiceDep,
    _admin: AdminUser,
) -> CourseVersionListResponse:
    return CourseVersionListResponse.from_entities(
        await catalog.list_versions(course_id)
    )


@router.post(
    "/{course_id}/versions",
    response_model=CourseVersionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish new version",
)
async def create_version(
    course_id: UUID,
    data: CreateVersionRequest,
    catalog: CatalogServiceDep,
    _admin: AdminUser,
) -> CourseVersionResponse:
    """Publish a new version. Enrolled students keep the version they bought."""
    version = await catalog.create_new_version(
        course_id,
        change_log=data.change_log,
        title=data.title,
        description=data.description,
        price=data.price,
        thumbnail_url=data.thumbnail_url,
    )
    return CourseVersionResponse.model_validate(version)


@router.post(
    "/{course_id}/videos",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register video",
)
async def add_video(
    course_id: UUID,
    data: AddVideoRequest,
    catalog: CatalogServiceDep,
    _admin: AdminUser,
) -> VideoResponse:
    video = await catalog.add_video(
        course_id,
        title=data.title,
        duration=data.duration,
        is_free_preview=data.is_free_preview,
        version_number=data.version_number,
    )
    return VideoResponse.from_entity(video)


@videos_router.put(
    "/{video_id}/free-preview",
    response_model=VideoResponse,
    summary="Set free preview flag",
)
async def set_free_preview(
    video_id: UUID,
    data: FreePreviewRequest,
    catalog: CatalogServiceDep,
    _admin: AdminUser,
) -> VideoResponse:
    video = await catalog.set_free_preview(video_id, data.is_free_preview)
    return VideoResponse.from_entity(video)


@videos_router.delete(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Archive video",
)
async def archive_video(
    video_id: UUID,
    catalog: CatalogServiceDep,
    _admin: AdminUser,
) -> VideoResponse:
    """Soft delete: the video leaves listings, watch history is kept."""
    return VideoResponse.from_entity(await catalog.archive_video(video_id))


@videos_router.post(
    "/{video_id}/restore",
    response_model=VideoResponse,
    summary="Restore archived video",
)
async def restore_video(
    video_id: UUID,
    catalog: CatalogServiceDep,
    _admin: AdminUser,
) -> VideoResponse:
    return VideoResponse.from_entity(await catalog.restore_video(video_id))
