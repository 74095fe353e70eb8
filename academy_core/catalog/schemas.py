"""Pydantic schemas for the course catalog.

Request and response models for:
- Courses and their lifecycle fields
- Course versions
- Videos
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Course, CourseStatus, CourseVersion, Video, VideoStatus


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str = Field("", max_length=5000, description="Course description")
    price: Decimal = Field(Decimal(0), ge=0, description="Course price")
    max_enrollments: int | None = Field(
        None, ge=1, description="Enrollment cap (None = unlimited)"
    )
    is_public: bool = Field(True, description="Listed for purchase")
    thumbnail_url: str | None = Field(None, max_length=500)


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    description: str
    price: Decimal
    status: CourseStatus
    version: int
    current_version: int
    archived_at: datetime | None = None
    archive_reason: str | None = None
    archive_grace_period: datetime | None = None
    max_enrollments: int | None = None
    total_enrollments: int = 0
    is_public: bool = True
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Course) -> "CourseResponse":
        """Create response from entity."""
        return cls(**entity.to_dict())


# ==============================================================================
# Version Schemas
# ==============================================================================


class CreateVersionRequest(BaseModel):
    """New content version. Omitted fields are copied from the course."""

    change_log: str | None = Field(None, max_length=2000)
    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    price: Decimal | None = Field(None, ge=0)
    thumbnail_url: str | None = Field(None, max_length=500)


class CourseVersionResponse(BaseModel):
    """Course version response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    version_number: int
    title: str
    description: str
    price: Decimal
    thumbnail_url: str | None = None
    video_ids: list[UUID] = Field(default_factory=list)
    storage_folder_path: str
    status: CourseStatus
    change_log: str | None = None
    archived_at: datetime | None = None
    archive_storage_path: str | None = None
    total_videos: int = 0
    total_duration: int = 0
    created_at: datetime


class CourseVersionListResponse(BaseModel):
    items: list[CourseVersionResponse]

    @classmethod
    def from_entities(cls, versions: list[CourseVersion]) -> "CourseVersionListResponse":
        return cls(
            items=[CourseVersionResponse.model_validate(v) for v in versions]
        )


# ==============================================================================
# Video Schemas
# ==============================================================================


class AddVideoRequest(BaseModel):
    """Video registration (the file itself is handled by the storage service)."""

    title: str = Field(..., min_length=1, max_length=200)
    duration: int = Field(..., ge=0, description="Duration in seconds")
    is_free_preview: bool = False
    version_number: int | None = Field(
        None, ge=1, description="Must be the latest version when given"
    )


class FreePreviewRequest(BaseModel):
    is_free_preview: bool


class VideoResponse(BaseModel):
    """Video response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    course_version: int
    title: str
    order: int
    duration: int
    is_free_preview: bool
    status: VideoStatus

    @classmethod
    def from_entity(cls, entity: Video) -> "VideoResponse":
        """Create response from entity."""
        return cls.model_validate(entity)
