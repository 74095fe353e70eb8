"""Pydantic schemas for archive lifecycle endpoints."""

from pydantic import BaseModel, Field

from academy_core.catalog.schemas import CourseResponse


class ArchiveCourseRequest(BaseModel):
    """Archive request."""

    reason: str | None = Field(None, max_length=1000, description="Why the course is archived")
    grace_period_months: int | None = Field(
        None,
        ge=0,
        le=120,
        description="Months enrolled students keep access (default from settings)",
    )


class ArchiveStatsResponse(BaseModel):
    """Counts per status."""

    courses: dict[str, int]
    versions: dict[str, int]


class ExpiredArchivesResponse(BaseModel):
    """Archived courses whose grace period has ended."""

    items: list[CourseResponse]
    total: int


class AutoArchiveResponse(BaseModel):
    """Result of the inactive-course sweep."""

    archived: list[CourseResponse]
    archived_count: int
