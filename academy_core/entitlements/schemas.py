"""Pydantic schemas for video access."""

from uuid import UUID

from pydantic import BaseModel

from academy_core.catalog.schemas import VideoResponse

from .resolver import AccessDecision, LockReason
from .service import VideoAccess, VideoAccessCheck, VideoListing


class VideoWithAccessResponse(VideoResponse):
    """Video plus the caller's access flags."""

    has_access: bool
    is_locked: bool
    lock_reason: LockReason | None = None

    @classmethod
    def from_access(cls, access: VideoAccess) -> "VideoWithAccessResponse":
        return cls.build(access.video, access.decision)

    @classmethod
    def build(cls, video, decision: AccessDecision) -> "VideoWithAccessResponse":
        return cls(
            **VideoResponse.from_entity(video).model_dump(),
            has_access=decision.has_access,
            is_locked=decision.is_locked,
            lock_reason=decision.lock_reason,
        )


class CourseVideosResponse(BaseModel):
    """Videos of one course version with access flags.

    `user_has_purchased` and `course_accessible` let clients tell "buy this
    course" apart from "this course is no longer available".
    """

    course_id: UUID
    version: int
    videos: list[VideoWithAccessResponse]
    user_has_purchased: bool
    course_accessible: bool

    @classmethod
    def from_listing(cls, listing: VideoListing) -> "CourseVideosResponse":
        return cls(
            course_id=listing.course.id,
            version=listing.version,
            videos=[VideoWithAccessResponse.from_access(v) for v in listing.videos],
            user_has_purchased=listing.user_has_purchased,
            course_accessible=listing.course_accessible,
        )


class VideoAccessResponse(BaseModel):
    """Single video permission check (used before issuing stream URLs)."""

    video: VideoWithAccessResponse
    user_has_purchased: bool
    course_accessible: bool

    @classmethod
    def from_check(cls, check: VideoAccessCheck) -> "VideoAccessResponse":
        return cls(
            video=VideoWithAccessResponse.build(check.video, check.decision),
            user_has_purchased=check.context.is_enrolled,
            course_accessible=check.context.course_accessible,
        )
