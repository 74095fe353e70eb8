"""Pydantic schemas for enrollments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import EnrollmentRecord, EnrollmentStatus


class RecordPurchaseRequest(BaseModel):
    """Purchase confirmation forwarded by the payment integration."""

    course_id: UUID
    user_id: UUID
    payment_reference: str | None = Field(
        None, max_length=200, description="Provider payment id, logged only"
    )


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    user_id: UUID
    version_enrolled: int
    status: EnrollmentStatus
    enrolled_at: datetime
    last_accessed_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: EnrollmentRecord) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls.model_validate(entity)


class EnrollmentListResponse(BaseModel):
    items: list[EnrollmentResponse]
    total: int
