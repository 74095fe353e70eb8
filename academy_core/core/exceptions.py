"""Domain error taxonomy.

Every failure the core can report is an `AcademyError` carrying a stable
`code` (the failure kind) and a human-readable message. The API boundary
translates these into structured failure responses; nothing here knows
about HTTP.
"""


class AcademyError(Exception):
    """Base domain error."""

    code = "academy_error"
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.code}: {self.message}>"


class ValidationError(AcademyError):
    """Malformed progress input (negative duration, zero total, overshoot)."""

    code = "validation_error"
    default_message = "Invalid progress data"

    def __init__(self, message: str | None = None, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message or "; ".join(self.errors) or None)


class ForbiddenError(AcademyError):
    """Progress or stream request for a video the user is not entitled to."""

    code = "purchase_required"
    default_message = "Purchase required"


class CourseUnavailableError(ForbiddenError):
    """Enrolled user, but the course is archived past its grace period."""

    code = "course_unavailable"
    default_message = "Course no longer accessible"


class NotAvailableError(AcademyError):
    """Course does not accept enrollments in its current status."""

    code = "not_available"
    default_message = "Course is not available for enrollment"


class CapacityError(AcademyError):
    """Course has reached its enrollment cap."""

    code = "capacity_reached"
    default_message = "Course has reached maximum enrollment limit"


class DuplicateEnrollmentError(AcademyError):
    """User already holds an active enrollment in the course."""

    code = "already_enrolled"
    default_message = "Student already enrolled in this course"


class InvalidStateError(AcademyError):
    """Lifecycle transition not allowed from the current status."""

    code = "invalid_state"
    default_message = "Operation not allowed in the current state"


class NotFoundError(AcademyError):
    """Unknown course, version, video or enrollment."""

    code = "not_found"
    default_message = "Resource not found"


class CourseNotFoundError(NotFoundError):
    default_message = "Course not found"


class VideoNotFoundError(NotFoundError):
    default_message = "Video not found"


class EnrollmentNotFoundError(NotFoundError):
    default_message = "Enrollment not found"
