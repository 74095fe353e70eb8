"""Enrollment ledger module.

Tracks which users bought which course, pinned to the version they bought:
- EnrollmentStatus: ACTIVE, COMPLETED, CANCELLED
- EnrollmentLedger: enroll, record purchases, cancel, complete
"""

from .models import EnrollmentRecord, EnrollmentStatus, version_accessible
from .service import EnrollmentLedger


__all__ = [
    "EnrollmentLedger",
    "EnrollmentRecord",
    "EnrollmentStatus",
    "version_accessible",
]
