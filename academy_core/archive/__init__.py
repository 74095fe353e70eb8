"""Course archive lifecycle.

- Status transitions (active, inactive, archived) as pure functions
- Grace-period expiry for enrolled students
- ArchiveLifecycleManager applying transitions to stored courses
"""

from .lifecycle import grace_period_end, is_accessible_to_enrolled
from .service import ArchiveLifecycleManager


__all__ = [
    "ArchiveLifecycleManager",
    "grace_period_end",
    "is_accessible_to_enrolled",
]
