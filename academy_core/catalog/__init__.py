"""Course catalog module.

Courses, their immutable content versions, and the videos stamped with the
version they were uploaded into.
"""

from .models import ArchiveInfo, Course, CourseStatus, CourseVersion, Video, VideoStatus
from .service import CatalogService


__all__ = [
    "ArchiveInfo",
    "CatalogService",
    "Course",
    "CourseStatus",
    "CourseVersion",
    "Video",
    "VideoStatus",
]
