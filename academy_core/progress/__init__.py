"""Video progress tracking module.

- Pure progress arithmetic (percentage, completion, merge rules)
- ProgressTracker: throttled, compare-and-set progress writes
- CourseProgressAggregator: course and dashboard roll-ups
"""

from .aggregator import CourseProgress, CourseProgressAggregator, DashboardProgress
from .calculations import calculate_percentage, determine_completion, validate_progress_data
from .models import ProgressRecord
from .service import ProgressService
from .throttle import ProgressThrottle
from .tracker import ProgressTracker, TrackResult


__all__ = [
    "CourseProgress",
    "CourseProgressAggregator",
    "DashboardProgress",
    "ProgressRecord",
    "ProgressService",
    "ProgressThrottle",
    "ProgressTracker",
    "TrackResult",
    "calculate_percentage",
    "determine_completion",
    "validate_progress_data",
]
