"""Domain models for task distribution."""

from __future__ import annotations

from .enums import DistributionStrategy, ViewMode, WeekStart
from .errors import (
    InvalidConfigError,
    InvalidTaskError,
    MalformedValueError,
    PlannerError,
    SegmentConflictError,
    StorageError,
)
from .models import (
    AllocationResult,
    DayCapacity,
    DistributionConfig,
    OccupiedRange,
    PlanSnapshot,
    PlanStats,
    Segment,
    Task,
    Underallocation,
)

__all__ = [
    "AllocationResult",
    "DayCapacity",
    "DistributionConfig",
    "DistributionStrategy",
    "InvalidConfigError",
    "InvalidTaskError",
    "MalformedValueError",
    "OccupiedRange",
    "PlanSnapshot",
    "PlanStats",
    "PlannerError",
    "Segment",
    "SegmentConflictError",
    "StorageError",
    "Task",
    "Underallocation",
    "ViewMode",
    "WeekStart",
]
