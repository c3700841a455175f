from __future__ import annotations

from enum import Enum


class DistributionStrategy(str, Enum):
    EVEN = "even"
    FRONTLOAD = "frontload"
    BACKLOAD = "backload"
    DEADLINE_WEIGHTED = "deadline-weighted"


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"


class WeekStart(str, Enum):
    MONDAY = "monday"
    SUNDAY = "sunday"
