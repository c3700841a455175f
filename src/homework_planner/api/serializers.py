from __future__ import annotations

from datetime import time
from typing import Any, Dict

from ..domain import DayCapacity, DistributionConfig, PlanStats, Segment, Task, Underallocation
from .models import (
    CapacityPayload,
    ConfigPayload,
    SegmentPayload,
    StatsPayload,
    TaskPayload,
    UnderallocationPayload,
)


def serialize_task(task: Task) -> Dict[str, Any]:
    return TaskPayload.from_domain(task).model_dump()


def serialize_segment(segment: Segment, *, workday_start: time) -> Dict[str, Any]:
    return SegmentPayload.from_domain(segment, workday_start=workday_start).model_dump()


def serialize_capacity(capacity: DayCapacity) -> Dict[str, Any]:
    return CapacityPayload.from_domain(capacity).model_dump()


def serialize_stats(stats: PlanStats) -> Dict[str, Any]:
    return StatsPayload.from_domain(stats).model_dump()


def serialize_underallocation(item: Underallocation) -> Dict[str, Any]:
    return UnderallocationPayload.from_domain(item).model_dump()


def serialize_config(config: DistributionConfig) -> Dict[str, Any]:
    return ConfigPayload.from_domain(config).model_dump()
