from __future__ import annotations

from datetime import time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..domain import (
    DayCapacity,
    DistributionConfig,
    OccupiedRange,
    PlanStats,
    Segment,
    Task,
    Underallocation,
)


class TaskPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    estimated_minutes: int
    deadline: Optional[str] = Field(default=None)
    completed: bool = Field(default=False)
    created_at: str

    @classmethod
    def from_domain(cls, task: Task) -> "TaskPayload":
        return cls(
            id=task.id,
            title=task.title,
            estimated_minutes=task.estimated_minutes,
            deadline=task.deadline.isoformat() if task.deadline else None,
            completed=task.completed,
            created_at=task.created_at.isoformat(),
        )


class SegmentPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    task_id: str
    date: str
    start_minute: int
    duration_minutes: int
    pinned: bool = Field(default=False)
    starts_at: str
    ends_at: str

    @classmethod
    def from_domain(cls, segment: Segment, *, workday_start: time) -> "SegmentPayload":
        starts_at, ends_at = segment.clock_times(workday_start)
        return cls(
            id=segment.id,
            task_id=segment.task_id,
            date=segment.date.isoformat(),
            start_minute=segment.start_minute,
            duration_minutes=segment.duration_minutes,
            pinned=segment.pinned,
            starts_at=starts_at.isoformat(timespec="minutes"),
            ends_at=ends_at.isoformat(timespec="minutes"),
        )


class OccupiedRangePayload(BaseModel):
    start_minute: int = Field(ge=0)
    end_minute: int = Field(gt=0)
    label: str = Field(default="")

    def to_domain(self) -> OccupiedRange:
        return OccupiedRange(start_minute=self.start_minute, end_minute=self.end_minute, label=self.label)


class CapacityPayload(BaseModel):
    date: str
    total_minutes: int
    occupied_ranges: List[OccupiedRangePayload] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, capacity: DayCapacity) -> "CapacityPayload":
        return cls(
            date=capacity.date.isoformat(),
            total_minutes=capacity.total_minutes,
            occupied_ranges=[
                OccupiedRangePayload(start_minute=item.start_minute, end_minute=item.end_minute, label=item.label)
                for item in capacity.occupied_ranges
            ],
        )


class StatsPayload(BaseModel):
    total_minutes: int
    session_count: int
    completed_count: int
    completed_minutes: int
    completion_rate: float

    @classmethod
    def from_domain(cls, stats: PlanStats) -> "StatsPayload":
        return cls(**stats.to_record())


class UnderallocationPayload(BaseModel):
    task_id: str
    minutes: int
    reason: str

    @classmethod
    def from_domain(cls, item: Underallocation) -> "UnderallocationPayload":
        return cls(**item.to_record())


class ConfigPayload(BaseModel):
    strategy: str
    view_mode: str

    @classmethod
    def from_domain(cls, config: DistributionConfig) -> "ConfigPayload":
        return cls(**config.to_record())
