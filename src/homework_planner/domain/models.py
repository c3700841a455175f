from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional, Tuple

from .enums import DistributionStrategy, ViewMode


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Unsupported date value: {value!r}")


def _parse_datetime(value: Any) -> datetime:
    """Naive local datetime; aware values are converted so they compare with the clock."""

    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise ValueError(f"Unsupported datetime value: {value!r}")
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _parse_minutes(value: Any, *, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def _parse_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a boolean, got {value!r}")
    return value


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    estimated_minutes: int
    created_at: datetime
    deadline: Optional[date] = None
    completed: bool = False

    @property
    def sort_key(self) -> Tuple[datetime, str]:
        return (self.created_at, self.id)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Task":
        deadline = record.get("deadline")
        title = str(record["title"]).strip()
        if not title:
            raise ValueError(f"Task {record['id']} has an empty title")
        minutes = _parse_minutes(record["estimated_minutes"], name="estimated_minutes")
        if minutes <= 0:
            raise ValueError(f"Task {record['id']} has a non-positive estimate")
        return cls(
            id=str(record["id"]),
            title=title,
            estimated_minutes=minutes,
            created_at=_parse_datetime(record["created_at"]),
            deadline=_parse_date(deadline) if deadline is not None else None,
            completed=_parse_bool(record.get("completed", False), name="completed"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "estimated_minutes": self.estimated_minutes,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Segment:
    id: str
    task_id: str
    date: date
    start_minute: int
    duration_minutes: int
    pinned: bool = False

    @property
    def end_minute(self) -> int:
        return self.start_minute + self.duration_minutes

    @property
    def identity_key(self) -> Tuple[str, date, int, int]:
        return (self.task_id, self.date, self.start_minute, self.duration_minutes)

    def overlaps(self, other: "Segment") -> bool:
        if self.date != other.date:
            return False
        return self.start_minute < other.end_minute and other.start_minute < self.end_minute

    def clock_times(self, workday_start: time) -> Tuple[datetime, datetime]:
        """Wall-clock start and end, counting offsets from ``workday_start``."""

        origin = datetime.combine(self.date, workday_start)
        return (
            origin + timedelta(minutes=self.start_minute),
            origin + timedelta(minutes=self.end_minute),
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Segment":
        segment = cls(
            id=str(record["id"]),
            task_id=str(record["task_id"]),
            date=_parse_date(record["date"]),
            start_minute=_parse_minutes(record["start_minute"], name="start_minute"),
            duration_minutes=_parse_minutes(record["duration_minutes"], name="duration_minutes"),
            pinned=_parse_bool(record.get("pinned", False), name="pinned"),
        )
        if segment.start_minute < 0 or segment.duration_minutes <= 0:
            raise ValueError(f"Segment {segment.id} has an invalid time range")
        return segment

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "date": self.date.isoformat(),
            "start_minute": self.start_minute,
            "duration_minutes": self.duration_minutes,
            "pinned": self.pinned,
        }


@dataclass(frozen=True, slots=True)
class OccupiedRange:
    start_minute: int
    end_minute: int
    label: str = ""

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "OccupiedRange":
        occupied = cls(
            start_minute=_parse_minutes(record["start_minute"], name="start_minute"),
            end_minute=_parse_minutes(record["end_minute"], name="end_minute"),
            label=str(record.get("label") or ""),
        )
        if occupied.start_minute < 0 or occupied.end_minute <= occupied.start_minute:
            raise ValueError(f"Occupied range {occupied.start_minute}-{occupied.end_minute} is empty or negative")
        return occupied

    def to_record(self) -> Dict[str, Any]:
        return {
            "start_minute": self.start_minute,
            "end_minute": self.end_minute,
            "label": self.label,
        }


@dataclass(frozen=True, slots=True)
class DayCapacity:
    date: date
    total_minutes: int
    occupied_ranges: Tuple[OccupiedRange, ...] = ()

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "DayCapacity":
        total = _parse_minutes(record["total_minutes"], name="total_minutes")
        if total < 0:
            raise ValueError("total_minutes cannot be negative")
        return cls(
            date=_parse_date(record["date"]),
            total_minutes=total,
            occupied_ranges=tuple(OccupiedRange.from_record(item) for item in record.get("occupied_ranges") or []),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "total_minutes": self.total_minutes,
            "occupied_ranges": [item.to_record() for item in self.occupied_ranges],
        }


@dataclass(frozen=True, slots=True)
class DistributionConfig:
    strategy: DistributionStrategy = DistributionStrategy.EVEN
    view_mode: ViewMode = ViewMode.DAY

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "DistributionConfig":
        return cls(
            strategy=DistributionStrategy(record.get("strategy") or DistributionStrategy.EVEN),
            view_mode=ViewMode(record.get("view_mode") or ViewMode.DAY),
        )

    def to_record(self) -> Dict[str, Any]:
        return {"strategy": self.strategy.value, "view_mode": self.view_mode.value}


@dataclass(frozen=True, slots=True)
class Underallocation:
    task_id: str
    minutes: int
    reason: str

    def to_record(self) -> Dict[str, Any]:
        return {"task_id": self.task_id, "minutes": self.minutes, "reason": self.reason}


@dataclass(frozen=True, slots=True)
class AllocationResult:
    segments: Tuple[Segment, ...]
    underallocated: Tuple[Underallocation, ...]
    horizon_start: date
    horizon_end: date


@dataclass(frozen=True, slots=True)
class PlanSnapshot:
    """Immutable view of the plan handed to observers."""

    tasks: Tuple[Task, ...] = ()
    segments: Tuple[Segment, ...] = ()
    config: DistributionConfig = field(default_factory=DistributionConfig)
    underallocated: Tuple[Underallocation, ...] = ()

    def task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


@dataclass(frozen=True, slots=True)
class PlanStats:
    total_minutes: int = 0
    session_count: int = 0
    completed_count: int = 0
    completed_minutes: int = 0

    @property
    def completion_rate(self) -> float:
        if not self.session_count:
            return 0.0
        return self.completed_count / self.session_count

    def to_record(self) -> Dict[str, Any]:
        return {
            "total_minutes": self.total_minutes,
            "session_count": self.session_count,
            "completed_count": self.completed_count,
            "completed_minutes": self.completed_minutes,
            "completion_rate": self.completion_rate,
        }
