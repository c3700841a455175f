from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Tuple

from ..domain import DayCapacity, Segment

Range = Tuple[int, int]

SATURDAY = 5


def _busy_ranges(capacity: DayCapacity, existing_segments: Iterable[Segment]) -> List[Range]:
    window_end = capacity.total_minutes
    raw: List[Range] = [(item.start_minute, item.end_minute) for item in capacity.occupied_ranges]
    raw.extend(
        (segment.start_minute, segment.end_minute)
        for segment in existing_segments
        if segment.date == capacity.date
    )
    clamped = sorted(
        (max(start, 0), min(end, window_end))
        for start, end in raw
        if min(end, window_end) > max(start, 0)
    )
    merged: List[Range] = []
    for start, end in clamped:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def free_ranges(capacity: DayCapacity, existing_segments: Iterable[Segment] = ()) -> List[Range]:
    """Free ``(start, end)`` gaps of the day's window in ascending order."""

    gaps: List[Range] = []
    cursor = 0
    for start, end in _busy_ranges(capacity, existing_segments):
        if start > cursor:
            gaps.append((cursor, start))
        cursor = max(cursor, end)
    if cursor < capacity.total_minutes:
        gaps.append((cursor, capacity.total_minutes))
    return gaps


def free_minutes(capacity: DayCapacity, existing_segments: Iterable[Segment] = ()) -> int:
    """Schedulable minutes left on ``capacity.date``; never negative."""

    busy = sum(end - start for start, end in _busy_ranges(capacity, existing_segments))
    return max(capacity.total_minutes - busy, 0)


@dataclass(frozen=True)
class CapacityModel:
    """Resolves the capacity of any calendar day."""

    default_minutes: int = 480
    skip_weekends: bool = False
    overrides: Dict[date, DayCapacity] = field(default_factory=dict)

    def for_date(self, target: date) -> DayCapacity:
        override = self.overrides.get(target)
        if override is not None:
            return override
        if self.skip_weekends and target.weekday() >= SATURDAY:
            return DayCapacity(date=target, total_minutes=0)
        return DayCapacity(date=target, total_minutes=self.default_minutes)


__all__ = ["CapacityModel", "Range", "free_minutes", "free_ranges"]
