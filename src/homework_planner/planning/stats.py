from __future__ import annotations

from datetime import date
from typing import Iterable, List, Mapping, Tuple

from ..domain import PlanStats, Segment, Task


def segments_between(segments: Iterable[Segment], start: date, end: date) -> List[Segment]:
    """Segments dated within ``[start, end]`` ordered by date and offset."""

    return sorted(
        (segment for segment in segments if start <= segment.date <= end),
        key=lambda segment: (segment.date, segment.start_minute, segment.id),
    )


def compute_stats(segments: Iterable[Segment], tasks_by_id: Mapping[str, Task]) -> PlanStats:
    total = sessions = completed = completed_minutes = 0
    for segment in segments:
        total += segment.duration_minutes
        sessions += 1
        task = tasks_by_id.get(segment.task_id)
        if task is not None and task.completed:
            completed += 1
            completed_minutes += segment.duration_minutes
    return PlanStats(
        total_minutes=total,
        session_count=sessions,
        completed_count=completed,
        completed_minutes=completed_minutes,
    )


def find_overlaps(segments: Iterable[Segment]) -> List[Tuple[Segment, Segment]]:
    """Every pair of segments sharing a date whose ranges intersect."""

    conflicts: List[Tuple[Segment, Segment]] = []
    ordered = sorted(segments, key=lambda segment: (segment.date, segment.start_minute, segment.id))
    for index, current in enumerate(ordered):
        # Sorted by date and start, so the first miss ends the scan for `current`.
        for later in ordered[index + 1:]:
            if not current.overlaps(later):
                break
            conflicts.append((current, later))
    return conflicts


__all__ = ["compute_stats", "find_overlaps", "segments_between"]
