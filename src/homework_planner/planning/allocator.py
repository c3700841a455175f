from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..domain import AllocationResult, DistributionConfig, Segment, Task
from .capacity import CapacityModel, Range, free_minutes, free_ranges
from .strategies import distribute, policy_for

DEFAULT_LOOKAHEAD_DAYS = 14

logger = logging.getLogger(__name__)

Placement = Tuple[str, date, int, int]


def _retained_segments(
    tasks_by_id: Mapping[str, Task],
    previous: Iterable[Segment],
    today: date,
) -> List[Segment]:
    retained: List[Segment] = []
    for segment in previous:
        task = tasks_by_id.get(segment.task_id)
        if task is None:
            continue
        if task.completed or segment.pinned or segment.date < today:
            retained.append(segment)
    return retained


def horizon_days(tasks: Iterable[Task], today: date, lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS) -> List[date]:
    """Days from ``today`` to the later of the lookahead end and the farthest deadline."""

    end = today + timedelta(days=max(lookahead_days, 1) - 1)
    for task in tasks:
        if task.deadline is not None and task.deadline > end:
            end = task.deadline
    return [today + timedelta(days=offset) for offset in range((end - today).days + 1)]


def _carve(gaps: List[Range], start: int, end: int) -> Optional[List[Range]]:
    """``gaps`` minus ``[start, end)``, or ``None`` when that range is not entirely free."""

    for index, (gap_start, gap_end) in enumerate(gaps):
        if gap_start <= start and end <= gap_end:
            pieces = [piece for piece in ((gap_start, start), (end, gap_end)) if piece[1] > piece[0]]
            return gaps[:index] + pieces + gaps[index + 1:]
    return None


def _keep_previous(gaps: List[Range], earlier: Sequence[Segment], needed: int) -> Optional[List[Range]]:
    if not earlier or sum(segment.duration_minutes for segment in earlier) != needed:
        return None
    remaining: Optional[List[Range]] = gaps
    for segment in earlier:
        remaining = _carve(remaining, segment.start_minute, segment.end_minute)
        if remaining is None:
            return None
    return remaining


def _pack_day(
    day: date,
    gaps: List[Range],
    order: Sequence[Task],
    requests: Mapping[str, Mapping[date, int]],
    previous: Mapping[Tuple[str, date], List[Segment]],
) -> List[Placement]:
    placements: List[Placement] = []
    pending: List[Tuple[str, int]] = []

    # A task asking for the same minutes as before keeps its old slots while they are still free.
    for task in order:
        needed = requests.get(task.id, {}).get(day, 0)
        if needed <= 0:
            continue
        earlier = previous.get((task.id, day), [])
        kept = _keep_previous(gaps, earlier, needed)
        if kept is None:
            pending.append((task.id, needed))
            continue
        gaps = kept
        placements.extend((task.id, day, segment.start_minute, segment.duration_minutes) for segment in earlier)

    for task_id, needed in pending:
        while needed > 0 and gaps:
            start, end = gaps[0]
            length = min(needed, end - start)
            placements.append((task_id, day, start, length))
            needed -= length
            if start + length >= end:
                gaps = gaps[1:]
            else:
                gaps = [(start + length, end)] + gaps[1:]
        if needed > 0:
            # Requests never exceed free minutes, so this means the ledger and the gaps disagree.
            logger.warning("Could not pack %s minutes for task %s on %s", needed, task_id, day)
    return placements


def recompute(
    tasks: Sequence[Task],
    capacities: CapacityModel,
    config: DistributionConfig,
    *,
    today: date,
    next_id: Callable[[], str],
    previous: Iterable[Segment] = (),
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
) -> AllocationResult:
    """Compute the full replacement segment set for ``tasks``.

    Segments of completed tasks, segments dated before ``today`` and pinned
    segments are carried over untouched and count towards their task's
    estimate. Everything else is rebuilt from the active strategy and packed
    day by day in the strategy's processing order, starting at the first free
    offset. A task whose request for a day is unchanged keeps its previous
    slots on that day when they are still free, and a packed segment identical
    to a previous one keeps its id. Feeding a result back in therefore yields
    the same output without consuming new ids.

    The output is a function of ``previous`` as well as of the tasks,
    capacities, strategy and ``today``. Kept slots take precedence over the
    processing order, so an incremental edit can order a day's segments
    differently from a recompute of the same tasks with no history.
    """

    previous = list(previous)
    tasks_by_id = {task.id: task for task in tasks}
    retained = _retained_segments(tasks_by_id, previous, today)
    retained_ids = {segment.id for segment in retained}
    flexible = [
        segment
        for segment in previous
        if segment.id not in retained_ids and segment.task_id in tasks_by_id
    ]

    consumed: Dict[str, int] = {}
    for segment in retained:
        consumed[segment.task_id] = consumed.get(segment.task_id, 0) + segment.duration_minutes

    remaining = {
        task.id: max(task.estimated_minutes - consumed.get(task.id, 0), 0)
        for task in tasks
    }
    eligible = [task for task in tasks if not task.completed and remaining[task.id] > 0]
    horizon = horizon_days(eligible, today, lookahead_days)

    retained_by_day: Dict[date, List[Segment]] = {}
    for segment in retained:
        retained_by_day.setdefault(segment.date, []).append(segment)

    day_capacity = {day: capacities.for_date(day) for day in horizon}
    available = {
        day: free_minutes(day_capacity[day], retained_by_day.get(day, ()))
        for day in horizon
    }

    distribution = distribute(policy_for(config.strategy), eligible, remaining, horizon, available)

    previous_by_slot: Dict[Tuple[str, date], List[Segment]] = {}
    for segment in sorted(flexible, key=lambda item: item.start_minute):
        previous_by_slot.setdefault((segment.task_id, segment.date), []).append(segment)
    reusable = {segment.identity_key: segment.id for segment in flexible}

    fresh: List[Segment] = []
    for day in horizon:
        if not any(day in requests for requests in distribution.requests.values()):
            continue
        gaps = free_ranges(day_capacity[day], retained_by_day.get(day, ()))
        placements = _pack_day(day, gaps, distribution.order, distribution.requests, previous_by_slot)
        for task_id, placed_day, start, length in placements:
            segment_id = reusable.pop((task_id, placed_day, start, length), None) or next_id()
            fresh.append(
                Segment(
                    id=segment_id,
                    task_id=task_id,
                    date=placed_day,
                    start_minute=start,
                    duration_minutes=length,
                )
            )

    segments = sorted(
        retained + fresh,
        key=lambda segment: (segment.date, segment.start_minute, segment.task_id, segment.id),
    )
    return AllocationResult(
        segments=tuple(segments),
        underallocated=tuple(distribution.underallocated),
        horizon_start=horizon[0],
        horizon_end=horizon[-1],
    )


__all__ = ["DEFAULT_LOOKAHEAD_DAYS", "horizon_days", "recompute"]
