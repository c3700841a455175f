from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from ..domain import InvalidConfigError
from .models import OccupiedRangePayload
from .registry import register_api
from .serializers import (
    serialize_capacity,
    serialize_config,
    serialize_segment,
    serialize_stats,
    serialize_underallocation,
)
from .state import api_state


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:  # noqa: TRY003
        raise ValueError(f"Invalid ISO date: {value}") from exc


def _day_or_today(value: Optional[str]) -> date:
    return _parse_date(value) if value else api_state.plans.today()


def _segments(segments) -> List[Dict[str, Any]]:
    workday_start = api_state.plans.settings.workday_start
    return [serialize_segment(segment, workday_start=workday_start) for segment in segments]


@register_api(
    "set_distribution_strategy",
    description="Choose how work is spread: even, frontload, backload or deadline-weighted.",
    category="planning",
    tags=("strategy", "config"),
)
def set_distribution_strategy(strategy: str) -> Dict[str, Any]:
    config = api_state.plans.set_strategy(strategy)
    return {
        "config": serialize_config(config),
        "underallocated": [serialize_underallocation(item) for item in api_state.plans.snapshot.underallocated],
    }


@register_api(
    "set_view_mode",
    description="Switch the visible horizon between day and week views.",
    category="planning",
    tags=("view", "config"),
)
def set_view_mode(view_mode: str) -> Dict[str, Any]:
    return {"config": serialize_config(api_state.plans.set_view_mode(view_mode))}


@register_api(
    "plan_for_date",
    description="Return the scheduled sessions for one day (defaults to today).",
    category="planning",
    tags=("read", "day"),
)
def plan_for_date(day: Optional[str] = None) -> Dict[str, Any]:
    target = _day_or_today(day)
    return {"date": target.isoformat(), "segments": _segments(api_state.plans.get_plan_for_date(target))}


@register_api(
    "plan_for_week",
    description="Return the sessions of the week containing the given day, grouped per day.",
    category="planning",
    tags=("read", "week"),
)
def plan_for_week(day: Optional[str] = None) -> Dict[str, Any]:
    target = _day_or_today(day)
    week = api_state.plans.get_plan_for_week(target)
    days = sorted(week)
    return {
        "start": days[0].isoformat(),
        "end": days[-1].isoformat(),
        "days": {key.isoformat(): _segments(week[key]) for key in days},
    }


@register_api(
    "plan_between",
    description="Return sessions between two inclusive YYYY-MM-DD dates.",
    category="planning",
    tags=("read", "range"),
)
def plan_between(start: str, end: str) -> Dict[str, Any]:
    start_day, end_day = _parse_date(start), _parse_date(end)
    return {
        "start": start_day.isoformat(),
        "end": end_day.isoformat(),
        "segments": _segments(api_state.plans.get_plan_for_range(start_day, end_day)),
    }


@register_api(
    "plan_stats",
    description="Total minutes, session count and completed sessions for a day or an inclusive range.",
    category="planning",
    tags=("read", "stats"),
)
def plan_stats(start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, Any]:
    start_day = _day_or_today(start)
    end_day = _parse_date(end) if end else start_day
    stats = api_state.plans.get_stats_for_range(start_day, end_day)
    return {"start": start_day.isoformat(), "end": end_day.isoformat(), "stats": serialize_stats(stats)}


@register_api(
    "list_underallocations",
    description="List tasks whose work could not be placed before their deadline.",
    category="planning",
    tags=("read", "warnings"),
)
def list_underallocations() -> Dict[str, List[dict]]:
    return {"underallocated": [serialize_underallocation(item) for item in api_state.plans.snapshot.underallocated]}


@register_api(
    "move_segment",
    description="Reschedule a session to a new day and start minute; it stays pinned there.",
    category="planning",
    tags=("reschedule", "drag"),
)
def move_segment(segment_id: str, day: str, start_minute: int) -> Dict[str, Any]:
    segment = api_state.plans.move_segment(segment_id, _parse_date(day), start_minute)
    if segment is None:
        return {"segment": None}
    return {"segment": _segments([segment])[0]}


@register_api(
    "set_day_capacity",
    description="Override the schedulable minutes of a day and list blocks that are already taken.",
    category="planning",
    tags=("capacity", "config"),
)
def set_day_capacity(
    day: str,
    total_minutes: int,
    occupied_ranges: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    try:
        ranges = [OccupiedRangePayload.model_validate(item).to_domain() for item in occupied_ranges or []]
    except ValueError as exc:
        raise InvalidConfigError(f"Invalid occupied range: {exc}") from exc
    capacity = api_state.plans.set_day_capacity(_parse_date(day), total_minutes, ranges)
    return {"capacity": serialize_capacity(capacity)}


@register_api(
    "clear_day_capacity",
    description="Drop a capacity override so the day uses the default availability again.",
    category="planning",
    tags=("capacity", "config"),
)
def clear_day_capacity(day: str) -> Dict[str, Any]:
    target = _parse_date(day)
    return {"cleared": api_state.plans.clear_day_capacity(target), "date": target.isoformat()}


@register_api(
    "refresh_plan",
    description="Recompute the plan for the current day without changing any task.",
    category="planning",
    tags=("recompute",),
)
def refresh_plan() -> Dict[str, Any]:
    snapshot = api_state.plans.refresh()
    return {
        "segment_count": len(snapshot.segments),
        "underallocated": [serialize_underallocation(item) for item in snapshot.underallocated],
    }
