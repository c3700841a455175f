from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from ..config import PlannerSettings, get_settings
from ..data import KeyValueStore
from ..domain import (
    DayCapacity,
    DistributionConfig,
    DistributionStrategy,
    InvalidConfigError,
    InvalidTaskError,
    OccupiedRange,
    PlanSnapshot,
    PlanStats,
    Segment,
    SegmentConflictError,
    StorageError,
    Task,
    ViewMode,
    WeekStart,
)
from ..planning import CapacityModel, compute_stats, find_overlaps, recompute, segments_between
from .identifiers import IdGenerator

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
SEGMENTS_KEY = "segments"
CONFIG_KEY = "config"
CAPACITIES_KEY = "capacities"
COUNTERS_KEY = "counters"

TASK_PREFIX = "task"
SEGMENT_PREFIX = "seg"

Subscriber = Callable[[PlanSnapshot], None]
RecordT = TypeVar("RecordT")

_UNSET: Any = object()


def _validate_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise InvalidTaskError("Task title must be a non-empty string")
    return title.strip()


def _validate_minutes(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidTaskError("estimated_minutes must be a positive integer")
    return value


def _validate_deadline(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as exc:  # noqa: TRY003
            raise InvalidTaskError("deadline must be in YYYY-MM-DD format") from exc
    raise InvalidTaskError(f"Unsupported deadline value: {value!r}")


def week_bounds(target: date, week_start: WeekStart = WeekStart.MONDAY) -> Tuple[date, date]:
    """First and last day of the week containing ``target``."""

    if week_start is WeekStart.SUNDAY:
        offset = (target.weekday() + 1) % 7
    else:
        offset = target.weekday()
    start = target - timedelta(days=offset)
    return start, start + timedelta(days=6)


class PlanStore:
    """Authoritative owner of tasks, segments and distribution settings.

    Each mutation validates its input, recomputes the whole segment set and
    swaps the new state in before anything is persisted or announced.
    Observers registered with :meth:`subscribe` receive the resulting
    :class:`PlanSnapshot`.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        settings: Optional[PlannerSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
        id_seed: Optional[Mapping[str, int]] = None,
        autoload: bool = True,
    ) -> None:
        self._storage = storage
        self._settings = settings or get_settings().planner
        self._clock = clock
        self._id_seed = dict(id_seed or {})
        self._ids = IdGenerator(self._id_seed)
        self._snapshot = PlanSnapshot(config=DistributionConfig(strategy=self._settings.default_strategy))
        self._capacities: Dict[date, DayCapacity] = {}
        self._subscribers: List[Subscriber] = []
        if autoload:
            self.reload()

    # Read side ---------------------------------------------------------------

    @property
    def snapshot(self) -> PlanSnapshot:
        return self._snapshot

    @property
    def settings(self) -> PlannerSettings:
        return self._settings

    @property
    def capacity_model(self) -> CapacityModel:
        return self._capacity_model(self._capacities)

    def _capacity_model(self, capacities: Mapping[date, DayCapacity]) -> CapacityModel:
        return CapacityModel(
            default_minutes=self._settings.daily_minutes,
            skip_weekends=self._settings.skip_weekends,
            overrides=dict(capacities),
        )

    def today(self) -> date:
        return self._clock().date()

    def list_tasks(self) -> List[Task]:
        return list(self._snapshot.tasks)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._snapshot.task(task_id)

    def get_segment(self, segment_id: str) -> Optional[Segment]:
        for segment in self._snapshot.segments:
            if segment.id == segment_id:
                return segment
        return None

    def get_plan_for_date(self, target: date) -> List[Segment]:
        return segments_between(self._snapshot.segments, target, target)

    def get_plan_for_range(self, start: date, end: date) -> List[Segment]:
        return segments_between(self._snapshot.segments, start, end)

    def get_plan_for_week(self, target: date) -> Dict[date, List[Segment]]:
        start, end = week_bounds(target, self._settings.week_start)
        plan: Dict[date, List[Segment]] = {start + timedelta(days=offset): [] for offset in range(7)}
        for segment in segments_between(self._snapshot.segments, start, end):
            plan[segment.date].append(segment)
        return plan

    def get_stats_for_date(self, target: date) -> PlanStats:
        return self.get_stats_for_range(target, target)

    def get_stats_for_range(self, start: date, end: date) -> PlanStats:
        tasks_by_id = {task.id: task for task in self._snapshot.tasks}
        return compute_stats(segments_between(self._snapshot.segments, start, end), tasks_by_id)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # Task mutations ----------------------------------------------------------

    def add_task(self, title: str, estimated_minutes: int, deadline: Any = None) -> Task:
        clean_title = _validate_title(title)
        minutes = _validate_minutes(estimated_minutes)
        due = _validate_deadline(deadline)
        ids = self._ids.copy()
        task = Task(
            id=ids.next_id(TASK_PREFIX),
            title=clean_title,
            estimated_minutes=minutes,
            created_at=self._clock(),
            deadline=due,
        )
        self._commit(
            tasks=[*self._snapshot.tasks, task],
            segments=self._snapshot.segments,
            ids=ids,
            action="add_task",
        )
        return task

    def update_task(
        self,
        task_id: str,
        *,
        title: Optional[str] = None,
        estimated_minutes: Optional[int] = None,
        deadline: Any = _UNSET,
    ) -> Optional[Task]:
        """Edit a task; passing ``deadline=None`` clears the deadline."""

        existing = self.get_task(task_id)
        if existing is None:
            return None
        changes: Dict[str, Any] = {}
        if title is not None:
            changes["title"] = _validate_title(title)
        if estimated_minutes is not None:
            changes["estimated_minutes"] = _validate_minutes(estimated_minutes)
        if deadline is not _UNSET:
            changes["deadline"] = _validate_deadline(deadline)
        updated = replace(existing, **changes)

        today = self.today()
        locked = sum(
            segment.duration_minutes
            for segment in self._snapshot.segments
            if segment.task_id == task_id and (existing.completed or segment.date < today)
        )
        if updated.estimated_minutes < locked:
            raise InvalidTaskError(
                f"estimated_minutes cannot drop below the {locked} minutes already scheduled in the past"
            )

        segments = [
            replace(segment, pinned=False) if segment.task_id == task_id and segment.pinned else segment
            for segment in self._snapshot.segments
        ]
        tasks = [updated if task.id == task_id else task for task in self._snapshot.tasks]
        self._commit(tasks=tasks, segments=segments, action="update_task")
        return updated

    def complete_task(self, task_id: str) -> Optional[Task]:
        return self._set_completed(task_id, True)

    def reopen_task(self, task_id: str) -> Optional[Task]:
        return self._set_completed(task_id, False)

    def _set_completed(self, task_id: str, completed: bool) -> Optional[Task]:
        existing = self.get_task(task_id)
        if existing is None:
            return None
        if existing.completed == completed:
            return existing
        updated = replace(existing, completed=completed)
        tasks = [updated if task.id == task_id else task for task in self._snapshot.tasks]
        self._commit(
            tasks=tasks,
            segments=self._snapshot.segments,
            action="complete_task" if completed else "reopen_task",
        )
        return updated

    def delete_task(self, task_id: str) -> bool:
        if self.get_task(task_id) is None:
            return False
        tasks = [task for task in self._snapshot.tasks if task.id != task_id]
        segments = [segment for segment in self._snapshot.segments if segment.task_id != task_id]
        self._commit(tasks=tasks, segments=segments, action="delete_task")
        return True

    # Settings mutations ------------------------------------------------------

    def set_strategy(self, strategy: DistributionStrategy | str) -> DistributionConfig:
        try:
            resolved = DistributionStrategy(strategy)
        except ValueError as exc:
            raise InvalidConfigError(f"Unknown distribution strategy: {strategy!r}") from exc
        config = replace(self._snapshot.config, strategy=resolved)
        self._commit(config=config, action="set_strategy")
        return config

    def set_view_mode(self, view_mode: ViewMode | str) -> DistributionConfig:
        try:
            resolved = ViewMode(view_mode)
        except ValueError as exc:
            raise InvalidConfigError(f"Unknown view mode: {view_mode!r}") from exc
        config = replace(self._snapshot.config, view_mode=resolved)
        # The view mode only changes what the UI shows; allocation is untouched.
        self._swap(replace(self._snapshot, config=config), self._capacities, self._ids)
        self._persist()
        self._notify()
        return config

    def set_day_capacity(
        self,
        target: date,
        total_minutes: int,
        occupied_ranges: Iterable[OccupiedRange] = (),
    ) -> DayCapacity:
        if isinstance(total_minutes, bool) or not isinstance(total_minutes, int) or total_minutes < 0:
            raise InvalidConfigError("total_minutes must be a non-negative integer")
        ranges = tuple(sorted(occupied_ranges, key=lambda item: item.start_minute))
        for item in ranges:
            if item.start_minute < 0 or item.end_minute <= item.start_minute or item.end_minute > total_minutes:
                raise InvalidConfigError(
                    f"Occupied range {item.start_minute}-{item.end_minute} does not fit a {total_minutes} minute day"
                )
        capacity = DayCapacity(date=target, total_minutes=total_minutes, occupied_ranges=ranges)
        capacities = {**self._capacities, target: capacity}
        segments = self._segments_fitting(capacity)
        self._commit(capacities=capacities, segments=segments, action="set_day_capacity")
        return capacity

    def clear_day_capacity(self, target: date) -> bool:
        if target not in self._capacities:
            return False
        capacities = {day: value for day, value in self._capacities.items() if day != target}
        segments = self._segments_fitting(self._capacity_model(capacities).for_date(target))
        self._commit(capacities=capacities, segments=segments, action="clear_day_capacity")
        return True

    def _segments_fitting(self, capacity: DayCapacity) -> List[Segment]:
        """Check the segments on a re-sized day against its new window.

        Pinned segments that no longer fit are released back to the allocator.
        Past segments and segments of completed tasks cannot move, so a window
        that would cut through one of them is rejected with
        :class:`InvalidConfigError` before anything changes.
        """

        today = self.today()
        fitted: List[Segment] = []
        for segment in self._snapshot.segments:
            if segment.date == capacity.date and not self._fits(segment, capacity):
                if segment.date < today or self._is_completed(segment.task_id):
                    raise InvalidConfigError(
                        f"Session {segment.id} on {segment.date.isoformat()} is fixed and would not fit the new window"
                    )
                if segment.pinned:
                    logger.info("Unpinning segment %s after capacity change on %s", segment.id, segment.date)
                    segment = replace(segment, pinned=False)
            fitted.append(segment)
        return fitted

    @staticmethod
    def _fits(segment: Segment, capacity: DayCapacity) -> bool:
        if segment.end_minute > capacity.total_minutes:
            return False
        return not any(
            segment.start_minute < item.end_minute and item.start_minute < segment.end_minute
            for item in capacity.occupied_ranges
        )

    # Drag-reschedule ---------------------------------------------------------

    def move_segment(self, segment_id: str, new_date: date, new_start_minute: int) -> Optional[Segment]:
        """Pin a segment at a new date and offset after re-validating the plan invariants."""

        segment = self.get_segment(segment_id)
        if segment is None:
            return None
        task = self.get_task(segment.task_id)
        if task is None or task.completed:
            raise SegmentConflictError("Segments of completed tasks cannot be moved")
        if segment.date < self.today():
            raise SegmentConflictError("Past sessions cannot be moved")
        if new_date < self.today():
            raise SegmentConflictError("Segments cannot be moved into the past")
        if task.deadline is not None and new_date > task.deadline:
            raise SegmentConflictError(f"Task {task.id} is due {task.deadline.isoformat()}")
        if isinstance(new_start_minute, bool) or not isinstance(new_start_minute, int) or new_start_minute < 0:
            raise SegmentConflictError("start minute must be a non-negative integer")

        moved = replace(segment, date=new_date, start_minute=new_start_minute, pinned=True)
        capacity = self.capacity_model.for_date(new_date)
        if not self._fits(moved, capacity):
            raise SegmentConflictError("Segment does not fit the day's schedulable window")

        today = self.today()
        fixed = [
            other
            for other in self._snapshot.segments
            if other.id != segment_id
            and (other.pinned or other.date < today or self._is_completed(other.task_id))
        ]
        if find_overlaps([moved, *fixed]):
            raise SegmentConflictError("Segment overlaps another fixed session")

        segments = [moved if other.id == segment_id else other for other in self._snapshot.segments]
        self._commit(segments=segments, action="move_segment")
        return self.get_segment(segment_id)

    def _is_completed(self, task_id: str) -> bool:
        task = self.get_task(task_id)
        return bool(task and task.completed)

    def refresh(self) -> PlanSnapshot:
        """Recompute against the current clock without changing any input."""

        self._commit(action="refresh")
        return self._snapshot

    # Import / export ---------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        return self._storage.export_all()

    def import_state(self, data: Dict[str, Any]) -> PlanSnapshot:
        imported = self._storage.import_all(data)
        logger.info("Imported keys: %s", ", ".join(imported) or "(none)")
        return self.reload()

    def clear_all(self) -> int:
        """Delete every stored key and fall back to an empty plan."""

        removed = self._storage.clear_all()
        logger.info("Cleared %d stored keys", removed)
        self.reload()
        return removed

    # Persistence -------------------------------------------------------------

    def reload(self) -> PlanSnapshot:
        """Restore state from storage, substituting empty defaults for anything unreadable."""

        tasks = self._load_records(TASKS_KEY, Task.from_record)
        task_by_id = {task.id: task for task in tasks}
        segments = self._valid_segments(self._load_records(SEGMENTS_KEY, Segment.from_record), task_by_id)
        capacities = {item.date: item for item in self._load_records(CAPACITIES_KEY, DayCapacity.from_record)}
        config = self._load_config()

        counters = dict(self._id_seed)
        for prefix, value in self._load_counters().items():
            counters[prefix] = max(counters.get(prefix, 0), value)
        ids = IdGenerator(counters)
        ids.advance_past([*task_by_id, *(segment.id for segment in segments)])

        snapshot = PlanSnapshot(tasks=tuple(tasks), segments=tuple(segments), config=config)
        self._swap(snapshot, capacities, ids)
        logger.debug("Loaded %d tasks and %d segments", len(tasks), len(segments))
        self._notify()
        return snapshot

    def _load_records(self, key: str, parser: Callable[[Dict[str, Any]], RecordT]) -> List[RecordT]:
        try:
            raw = self._storage.get(key, [])
        except StorageError:
            logger.warning("Persisted '%s' could not be read; starting empty", key, exc_info=True)
            return []
        if not isinstance(raw, list):
            logger.warning("Persisted '%s' is not a list; starting empty", key)
            return []
        try:
            return [parser(item) for item in raw]
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Persisted '%s' is malformed; starting empty", key, exc_info=True)
            return []

    def _valid_segments(self, segments: Sequence[Segment], tasks: Mapping[str, Task]) -> List[Segment]:
        kept = [segment for segment in segments if segment.task_id in tasks]
        totals: Dict[str, int] = {}
        for segment in kept:
            totals[segment.task_id] = totals.get(segment.task_id, 0) + segment.duration_minutes
        over_budget = [task_id for task_id, total in totals.items() if total > tasks[task_id].estimated_minutes]
        if find_overlaps(kept) or over_budget or len({segment.id for segment in kept}) != len(kept):
            logger.warning("Persisted segments violate plan invariants; starting with no segments")
            return []
        return kept

    def _load_config(self) -> DistributionConfig:
        default = DistributionConfig(strategy=self._settings.default_strategy)
        try:
            raw = self._storage.get(CONFIG_KEY)
        except StorageError:
            logger.warning("Persisted config could not be read; using defaults", exc_info=True)
            return default
        if raw is None:
            return default
        if not isinstance(raw, dict):
            logger.warning("Persisted config is not an object; using defaults")
            return default
        try:
            return DistributionConfig.from_record(raw)
        except ValueError:
            logger.warning("Persisted config is malformed; using defaults", exc_info=True)
            return default

    def _load_counters(self) -> Dict[str, int]:
        try:
            raw = self._storage.get(COUNTERS_KEY, {})
        except StorageError:
            logger.warning("Persisted counters could not be read", exc_info=True)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {
            str(key): value
            for key, value in raw.items()
            if isinstance(value, int) and not isinstance(value, bool) and value >= 0
        }

    def _persist(self) -> None:
        payload = {
            TASKS_KEY: [task.to_record() for task in self._snapshot.tasks],
            SEGMENTS_KEY: [segment.to_record() for segment in self._snapshot.segments],
            CONFIG_KEY: self._snapshot.config.to_record(),
            CAPACITIES_KEY: [
                self._capacities[day].to_record() for day in sorted(self._capacities)
            ],
            COUNTERS_KEY: self._ids.counters,
        }
        for key, value in payload.items():
            try:
                self._storage.set(key, value)
            except StorageError:
                logger.warning("Failed to persist '%s'; in-memory plan remains authoritative", key, exc_info=True)

    # Internals ---------------------------------------------------------------

    def _commit(
        self,
        *,
        action: str,
        tasks: Optional[Sequence[Task]] = None,
        segments: Optional[Sequence[Segment]] = None,
        config: Optional[DistributionConfig] = None,
        capacities: Optional[Mapping[date, DayCapacity]] = None,
        ids: Optional[IdGenerator] = None,
    ) -> PlanSnapshot:
        tasks = list(self._snapshot.tasks if tasks is None else tasks)
        previous = list(self._snapshot.segments if segments is None else segments)
        config = config or self._snapshot.config
        capacities = dict(self._capacities if capacities is None else capacities)
        ids = (ids or self._ids).copy()

        model = self._capacity_model(capacities)
        result = recompute(
            tasks,
            model,
            config,
            today=self.today(),
            next_id=ids.factory(SEGMENT_PREFIX),
            previous=previous,
            lookahead_days=self._settings.lookahead_days,
        )
        snapshot = PlanSnapshot(
            tasks=tuple(tasks),
            segments=result.segments,
            config=config,
            underallocated=result.underallocated,
        )
        self._swap(snapshot, capacities, ids)
        logger.info(
            "%s: %d tasks, %d segments (%s to %s)",
            action,
            len(tasks),
            len(result.segments),
            result.horizon_start.isoformat(),
            result.horizon_end.isoformat(),
        )
        for shortfall in result.underallocated:
            logger.warning(
                "Task %s is short %d minutes (%s)", shortfall.task_id, shortfall.minutes, shortfall.reason
            )
        self._persist()
        self._notify()
        return snapshot

    def _swap(self, snapshot: PlanSnapshot, capacities: Dict[date, DayCapacity], ids: IdGenerator) -> None:
        self._snapshot, self._capacities, self._ids = snapshot, capacities, ids

    def _notify(self) -> None:
        snapshot = self._snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:  # noqa: BLE001
                logger.exception("Plan subscriber %r failed", callback)


__all__ = ["PlanStore", "week_bounds"]
