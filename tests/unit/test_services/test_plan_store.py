"""
Unit tests for the plan store.
Tests task lifecycle, settings, drag-reschedule, persistence and observers.
"""

import logging

import pytest

from homework_planner.data import JsonFileStore, MemoryStore
from homework_planner.domain import (
    DistributionStrategy,
    InvalidConfigError,
    InvalidTaskError,
    OccupiedRange,
    SegmentConflictError,
    StorageError,
    ViewMode,
    WeekStart,
)
from homework_planner.planning import find_overlaps
from homework_planner.services import PlanStore, week_bounds

from tests.helpers import TODAY, day


def _minutes(segments):
    return sum(segment.duration_minutes for segment in segments)


def _segments_of(store, task_id):
    return [segment for segment in store.snapshot.segments if segment.task_id == task_id]


class TestAddTask:
    """Tests for task creation."""

    def test_creates_task_and_plans_it(self, store, clock):
        task = store.add_task("Essay", 120, deadline=day(3))

        assert task.id == "task_0001"
        assert task.created_at == clock()
        assert store.get_task("task_0001") == task
        assert [(s.date, s.start_minute, s.duration_minutes) for s in _segments_of(store, task.id)] == [
            (day(offset), 0, 30) for offset in range(4)
        ]
        assert [segment.id for segment in store.snapshot.segments] == [
            "seg_0001",
            "seg_0002",
            "seg_0003",
            "seg_0004",
        ]

    def test_ids_are_sequential(self, store):
        first = store.add_task("Essay", 60)
        second = store.add_task("Lab report", 60)
        assert (first.id, second.id) == ("task_0001", "task_0002")

    def test_accepts_iso_deadline_string(self, store):
        task = store.add_task("Essay", 60, deadline="2025-03-05")
        assert task.deadline == day(2)

    def test_title_is_trimmed(self, store):
        assert store.add_task("  Essay  ", 30).title == "Essay"

    @pytest.mark.parametrize(
        "title, minutes, deadline",
        [
            ("", 60, None),
            ("   ", 60, None),
            ("Essay", 0, None),
            ("Essay", -30, None),
            ("Essay", True, None),
            ("Essay", 12.5, None),
            ("Essay", 60, "03/10/2025"),
        ],
    )
    def test_invalid_input_leaves_state_untouched(self, store, storage, title, minutes, deadline):
        before = store.snapshot

        with pytest.raises(InvalidTaskError):
            store.add_task(title, minutes, deadline=deadline)

        assert store.snapshot is before
        assert storage.keys() == []

    def test_persists_tasks_segments_and_counters(self, store, storage):
        store.add_task("Essay", 120, deadline=day(3))

        assert [record["id"] for record in storage.get("tasks")] == ["task_0001"]
        assert len(storage.get("segments")) == 4
        assert storage.get("counters") == {"task": 1, "seg": 4}
        assert storage.get("config") == {"strategy": "even", "view_mode": "day"}

    def test_past_deadline_is_reported_as_underallocated(self, store, caplog):
        with caplog.at_level(logging.WARNING):
            task = store.add_task("Late essay", 90, deadline=day(-1))

        assert store.get_task(task.id) is not None
        assert _segments_of(store, task.id) == []
        assert [(item.task_id, item.minutes) for item in store.snapshot.underallocated] == [(task.id, 90)]
        assert "short 90 minutes" in caplog.text


class TestTaskLifecycle:
    """Tests for editing, completing and deleting tasks."""

    def test_update_title_keeps_plan(self, store):
        task = store.add_task("Essay", 120, deadline=day(3))
        before = store.snapshot.segments

        updated = store.update_task(task.id, title="History essay")

        assert updated.title == "History essay"
        assert store.snapshot.segments == before

    def test_update_estimate_replans(self, store):
        task = store.add_task("Essay", 120, deadline=day(3))

        store.update_task(task.id, estimated_minutes=240)

        assert _minutes(_segments_of(store, task.id)) == 240

    def test_clearing_deadline(self, store):
        task = store.add_task("Essay", 120, deadline=day(3))

        updated = store.update_task(task.id, deadline=None)

        assert updated.deadline is None
        assert max(segment.date for segment in _segments_of(store, task.id)) > day(3)

    def test_update_unknown_task_returns_none(self, store):
        assert store.update_task("task_0404", title="Nothing") is None

    def test_estimate_cannot_drop_below_past_work(self, store, clock):
        store.set_strategy("frontload")
        task = store.add_task("Essay", 120)
        clock.advance(days=1)

        with pytest.raises(InvalidTaskError):
            store.update_task(task.id, estimated_minutes=60)

        store.update_task(task.id, estimated_minutes=180)
        assert [(s.date, s.duration_minutes) for s in _segments_of(store, task.id)] == [(TODAY, 120), (day(1), 60)]

    def test_update_releases_pinned_segments(self, store):
        store.set_strategy("frontload")
        task = store.add_task("Essay", 120)
        segment = _segments_of(store, task.id)[0]
        store.move_segment(segment.id, day(1), 0)

        store.update_task(task.id, title="Essay draft")

        assert not any(segment.pinned for segment in store.snapshot.segments)

    def test_complete_and_reopen_keep_segments(self, store):
        task = store.add_task("Essay", 120, deadline=day(3))
        planned = store.snapshot.segments

        completed = store.complete_task(task.id)
        assert completed.completed is True
        assert store.snapshot.segments == planned
        assert store.get_stats_for_date(TODAY).completed_count == 1

        reopened = store.reopen_task(task.id)
        assert reopened.completed is False
        assert store.snapshot.segments == planned

    def test_completed_task_frees_no_room_for_others(self, store):
        store.set_strategy("frontload")
        done = store.add_task("Essay", 120)
        store.complete_task(done.id)

        other = store.add_task("Worksheet", 60)

        assert [(s.start_minute, s.duration_minutes) for s in _segments_of(store, other.id)] == [(120, 60)]

    def test_completing_unknown_task_returns_none(self, store):
        assert store.complete_task("task_0404") is None
        assert store.reopen_task("task_0404") is None

    def test_delete_keeps_other_segments(self, store):
        removed = store.add_task("Essay", 60, deadline=day(1))
        survivor = store.add_task("Worksheet", 60, deadline=day(1))
        kept = _segments_of(store, survivor.id)

        assert store.delete_task(removed.id) is True

        assert store.get_task(removed.id) is None
        assert _segments_of(store, removed.id) == []
        assert _segments_of(store, survivor.id) == kept

    def test_delete_unknown_task(self, store):
        assert store.delete_task("task_0404") is False


class TestSettings:
    """Tests for strategy, view mode and capacity changes."""

    def test_strategy_change_replans(self, store, storage):
        task = store.add_task("Essay", 120, deadline=day(3))

        config = store.set_strategy("frontload")

        assert config.strategy is DistributionStrategy.FRONTLOAD
        assert [(s.date, s.duration_minutes) for s in _segments_of(store, task.id)] == [(TODAY, 120)]
        assert storage.get("config")["strategy"] == "frontload"

    def test_unknown_strategy_is_rejected(self, store):
        before = store.snapshot
        with pytest.raises(InvalidConfigError):
            store.set_strategy("random")
        assert store.snapshot is before

    def test_view_mode_does_not_touch_segments(self, store, storage):
        store.add_task("Essay", 120, deadline=day(3))
        before = store.snapshot.segments

        config = store.set_view_mode("week")

        assert config.view_mode is ViewMode.WEEK
        assert store.snapshot.segments == before
        assert storage.get("config")["view_mode"] == "week"

    def test_unknown_view_mode_is_rejected(self, store):
        with pytest.raises(InvalidConfigError):
            store.set_view_mode("month")

    def test_zero_capacity_day_gets_no_sessions(self, store):
        task = store.add_task("Essay", 120, deadline=day(3))

        store.set_day_capacity(TODAY, 0)

        assert store.get_plan_for_date(TODAY) == []
        assert [(s.date, s.duration_minutes) for s in _segments_of(store, task.id)] == [
            (day(offset), 40) for offset in (1, 2, 3)
        ]

    def test_occupied_ranges_are_avoided(self, store):
        store.set_strategy("frontload")
        store.set_day_capacity(TODAY, 480, [OccupiedRange(0, 60, "club")])

        task = store.add_task("Essay", 30)

        assert [(s.start_minute, s.duration_minutes) for s in _segments_of(store, task.id)] == [(60, 30)]

    @pytest.mark.parametrize(
        "total, ranges",
        [(-1, []), (True, []), (480, [OccupiedRange(400, 500)]), (480, [OccupiedRange(60, 60)])],
    )
    def test_invalid_capacity_is_rejected(self, store, total, ranges):
        with pytest.raises(InvalidConfigError):
            store.set_day_capacity(TODAY, total, ranges)

    def test_clear_day_capacity(self, store):
        store.set_day_capacity(TODAY, 60)
        assert store.capacity_model.for_date(TODAY).total_minutes == 60

        assert store.clear_day_capacity(TODAY) is True
        assert store.capacity_model.for_date(TODAY).total_minutes == 480
        assert store.clear_day_capacity(TODAY) is False

    def test_shrinking_day_releases_pinned_segment(self, store):
        store.set_strategy("frontload")
        task = store.add_task("Essay", 120)
        segment = _segments_of(store, task.id)[0]
        store.move_segment(segment.id, day(1), 300)

        store.set_day_capacity(day(1), 240)

        assert not any(segment.pinned for segment in store.snapshot.segments)
        assert all(segment.end_minute <= 240 for segment in store.get_plan_for_date(day(1)))
        assert _minutes(_segments_of(store, task.id)) == 120

    def test_window_cutting_through_completed_session_is_rejected(self, store):
        store.set_strategy("backload")
        task = store.add_task("Essay", 120, deadline=day(1))
        store.complete_task(task.id)
        before = store.snapshot

        with pytest.raises(InvalidConfigError):
            store.set_day_capacity(day(1), 60, [OccupiedRange(0, 60)])
        with pytest.raises(InvalidConfigError):
            store.set_day_capacity(day(1), 480, [OccupiedRange(30, 45)])

        assert store.snapshot is before
        assert store.capacity_model.for_date(day(1)).total_minutes == 480

    def test_window_cutting_through_past_session_is_rejected(self, store, clock):
        store.set_strategy("frontload")
        store.add_task("Essay", 120)
        clock.advance(days=1)

        with pytest.raises(InvalidConfigError):
            store.set_day_capacity(TODAY, 60)

    def test_clearing_override_checks_default_window(self, store):
        store.set_strategy("frontload")
        store.set_day_capacity(TODAY, 600)
        task = store.add_task("Essay", 540)
        store.complete_task(task.id)

        with pytest.raises(InvalidConfigError):
            store.clear_day_capacity(TODAY)

        assert store.capacity_model.for_date(TODAY).total_minutes == 600

    def test_fixed_session_that_still_fits_allows_change(self, store):
        store.set_strategy("frontload")
        task = store.add_task("Essay", 120)
        store.complete_task(task.id)

        store.set_day_capacity(TODAY, 240, [OccupiedRange(120, 180)])

        assert [(s.start_minute, s.duration_minutes) for s in _segments_of(store, task.id)] == [(0, 120)]


class TestReads:
    """Tests for plan queries."""

    def test_week_plan_has_seven_days(self, store):
        store.add_task("Essay", 120, deadline=day(3))

        plan = store.get_plan_for_week(day(2))

        assert list(plan) == [day(offset) for offset in range(7)]
        assert [len(plan[day(offset)]) for offset in range(7)] == [1, 1, 1, 1, 0, 0, 0]

    def test_week_bounds_respect_week_start(self):
        assert week_bounds(day(2)) == (TODAY, day(6))
        assert week_bounds(TODAY, WeekStart.SUNDAY) == (day(-1), day(5))
        assert week_bounds(day(-1), WeekStart.SUNDAY) == (day(-1), day(5))

    def test_range_stats(self, store):
        store.add_task("Essay", 120, deadline=day(3))

        stats = store.get_stats_for_range(TODAY, day(3))

        assert (stats.total_minutes, stats.session_count, stats.completed_count) == (120, 4, 0)

    def test_get_segment(self, store):
        store.add_task("Essay", 60)
        segment = store.snapshot.segments[0]
        assert store.get_segment(segment.id) == segment
        assert store.get_segment("seg_9999") is None


class TestMoveSegment:
    """Tests for drag-reschedule."""

    @pytest.fixture
    def frontloaded(self, store):
        store.set_strategy("frontload")
        return store

    def test_move_pins_segment(self, frontloaded):
        task = frontloaded.add_task("Essay", 120)
        segment = _segments_of(frontloaded, task.id)[0]

        moved = frontloaded.move_segment(segment.id, day(1), 60)

        assert (moved.id, moved.date, moved.start_minute, moved.pinned) == (segment.id, day(1), 60, True)
        assert frontloaded.get_plan_for_date(TODAY) == []

    def test_move_survives_later_changes(self, frontloaded):
        task = frontloaded.add_task("Essay", 120)
        segment = _segments_of(frontloaded, task.id)[0]
        frontloaded.move_segment(segment.id, day(2), 0)

        frontloaded.add_task("Worksheet", 60)

        assert frontloaded.get_segment(segment.id).date == day(2)

    def test_flexible_sessions_reflow_around_moved_one(self, frontloaded):
        first = frontloaded.add_task("Essay", 60)
        second = frontloaded.add_task("Worksheet", 60)
        segment = _segments_of(frontloaded, first.id)[0]

        frontloaded.move_segment(segment.id, TODAY, 60)

        assert find_overlaps(frontloaded.snapshot.segments) == []
        assert [(s.start_minute, s.duration_minutes) for s in _segments_of(frontloaded, second.id)] == [(0, 60)]

    def test_overlapping_pinned_segment_is_rejected(self, frontloaded):
        first = frontloaded.add_task("Essay", 60)
        second = frontloaded.add_task("Worksheet", 60)
        frontloaded.move_segment(_segments_of(frontloaded, first.id)[0].id, day(1), 0)
        other = _segments_of(frontloaded, second.id)[0]

        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(other.id, day(1), 30)

        assert frontloaded.move_segment(other.id, day(1), 60).start_minute == 60

    def test_outside_window_is_rejected(self, frontloaded):
        task = frontloaded.add_task("Essay", 120)
        segment = _segments_of(frontloaded, task.id)[0]
        before = frontloaded.snapshot

        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(segment.id, day(1), 400)
        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(segment.id, day(1), -5)

        assert frontloaded.snapshot is before

    def test_occupied_range_is_rejected(self, frontloaded):
        task = frontloaded.add_task("Essay", 60)
        frontloaded.set_day_capacity(day(1), 480, [OccupiedRange(0, 60)])

        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(_segments_of(frontloaded, task.id)[0].id, day(1), 30)

    def test_after_deadline_is_rejected(self, frontloaded):
        task = frontloaded.add_task("Essay", 60, deadline=day(1))

        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(_segments_of(frontloaded, task.id)[0].id, day(2), 0)

    def test_into_past_is_rejected(self, frontloaded):
        task = frontloaded.add_task("Essay", 60)

        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(_segments_of(frontloaded, task.id)[0].id, day(-1), 0)

    def test_past_segment_cannot_move(self, frontloaded, clock):
        task = frontloaded.add_task("Essay", 60)
        segment = _segments_of(frontloaded, task.id)[0]
        clock.advance(days=1)

        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(segment.id, day(2), 0)

    def test_completed_task_segment_cannot_move(self, frontloaded):
        task = frontloaded.add_task("Essay", 60)
        frontloaded.complete_task(task.id)

        with pytest.raises(SegmentConflictError):
            frontloaded.move_segment(_segments_of(frontloaded, task.id)[0].id, day(1), 0)

    def test_unknown_segment(self, frontloaded):
        assert frontloaded.move_segment("seg_9999", day(1), 0) is None


class TestRefresh:
    """Tests for explicit recomputation."""

    def test_refresh_is_idempotent(self, store, storage):
        store.add_task("Essay", 200, deadline=day(2))
        store.add_task("Worksheet", 500)
        segments = store.snapshot.segments
        counters = storage.get("counters")

        store.refresh()

        assert store.snapshot.segments == segments
        assert storage.get("counters") == counters

    def test_day_rollover_keeps_planned_sessions(self, store, clock):
        store.add_task("Essay", 120, deadline=day(3))
        segments = store.snapshot.segments
        clock.advance(days=1)

        store.refresh()

        assert store.snapshot.segments == segments


class TestSubscribers:
    """Tests for change notification."""

    def test_subscriber_receives_snapshots(self, store):
        received = []
        unsubscribe = store.subscribe(received.append)

        store.add_task("Essay", 60)
        unsubscribe()
        store.add_task("Worksheet", 60)

        assert len(received) == 1
        assert [task.title for task in received[0].tasks] == ["Essay"]

    def test_failing_subscriber_does_not_break_mutation(self, store, caplog):
        def broken(snapshot):
            raise RuntimeError("boom")

        store.subscribe(broken)
        with caplog.at_level(logging.ERROR):
            task = store.add_task("Essay", 60)

        assert store.get_task(task.id) == task
        assert "subscriber" in caplog.text


class _FailingStore(MemoryStore):
    def _write(self, full_key, payload):
        raise StorageError("disk full")


class TestPersistence:
    """Tests for loading, saving, import and export."""

    def test_reload_restores_state_and_counters(self, store, storage, planner_settings, clock):
        store.set_strategy("frontload")
        store.add_task("Essay", 120, deadline=day(3))

        restored = PlanStore(storage, settings=planner_settings, clock=clock)

        assert restored.snapshot.tasks == store.snapshot.tasks
        assert restored.snapshot.segments == store.snapshot.segments
        assert restored.snapshot.config.strategy is DistributionStrategy.FRONTLOAD
        assert restored.add_task("Worksheet", 30).id == "task_0002"

    def test_id_seed_sets_counter_floor(self, storage, planner_settings, clock):
        seeded = PlanStore(storage, settings=planner_settings, clock=clock, id_seed={"task": 41})
        assert seeded.add_task("Essay", 30).id == "task_0042"

    def test_write_failure_keeps_memory_state(self, planner_settings, clock, caplog):
        failing = PlanStore(_FailingStore(), settings=planner_settings, clock=clock)

        with caplog.at_level(logging.WARNING):
            task = failing.add_task("Essay", 60)

        assert failing.get_task(task.id) == task
        assert "Failed to persist" in caplog.text

    def test_malformed_values_load_as_empty(self, storage, planner_settings, clock, caplog):
        storage.set("tasks", "not a list")
        storage.set("config", {"strategy": "sideways"})

        with caplog.at_level(logging.WARNING):
            loaded = PlanStore(storage, settings=planner_settings, clock=clock)

        assert loaded.snapshot.tasks == ()
        assert loaded.snapshot.config.strategy is DistributionStrategy.EVEN
        assert "starting empty" in caplog.text

    def test_invalid_json_file_loads_as_empty(self, tmp_path, planner_settings, clock):
        (tmp_path / "homework-planner-tasks.json").write_bytes(b"{not json")

        loaded = PlanStore(JsonFileStore(tmp_path), settings=planner_settings, clock=clock)

        assert loaded.snapshot.tasks == ()

    def test_segments_breaking_budget_are_discarded(self, storage, planner_settings, clock):
        storage.set(
            "tasks",
            [
                {
                    "id": "task_0001",
                    "title": "Essay",
                    "estimated_minutes": 60,
                    "deadline": None,
                    "completed": False,
                    "created_at": "2025-03-01T08:00:00",
                }
            ],
        )
        storage.set(
            "segments",
            [
                {
                    "id": "seg_0001",
                    "task_id": "task_0001",
                    "date": "2025-03-03",
                    "start_minute": 0,
                    "duration_minutes": 120,
                    "pinned": False,
                }
            ],
        )

        loaded = PlanStore(storage, settings=planner_settings, clock=clock)

        assert [task.id for task in loaded.snapshot.tasks] == ["task_0001"]
        assert loaded.snapshot.segments == ()

    def test_export_import_round_trip(self, store, planner_settings, clock):
        store.add_task("Essay", 120, deadline=day(3))
        store.set_day_capacity(day(1), 240, [OccupiedRange(0, 30)])
        exported = store.export_state()

        other = PlanStore(MemoryStore(), settings=planner_settings, clock=clock)
        received = []
        other.subscribe(received.append)
        other.import_state(exported)

        assert other.snapshot.tasks == store.snapshot.tasks
        assert other.snapshot.segments == store.snapshot.segments
        assert other.capacity_model.for_date(day(1)) == store.capacity_model.for_date(day(1))
        assert len(received) == 1

    def test_import_rejects_non_object(self, store):
        with pytest.raises(StorageError):
            store.import_state(["tasks"])

    def test_timezone_aware_creation_time_is_normalised(self, store):
        store.add_task("Essay", 60)
        exported = store.export_state()
        exported["tasks"][0]["created_at"] = "2025-03-01T08:00:00+00:00"

        store.import_state(exported)
        later = store.add_task("Worksheet", 30)

        assert store.get_task("task_0001").created_at.tzinfo is None
        assert [task.id for task in store.list_tasks()] == ["task_0001", later.id]

    @pytest.mark.parametrize("title, minutes", [("   ", 60), ("Essay", 0), ("Essay", -15)])
    def test_tasks_failing_validation_load_as_empty(self, storage, planner_settings, clock, title, minutes):
        storage.set(
            "tasks",
            [
                {
                    "id": "task_0001",
                    "title": title,
                    "estimated_minutes": minutes,
                    "deadline": None,
                    "completed": False,
                    "created_at": "2025-03-01T08:00:00",
                }
            ],
        )

        loaded = PlanStore(storage, settings=planner_settings, clock=clock)

        assert loaded.snapshot.tasks == ()

    def test_clear_all_starts_over(self, store, storage):
        store.add_task("Essay", 60)
        received = []
        store.subscribe(received.append)

        removed = store.clear_all()

        assert removed == 5
        assert storage.keys() == []
        assert store.snapshot.tasks == ()
        assert store.snapshot.segments == ()
        assert len(received) == 1
        assert store.add_task("Worksheet", 30).id == "task_0001"
