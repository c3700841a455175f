"""Shared fixtures: a fixed clock, in-memory storage and explicit settings."""

from datetime import datetime, time
from pathlib import Path

import pytest

from homework_planner.config import AppSettings, PlannerSettings, ServerSettings, StorageSettings
from homework_planner.data import MemoryStore
from homework_planner.domain import DistributionStrategy, WeekStart
from homework_planner.services import PlanStore

from tests.helpers import TODAY, FakeClock


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def clock():
    return FakeClock(datetime.combine(TODAY, time(7, 30)))


@pytest.fixture
def planner_settings():
    return PlannerSettings(
        daily_minutes=480,
        workday_start=time(9, 0),
        lookahead_days=14,
        skip_weekends=False,
        default_strategy=DistributionStrategy.EVEN,
        week_start=WeekStart.MONDAY,
    )


@pytest.fixture
def app_settings(planner_settings, tmp_path):
    return AppSettings(
        planner=planner_settings,
        storage=StorageSettings(data_dir=Path(tmp_path), key_prefix="homework-planner-"),
        server=ServerSettings(host="127.0.0.1", http_port=8000, mcp_port=8765),
        log_level="DEBUG",
    )


@pytest.fixture
def storage():
    return MemoryStore()


@pytest.fixture
def store(storage, planner_settings, clock):
    return PlanStore(storage, settings=planner_settings, clock=clock)
