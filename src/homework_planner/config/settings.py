from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from ..core import DATA_DIR, STORAGE_PREFIX
from ..domain import DistributionStrategy, WeekStart

load_dotenv()


@dataclass(frozen=True)
class PlannerSettings:
    daily_minutes: int
    workday_start: time
    lookahead_days: int
    skip_weekends: bool
    default_strategy: DistributionStrategy
    week_start: WeekStart


@dataclass(frozen=True)
class StorageSettings:
    data_dir: Path
    key_prefix: str


@dataclass(frozen=True)
class ServerSettings:
    host: str
    http_port: int
    mcp_port: int


@dataclass(frozen=True)
class AppSettings:
    planner: PlannerSettings
    storage: StorageSettings
    server: ServerSettings
    log_level: str


def _int_from_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def _bool_from_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _time_from_env(name: str, default: time) -> time:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return time.fromisoformat(raw)
    except ValueError:
        return default


def _enum_from_env(name: str, enum_type, default):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return enum_type(raw.strip().lower())
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    planner = PlannerSettings(
        daily_minutes=_int_from_env("HOMEWORK_PLANNER_DAILY_MINUTES", 480),
        workday_start=_time_from_env("HOMEWORK_PLANNER_WORKDAY_START", time(9, 0)),
        lookahead_days=_int_from_env("HOMEWORK_PLANNER_LOOKAHEAD_DAYS", 14, minimum=1),
        skip_weekends=_bool_from_env("HOMEWORK_PLANNER_SKIP_WEEKENDS", False),
        default_strategy=_enum_from_env("HOMEWORK_PLANNER_STRATEGY", DistributionStrategy, DistributionStrategy.EVEN),
        week_start=_enum_from_env("HOMEWORK_PLANNER_WEEK_START", WeekStart, WeekStart.MONDAY),
    )

    storage = StorageSettings(
        data_dir=Path(os.getenv("HOMEWORK_PLANNER_DATA_DIR") or DATA_DIR),
        key_prefix=os.getenv("HOMEWORK_PLANNER_KEY_PREFIX", STORAGE_PREFIX),
    )

    server = ServerSettings(
        host=os.getenv("HOMEWORK_PLANNER_HOST", "127.0.0.1"),
        http_port=_int_from_env("HOMEWORK_PLANNER_HTTP_PORT", 8000, minimum=1),
        mcp_port=_int_from_env("HOMEWORK_PLANNER_MCP_PORT", 8765, minimum=1),
    )

    return AppSettings(
        planner=planner,
        storage=storage,
        server=server,
        log_level=os.getenv("HOMEWORK_PLANNER_LOG_LEVEL", "INFO").upper(),
    )
