"""Homework Planner: distributes task work across days under a chosen strategy."""

from __future__ import annotations

from .data import JsonFileStore, MemoryStore
from .domain import DistributionStrategy, Segment, Task
from .services import PlanStore

__all__ = ["DistributionStrategy", "JsonFileStore", "MemoryStore", "PlanStore", "Segment", "Task", "main"]


def main() -> None:
    from .cli import main as cli_main

    raise SystemExit(cli_main())
