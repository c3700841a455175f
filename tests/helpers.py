"""Builders shared across the test suite."""

from datetime import date, datetime, timedelta

from homework_planner.domain import Task

# A Monday, so week views start on the same day.
TODAY = date(2025, 3, 3)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class Counter:
    """Deterministic ``next_id`` callable that records how often it was used."""

    def __init__(self, prefix: str = "seg"):
        self.prefix = prefix
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        return f"{self.prefix}_{self.calls:04d}"


def make_task(task_id, minutes, *, deadline=None, completed=False, order=0, title=None):
    return Task(
        id=task_id,
        title=title or f"Task {task_id}",
        estimated_minutes=minutes,
        created_at=datetime(2025, 3, 1, 8, 0) + timedelta(minutes=order),
        deadline=deadline,
        completed=completed,
    )


def day(offset: int) -> date:
    return TODAY + timedelta(days=offset)
