"""Distribution strategies deciding how many minutes each task asks for per day.

A policy never looks at wall-clock offsets. It receives the days a task may use
(its *window*) together with the minutes still free on each of them, and returns
a ``{day: minutes}`` request. :func:`distribute` walks the tasks in the policy's
processing order and deducts every request from the shared ledger, so later
tasks only see what earlier ones left behind.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Sequence

from ..domain import DistributionStrategy, Task, Underallocation

DEADLINE_PASSED = "deadline_passed"
NO_CAPACITY = "no_capacity"

Requests = Dict[date, int]


class DistributionPolicy(ABC):
    strategy: DistributionStrategy

    def order(self, tasks: Iterable[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: task.sort_key)

    @abstractmethod
    def request(self, remaining: int, window: Sequence[date], available: Mapping[date, int]) -> Requests:
        """Return minutes requested per day; never above ``available`` or ``remaining``."""


def _fill(remaining: int, days: Iterable[date], available: Mapping[date, int]) -> Requests:
    requests: Requests = {}
    for day in days:
        if remaining <= 0:
            break
        take = min(remaining, available.get(day, 0))
        if take > 0:
            requests[day] = take
            remaining -= take
    return requests


class EvenPolicy(DistributionPolicy):
    strategy = DistributionStrategy.EVEN

    def request(self, remaining: int, window: Sequence[date], available: Mapping[date, int]) -> Requests:
        open_days = [day for day in window if available.get(day, 0) > 0]
        if not open_days:
            return {}
        base, extra = divmod(remaining, len(open_days))
        requests: Requests = {}
        for index, day in enumerate(open_days):
            share = base + (1 if index < extra else 0)
            take = min(share, available[day])
            if take > 0:
                requests[day] = take
        # Minutes clamped away by full days spill onto the earliest days with room.
        leftover = remaining - sum(requests.values())
        for day in open_days:
            if leftover <= 0:
                break
            room = available[day] - requests.get(day, 0)
            take = min(leftover, room)
            if take > 0:
                requests[day] = requests.get(day, 0) + take
                leftover -= take
        return requests


class FrontloadPolicy(DistributionPolicy):
    strategy = DistributionStrategy.FRONTLOAD

    def request(self, remaining: int, window: Sequence[date], available: Mapping[date, int]) -> Requests:
        return _fill(remaining, window, available)


class BackloadPolicy(DistributionPolicy):
    strategy = DistributionStrategy.BACKLOAD

    def request(self, remaining: int, window: Sequence[date], available: Mapping[date, int]) -> Requests:
        return _fill(remaining, reversed(window), available)


class DeadlineWeightedPolicy(FrontloadPolicy):
    strategy = DistributionStrategy.DEADLINE_WEIGHTED

    def order(self, tasks: Iterable[Task]) -> List[Task]:
        return sorted(
            tasks,
            key=lambda task: (task.deadline is None, task.deadline or date.max, task.created_at, task.id),
        )


_POLICIES: Dict[DistributionStrategy, DistributionPolicy] = {
    policy.strategy: policy
    for policy in (EvenPolicy(), FrontloadPolicy(), BackloadPolicy(), DeadlineWeightedPolicy())
}


def policy_for(strategy: DistributionStrategy | str) -> DistributionPolicy:
    return _POLICIES[DistributionStrategy(strategy)]


@dataclass
class Distribution:
    order: List[Task] = field(default_factory=list)
    requests: Dict[str, Requests] = field(default_factory=dict)
    underallocated: List[Underallocation] = field(default_factory=list)


def distribute(
    policy: DistributionPolicy,
    tasks: Iterable[Task],
    remaining: Mapping[str, int],
    horizon: Sequence[date],
    available: Dict[date, int],
) -> Distribution:
    """Run ``policy`` over ``tasks``, consuming minutes from ``available`` in place."""

    result = Distribution(order=policy.order(tasks))
    for task in result.order:
        minutes = remaining.get(task.id, 0)
        window = [day for day in horizon if task.deadline is None or day <= task.deadline]
        requests = policy.request(minutes, window, available) if window else {}
        for day, amount in requests.items():
            available[day] -= amount
        result.requests[task.id] = requests
        missing = minutes - sum(requests.values())
        if missing > 0:
            reason = DEADLINE_PASSED if not window else NO_CAPACITY
            result.underallocated.append(Underallocation(task_id=task.id, minutes=missing, reason=reason))
    return result


__all__ = [
    "BackloadPolicy",
    "DEADLINE_PASSED",
    "DeadlineWeightedPolicy",
    "Distribution",
    "DistributionPolicy",
    "EvenPolicy",
    "FrontloadPolicy",
    "NO_CAPACITY",
    "distribute",
    "policy_for",
]
