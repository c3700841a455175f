"""Application services orchestrating storage and the scheduling core."""

from __future__ import annotations

from .context import ServiceContext
from .identifiers import IdGenerator
from .plan_store import PlanStore, week_bounds

__all__ = ["IdGenerator", "PlanStore", "ServiceContext", "week_bounds"]
