"""Pure scheduling core: capacity, strategies, allocation and stats."""

from __future__ import annotations

from .allocator import DEFAULT_LOOKAHEAD_DAYS, horizon_days, recompute
from .capacity import CapacityModel, free_minutes, free_ranges
from .stats import compute_stats, find_overlaps, segments_between
from .strategies import DistributionPolicy, distribute, policy_for

__all__ = [
    "CapacityModel",
    "DEFAULT_LOOKAHEAD_DAYS",
    "DistributionPolicy",
    "compute_stats",
    "distribute",
    "find_overlaps",
    "free_minutes",
    "free_ranges",
    "horizon_days",
    "policy_for",
    "recompute",
    "segments_between",
]
