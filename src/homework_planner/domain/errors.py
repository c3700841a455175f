from __future__ import annotations


class PlannerError(Exception):
    """Base class for errors raised by the planner."""


class InvalidTaskError(PlannerError, ValueError):
    """Raised when a task mutation carries invalid input."""


class SegmentConflictError(PlannerError):
    """Raised when a rescheduled segment would break the plan invariants."""


class StorageError(PlannerError):
    """Raised when the key-value store cannot read or write a value."""


class MalformedValueError(StorageError):
    """Raised when a stored value cannot be decoded."""


class InvalidConfigError(PlannerError, ValueError):
    """Raised when a strategy, view mode or capacity setting is invalid."""
