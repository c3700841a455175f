"""Data access layer."""

from __future__ import annotations

from .storage import JsonFileStore, KeyValueStore, MemoryStore, StorageUsage

__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore", "StorageUsage"]
