"""Configuration models and helpers."""

from __future__ import annotations

from .settings import AppSettings, PlannerSettings, ServerSettings, StorageSettings, get_settings

__all__ = ["AppSettings", "PlannerSettings", "ServerSettings", "StorageSettings", "get_settings"]
