from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..config import AppSettings, get_settings
from ..data import JsonFileStore, KeyValueStore
from .plan_store import PlanStore


@dataclass(slots=True)
class ServiceContext:
    """Aggregate root sharing settings, storage and the plan store."""

    settings: AppSettings = field(default_factory=get_settings)
    storage: Optional[KeyValueStore] = None
    plans: PlanStore = field(init=False)

    def __post_init__(self) -> None:
        if self.storage is None:
            self.storage = JsonFileStore(
                directory=self.settings.storage.data_dir,
                prefix=self.settings.storage.key_prefix,
            )
        self.plans = PlanStore(self.storage, settings=self.settings.planner)
