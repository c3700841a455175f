from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..services import PlanStore, ServiceContext


@dataclass(slots=True)
class ApiState:
    """Lazily built service context shared by every API function."""

    _context: Optional[ServiceContext] = None

    @property
    def context(self) -> ServiceContext:
        if self._context is None:
            self._context = ServiceContext()
        return self._context

    @property
    def plans(self) -> PlanStore:
        return self.context.plans

    def use(self, context: ServiceContext) -> None:
        self._context = context


api_state = ApiState()
