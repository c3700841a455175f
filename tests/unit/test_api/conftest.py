"""Point the shared API state at an in-memory context with a fixed clock."""

import pytest

from homework_planner.api import api_state
from homework_planner.data import MemoryStore
from homework_planner.services import PlanStore, ServiceContext


@pytest.fixture
def api_context(app_settings, clock):
    storage = MemoryStore()
    context = ServiceContext(settings=app_settings, storage=storage)
    context.plans = PlanStore(storage, settings=app_settings.planner, clock=clock)
    previous = api_state._context
    api_state.use(context)
    yield context
    api_state._context = previous
