from __future__ import annotations

from typing import Any, Dict

from .registry import register_api
from .state import api_state


@register_api(
    "export_data",
    description="Export every stored key as one JSON object keyed by short key names.",
    category="data",
    tags=("export", "backup"),
)
def export_data() -> Dict[str, Any]:
    return {"data": api_state.plans.export_state()}


@register_api(
    "import_data",
    description="Import a previously exported JSON object, overwriting only the keys it contains.",
    category="data",
    tags=("import", "restore"),
)
def import_data(data: Dict[str, Any]) -> Dict[str, Any]:
    snapshot = api_state.plans.import_state(data)
    return {
        "imported_keys": sorted(data),
        "task_count": len(snapshot.tasks),
        "segment_count": len(snapshot.segments),
    }


@register_api(
    "storage_usage",
    description="Report how many bytes and keys the planner currently stores.",
    category="data",
    tags=("storage", "stats"),
)
def storage_usage() -> Dict[str, Any]:
    usage = api_state.context.storage.usage()
    return {"used_bytes": usage.used_bytes, "key_count": usage.key_count}


@register_api(
    "clear_data",
    description="Delete every stored task, session and setting. Requires confirm=true.",
    category="data",
    tags=("clear", "reset"),
)
def clear_data(confirm: bool = False) -> Dict[str, Any]:
    if not confirm:
        raise ValueError("Pass confirm=true to delete all stored planner data")
    removed = api_state.plans.clear_all()
    return {"removed_keys": removed, "task_count": len(api_state.plans.snapshot.tasks)}
