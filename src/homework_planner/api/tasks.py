from __future__ import annotations

from typing import Dict, List, Optional

from .registry import register_api
from .serializers import serialize_task, serialize_underallocation
from .state import api_state


@register_api(
    "create_task",
    description="Create a task with an estimated duration in minutes and an optional YYYY-MM-DD deadline.",
    category="tasks",
    tags=("create", "task"),
)
def create_task(title: str, estimated_minutes: int, deadline: Optional[str] = None) -> Dict[str, object]:
    task = api_state.plans.add_task(title, estimated_minutes, deadline)
    shortfall = [
        serialize_underallocation(item)
        for item in api_state.plans.snapshot.underallocated
        if item.task_id == task.id
    ]
    return {"task": serialize_task(task), "underallocated": shortfall}


@register_api(
    "update_task",
    description="Edit a task's title, estimate or deadline. Set clear_deadline to remove the deadline.",
    category="tasks",
    tags=("edit", "task"),
)
def update_task(
    task_id: str,
    title: Optional[str] = None,
    estimated_minutes: Optional[int] = None,
    deadline: Optional[str] = None,
    clear_deadline: bool = False,
) -> Dict[str, object]:
    changes: Dict[str, object] = {"title": title, "estimated_minutes": estimated_minutes}
    if clear_deadline:
        changes["deadline"] = None
    elif deadline is not None:
        changes["deadline"] = deadline
    task = api_state.plans.update_task(task_id, **changes)
    return {"task": serialize_task(task) if task else None}


@register_api(
    "complete_task",
    description="Mark a task as completed; its sessions stay for stats but it gets no new ones.",
    category="tasks",
    tags=("status", "complete"),
)
def complete_task(task_id: str) -> Dict[str, object]:
    task = api_state.plans.complete_task(task_id)
    return {"task": serialize_task(task) if task else None}


@register_api(
    "reopen_task",
    description="Reopen a completed task so it is scheduled again.",
    category="tasks",
    tags=("status", "pending"),
)
def reopen_task(task_id: str) -> Dict[str, object]:
    task = api_state.plans.reopen_task(task_id)
    return {"task": serialize_task(task) if task else None}


@register_api(
    "delete_task",
    description="Delete a task together with all of its sessions.",
    category="tasks",
    tags=("delete", "task"),
)
def delete_task(task_id: str) -> Dict[str, object]:
    return {"deleted": api_state.plans.delete_task(task_id), "task_id": task_id}


@register_api(
    "list_tasks",
    description="List tasks ordered by creation time, optionally including completed ones.",
    category="tasks",
    tags=("list", "task"),
)
def list_tasks(include_completed: bool = True) -> Dict[str, List[dict]]:
    tasks = sorted(api_state.plans.list_tasks(), key=lambda task: task.sort_key)
    return {
        "tasks": [serialize_task(task) for task in tasks if include_completed or not task.completed],
    }
