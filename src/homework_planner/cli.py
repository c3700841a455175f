from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson

from .api import call_api
from .config import get_settings
from .domain import PlannerError
from .logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Homework Planner command line interface.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Add a task and recompute the plan.")
    add_parser.add_argument("title")
    add_parser.add_argument("minutes", type=int, help="Estimated minutes of work.")
    add_parser.add_argument("--deadline", help="Last day the task may be worked on (YYYY-MM-DD).")

    edit_parser = subparsers.add_parser("edit", help="Edit a task.")
    edit_parser.add_argument("task_id")
    edit_parser.add_argument("--title")
    edit_parser.add_argument("--minutes", type=int)
    deadline_group = edit_parser.add_mutually_exclusive_group()
    deadline_group.add_argument("--deadline")
    deadline_group.add_argument("--clear-deadline", action="store_true")

    for name, help_text in (
        ("complete", "Mark a task as completed."),
        ("reopen", "Reopen a completed task."),
        ("delete", "Delete a task and its sessions."),
    ):
        task_parser = subparsers.add_parser(name, help=help_text)
        task_parser.add_argument("task_id")

    list_parser = subparsers.add_parser("list", help="List tasks.")
    list_parser.add_argument("--pending", action="store_true", help="Hide completed tasks.")

    plan_parser = subparsers.add_parser("plan", help="Show the plan for a day or week.")
    plan_parser.add_argument("--date", dest="day", help="Day to show (defaults to today).")
    plan_parser.add_argument("--week", action="store_true", help="Show the whole week containing the day.")

    stats_parser = subparsers.add_parser("stats", help="Show session stats for a day or range.")
    stats_parser.add_argument("--start")
    stats_parser.add_argument("--end")

    strategy_parser = subparsers.add_parser("strategy", help="Select the distribution strategy.")
    strategy_parser.add_argument("strategy", choices=["even", "frontload", "backload", "deadline-weighted"])

    view_parser = subparsers.add_parser("view", help="Select the day or week view.")
    view_parser.add_argument("view_mode", choices=["day", "week"])

    capacity_parser = subparsers.add_parser("capacity", help="Override the schedulable minutes of a day.")
    capacity_parser.add_argument("day")
    capacity_parser.add_argument("minutes", type=int, nargs="?")
    capacity_parser.add_argument(
        "--busy",
        action="append",
        default=[],
        metavar="START-END",
        help="Minute offsets already taken, e.g. 60-120. Repeatable.",
    )
    capacity_parser.add_argument("--clear", action="store_true", help="Remove the override.")

    move_parser = subparsers.add_parser("move", help="Reschedule a session.")
    move_parser.add_argument("segment_id")
    move_parser.add_argument("day")
    move_parser.add_argument("start_minute", type=int)

    export_parser = subparsers.add_parser("export", help="Export all stored data as JSON.")
    export_parser.add_argument("--output", type=Path, help="File to write instead of stdout.")

    import_parser = subparsers.add_parser("import", help="Import data exported earlier.")
    import_parser.add_argument("path", type=Path)

    clear_parser = subparsers.add_parser("clear", help="Delete all stored planner data.")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm the deletion.")

    settings = get_settings()
    api_parser = subparsers.add_parser("api", help="Start the FastAPI server exposing the planner tools.")
    api_parser.add_argument("--host", default=settings.server.host)
    api_parser.add_argument("--port", type=int, default=settings.server.http_port)

    mcp_parser = subparsers.add_parser("mcp", help="Start the FastMCP server.")
    mcp_parser.add_argument("--host", default=settings.server.host)
    mcp_parser.add_argument("--port", type=int, default=settings.server.mcp_port)

    return parser


def _parse_busy(values: List[str]) -> List[Dict[str, int]]:
    ranges = []
    for value in values:
        start, _, end = value.partition("-")
        try:
            ranges.append({"start_minute": int(start), "end_minute": int(end)})
        except ValueError as exc:
            raise ValueError(f"Busy range must look like START-END, got {value!r}") from exc
    return ranges


def _dispatch(args: argparse.Namespace) -> Optional[Any]:
    command = args.command
    if command == "add":
        return call_api("create_task", title=args.title, estimated_minutes=args.minutes, deadline=args.deadline)
    if command == "edit":
        return call_api(
            "update_task",
            task_id=args.task_id,
            title=args.title,
            estimated_minutes=args.minutes,
            deadline=args.deadline,
            clear_deadline=args.clear_deadline,
        )
    if command == "complete":
        return call_api("complete_task", task_id=args.task_id)
    if command == "reopen":
        return call_api("reopen_task", task_id=args.task_id)
    if command == "delete":
        return call_api("delete_task", task_id=args.task_id)
    if command == "list":
        return call_api("list_tasks", include_completed=not args.pending)
    if command == "plan":
        return call_api("plan_for_week" if args.week else "plan_for_date", day=args.day)
    if command == "stats":
        return call_api("plan_stats", start=args.start, end=args.end)
    if command == "strategy":
        return call_api("set_distribution_strategy", strategy=args.strategy)
    if command == "view":
        return call_api("set_view_mode", view_mode=args.view_mode)
    if command == "capacity":
        if args.clear:
            return call_api("clear_day_capacity", day=args.day)
        if args.minutes is None:
            raise ValueError("minutes is required unless --clear is given")
        return call_api(
            "set_day_capacity",
            day=args.day,
            total_minutes=args.minutes,
            occupied_ranges=_parse_busy(args.busy),
        )
    if command == "move":
        return call_api("move_segment", segment_id=args.segment_id, day=args.day, start_minute=args.start_minute)
    if command == "export":
        exported = call_api("export_data")["data"]
        if args.output:
            args.output.write_bytes(orjson.dumps(exported, option=orjson.OPT_INDENT_2) + b"\n")
            return {"written": str(args.output), "keys": sorted(exported)}
        return exported
    if command == "import":
        return call_api("import_data", data=orjson.loads(args.path.read_bytes()))
    if command == "clear":
        return call_api("clear_data", confirm=args.yes)
    if command == "api":
        from .services.http import run_local_server

        run_local_server(host=args.host, port=args.port)
        return None
    if command == "mcp":
        from .services.mcp import run_mcp_server

        run_mcp_server(host=args.host, port=args.port)
        return None
    raise ValueError(f"Unknown command: {command}")  # pragma: no cover - argparse enforces choices


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    configure_logging(settings.log_level, log_dir=settings.storage.data_dir)
    logging.getLogger(__name__).debug("Homework Planner CLI starting")
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        result = _dispatch(args)
    except (PlannerError, ValueError, OSError) as exc:
        parser.exit(2, f"error: {exc}\n")
    if result is not None:
        sys.stdout.write(orjson.dumps(result, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
