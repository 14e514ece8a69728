from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from .board.container import BoardContainer
from .config import BoardConfig, load_board_config
from .constants import AUTOMATION_USER
from .errors import BoardError

console = Console()

_PRIORITY_STYLES = {"urgent": "bold red", "high": "yellow", "medium": "cyan", "low": "dim"}


def configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan> - "
            "{message}"
        ),
    )


def _config(args: argparse.Namespace) -> BoardConfig:
    data_dir = Path(args.data_dir).expanduser() if args.data_dir else None
    return load_board_config(data_dir)


def _container(args: argparse.Namespace) -> BoardContainer:
    return BoardContainer(_config(args).data_dir)


def _server(args: argparse.Namespace) -> int:
    import uvicorn

    from .server import create_app

    config = _config(args)
    host = args.host or config.host
    port = args.port or config.port
    app = create_app(config=config)
    logger.info("Mission Control running at http://{}:{}", host, port)
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())
    return 0


def _board(args: argparse.Namespace) -> int:
    container = _container(args)
    snapshot = container.engine.snapshot()
    for stage_name, tasks in container.engine.get_board():
        table = Table(title=f"{stage_name} ({len(tasks)})", title_justify="left", expand=True)
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Title")
        table.add_column("Business")
        table.add_column("Priority")
        table.add_column("Assignee")
        table.add_column("Outcome")
        for task in tasks:
            table.add_row(
                task.id,
                task.title,
                snapshot.business_name(task.business),
                f"[{_PRIORITY_STYLES[task.priority.value]}]{task.priority.value}[/]",
                snapshot.assignee_name(task.assignee),
                task.outcome,
            )
        console.print(table)
    return 0


def _task_create(args: argparse.Namespace) -> int:
    fields = {
        "title": args.title,
        "description": args.description,
        "business": args.business,
        "priority": args.priority,
        "stage": args.stage,
        "assignee": args.assignee,
    }
    task = _container(args).engine.create_task(fields, user=args.user)
    sys.stdout.write(json.dumps(task.to_dict(), indent=2) + "\n")
    return 0


def _task_update(args: argparse.Namespace) -> int:
    patch = {
        "title": args.title,
        "priority": args.priority,
        "stage": args.stage,
        "assignee": args.assignee,
        "outcome": args.outcome,
    }
    task = _container(args).engine.update_task(args.task_id, patch, user=args.user)
    sys.stdout.write(json.dumps(task.to_dict(), indent=2) + "\n")
    return 0


def _task_delete(args: argparse.Namespace) -> int:
    task = _container(args).engine.delete_task(args.task_id, user=args.user)
    sys.stdout.write(json.dumps({"deleted": task.id}) + "\n")
    return 0


def _notifications(args: argparse.Namespace) -> int:
    queue = _container(args).notifications
    entries = queue.unread() if args.unread else queue.list()
    table = Table(title=f"Notifications ({len(entries)})", title_justify="left")
    table.add_column("When", style="dim")
    table.add_column("Type")
    table.add_column("Task")
    table.add_column("User")
    table.add_column("Read")
    for entry in entries:
        table.add_row(entry.created_at, entry.type.value, entry.task_title or "", entry.user, "yes" if entry.read else "")
    console.print(table)
    if args.mark_read:
        changed = queue.mark_all_read()
        console.print(f"Marked {changed} notification(s) as read")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mission Control task board")
    parser.add_argument("--data-dir", default=None, help="Board storage root (default: ./data or MISSION_CONTROL_DATA_DIR)")
    parser.add_argument("--log-level", default=None, help="Log level (default: from config, INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    server = subparsers.add_parser("server", help="Start the web server")
    server.add_argument("--host", default=None)
    server.add_argument("--port", default=None, type=int)
    server.set_defaults(func=_server)

    board = subparsers.add_parser("board", help="Print the board grouped by stage")
    board.set_defaults(func=_board)

    task = subparsers.add_parser("task", help="Manage tasks")
    task.add_argument("--user", default=AUTOMATION_USER, help="Acting user recorded on notifications")
    task_sub = task.add_subparsers(dest="task_cmd", required=True)
    tcreate = task_sub.add_parser("create", help="Create a task")
    tcreate.add_argument("title")
    tcreate.add_argument("--description", default=None)
    tcreate.add_argument("--business", default=None)
    tcreate.add_argument("--priority", default=None, choices=["low", "medium", "high", "urgent"])
    tcreate.add_argument("--stage", default=None)
    tcreate.add_argument("--assignee", default=None)
    tcreate.set_defaults(func=_task_create)
    tupdate = task_sub.add_parser("update", help="Update or move a task")
    tupdate.add_argument("task_id")
    tupdate.add_argument("--title", default=None)
    tupdate.add_argument("--priority", default=None, choices=["low", "medium", "high", "urgent"])
    tupdate.add_argument("--stage", default=None)
    tupdate.add_argument("--assignee", default=None)
    tupdate.add_argument("--outcome", default=None)
    tupdate.set_defaults(func=_task_update)
    tdelete = task_sub.add_parser("delete", help="Delete a task")
    tdelete.add_argument("task_id")
    tdelete.set_defaults(func=_task_delete)

    notifications = subparsers.add_parser("notifications", help="Show the notification queue")
    notifications.add_argument("--unread", action="store_true")
    notifications.add_argument("--mark-read", action="store_true")
    notifications.set_defaults(func=_notifications)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or _config(args).log_level)
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return int(handler(args) or 0)
    except BoardError as exc:
        sys.stderr.write(f"error: {exc.message}\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
