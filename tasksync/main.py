"""
Offline-first task sync client.

Local task edits are queued in a SQLite database and reconciled with the
remote authority whenever it is reachable.

Usage:
    tasksync run                       # Background sync until Ctrl+C
    tasksync sync                      # Run one sync pass and print the result
    tasksync status                    # Queue and dead-letter counts
    tasksync dead-letters              # Mutations that exhausted their retries
    tasksync add "Title" [-d TEXT]     # Create a task locally
    tasksync update ID [--title T]     # Edit a task locally
    tasksync done ID                   # Mark a task completed
    tasksync delete ID                 # Delete a task locally
    tasksync list                      # List local tasks
    tasksync mock-server [--port N]    # Run the mock remote authority
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .app.sync_application import SyncApplication, setup_logging
from .app.exceptions import TaskServiceError
from .config.app_config import AppConfig
from .models.timestamps import to_iso
from .sync.exceptions import SyncInProgressError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tasksync", description="Offline-first task sync client")
    parser.add_argument("--db", help="Path to the local SQLite database")
    parser.add_argument("--api", help="Base URL of the remote authority")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("run", help="Run background sync until interrupted")
    commands.add_parser("sync", help="Run one sync pass")
    commands.add_parser("status", help="Show sync status")
    commands.add_parser("dead-letters", help="List dead-lettered mutations")

    add = commands.add_parser("add", help="Create a task")
    add.add_argument("title")
    add.add_argument("-d", "--description", default="")

    update = commands.add_parser("update", help="Edit a task")
    update.add_argument("task_id")
    update.add_argument("-t", "--title")
    update.add_argument("-d", "--description")

    done = commands.add_parser("done", help="Mark a task completed")
    done.add_argument("task_id")

    delete = commands.add_parser("delete", help="Delete a task")
    delete.add_argument("task_id")

    commands.add_parser("list", help="List local tasks")

    mock = commands.add_parser("mock-server", help="Run the mock remote authority")
    mock.add_argument("--host", default="127.0.0.1")
    mock.add_argument("--port", type=int, default=3000)
    return parser


def _print_json(data) -> None:
    print(json.dumps(data, indent=2))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the task sync client.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    try:
        config = AppConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 2
    if args.db:
        config.database.path = args.db
    if args.api:
        config.sync.api_base_url = args.api
    setup_logging(config.log_file, logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "mock-server":
        from .mock_api.server import run_server
        run_server(args.host, args.port)
        return 0

    app = SyncApplication(config)
    if args.command == "run":
        app.run()
        return 0

    app.setup()
    try:
        if args.command == "sync":
            result = app.sync_service.run_sync_pass()
            _print_json(result.to_dict())
            return 0 if result.success else 1
        if args.command == "status":
            status = app.sync_service.get_sync_status()
            status["is_online"] = app.sync_service.check_connectivity()
            _print_json(status)
        elif args.command == "dead-letters":
            _print_json([
                {
                    "id": entry.id,
                    "original_queue_id": entry.original_queue_id,
                    "task_id": entry.entity_id,
                    "operation": entry.operation.value,
                    "retry_count": entry.retry_count,
                    "error_message": entry.error_message,
                    "failed_at": to_iso(entry.failed_at),
                }
                for entry in app.sync_service.get_dead_letter_entries()
            ])
        elif args.command == "add":
            task = app.task_service.create_task(args.title, args.description)
            _print_json(task.to_dict())
        elif args.command == "update":
            task = app.task_service.update_task(
                args.task_id, title=args.title, description=args.description
            )
            _print_json(task.to_dict())
        elif args.command == "done":
            _print_json(app.task_service.update_task(args.task_id, completed=True).to_dict())
        elif args.command == "delete":
            app.task_service.delete_task(args.task_id)
            _print_json({"deleted": args.task_id})
        elif args.command == "list":
            _print_json([task.to_dict() for task in app.task_service.list_tasks()])
        return 0
    except (TaskServiceError, SyncInProgressError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        app.shutdown()


if __name__ == "__main__":
    sys.exit(main())
