# -*- coding: utf-8 -*-
"""
CLI Main - WorkDesk
===================

Command-line interface for the server and the offline client.

Usage:
    workdesk serve --port 8000
    workdesk login --email me@example.com --password secret
    workdesk status
    workdesk sync
    workdesk task add "Buy milk" --priority high
    workdesk task list
    workdesk kb list --category process --search deploy
    workdesk report --type weekly --format html --output week.html
    workdesk make-admin --email me@example.com
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from typing import Any, Callable, Dict, Optional, List

from workdesk import __version__
from workdesk import config
from workdesk.database.connection import init_db, transaction_context
from workdesk.database.models import (
    UserRole, TaskPriority, TaskStatus, TaskCategory, KnowledgeCategory, KnowledgeStatus,
)
from workdesk.database.repositories import UserRepository
from workdesk.logging_config import setup_logging
from workdesk.offline import (
    ConnectivityMonitor, JsonFileStore, KeyValueStore, RemoteAPIClient, RemoteError,
    SyncEngine, TaskSyncEngine, KnowledgeSyncEngine, is_local_id,
)
from workdesk.reports import ReportType, ReportFormat, StatusReportGenerator, ExporterFactory

from .output import Output, Color

ENGINES = {
    "tasks": TaskSyncEngine,
    "knowledge": KnowledgeSyncEngine,
}

TASK_COLUMNS = ["id", "title", "status", "priority", "due_date"]
KB_COLUMNS = ["id", "title", "category", "status", "tags"]


def _values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def _iso(value: str) -> str:
    """Normalizes a YYYY-MM-DD[THH:MM] argument; raises ValueError when malformed"""
    return datetime.fromisoformat(value).isoformat()


class CLI:
    """
    Main CLI class.

    Args:
        output: Output handler
        store_factory: Builds the offline store (default JsonFileStore at WORKDESK_STORE_PATH)
        remote_factory: Builds the RemoteAPIClient from (base_url, token)
        session_factory: Session factory for commands that touch the database directly
    """

    def __init__(
        self,
        output: Output = None,
        store_factory: Callable[[], KeyValueStore] = None,
        remote_factory: Callable[[str, str], RemoteAPIClient] = None,
        session_factory=None
    ):
        self.output = output or Output()
        self.store_factory = store_factory or (lambda: JsonFileStore(config.WORKDESK_STORE_PATH))
        self.remote_factory = remote_factory or (lambda url, token: RemoteAPIClient(url, token=token))
        self.session_factory = session_factory
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parent_parser = argparse.ArgumentParser(add_help=False)
        parent_parser.add_argument("--json", action="store_true", help="Output in JSON format")
        parent_parser.add_argument("--no-color", action="store_true", help="Disable colored output")

        client_parser = argparse.ArgumentParser(add_help=False)
        client_parser.add_argument("--url", default=config.WORKDESK_API_URL, help="API base URL")
        client_parser.add_argument("--token", default=config.WORKDESK_TOKEN, help="Bearer token")
        client = [parent_parser, client_parser]

        parser = argparse.ArgumentParser(
            prog="workdesk",
            description="WorkDesk - tasks, knowledge base and sprints",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            parents=[parent_parser],
            epilog="""
Examples:
  workdesk serve                      Run the API server
  workdesk login --email a@b.c -p x   Print a bearer token
  workdesk status                     Connectivity and pending actions
  workdesk sync                       Replay pending actions now
  workdesk task add "Buy milk"        Add a task (queued when offline)
  workdesk kb list --tag deploy       List knowledge entries
  workdesk report --type weekly       Weekly status report
  workdesk make-admin -e a@b.c        Grant admin role (local database)
"""
        )
        parser.add_argument("--version", "-v", action="version", version=f"WorkDesk v{__version__}")

        subparsers = parser.add_subparsers(dest="command", help="Commands")

        serve = subparsers.add_parser("serve", help="Run the API server", parents=[parent_parser])
        serve.add_argument("--host", default=config.API_HOST)
        serve.add_argument("--port", type=int, default=config.API_PORT)
        serve.add_argument("--reload", action="store_true")

        login = subparsers.add_parser("login", help="Log in and print a token", parents=client)
        login.add_argument("--email", "-e", required=True)
        login.add_argument("--password", "-p", required=True)

        subparsers.add_parser("status", help="Show offline client status", parents=client)

        sync = subparsers.add_parser("sync", help="Replay pending actions", parents=client)
        sync.add_argument("--entity", choices=["all"] + list(ENGINES), default="all")

        # Tasks
        task = subparsers.add_parser("task", help="Task commands")
        task_sub = task.add_subparsers(dest="task_command")

        task_sub.add_parser("list", help="List tasks", parents=client)

        task_add = task_sub.add_parser("add", help="Add a task", parents=client)
        task_add.add_argument("title")
        task_add.add_argument("--description", "-d")
        task_add.add_argument("--priority", "-p", choices=_values(TaskPriority))
        task_add.add_argument("--category", "-c", choices=_values(TaskCategory))
        task_add.add_argument("--due", help="Due date (YYYY-MM-DD)")
        task_add.add_argument("--estimate", type=int, help="Estimated minutes")

        task_edit = task_sub.add_parser("edit", help="Change fields of a task", parents=client)
        task_edit.add_argument("task_id")
        task_edit.add_argument("--title")
        task_edit.add_argument("--description", "-d")
        task_edit.add_argument("--priority", "-p", choices=_values(TaskPriority))
        task_edit.add_argument("--category", "-c", choices=_values(TaskCategory))
        task_edit.add_argument("--status", "-s", choices=_values(TaskStatus))
        task_edit.add_argument("--due", help="Due date (YYYY-MM-DD)")

        task_done = task_sub.add_parser("done", help="Mark a task completed", parents=client)
        task_done.add_argument("task_id")

        task_rm = task_sub.add_parser("rm", help="Delete a task", parents=client)
        task_rm.add_argument("task_id")

        # Knowledge base
        kb = subparsers.add_parser("kb", help="Knowledge base commands")
        kb_sub = kb.add_subparsers(dest="kb_command")

        kb_list = kb_sub.add_parser("list", help="List knowledge entries", parents=client)
        kb_list.add_argument("--category", choices=_values(KnowledgeCategory))
        kb_list.add_argument("--status", choices=_values(KnowledgeStatus), help="Default hides archived")
        kb_list.add_argument("--tag")
        kb_list.add_argument("--search", "-q")

        kb_add = kb_sub.add_parser("add", help="Add a knowledge entry", parents=client)
        kb_add.add_argument("title")
        kb_add.add_argument("--content", required=True)
        kb_add.add_argument("--category", required=True, choices=_values(KnowledgeCategory))
        kb_add.add_argument("--status", choices=_values(KnowledgeStatus))
        kb_add.add_argument("--tag", dest="tags", action="append", help="Repeat for several tags")

        kb_rm = kb_sub.add_parser("rm", help="Delete a knowledge entry", parents=client)
        kb_rm.add_argument("entry_id")

        report = subparsers.add_parser("report", help="Generate a status report", parents=client)
        report.add_argument("--type", "-t", dest="report_type", choices=[t.value for t in ReportType], default="daily")
        report.add_argument("--start", help="Custom range start (YYYY-MM-DD)")
        report.add_argument("--end", help="Custom range end (YYYY-MM-DD)")
        report.add_argument("--format", "-f", dest="report_format", choices=[f.value for f in ReportFormat], default="text")
        report.add_argument("--output", "-o", help="Write the report to a file")

        make_admin = subparsers.add_parser("make-admin", help="Grant the admin role to a user", parents=[parent_parser])
        make_admin.add_argument("--email", "-e", required=True)

        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Returns:
            Exit code (0 for success)
        """
        parsed = self.parser.parse_args(args)

        if getattr(parsed, "no_color", False):
            self.output.disable_color()

        if not parsed.command:
            self.parser.print_help()
            return 0

        handler = getattr(self, f"cmd_{parsed.command.replace('-', '_')}", None)
        if handler is None:
            self.output.error(f"Unknown command: {parsed.command}")
            return 1

        try:
            result = handler(parsed)
        except (RemoteError, ValueError, OSError) as e:
            self.output.error(f"Error: {e}")
            return 1

        if getattr(parsed, "json", False) and result is not None:
            print(json.dumps(result, indent=2, ensure_ascii=False), file=self.output.stream)
        return 0

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _with_engines(self, args, names: List[str], action):
        """Probes the server, builds the engines on a shared store and runs action(engines)"""
        store = self.store_factory()
        async with self.remote_factory(args.url, args.token or None) as remote:
            # Probed before the engines subscribe so no replay starts implicitly
            monitor = ConnectivityMonitor(online=await remote.ping())
            engines = {name: ENGINES[name](remote, store, monitor) for name in names}
            try:
                return await action(engines)
            finally:
                for engine in engines.values():
                    engine.close()

    def _write(self, args, name: str, action: Callable[[SyncEngine], Any]):
        """
        Runs one write through the engine. When the server is reachable and
        older actions are still queued they are replayed right after, so the
        queue drains in order.
        """
        async def _run(engines):
            engine = engines[name]
            result = await action(engine)
            if engine.is_online and engine.pending_count:
                await engine.sync_pending_actions()
            return result

        return asyncio.run(self._with_engines(args, [name], _run))

    def _saved(self, args, verb: str, entity: Dict[str, Any]) -> Dict[str, Any]:
        if not args.json:
            if is_local_id(entity["id"]):
                self.output.warning(f"{verb} offline, queued for sync: {entity['title']} [{entity['id']}]")
            else:
                self.output.success(f"{verb}: {entity['title']} [{entity['id']}]")
        return entity

    @staticmethod
    def _fields(args, names: List[str]) -> Dict[str, Any]:
        data = {name: getattr(args, name) for name in names if getattr(args, name, None) is not None}
        if getattr(args, "due", None):
            data["due_date"] = _iso(args.due)
        return data

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def cmd_serve(self, args) -> None:
        import uvicorn

        setup_logging()
        self.output.info(f"Serving WorkDesk API on http://{args.host}:{args.port}")
        uvicorn.run("workdesk.api.app:app", host=args.host, port=args.port, reload=args.reload)

    def cmd_login(self, args) -> dict:
        async def _login():
            async with self.remote_factory(args.url, None) as remote:
                return await remote.login(args.email, args.password)

        data = asyncio.run(_login())
        if not args.json:
            self.output.success(f"Logged in as {data['user']['username']}")
            self.output.print(f"export WORKDESK_TOKEN={data['token']}")
        return data

    def cmd_status(self, args) -> dict:
        async def _status(engines):
            return {name: engine.status() for name, engine in engines.items()}

        status = asyncio.run(self._with_engines(args, list(ENGINES), _status))
        online = all(item["online"] for item in status.values())

        if not args.json:
            self.output.header("WorkDesk - Status")
            self.output.connectivity(online, args.url)
            for name, item in status.items():
                self.output.key_value(f"{name} pending", item["pending"])
                if item["rejected"]:
                    self.output.print(f"  {name} rejected: {item['rejected']}", color=Color.RED)

        return {"online": online, "url": args.url, "entities": status}

    def cmd_sync(self, args) -> dict:
        names = list(ENGINES) if args.entity == "all" else [args.entity]

        async def _sync(engines):
            results = {}
            for name, engine in engines.items():
                results[name] = (await engine.sync_pending_actions()).to_dict()
            return results

        results = asyncio.run(self._with_engines(args, names, _sync))

        if not args.json:
            self.output.header("WorkDesk - Sync")
            for name, report in results.items():
                self.output.sync_report(name, report)
        return results

    def cmd_task(self, args) -> Optional[Any]:
        """Task commands."""
        handler = getattr(self, f"_task_{args.task_command}", None) if args.task_command else None
        if handler is None:
            self.output.warning("Use: task [list|add|edit|done|rm]")
            return None
        return handler(args)

    def _task_list(self, args) -> List[dict]:
        async def _list(engines):
            engine = engines["tasks"]
            return await engine.list(), engine.is_online

        tasks, online = asyncio.run(self._with_engines(args, ["tasks"], _list))
        if not args.json:
            if not online:
                self.output.warning("Server offline, showing cached tasks")
            self.output.entities(tasks, TASK_COLUMNS, empty="No tasks")
        return tasks

    def _task_add(self, args) -> dict:
        data = {"title": args.title, **self._fields(args, ["description", "priority", "category"])}
        if args.estimate is not None:
            data["estimated_time"] = args.estimate
        task = self._write(args, "tasks", lambda engine: engine.create(data))
        return self._saved(args, "Added", task)

    def _task_edit(self, args) -> dict:
        data = self._fields(args, ["title", "description", "priority", "category", "status"])
        if not data:
            raise ValueError("Nothing to change: pass at least one field")
        task = self._write(args, "tasks", lambda engine: engine.update(args.task_id, data))
        return self._saved(args, "Updated", task)

    def _task_done(self, args) -> dict:
        data = {"status": TaskStatus.COMPLETED.value, "completed": True}
        task = self._write(args, "tasks", lambda engine: engine.update(args.task_id, data))
        return self._saved(args, "Completed", task)

    def _task_rm(self, args) -> dict:
        if not self._write(args, "tasks", lambda engine: engine.delete(args.task_id)):
            raise ValueError(f"The server refused to delete task {args.task_id}")
        if not args.json:
            self.output.success(f"Deleted task {args.task_id}")
        return {"deleted": args.task_id}

    def cmd_kb(self, args) -> Optional[Any]:
        """Knowledge base commands."""
        handler = getattr(self, f"_kb_{args.kb_command}", None) if args.kb_command else None
        if handler is None:
            self.output.warning("Use: kb [list|add|rm]")
            return None
        return handler(args)

    def _kb_list(self, args) -> List[dict]:
        filters = self._fields(args, ["category", "status", "tag", "search"])

        async def _list(engines):
            engine = engines["knowledge"]
            return await engine.list(filters), engine.is_online

        entries, online = asyncio.run(self._with_engines(args, ["knowledge"], _list))
        if not args.json:
            if not online:
                self.output.warning("Server offline, filtering cached entries")
            rows = [{**entry, "tags": ", ".join(entry.get("tags") or [])} for entry in entries]
            self.output.entities(rows, KB_COLUMNS, empty="No entries")
        return entries

    def _kb_add(self, args) -> dict:
        data = {"title": args.title, "content": args.content, "category": args.category}
        data.update(self._fields(args, ["status", "tags"]))
        entry = self._write(args, "knowledge", lambda engine: engine.create(data))
        return self._saved(args, "Added", entry)

    def _kb_rm(self, args) -> dict:
        if not self._write(args, "knowledge", lambda engine: engine.delete(args.entry_id)):
            raise ValueError(f"The server refused to delete entry {args.entry_id}")
        if not args.json:
            self.output.success(f"Deleted entry {args.entry_id}")
        return {"deleted": args.entry_id}

    def cmd_report(self, args) -> Optional[dict]:
        async def _tasks(engines):
            return await engines["tasks"].list()

        tasks = asyncio.run(self._with_engines(args, ["tasks"], _tasks))
        report = StatusReportGenerator().generate(tasks, ReportType(args.report_type), args.start, args.end)

        if args.json:
            return report.to_dict()

        content = ExporterFactory.get_exporter(ReportFormat(args.report_format)).export(report)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(content)
            self.output.success(f"Report written to {args.output}")
        else:
            self.output.print(content)
        return None

    def cmd_make_admin(self, args) -> dict:
        """Promotes a user straight in the database (the API only lets admins do this)"""
        with transaction_context(self.session_factory) as db:
            init_db(bind=db.get_bind())
            repo = UserRepository(db)
            user = repo.get_by_email(args.email)
            if user is None:
                raise ValueError(f"No user with email {args.email}")
            user = repo.set_role(user.id, UserRole.ADMIN)
            data = user.to_dict()

        if not args.json:
            self.output.success(f"{data['username']} is now an admin")
        return data


def run_cli(args: Optional[List[str]] = None) -> int:
    """Run the CLI."""
    return CLI().run(args)


def main():
    """Entry point."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
